import logging
from datetime import datetime, timedelta

import requests

logger = logging.getLogger(__name__)

KEEP_ALIVE_HEADER = 'X-Keep-Alive'


class Heartbeat:
    """Tracks the last request and pings the service when it goes quiet.

    ``clock`` and ``http`` are injectable so the idle logic can be driven
    without waiting or touching the network.
    """

    def __init__(self, url=None, idle_threshold=timedelta(minutes=10), clock=datetime.utcnow, http=requests,
                 timeout=30):
        self.url = url
        self.idle_threshold = idle_threshold
        self.clock = clock
        self.http = http
        self.timeout = timeout
        self.last_activity = clock()

    def touch(self):
        self.last_activity = self.clock()

    def seconds_idle(self):
        return (self.clock() - self.last_activity).total_seconds()

    def status(self):
        return {
            'lastActivity': self.last_activity.isoformat(),
            'idleSeconds': int(self.seconds_idle()),
            'thresholdSeconds': int(self.idle_threshold.total_seconds()),
            'isInactive': self.seconds_idle() > self.idle_threshold.total_seconds(),
            'keepAliveEnabled': bool(self.url),
        }

    def ping_if_idle(self):
        """GET the keep-alive URL when idle past the threshold.

        Returns True when a ping succeeded.
        """
        if not self.url:
            return False
        if self.seconds_idle() < self.idle_threshold.total_seconds():
            return False
        try:
            response = self.http.get(self.url, headers={KEEP_ALIVE_HEADER: 'true'}, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f'Keep-alive ping to {self.url} failed: {e}')
            return False
        logger.info(f'Keep-alive ping sent to {self.url} ({response.status_code})')
        return True


def init_heartbeat(app, scheduler=None):
    heartbeat = Heartbeat(
        url=app.config.get('KEEP_ALIVE_URL'),
        idle_threshold=timedelta(minutes=app.config['KEEP_ALIVE_IDLE_MINUTES']),
    )
    app.extensions['heartbeat'] = heartbeat

    if scheduler is not None and heartbeat.url:
        scheduler.add_job(
            id='keep_alive',
            func=heartbeat.ping_if_idle,
            trigger='interval',
            minutes=app.config['KEEP_ALIVE_INTERVAL_MINUTES'],
            replace_existing=True,
        )
    return heartbeat
