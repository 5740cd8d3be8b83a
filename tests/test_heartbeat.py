from datetime import datetime, timedelta

import requests

from bloodconnect.services.heartbeat import KEEP_ALIVE_HEADER, Heartbeat


class FakeClock:
    def __init__(self):
        self.now = datetime(2025, 6, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeResponse:
    status_code = 200

    def raise_for_status(self):
        pass


class FakeHttp:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def get(self, url, headers=None, timeout=None):
        self.calls.append((url, headers))
        if self.error:
            raise self.error
        return FakeResponse()


def test_pings_only_after_idle_threshold():
    clock, http = FakeClock(), FakeHttp()
    heartbeat = Heartbeat('https://example.org/api/keep-alive', timedelta(minutes=10), clock=clock, http=http)

    clock.advance(minutes=5)
    assert heartbeat.ping_if_idle() is False
    assert http.calls == []

    clock.advance(minutes=6)
    assert heartbeat.ping_if_idle() is True
    assert http.calls == [('https://example.org/api/keep-alive', {KEEP_ALIVE_HEADER: 'true'})]


def test_activity_resets_idle_time():
    clock, http = FakeClock(), FakeHttp()
    heartbeat = Heartbeat('https://example.org/health', timedelta(minutes=10), clock=clock, http=http)

    clock.advance(minutes=9)
    heartbeat.touch()
    clock.advance(minutes=9)

    assert heartbeat.ping_if_idle() is False
    assert heartbeat.status()['idleSeconds'] == 540
    assert heartbeat.status()['isInactive'] is False


def test_failed_ping_is_reported():
    clock = FakeClock()
    http = FakeHttp(error=requests.ConnectionError('down'))
    heartbeat = Heartbeat('https://example.org/health', timedelta(minutes=1), clock=clock, http=http)
    clock.advance(minutes=2)

    assert heartbeat.ping_if_idle() is False
    assert len(http.calls) == 1


def test_disabled_without_url():
    clock, http = FakeClock(), FakeHttp()
    heartbeat = Heartbeat(None, timedelta(minutes=1), clock=clock, http=http)
    clock.advance(hours=1)

    assert heartbeat.ping_if_idle() is False
    assert heartbeat.status()['keepAliveEnabled'] is False
    assert http.calls == []


def test_health_endpoint(client, app):
    heartbeat = app.extensions['heartbeat']
    heartbeat.last_activity = datetime(2020, 1, 1)

    keep_alive = client.get('/health', headers={KEEP_ALIVE_HEADER: 'true'})
    assert keep_alive.get_json()['isKeepAliveRequest'] is True
    assert heartbeat.last_activity == datetime(2020, 1, 1)

    response = client.get('/health')
    body = response.get_json()
    assert response.status_code == 200
    assert body['status'] == 'OK'
    assert body['environment'] == 'testing'
    assert body['keepAliveEnabled'] is False
    assert heartbeat.last_activity > datetime(2020, 1, 1)
