import csv
import io

from flask import Blueprint, current_app, make_response, request
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from bloodconnect.auth import admin_required
from bloodconnect.constants import LOG_LEVELS
from bloodconnect.errors import error_response
from bloodconnect.extensions import db
from bloodconnect.models import SystemLog
from bloodconnect.utils import api_response, page_args, paginate, parse_datetime

logs_bp = Blueprint('logs_bp', __name__, url_prefix='/api/logs')


@logs_bp.before_request
@admin_required
def require_admin():
    pass


def _log_query(with_filters=True):
    query = SystemLog.query.filter(~SystemLog.message.ilike('%/api/logs%'))
    start = parse_datetime(request.args.get('startDate'))
    end = parse_datetime(request.args.get('endDate'))
    if start:
        query = query.filter(SystemLog.timestamp >= start)
    if end:
        query = query.filter(SystemLog.timestamp <= end)
    if with_filters:
        if request.args.get('level'):
            query = query.filter(SystemLog.level == request.args['level'])
        if request.args.get('user'):
            query = query.filter(SystemLog.user.ilike(f"%{request.args['user']}%"))
        if request.args.get('search'):
            query = query.filter(SystemLog.message.ilike(f"%{request.args['search']}%"))
    return query.order_by(SystemLog.timestamp.desc())


@logs_bp.route('/', methods=['GET'], strict_slashes=False)
def get_system_logs():
    page, limit = page_args(default_limit=20)
    try:
        return api_response(paginate(_log_query(), page, limit))
    except SQLAlchemyError as e:
        current_app.logger.error(f'Get system logs error: {e}')
        return error_response('Database error occurred', 500)


@logs_bp.route('/stats', methods=['GET'])
def get_log_stats():
    try:
        rows = db.session.query(SystemLog.level, func.count()) \
            .filter(~SystemLog.message.ilike('%/api/logs%')) \
            .group_by(SystemLog.level).all()
        counts = dict(rows)
        data = {f'{level.lower()}Logs': counts.get(level, 0) for level in LOG_LEVELS}
        data['totalLogs'] = sum(counts.values())
        return api_response(data)
    except SQLAlchemyError as e:
        current_app.logger.error(f'Get log stats error: {e}')
        return error_response('Database error occurred', 500)


@logs_bp.route('/export', methods=['GET'])
def export_logs():
    try:
        logs = _log_query(with_filters=False).all()
    except SQLAlchemyError as e:
        current_app.logger.error(f'Export logs error: {e}')
        return error_response('Database error occurred', 500)

    if request.args.get('format', 'json') != 'csv':
        return api_response([log.to_dict() for log in logs])

    si = io.StringIO()
    cw = csv.writer(si)
    cw.writerow(['Time', 'Level', 'User', 'Message'])
    for log in logs:
        cw.writerow([log.timestamp.strftime('%Y-%m-%d %H:%M:%S'), log.level, log.user, log.message])
    output = make_response(si.getvalue())
    output.headers['Content-Disposition'] = 'attachment; filename=system-logs.csv'
    output.headers['Content-Type'] = 'text/csv'
    return output
