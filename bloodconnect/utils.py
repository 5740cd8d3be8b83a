import calendar
import math
import re
import uuid
from datetime import datetime

from flask import jsonify, request

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def api_response(data=None, message=None, status=200):
    body = {'success': True}
    if data is not None:
        body['data'] = data
    if message:
        body['message'] = message
    return jsonify(body), status


def get_json():
    """Request body as a dict, empty when missing or not JSON."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def page_args(default_limit=10):
    try:
        page = max(int(request.args.get('page', 1)), 1)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = min(max(int(request.args.get('limit', default_limit)), 1), 100)
    except (TypeError, ValueError):
        limit = default_limit
    return page, limit


def paginate(query, page, limit, serialize=lambda item: item.to_dict()):
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return {
        'data': [serialize(item) for item in items],
        'total': total,
        'page': page,
        'limit': limit,
        'totalPages': math.ceil(total / limit) if limit else 0,
    }


def add_months(value, months):
    """Shift a datetime by calendar months, clamping to the month's last day."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def parse_datetime(value):
    """Parse an ISO 8601 string into a naive UTC datetime, or None."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is not None:
        parsed = (parsed - parsed.utcoffset()).replace(tzinfo=None)
    return parsed


def isoformat(value):
    return value.isoformat() if value else None


def is_valid_email(value):
    return isinstance(value, str) and bool(EMAIL_RE.match(value))


def to_bool(value):
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def new_id():
    return str(uuid.uuid4())
