import os
import time
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request, send_from_directory

from bloodconnect.extensions import limiter
from bloodconnect.services.heartbeat import KEEP_ALIVE_HEADER

system_bp = Blueprint('system_bp', __name__)

STARTED_AT = time.monotonic()


def is_keep_alive_request():
    return request.headers.get(KEEP_ALIVE_HEADER) == 'true' or request.path == '/api/keep-alive'


@system_bp.route('/health', methods=['GET'])
@limiter.exempt
def health():
    heartbeat = current_app.extensions['heartbeat']
    return jsonify({
        'status': 'OK',
        'timestamp': datetime.utcnow().isoformat(),
        'uptime': round(time.monotonic() - STARTED_AT, 2),
        'environment': current_app.config.get('ENV_NAME', 'development'),
        'isKeepAliveRequest': is_keep_alive_request(),
        **heartbeat.status(),
    }), 200


@system_bp.route('/api/keep-alive', methods=['GET'])
@limiter.exempt
def keep_alive():
    return jsonify({'success': True, 'data': current_app.extensions['heartbeat'].status()}), 200


@system_bp.route('/uploads/geotags/<path:filename>', methods=['GET'])
def geotag_photo(filename):
    # Certificate PDFs are only served by the authenticated download routes
    return send_from_directory(os.path.join(current_app.config['UPLOAD_FOLDER'], 'geotags'), filename)
