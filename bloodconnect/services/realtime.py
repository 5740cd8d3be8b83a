"""Socket.IO rooms and broadcast helpers.

Admins join ``admins``, students join ``students``, and every connected
user joins ``user_<id>``. A socket may only ever be in those two rooms.
"""
import logging

from flask import request
from flask_jwt_extended import decode_token
from flask_socketio import ConnectionRefusedError, join_room, leave_room
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from bloodconnect.extensions import db, socketio
from bloodconnect.models import User
from bloodconnect.services import session_service

logger = logging.getLogger(__name__)

ADMIN_ROOM = 'admins'
STUDENT_ROOM = 'students'

# sid -> rooms the socket is allowed to be in
_allowed_rooms = {}


def user_room(user_id):
    return f'user_{user_id}'


def rooms_for(user):
    return {ADMIN_ROOM if user.is_admin else STUDENT_ROOM, user_room(user.id)}


@socketio.on('connect')
def handle_connect(auth=None):
    token = (auth or {}).get('token')
    if not token:
        raise ConnectionRefusedError('Authentication error')
    try:
        payload = decode_token(token)
    except (PyJWTError, JWTExtendedException):
        raise ConnectionRefusedError('Authentication error')

    user = db.session.get(User, payload.get('sub'))
    if not user:
        raise ConnectionRefusedError('User not found')
    if not session_service.is_session_active(user.id, payload.get('jti')):
        raise ConnectionRefusedError('Session expired')

    rooms = rooms_for(user)
    _allowed_rooms[request.sid] = rooms
    for room in rooms:
        join_room(room)
    logger.info(f'User {user.id} connected with role {user.role} ({request.sid})')


@socketio.on('disconnect')
def handle_disconnect(*args):
    _allowed_rooms.pop(request.sid, None)
    logger.info(f'Socket {request.sid} disconnected')


@socketio.on('join_room')
def handle_join_room(room):
    """Rejoin one of the socket's own rooms; anything else is refused."""
    if room not in _allowed_rooms.get(request.sid, ()):
        logger.warning(f'Socket {request.sid} refused access to room {room}')
        return False
    join_room(room)
    return True


@socketio.on('leave_room')
def handle_leave_room(room):
    leave_room(room)


def _emit(event, data, room):
    try:
        socketio.emit(event, data, to=room)
    except Exception as e:
        logger.error(f'Realtime emit of "{event}" to {room} failed: {e}')


def emit_to_admins(event, data):
    _emit(event, data, ADMIN_ROOM)


def emit_to_user(user_id, event, data):
    _emit(event, data, user_room(user_id))
