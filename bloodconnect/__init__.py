import logging
import os
from logging.handlers import RotatingFileHandler

from flask import Flask, request
from flask_jwt_extended import get_current_user

from bloodconnect.config import config_by_name
from bloodconnect.extensions import db, migrate, bcrypt, jwt, scheduler, mail, cors, socketio, limiter


def configure_logging(app):
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)

    package_logger = logging.getLogger('bloodconnect')
    package_logger.setLevel(level)
    app.logger.setLevel(level)

    if app.config.get('LOG_FILE'):
        handler = RotatingFileHandler(app.config['LOG_FILE'], maxBytes=1024 * 1024, backupCount=3)
        handler.setLevel(level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)
        app.logger.addHandler(handler)


def create_app(config_name=None, config_overrides=None):
    """Flask application factory"""
    config_name = config_name or os.getenv('APP_ENV', 'development')
    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    if config_overrides:
        app.config.update(config_overrides)
    app.config['ENV_NAME'] = config_name
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    bcrypt.init_app(app)
    jwt.init_app(app)
    mail.init_app(app)
    cors.init_app(app, resources={r'/*': {'origins': app.config['CORS_ORIGINS']}}, supports_credentials=True)
    limiter.init_app(app)

    # Socket.IO handlers and JWT callbacks register on import
    from bloodconnect.services import realtime  # noqa: F401
    from bloodconnect import auth  # noqa: F401
    socketio.init_app(
        app,
        cors_allowed_origins=app.config['CORS_ORIGINS'],
        async_mode=app.config['SOCKETIO_ASYNC_MODE'],
    )

    from bloodconnect.errors import register_error_handlers
    register_error_handlers(app)

    # Register Blueprints
    from bloodconnect.controllers.auth_controller import auth_bp
    from bloodconnect.controllers.request_controller import request_bp
    from bloodconnect.controllers.student_controller import student_bp
    from bloodconnect.controllers.admin_controller import admin_bp
    from bloodconnect.controllers.notification_controller import notification_bp
    from bloodconnect.controllers.certificate_controller import certificate_bp
    from bloodconnect.controllers.logs_controller import logs_bp
    from bloodconnect.controllers.system_controller import is_keep_alive_request, system_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(request_bp)
    app.register_blueprint(student_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(certificate_bp)
    app.register_blueprint(logs_bp)
    app.register_blueprint(system_bp)

    from bloodconnect.services.heartbeat import init_heartbeat
    run_scheduler = bool(app.config.get('KEEP_ALIVE_URL')) and not app.config.get('TESTING')
    if run_scheduler:
        scheduler.init_app(app)
    heartbeat = init_heartbeat(app, scheduler if run_scheduler else None)
    if run_scheduler and not scheduler.running:
        scheduler.start()

    from bloodconnect.services.system_log_service import record_http_request

    @app.before_request
    def track_activity():
        if not is_keep_alive_request():
            heartbeat.touch()

    @app.after_request
    def log_http_request(response):
        if request.path.startswith('/api/logs') or is_keep_alive_request() or request.method == 'OPTIONS':
            return response
        try:
            user = get_current_user()
        except RuntimeError:
            user = None
        record_http_request(request.method, request.full_path.rstrip('?'), user)
        return response

    from bloodconnect.commands import register_commands
    register_commands(app)

    return app
