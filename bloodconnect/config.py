import os
from datetime import timedelta

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(os.path.dirname(basedir), '.env'))


def _bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'change-me')
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL', 'sqlite:///' + os.path.join(os.path.dirname(basedir), 'bloodconnect.db')
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', SECRET_KEY)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=1)
    SESSION_TTL = timedelta(days=int(os.getenv('SESSION_TTL_DAYS', '7')))
    BCRYPT_LOG_ROUNDS = 12

    MAIL_SERVER = os.getenv('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.getenv('MAIL_PORT', '587'))
    MAIL_USE_TLS = _bool('MAIL_USE_TLS', True)
    MAIL_USE_SSL = _bool('MAIL_USE_SSL', False)
    MAIL_USERNAME = os.getenv('MAIL_USERNAME')
    MAIL_PASSWORD = os.getenv('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.getenv('MAIL_DEFAULT_SENDER', 'BloodConnect <no-reply@bloodconnect.local>')
    ADMIN_EMAIL = os.getenv('ADMIN_EMAIL', 'admin@brms.com')
    FRONTEND_URL = os.getenv('FRONTEND_URL', 'http://localhost:5173')

    UPLOAD_FOLDER = os.path.abspath(os.getenv('UPLOAD_FOLDER', os.path.join(os.path.dirname(basedir), 'uploads')))
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max file size

    RATELIMIT_ENABLED = _bool('RATELIMIT_ENABLED', True)
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_HEADERS_ENABLED = True

    KEEP_ALIVE_URL = os.getenv('KEEP_ALIVE_URL')
    KEEP_ALIVE_INTERVAL_MINUTES = int(os.getenv('KEEP_ALIVE_INTERVAL_MINUTES', '10'))
    KEEP_ALIVE_IDLE_MINUTES = int(os.getenv('KEEP_ALIVE_IDLE_MINUTES', '10'))
    SCHEDULER_API_ENABLED = False

    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')
    SOCKETIO_ASYNC_MODE = os.getenv('SOCKETIO_ASYNC_MODE') or None

    LOG_FILE = os.getenv('LOG_FILE', 'bloodconnect.log')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    DEFAULT_ADMIN_EMAIL = os.getenv('DEFAULT_ADMIN_EMAIL', 'admin@brms.com')
    DEFAULT_ADMIN_PASSWORD = os.getenv('DEFAULT_ADMIN_PASSWORD', 'admin123')


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    BCRYPT_LOG_ROUNDS = 4
    MAIL_SUPPRESS_SEND = True
    RATELIMIT_ENABLED = False
    KEEP_ALIVE_URL = None
    SOCKETIO_ASYNC_MODE = 'threading'
    LOG_FILE = None


class ProductionConfig(Config):
    DEBUG = False


config_by_name = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}
