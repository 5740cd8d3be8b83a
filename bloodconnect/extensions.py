from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_bcrypt import Bcrypt
from flask_jwt_extended import JWTManager
from flask_apscheduler import APScheduler
from flask_mail import Mail
from flask_cors import CORS
from flask_socketio import SocketIO
from flask_limiter import Limiter

from bloodconnect.rate_limits import GENERAL_LIMIT, ip_and_user_key

db = SQLAlchemy()
migrate = Migrate()
bcrypt = Bcrypt()
jwt = JWTManager()
scheduler = APScheduler()
mail = Mail()
cors = CORS()
socketio = SocketIO()
limiter = Limiter(key_func=ip_and_user_key, default_limits=[GENERAL_LIMIT])
