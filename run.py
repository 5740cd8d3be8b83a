import os

from bloodconnect import create_app
from bloodconnect.extensions import socketio

app = create_app()

# Ensure the app runs only if this script is executed directly
if __name__ == '__main__':
    socketio.run(app, host='0.0.0.0', port=int(os.getenv('PORT', '5000')), debug=app.config.get('DEBUG', False),
                 allow_unsafe_werkzeug=True)
