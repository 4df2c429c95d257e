# examtracker/__init__.py
from flask import Flask
from flask_cors import CORS

from examtracker.utils.db import init_db, close_db
from examtracker.utils.logger import setup_logger
from examtracker.config import Config


def create_app(config_overrides=None):
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    setup_logger('examtracker',
                 log_dir=app.config['LOG_DIR'],
                 level=app.config['LOG_LEVEL'],
                 to_file=app.config['LOG_TO_FILE'])

    # Configure CORS for the API and auth endpoints; the session cookie must travel with requests
    origins = app.config['CORS_ORIGINS']
    CORS(app,
         resources={
             r"/api/*": {
                 "origins": origins,
                 "methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
                 "allow_headers": ["Content-Type", "Authorization", "X-Requested-With"],
                 "supports_credentials": True,
                 "expose_headers": ["Content-Type", "Authorization"]
             },
             r"/auth/*": {
                 "origins": origins,
                 "supports_credentials": True,
                 "methods": ["GET", "POST", "OPTIONS"],
                 "allow_headers": ["Content-Type", "Authorization", "X-Requested-With"]
             }
         },
         supports_credentials=True)

    # Register database cleanup function
    app.teardown_appcontext(close_db)

    # Initialize database
    with app.app_context():
        init_db(app)

    # Site settings are reached through the app, not a module global
    from examtracker.models.settings import SettingsStore
    app.extensions['settings_store'] = SettingsStore()

    # Register blueprints (import here to avoid circular imports)
    from examtracker.routes.auth import bp as auth_bp
    from examtracker.routes.users import bp as users_bp
    from examtracker.routes.messages import bp as messages_bp
    from examtracker.routes.dashboard import bp as dashboard_bp
    from examtracker.routes.admin_routes import bp as admin_bp

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(messages_bp, url_prefix='/api/messages')
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(admin_bp)

    # Area checks for /student, /advanced, /teacher and /admin
    from examtracker.rbac.guard import register_route_guard
    register_route_guard(app)

    return app
