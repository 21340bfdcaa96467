"""
Application Factory
Creates and configures the Flask application
"""
import logging

from flask import Flask
from elearning.config import get_config
from elearning.extensions import db, socketio


def create_app(config_name=None):
    """
    Application factory pattern
    Creates and configures Flask app
    """
    app = Flask(__name__)

    # Load configuration
    if config_name:
        from elearning.config import config
        app.config.from_object(config[config_name])
    else:
        app.config.from_object(get_config())

    # Logging: engine and service modules log under the "elearning" logger
    level = app.config.get('LOG_LEVEL', 'INFO')
    app.logger.setLevel(level)
    package_logger = logging.getLogger('elearning')
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            '[%(asctime)s] %(levelname)s in %(name)s: %(message)s'
        ))
        package_logger.addHandler(handler)

    # Initialize extensions
    db.init_app(app)
    socketio.init_app(
        app,
        cors_allowed_origins=app.config['SOCKETIO_CORS_ALLOWED_ORIGINS'],
        async_mode=app.config['SOCKETIO_ASYNC_MODE']
    )

    # Register blueprints
    from elearning.routes import student_bp

    # Student routes (prefixed with /student)
    app.register_blueprint(student_bp, url_prefix='/student')

    # Register Socket.IO events
    from elearning.sockets import register_socket_events
    with app.app_context():
        register_socket_events()

    # CLI
    from elearning.commands import register_commands
    register_commands(app)

    # Create database tables
    with app.app_context():
        import elearning.models  # noqa: F401
        db.create_all()
        app.logger.info('Database tables created/verified')

    return app
