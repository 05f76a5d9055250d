import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration class with all settings as static attributes."""

    # Core configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'your-secret-key-here'
    DEBUG = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'
    VERSION = '1.0.0'

    # Database configuration
    base_db_uri = os.environ.get('DATABASE_URL')

    # Fallback to SQLite if no DATABASE_URL is provided
    if not base_db_uri:
        base_db_uri = 'sqlite:///academy.db'

    SQLALCHEMY_DATABASE_URI = base_db_uri

    # Disable track modifications for performance
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # SQLAlchemy engine options (only meaningful for server databases)
    if base_db_uri.startswith('sqlite'):
        SQLALCHEMY_ENGINE_OPTIONS = {}
    else:
        SQLALCHEMY_ENGINE_OPTIONS = {
            "pool_recycle": 3600,  # Recycle connections after 1 hour
            "pool_pre_ping": True,  # Check connection health before use
            "pool_size": 10,
            "max_overflow": 20,
        }

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
    LOG_TO_FILE = os.environ.get('LOG_TO_FILE', 'false').lower() == 'true'
    LOG_DIR = os.environ.get('LOG_DIR', 'logs')

    # Seat accounting
    MAX_IN_PERSON_CAPACITY = int(os.environ.get('MAX_IN_PERSON_CAPACITY', 24))
    REGULAR_GROUP_CAPACITY = 24
    INTENSIVE_GROUP_CAPACITY = 50

    # Physical rooms; the virtual classroom has no in-person seats
    CLASSROOM_CAPACITY = {
        'aula_portal1': 24,
        'aula_portal2': 24,
        'aula_virtual': 0
    }

    # Online attendance requests must be filed this many hours before the session
    ONLINE_REQUEST_MIN_HOURS = int(os.environ.get('ONLINE_REQUEST_MIN_HOURS', 6))

    # Session generation
    MAX_GENERATION_DAYS = 366
    UPCOMING_SESSIONS_LIMIT = 999

    # Notifications (postponement / cancellation)
    NOTIFICATIONS_ENABLED = os.environ.get('NOTIFICATIONS_ENABLED', 'false').lower() == 'true'
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 465))
    MAIL_USE_SSL = os.environ.get('MAIL_USE_SSL', 'true').lower() == 'true'
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'Academy <no-reply@academy.local>')
    MAIL_TIMEOUT = 10


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_ECHO = os.environ.get('SQL_DEBUG', 'false').lower() == 'true'


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False

    # Checked by the application factory, not at import time
    REQUIRED_ENV = ('SECRET_KEY', 'DATABASE_URL')


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LOG_TO_FILE = False
    NOTIFICATIONS_ENABLED = False


# Configuration dictionary
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}
