"""
Asset Library Configuration Module

Environment-driven settings for the database, the QC workflow, caller identity
defaults and the HTTP server. Select a class with get_config() or FLASK_ENV.
"""

import os
from pathlib import Path


PACKAGE_DIR = Path(__file__).parent.resolve()

DEFAULT_SECRET_KEY = 'asset-library-dev-secret'


def _env_flag(name, default):
    return os.environ.get(name, default).lower() in ('true', '1', 'yes')


def sqlite_path():
    """Location of the SQLite file used when DATABASE_URL is not set."""
    return Path(os.environ.get('ASSET_LIBRARY_DATABASE_PATH', PACKAGE_DIR / 'data' / 'asset_library.db'))


def get_database_url():
    """
    Resolve the SQLAlchemy database URL.

    DATABASE_URL wins when present; postgres:// is rewritten to postgresql://
    since SQLAlchemy 1.4 dropped the old scheme name.
    """
    url = os.environ.get('DATABASE_URL')
    if not url:
        return f'sqlite:///{sqlite_path()}'
    if url.startswith('postgres://'):
        return 'postgresql://' + url[len('postgres://'):]
    return url


class Config:
    """Settings shared by every environment."""

    SECRET_KEY = os.environ.get('SECRET_KEY', DEFAULT_SECRET_KEY)
    BASE_DIR = PACKAGE_DIR

    # Database
    SQLALCHEMY_DATABASE_URI = get_database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Server
    HOST = os.environ.get('ASSET_LIBRARY_HOST', '0.0.0.0')
    PORT = int(os.environ.get('ASSET_LIBRARY_PORT', 3001))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

    # QC workflow
    # Reload-and-reapply attempts when another request updated the asset first
    QC_MAX_TRANSITION_ATTEMPTS = int(os.environ.get('QC_MAX_TRANSITION_ATTEMPTS', 3))
    QC_MAX_SCORE = 100

    # Identity
    # Role assumed when a request carries no X-User-Role header
    DEFAULT_ROLE = os.environ.get('DEFAULT_ROLE', 'guest')
    # Optional override of the role -> permission table, e.g. {'qc': ['view_assets', ...]}
    ROLE_PERMISSIONS = None

    # Seed the default workflow stage master rows on startup
    SEED_MASTER_DATA = _env_flag('SEED_MASTER_DATA', 'true')

    DEFAULT_PAGE_SIZE = 50
    MAX_PAGE_SIZE = 200

    # Environment variables that must be set explicitly
    REQUIRED_ENV_VARS = ()

    @classmethod
    def init_app(cls, app):
        """Check required environment and prepare the SQLite directory."""
        missing = [name for name in cls.REQUIRED_ENV_VARS if not os.environ.get(name)]
        if missing:
            raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

        if cls.SQLALCHEMY_DATABASE_URI.startswith('sqlite:///') and ':memory:' not in cls.SQLALCHEMY_DATABASE_URI:
            try:
                sqlite_path().parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                app.logger.warning(f"Could not create database directory: {e}")


class DevelopmentConfig(Config):
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """In-memory SQLite, no seeding."""

    DEBUG = True
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SEED_MASTER_DATA = False


class ProductionConfig(Config):
    """Requires an explicit database and secret key."""

    DEBUG = False
    TESTING = False
    REQUIRED_ENV_VARS = ('SECRET_KEY', 'DATABASE_URL')

    @classmethod
    def init_app(cls, app):
        super().init_app(app)
        if app.config.get('SECRET_KEY') == DEFAULT_SECRET_KEY:
            raise ValueError("SECRET_KEY must be changed from default in production")


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig,
}


def get_config(env_name=None):
    """
    Get a configuration class by environment name.

    Args:
        env_name: 'development', 'testing' or 'production'. Defaults to FLASK_ENV.

    Returns:
        Configuration class; unknown names fall back to development.
    """
    env_name = env_name or os.environ.get('FLASK_ENV', 'development')
    return config.get(env_name, config['default'])
