"""
Flask Application Factory for Asset Library Service.

This module provides the create_app() factory function that creates and
configures the Flask application. It initializes:
- SQLAlchemy database connection (SQLite or Postgres)
- The role -> permission gate
- Blueprint registration
- Error handlers
- Logging configuration

Usage:
    # Development
    python -m asset_library.app

    # Production
    gunicorn -w 4 -b 0.0.0.0:3001 'asset_library.wsgi:application'
"""

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, jsonify

from asset_library import __version__
from asset_library.config import get_config
from asset_library.errors import AssetLibraryError, StoreError
from asset_library.models import db
from asset_library.services.permission_service import PermissionGate


# Pipeline columns seeded into the workflow stage master on first start
DEFAULT_WORKFLOW_STAGES = [
    {'stage_name': 'Add', 'stage_order': 1, 'color': 'blue'},
    {'stage_name': 'Submit', 'stage_order': 2, 'color': 'orange'},
    {'stage_name': 'QC', 'stage_order': 3, 'color': 'purple'},
    {'stage_name': 'Approve', 'stage_order': 4, 'color': 'green'},
    {'stage_name': 'Publish', 'stage_order': 5, 'color': 'indigo'},
]


def create_app(config_name: Optional[str] = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name ('development', 'testing', 'production').
                    If None, reads from FLASK_ENV environment variable.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Load configuration
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    config_class.init_app(app)

    # Store config class for reference
    app.config['CONFIG_CLASS'] = config_class

    # Configure logging
    _configure_logging(app)

    # Initialize extensions
    db.init_app(app)

    # Role table is frozen once here and shared read-only by every request
    app.extensions['permission_gate'] = PermissionGate.from_config(app.config)

    # Create database tables
    with app.app_context():
        db.create_all()
        if app.config.get('SEED_MASTER_DATA', False):
            _seed_workflow_stages(app)

    # Register blueprints
    _register_blueprints(app)

    # Register error handlers
    _register_error_handlers(app)

    # Register health check endpoint
    @app.route('/health')
    @app.route('/api/v1/health')
    def health_check():
        """Health check endpoint for monitoring."""
        return jsonify({
            'status': 'healthy',
            'service': 'asset_library',
            'version': __version__,
            'timestamp': datetime.now(timezone.utc).isoformat()
        })

    return app


def _seed_workflow_stages(app: Flask) -> None:
    """
    Seed the default workflow stage master rows if the table is empty.

    Args:
        app: Flask application instance.
    """
    from asset_library.models.master import WorkflowStage

    if WorkflowStage.query.first():
        app.logger.debug('Workflow stages already exist, skipping seed')
        return

    try:
        for stage in DEFAULT_WORKFLOW_STAGES:
            db.session.add(WorkflowStage(**stage))
        db.session.commit()
        app.logger.info(f'Seeded {len(DEFAULT_WORKFLOW_STAGES)} default workflow stages')
    except Exception as e:
        db.session.rollback()
        app.logger.error(f'Failed to seed workflow stages: {e}')


def _configure_logging(app: Flask) -> None:
    """
    Configure application logging.

    Always logs to stdout for container logging. In debug mode, also logs
    to a file under logs/ when the directory is writable. The level comes
    from LOG_LEVEL (DEBUG forced in debug mode) and applies to the app
    logger and the asset_library.* module loggers.

    Args:
        app: Flask application instance.
    """
    # Set up log format
    log_format = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    handlers = []

    # Always log to stdout (required for container environments)
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(logging.INFO)
    stream_handler.setFormatter(log_format)
    handlers.append(stream_handler)

    # In development, also try to log to file
    if app.config.get('DEBUG', False) and not app.config.get('TESTING', False):
        log_dir = os.path.join(str(app.config.get('BASE_DIR', os.getcwd())), 'logs')
        try:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(os.path.join(log_dir, 'asset_library.log'))
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(log_format)
            handlers.append(file_handler)
        except (OSError, PermissionError):
            # Log path not writable, skip file logging
            pass

    if app.config.get('DEBUG', False):
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')), logging.INFO)

    # app.logger (asset_library.app) and the service module loggers share this parent
    package_logger = logging.getLogger('asset_library')
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        package_logger.addHandler(handler)
    package_logger.setLevel(log_level)


def _register_blueprints(app: Flask) -> None:
    """
    Register API blueprints with the application.

    Blueprints are registered under /api/v1:
    - /api/v1/assets for assets, QC workflow and link management
    - /api/v1/services and /api/v1/sub-services for the content taxonomy
    - /api/v1/qc for the QC audit log
    - /api/v1/masters for master data

    Args:
        app: Flask application instance.
    """
    from asset_library.routes import (
        assets_bp,
        masters_bp,
        qc_bp,
        services_bp,
        sub_services_bp,
    )

    for blueprint, url_prefix in (
        (assets_bp, '/api/v1/assets'),
        (services_bp, '/api/v1/services'),
        (sub_services_bp, '/api/v1/sub-services'),
        (qc_bp, '/api/v1/qc'),
        (masters_bp, '/api/v1/masters'),
    ):
        app.register_blueprint(blueprint, url_prefix=url_prefix)
        app.logger.debug(f'Registered {blueprint.name} blueprint at {url_prefix}')


def _register_error_handlers(app: Flask) -> None:
    """
    Register error handlers for common HTTP errors and AssetLibraryError.

    Args:
        app: Flask application instance.
    """
    @app.errorhandler(AssetLibraryError)
    def asset_library_error(error):
        db.session.rollback()
        if isinstance(error, StoreError):
            app.logger.error(f'Store error: {error.original!r}')
        elif error.status_code >= 500:
            app.logger.error(f'{error.error}: {error.message}')
        else:
            app.logger.info(f'{error.error}: {error.message}')
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({
            'status': 'error',
            'error': 'Bad Request',
            'message': str(error.description) if hasattr(error, 'description') else 'Invalid request'
        }), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'status': 'error',
            'error': 'Not Found',
            'message': 'The requested resource was not found'
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'status': 'error',
            'error': 'Method Not Allowed',
            'message': 'The method is not allowed for this resource'
        }), 405

    @app.errorhandler(500)
    def internal_server_error(error):
        db.session.rollback()
        return jsonify({
            'status': 'error',
            'error': 'Internal Server Error',
            'message': 'An unexpected error occurred'
        }), 500


if __name__ == '__main__':
    application = create_app()
    application.run(host=application.config['HOST'], port=application.config['PORT'])
