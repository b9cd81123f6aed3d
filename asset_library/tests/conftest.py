"""
Pytest configuration and fixtures for Asset Library tests.

This module provides shared fixtures for testing:
- Flask application with test configuration
- In-memory SQLite database
- Test client
- Sample services, sub-services and assets
- Identities for every role
- Helper functions for building identity headers
"""

import os
import sys

import pytest

# Add project root to path for asset_library package imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from asset_library.app import create_app
from asset_library.models import db, Asset, Service, SubService
from asset_library.services.workflow_service import WorkflowService
from asset_library.utils.identity import Identity


# User ids used by the identity fixtures
ADMIN_USER_ID = 1
QC_USER_ID = 2
MANAGER_USER_ID = 3
UPLOADER_USER_ID = 4
GUEST_USER_ID = 5


def get_identity_headers(role, user_id=None):
    """
    Build the identity headers an upstream auth layer would send.

    Args:
        role: Role name (admin, qc, manager, user, guest)
        user_id: Numeric user id (optional)

    Returns:
        dict of request headers
    """
    headers = {'X-User-Role': role}
    if user_id is not None:
        headers['X-User-Id'] = str(user_id)
    return headers


@pytest.fixture(scope='function')
def app():
    """
    Create a Flask application configured for testing.

    This fixture provides an isolated Flask app with:
    - In-memory SQLite database
    - Testing mode enabled
    - Clean database tables

    Yields:
        Flask application instance
    """
    application = create_app(config_name='testing')
    application.config['TESTING'] = True

    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """
    Create a test client for the Flask application.

    Args:
        app: Flask application fixture

    Returns:
        Flask test client
    """
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """
    Provide a database session for testing.

    Args:
        app: Flask application fixture

    Yields:
        SQLAlchemy session
    """
    with app.app_context():
        yield db.session


# Identity Fixtures

@pytest.fixture
def admin():
    return Identity(user_id=ADMIN_USER_ID, role='admin')


@pytest.fixture
def qc_reviewer():
    return Identity(user_id=QC_USER_ID, role='qc')


@pytest.fixture
def manager():
    return Identity(user_id=MANAGER_USER_ID, role='manager')


@pytest.fixture
def uploader():
    return Identity(user_id=UPLOADER_USER_ID, role='user')


@pytest.fixture
def guest():
    return Identity(user_id=GUEST_USER_ID, role='guest')


# Service Fixtures

@pytest.fixture(scope='function')
def sample_service(db_session):
    """
    Create a sample Service for testing.

    Returns:
        Service instance
    """
    service = Service(
        service_name='SEO Audits',
        service_code='SEO-AUD',
        slug='seo-audits',
        status=Service.STATUS_PUBLISHED
    )
    db_session.add(service)
    db_session.commit()
    return service


@pytest.fixture(scope='function')
def other_service(db_session):
    """Create a second Service for testing."""
    service = Service(
        service_name='Content Writing',
        service_code='CNT-WR',
        slug='content-writing',
        status=Service.STATUS_PUBLISHED
    )
    db_session.add(service)
    db_session.commit()
    return service


@pytest.fixture(scope='function')
def sample_sub_service(db_session, sample_service):
    """
    Create a sample SubService under sample_service.

    Returns:
        SubService instance
    """
    sub_service = SubService(
        service_id=sample_service.id,
        sub_service_name='Technical SEO',
        slug='technical-seo',
        status=Service.STATUS_PUBLISHED
    )
    db_session.add(sub_service)
    db_session.commit()
    return sub_service


# Asset Fixtures

@pytest.fixture(scope='function')
def sample_asset(db_session, uploader):
    """
    Create a freshly uploaded asset (Pending / Add / Draft).

    Returns:
        Asset instance
    """
    return WorkflowService.create_asset(
        db_session,
        {
            'name': 'Landing page hero',
            'asset_type': 'image',
            'asset_format': 'png',
            'application_type': Asset.APPLICATION_WEB,
        },
        uploader
    )


@pytest.fixture(scope='function')
def submitted_asset(db_session, sample_asset, uploader):
    """
    Create an asset that has been submitted for QC.

    Returns:
        Asset instance in the QC stage
    """
    return WorkflowService.submit(db_session, sample_asset.id, uploader)


@pytest.fixture(scope='function')
def approved_asset(db_session, submitted_asset, qc_reviewer):
    """
    Create an asset that passed QC.

    Returns:
        Asset instance with linking active
    """
    return WorkflowService.approve(
        db_session, submitted_asset.id, qc_reviewer, remarks='Looks good', score=92
    )


@pytest.fixture(scope='function')
def statically_linked_asset(db_session, uploader, sample_service, sample_sub_service):
    """
    Create an asset uploaded with a static service link and a static sub-service link.

    Returns:
        Asset instance
    """
    return WorkflowService.create_asset(
        db_session,
        {
            'name': 'Technical SEO checklist',
            'linked_service_id': sample_service.id,
            'linked_sub_service_ids': [sample_sub_service.id],
        },
        uploader
    )
