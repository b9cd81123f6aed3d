"""
Asset Library Services Routes

Blueprints for the content taxonomy and the assets linked to it.

services_bp (registered at /api/v1/services):
- GET /: List services
- POST /: Create a service
- GET /<service_id>: Get a service with its sub-services
- GET /<service_id>/assets: Assets linked to a service
- GET /<service_id>/asset-count: Total / static / dynamic link counts

sub_services_bp (registered at /api/v1/sub-services):
- POST /: Create a sub-service under a service
- GET /<sub_service_id>/assets: Assets linked to a sub-service
"""

import re

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import IntegrityError

from asset_library.errors import NotFound, ValidationError
from asset_library.models import db, Service, SubService
from asset_library.services.link_service import LinkService
from asset_library.services.permission_service import (
    PERM_MANAGE_MASTERS,
    PERM_VIEW_ASSETS,
    require_permission,
)


# Create services blueprints
services_bp = Blueprint('services', __name__)
sub_services_bp = Blueprint('sub_services', __name__)


VALID_SERVICE_STATUSES = [Service.STATUS_DRAFT, Service.STATUS_PUBLISHED, Service.STATUS_ARCHIVED]


def _slugify(value):
    return re.sub(r'[^a-z0-9]+', '-', value.lower()).strip('-')


def _get_json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _validate_status(status):
    if status and status not in VALID_SERVICE_STATUSES:
        raise ValidationError(
            f"Invalid status. Must be one of: {', '.join(VALID_SERVICE_STATUSES)}"
        )


def _active_only():
    return request.args.get('active_only', 'false').lower() in ('true', '1', 'yes')


@services_bp.route('', methods=['GET'])
@services_bp.route('/', methods=['GET'])
@require_permission(PERM_VIEW_ASSETS)
def list_services():
    """
    List services.

    Query Parameters:
        status: Filter by status (optional)

    Returns:
        200: {"services": [...], "count": n}
    """
    query = Service.query
    status = request.args.get('status')
    if status:
        _validate_status(status)
        query = query.filter_by(status=status)

    services = query.order_by(Service.service_name).all()
    return jsonify({
        'services': [service.to_dict() for service in services],
        'count': len(services)
    })


@services_bp.route('', methods=['POST'])
@services_bp.route('/', methods=['POST'])
@require_permission(PERM_MANAGE_MASTERS)
def create_service():
    """
    Create a service.

    Request Body:
        {"service_name": "SEO Audits" (required), "service_code": "SEO-A",
         "slug": "seo-audits", "status": "Draft"}

    Returns:
        201: {"message": "Service created successfully", "service": {...}}
        400: Missing name, bad status or duplicate code
    """
    data = _get_json_body()
    name = (data.get('service_name') or '').strip()
    if not name:
        raise ValidationError('service_name is required')

    status = data.get('status') or Service.STATUS_DRAFT
    _validate_status(status)

    service = Service(
        service_name=name,
        service_code=data.get('service_code') or None,
        slug=data.get('slug') or _slugify(name),
        status=status
    )
    db.session.add(service)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError('A service with this service_code already exists')

    return jsonify({
        'message': 'Service created successfully',
        'service': service.to_dict()
    }), 201


@services_bp.route('/<int:service_id>', methods=['GET'])
@require_permission(PERM_VIEW_ASSETS)
def get_service(service_id):
    """
    Get a service with its sub-services.

    Returns:
        200: {"service": {..., "sub_services": [...]}}
        404: Service not found
    """
    service = db.session.get(Service, service_id)
    if service is None:
        raise NotFound(f'Service {service_id} not found')

    data = service.to_dict()
    data['sub_services'] = [sub.to_dict() for sub in service.sub_services]
    return jsonify({'service': data})


@services_bp.route('/<int:service_id>/assets', methods=['GET'])
@require_permission(PERM_VIEW_ASSETS)
def service_assets(service_id):
    """
    Assets linked to a service, most recently linked first.

    Unknown services yield an empty list.

    Query Parameters:
        active_only: Only assets whose links are active (approved)

    Returns:
        200: {"service_id": id, "assets": [...], "count": n}
    """
    assets = LinkService.list_linked_assets(db.session, service_id, active_only=_active_only())
    return jsonify({
        'service_id': service_id,
        'assets': assets,
        'count': len(assets)
    })


@services_bp.route('/<int:service_id>/asset-count', methods=['GET'])
@require_permission(PERM_VIEW_ASSETS)
def service_asset_count(service_id):
    """
    Count the assets linked to a service.

    Returns:
        200: {"service_id": id, "total": n, "static": n, "dynamic": n}
    """
    counts = LinkService.count_service_assets(db.session, service_id)
    return jsonify({'service_id': service_id, **counts})


@sub_services_bp.route('', methods=['POST'])
@sub_services_bp.route('/', methods=['POST'])
@require_permission(PERM_MANAGE_MASTERS)
def create_sub_service():
    """
    Create a sub-service under an existing service.

    Request Body:
        {"service_id": 3 (required), "sub_service_name": "Technical SEO" (required),
         "slug": "technical-seo", "status": "Draft"}

    Returns:
        201: {"message": "Sub-service created successfully", "sub_service": {...}}
        400: Missing fields or bad status
        404: Parent service not found
    """
    data = _get_json_body()
    name = (data.get('sub_service_name') or '').strip()
    if not name:
        raise ValidationError('sub_service_name is required')

    try:
        service_id = int(data.get('service_id'))
    except (TypeError, ValueError):
        raise ValidationError('service_id is required')

    if db.session.get(Service, service_id) is None:
        raise NotFound(f'Service {service_id} not found')

    status = data.get('status') or Service.STATUS_DRAFT
    _validate_status(status)

    sub_service = SubService(
        service_id=service_id,
        sub_service_name=name,
        slug=data.get('slug') or _slugify(name),
        status=status
    )
    db.session.add(sub_service)
    db.session.commit()

    return jsonify({
        'message': 'Sub-service created successfully',
        'sub_service': sub_service.to_dict()
    }), 201


@sub_services_bp.route('/<int:sub_service_id>/assets', methods=['GET'])
@require_permission(PERM_VIEW_ASSETS)
def sub_service_assets(sub_service_id):
    """
    Assets linked to a sub-service, most recently linked first.

    Returns:
        200: {"sub_service_id": id, "assets": [...], "count": n}
    """
    assets = LinkService.list_sub_service_linked_assets(
        db.session, sub_service_id, active_only=_active_only()
    )
    return jsonify({
        'sub_service_id': sub_service_id,
        'assets': assets,
        'count': len(assets)
    })
