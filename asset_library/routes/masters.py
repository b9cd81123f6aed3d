"""
Asset Library Master Data Routes

Blueprint for master data CRUD. <kind> is one of countries, seo-error-types,
workflow-stages, platforms, qc-weightage-configs.

- GET /<kind>: List records (optional ?status=)
- POST /<kind>: Create a record
- GET /<kind>/<record_id>: Get a record
- PUT /<kind>/<record_id>: Update a record
- DELETE /<kind>/<record_id>: Delete a record

All endpoints are prefixed with /api/v1/masters when registered with the app.
Reads require view_assets; writes require manage_masters.
"""

from flask import Blueprint, jsonify, request

from asset_library.errors import ValidationError
from asset_library.models import db
from asset_library.services.master_service import MasterService
from asset_library.services.permission_service import (
    PERM_MANAGE_MASTERS,
    PERM_VIEW_ASSETS,
    require_permission,
)


# Create masters blueprint
masters_bp = Blueprint('masters', __name__)


def _get_json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


@masters_bp.route('/<kind>', methods=['GET'])
@require_permission(PERM_VIEW_ASSETS)
def list_records(kind):
    """
    List master records ordered by id.

    Returns:
        200: {"items": [...], "count": n}
        404: Unknown master type
    """
    records = MasterService.list_records(db.session, kind, status=request.args.get('status'))
    return jsonify({
        'items': [record.to_dict() for record in records],
        'count': len(records)
    })


@masters_bp.route('/<kind>', methods=['POST'])
@require_permission(PERM_MANAGE_MASTERS)
def create_record(kind):
    """
    Create a master record.

    Returns:
        201: {"message": "Created successfully", "item": {...}}
        400: Validation error
        404: Unknown master type
    """
    record = MasterService.create(db.session, kind, _get_json_body())
    db.session.commit()
    return jsonify({'message': 'Created successfully', 'item': record.to_dict()}), 201


@masters_bp.route('/<kind>/<int:record_id>', methods=['GET'])
@require_permission(PERM_VIEW_ASSETS)
def get_record(kind, record_id):
    """Get a master record."""
    record = MasterService.get(db.session, kind, record_id)
    return jsonify({'item': record.to_dict()})


@masters_bp.route('/<kind>/<int:record_id>', methods=['PUT'])
@require_permission(PERM_MANAGE_MASTERS)
def update_record(kind, record_id):
    """
    Update a master record.

    Returns:
        200: {"message": "Updated successfully", "item": {...}}
        400: Validation error
        404: Unknown master type or record
    """
    record = MasterService.update(db.session, kind, record_id, _get_json_body())
    db.session.commit()
    return jsonify({'message': 'Updated successfully', 'item': record.to_dict()})


@masters_bp.route('/<kind>/<int:record_id>', methods=['DELETE'])
@require_permission(PERM_MANAGE_MASTERS)
def delete_record(kind, record_id):
    """Delete a master record."""
    MasterService.delete(db.session, kind, record_id)
    db.session.commit()
    return jsonify({'message': 'Deleted successfully'})
