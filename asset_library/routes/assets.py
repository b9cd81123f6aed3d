"""
Asset Library Assets Routes

Blueprint for asset and QC workflow API endpoints:
- POST /: Create (upload) an asset, optionally with static links and submit
- GET /: List assets
- GET /<asset_id>: Get an asset with its workflow log
- POST /<asset_id>/submit: Submit (or resubmit) an asset for QC
- POST /<asset_id>/qc: Apply a QC decision {action, qc_remarks, qc_score}
- POST /<asset_id>/approve: Approve an asset
- POST /<asset_id>/reject: Reject an asset
- POST /<asset_id>/rework: Request rework
- GET /qc/pending: QC pending queue
- GET /qc/statistics: QC counts and approval rate
- GET /<asset_id>/history: Workflow log (order=asc|desc)
- GET /<asset_id>/qc-audit: QC audit entries for the asset

Link management:
- POST /link-to-service: Create a dynamic asset <-> service link
- POST /link-to-sub-service: Create a dynamic asset <-> sub-service link
- POST /unlink-from-service: Remove a dynamic service link
- POST /unlink-from-sub-service: Remove a dynamic sub-service link
- GET /<asset_id>/static-links: Static links created at upload
- GET /link-status: Whether a link exists and is static

All endpoints are prefixed with /api/v1/assets when registered with the app.
Caller identity comes from the X-User-Id / X-User-Role headers.
"""

from flask import Blueprint, jsonify, request

from asset_library.errors import ValidationError
from asset_library.models import db, Asset
from asset_library.services.audit_service import AuditService
from asset_library.services.link_service import LinkService
from asset_library.services.permission_service import (
    PERM_MANAGE_LINKS,
    PERM_VIEW_ASSETS,
    PERM_VIEW_AUDIT_LOGS,
    require_permission,
)
from asset_library.services.workflow_service import (
    ACTION_APPROVE,
    ACTION_REJECT,
    ACTION_REWORK,
    WorkflowService,
)
from asset_library.utils.identity import get_current_identity
from asset_library.utils.pagination import get_page


# Create assets blueprint
assets_bp = Blueprint('assets', __name__)


# Accepted spellings of a QC decision in the /qc body
QC_ACTION_ALIASES = {
    'approve': ACTION_APPROVE,
    'approved': ACTION_APPROVE,
    'reject': ACTION_REJECT,
    'rejected': ACTION_REJECT,
    'rework': ACTION_REWORK,
    'rework_requested': ACTION_REWORK,
}


def _get_json_body():
    """
    Get the JSON request body as a dict.

    Raises:
        ValidationError: Body is present but not a JSON object
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _camel_case(field):
    head, *rest = field.split('_')
    return head + ''.join(part.capitalize() for part in rest)


def _field(source, field):
    """Read a field by its snake_case name, falling back to camelCase (asset_id or assetId)."""
    value = source.get(field)
    if value is None:
        value = source.get(_camel_case(field))
    return value


def _require_int(data, field):
    """Read a required integer field from a request body."""
    value = _field(data, field)
    if value is None or value == '':
        raise ValidationError(f'{field} is required')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer')


def _optional_int(value, field):
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer')


def _parse_bool(value):
    if value is None:
        return None
    return str(value).lower() in ('true', '1', 'yes')


# ==============================================================================
# Assets
# ==============================================================================


@assets_bp.route('', methods=['POST'])
@assets_bp.route('/', methods=['POST'])
def create_asset():
    """
    Create (upload) a new asset.

    Request Body:
        {
            "name": "Landing page hero" (required),
            "asset_type": "image",
            "asset_category": "banner",
            "asset_format": "png",
            "application_type": "WEB" | "SEO" | "SMM",
            "file_url": "https://...",
            "description": "...",
            "linked_service_id": 3 (optional, creates a static link),
            "linked_sub_service_ids": [7, 8] (optional, static links),
            "submit": true (optional, submit for QC right away)
        }

    Returns:
        201: Asset created
            {"message": "Asset created successfully", "asset": {...}}
        400: Validation error
        403: Role lacks upload_assets
        404: Linked service or sub-service not found
    """
    data = _get_json_body()
    identity = get_current_identity()

    if 'linked_sub_service_ids' in data and not isinstance(data['linked_sub_service_ids'], list):
        raise ValidationError('linked_sub_service_ids must be a list')

    asset = WorkflowService.create_asset(db.session, data, identity)

    return jsonify({
        'message': 'Asset created successfully',
        'asset': asset.to_dict()
    }), 201


@assets_bp.route('', methods=['GET'])
@assets_bp.route('/', methods=['GET'])
@require_permission(PERM_VIEW_ASSETS)
def list_assets():
    """
    List assets, newest first.

    Query Parameters:
        qc_status: Filter by QC status
        status: Filter by status label
        linking_active: true/false
        page, per_page: Pagination

    Returns:
        200: {"assets": [...], "count": n, "page": 1, "per_page": 50, "total": t, "pages": p}
    """
    page = get_page()

    qc_status = request.args.get('qc_status')
    if qc_status and qc_status not in Asset.VALID_QC_STATUSES:
        raise ValidationError(
            f"Invalid qc_status. Must be one of: {', '.join(Asset.VALID_QC_STATUSES)}"
        )

    assets, total = WorkflowService.list_assets(
        db.session,
        qc_status=qc_status,
        status=request.args.get('status'),
        linking_active=_parse_bool(request.args.get('linking_active')),
        limit=page.per_page,
        offset=page.offset
    )

    return jsonify({
        'assets': [asset.to_dict(include_log=False) for asset in assets],
        'count': len(assets),
        **page.to_dict(total)
    })


@assets_bp.route('/<int:asset_id>', methods=['GET'])
@require_permission(PERM_VIEW_ASSETS)
def get_asset(asset_id):
    """
    Get an asset with its full workflow log.

    Returns:
        200: {"asset": {...}}
        404: Asset not found
    """
    asset = WorkflowService.get_asset(db.session, asset_id)
    return jsonify({'asset': asset.to_dict()})


# ==============================================================================
# QC workflow
# ==============================================================================


@assets_bp.route('/<int:asset_id>/submit', methods=['POST'])
def submit_asset(asset_id):
    """
    Submit an asset for QC review, or resubmit it after rework.

    Request Body (optional):
        {"remarks": "Updated copy"}

    Returns:
        200: {"message": "Asset submitted for QC", "asset": {...}}
        403: Role lacks submit_for_qc
        404: Asset not found
        409: Asset is Approved or Rejected, or concurrent update
    """
    data = _get_json_body()
    identity = get_current_identity()

    asset = WorkflowService.submit(db.session, asset_id, identity, remarks=data.get('remarks'))

    return jsonify({
        'message': 'Asset submitted for QC',
        'asset': asset.to_dict()
    })


@assets_bp.route('/<int:asset_id>/qc', methods=['POST'])
def qc_review(asset_id):
    """
    Apply a QC decision.

    Request Body:
        {
            "action": "approve" | "reject" | "rework" (required),
            "qc_remarks": "..." (required for reject and rework),
            "qc_score": 0-100 (optional)
        }

    Returns:
        200: {"message": "...", "asset": {...}}
        400: Invalid action, missing remarks or bad score
        403: Role may not make this decision
        404: Asset not found
        409: Concurrent update
    """
    data = _get_json_body()
    action = QC_ACTION_ALIASES.get(str(data.get('action') or '').strip().lower())
    if action is None:
        raise ValidationError('action must be one of: approve, reject, rework')
    return _decide(asset_id, action, data)


@assets_bp.route('/<int:asset_id>/approve', methods=['POST'])
def approve_asset(asset_id):
    """Approve an asset. Body: {"qc_remarks": "...", "qc_score": 95}"""
    return _decide(asset_id, ACTION_APPROVE, _get_json_body())


@assets_bp.route('/<int:asset_id>/reject', methods=['POST'])
def reject_asset(asset_id):
    """Reject an asset. Body: {"qc_remarks": "..." (required), "qc_score": 40}"""
    return _decide(asset_id, ACTION_REJECT, _get_json_body())


@assets_bp.route('/<int:asset_id>/rework', methods=['POST'])
def rework_asset(asset_id):
    """Request rework. Body: {"qc_remarks": "..." (required), "qc_score": 60}"""
    return _decide(asset_id, ACTION_REWORK, _get_json_body())


def _decide(asset_id, action, data):
    identity = get_current_identity()
    remarks = data.get('qc_remarks', data.get('remarks'))
    score = data.get('qc_score', data.get('score'))

    asset = WorkflowService.decide(db.session, asset_id, action, identity, remarks=remarks, score=score)

    messages = {
        ACTION_APPROVE: 'Asset approved successfully',
        ACTION_REJECT: 'Asset rejected',
        ACTION_REWORK: 'Rework requested',
    }
    return jsonify({
        'message': messages[action],
        'asset': asset.to_dict()
    })


@assets_bp.route('/qc/pending', methods=['GET'])
@require_permission(PERM_VIEW_ASSETS)
def pending_qc_assets():
    """
    List assets waiting for a QC decision, latest submission first.

    Query Parameters:
        status: 'Pending', 'Rework' or 'all' (default: all)
        page, per_page: Pagination

    Returns:
        200: {"assets": [...], "count": n, "page": 1, "per_page": 50, "total": t, "pages": p}
        400: Invalid status
    """
    page = get_page()
    assets, total = WorkflowService.pending_queue(
        db.session,
        qc_status=request.args.get('status'),
        limit=page.per_page,
        offset=page.offset
    )
    return jsonify({
        'assets': [asset.to_dict(include_log=False) for asset in assets],
        'count': len(assets),
        **page.to_dict(total)
    })


@assets_bp.route('/qc/statistics', methods=['GET'])
@require_permission(PERM_VIEW_ASSETS)
def qc_statistics():
    """
    QC statistics across all assets.

    Returns:
        200: {"pending": n, "approved": n, "rejected": n, "rework": n,
              "total": n, "averageScore": x, "approvalRate": pct}
    """
    return jsonify(WorkflowService.qc_statistics(db.session))


@assets_bp.route('/<int:asset_id>/history', methods=['GET'])
@require_permission(PERM_VIEW_ASSETS)
def asset_history(asset_id):
    """
    Get the workflow log of an asset.

    Query Parameters:
        order: 'asc' (oldest first, default) or 'desc'

    Returns:
        200: {"asset_id": id, "history": [...], "count": n}
        404: Asset not found
    """
    order = request.args.get('order', 'asc').lower()
    if order not in ('asc', 'desc'):
        raise ValidationError("order must be 'asc' or 'desc'")

    WorkflowService.get_asset(db.session, asset_id)
    entries = AuditService.get_workflow_history(db.session, asset_id, newest_first=(order == 'desc'))

    return jsonify({
        'asset_id': asset_id,
        'history': [entry.to_dict() for entry in entries],
        'count': len(entries)
    })


@assets_bp.route('/<int:asset_id>/qc-audit', methods=['GET'])
@require_permission(PERM_VIEW_AUDIT_LOGS)
def asset_qc_audit(asset_id):
    """
    Get QC audit log entries for an asset, newest first.

    Returns:
        200: {"asset_id": id, "entries": [...], "count": n, "total": t}
    """
    page = get_page()
    entries, total = AuditService.get_qc_audit_log(
        db.session, asset_id=asset_id, limit=page.per_page, offset=page.offset
    )
    return jsonify({
        'asset_id': asset_id,
        'entries': [entry.to_dict() for entry in entries],
        'count': len(entries),
        'total': total
    })


# ==============================================================================
# Links
# ==============================================================================


@assets_bp.route('/link-to-service', methods=['POST'])
@require_permission(PERM_MANAGE_LINKS)
def link_to_service():
    """
    Link an asset to a service (dynamic link).

    Request Body:
        {"asset_id": 1, "service_id": 3} (assetId / serviceId also accepted)

    Returns:
        201: {"message": "Asset linked to service", "link": {...}}
        404: Asset or service not found
    """
    data = _get_json_body()
    identity = get_current_identity()

    link = LinkService.create_dynamic_link(
        db.session,
        _require_int(data, 'asset_id'),
        service_id=_require_int(data, 'service_id'),
        created_by=identity.user_id
    )
    db.session.commit()

    return jsonify({'message': 'Asset linked to service', 'link': link.to_dict()}), 201


@assets_bp.route('/link-to-sub-service', methods=['POST'])
@require_permission(PERM_MANAGE_LINKS)
def link_to_sub_service():
    """
    Link an asset to a sub-service (dynamic link).

    Request Body:
        {"asset_id": 1, "sub_service_id": 7} (assetId / subServiceId also accepted)

    Returns:
        201: {"message": "Asset linked to sub-service", "link": {...}}
        404: Asset or sub-service not found
    """
    data = _get_json_body()
    identity = get_current_identity()

    link = LinkService.create_dynamic_link(
        db.session,
        _require_int(data, 'asset_id'),
        sub_service_id=_require_int(data, 'sub_service_id'),
        created_by=identity.user_id
    )
    db.session.commit()

    return jsonify({'message': 'Asset linked to sub-service', 'link': link.to_dict()}), 201


@assets_bp.route('/unlink-from-service', methods=['POST'])
@require_permission(PERM_MANAGE_LINKS)
def unlink_from_service():
    """
    Remove a dynamic asset <-> service link.

    Request Body:
        {"asset_id": 1, "service_id": 3} (assetId / serviceId also accepted)

    Returns:
        200: {"message": "Asset unlinked from service"}
        403: Link is static
        404: Link not found
    """
    data = _get_json_body()
    LinkService.remove_link(
        db.session,
        _require_int(data, 'asset_id'),
        _require_int(data, 'service_id')
    )
    db.session.commit()
    return jsonify({'message': 'Asset unlinked from service'})


@assets_bp.route('/unlink-from-sub-service', methods=['POST'])
@require_permission(PERM_MANAGE_LINKS)
def unlink_from_sub_service():
    """
    Remove a dynamic asset <-> sub-service link.

    Returns:
        200: {"message": "Asset unlinked from sub-service"}
        403: Link is static
        404: Link not found
    """
    data = _get_json_body()
    LinkService.remove_sub_service_link(
        db.session,
        _require_int(data, 'asset_id'),
        _require_int(data, 'sub_service_id')
    )
    db.session.commit()
    return jsonify({'message': 'Asset unlinked from sub-service'})


@assets_bp.route('/<int:asset_id>/static-links', methods=['GET'])
@require_permission(PERM_VIEW_ASSETS)
def static_links(asset_id):
    """
    Get the static (upload-time) links of an asset.

    Returns:
        200: {"asset_id": id, "services": [...], "sub_services": [...]}
        404: Asset not found
    """
    WorkflowService.get_asset(db.session, asset_id)
    links = LinkService.get_static_links(db.session, asset_id)
    return jsonify({'asset_id': asset_id, **links})


@assets_bp.route('/link-status', methods=['GET'])
@require_permission(PERM_VIEW_ASSETS)
def link_status():
    """
    Check whether an asset is linked to a service or sub-service.

    Query Parameters:
        asset_id (required), and service_id or sub_service_id

    Returns:
        200: {"exists": bool, "is_static": bool|null, "linking_active": bool}
        400: Missing parameters
        404: Asset not found
    """
    asset_id = _optional_int(_field(request.args, 'asset_id'), 'asset_id')
    if asset_id is None:
        raise ValidationError('asset_id is required')

    asset = WorkflowService.get_asset(db.session, asset_id)
    is_static = LinkService.is_link_static(
        db.session,
        asset_id,
        service_id=_optional_int(_field(request.args, 'service_id'), 'service_id'),
        sub_service_id=_optional_int(_field(request.args, 'sub_service_id'), 'sub_service_id')
    )

    return jsonify({
        'asset_id': asset_id,
        'exists': is_static is not None,
        'is_static': is_static,
        'linking_active': bool(asset.linking_active)
    })
