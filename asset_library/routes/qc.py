"""
Asset Library QC Audit Routes

Blueprint for the cross-asset QC audit log:
- GET /audit-log: List QC audit entries, newest first

All endpoints are prefixed with /api/v1/qc when registered with the app and
require the view_audit_logs permission.
"""

from flask import Blueprint, jsonify, request

from asset_library.errors import ValidationError
from asset_library.models import db, QCAuditLog
from asset_library.services.audit_service import AuditService
from asset_library.services.permission_service import PERM_VIEW_AUDIT_LOGS, require_permission
from asset_library.utils.pagination import get_page


# Create QC blueprint
qc_bp = Blueprint('qc', __name__)


@qc_bp.route('/audit-log', methods=['GET'])
@require_permission(PERM_VIEW_AUDIT_LOGS)
def audit_log():
    """
    List QC audit log entries.

    Query Parameters:
        asset_id: Filter by asset (optional)
        user_id: Filter by acting user (optional)
        action: Filter by action (optional)
        page, per_page: Pagination

    Returns:
        200: {"entries": [...], "count": n, "page": 1, "per_page": 50, "total": t, "pages": p}
        400: Invalid action filter
        403: Role lacks view_audit_logs
    """
    page = get_page()

    action = request.args.get('action')
    if action and action not in QCAuditLog.VALID_ACTIONS:
        raise ValidationError(
            f"Invalid action. Must be one of: {', '.join(QCAuditLog.VALID_ACTIONS)}"
        )

    entries, total = AuditService.get_qc_audit_log(
        db.session,
        asset_id=request.args.get('asset_id', type=int),
        user_id=request.args.get('user_id', type=int),
        action=action,
        limit=page.per_page,
        offset=page.offset
    )

    return jsonify({
        'entries': [entry.to_dict() for entry in entries],
        'count': len(entries),
        **page.to_dict(total)
    })
