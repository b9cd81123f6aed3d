"""
Request Identity Utilities.

Caller identity arrives from an upstream auth layer as plain request fields;
no token or session validation happens in this service.

Resolution order:
1. X-User-Id / X-User-Role headers
2. user_id / user_role fields in the JSON body
3. user id None, role from the DEFAULT_ROLE setting

A user id that is present but not an integer is rejected with ValidationError.

Usage:
    from asset_library.utils.identity import get_current_identity

    identity = get_current_identity()
    WorkflowService.approve(db.session, asset_id, identity, remarks='ok')
"""

from typing import NamedTuple, Optional

from flask import current_app, has_request_context, request

from asset_library.errors import ValidationError


class Identity(NamedTuple):
    """Who is calling: numeric user id (may be None) and role name."""

    user_id: Optional[int]
    role: Optional[str]


def _parse_user_id(value, source) -> Optional[int]:
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValidationError(f'{source} must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{source} must be an integer')


def get_current_identity() -> Identity:
    """
    Get the identity of the current request.

    Outside a request context an identity with neither user id nor role
    is returned.

    Returns:
        Identity tuple
    """
    if not has_request_context():
        return Identity(user_id=None, role=None)

    body = request.get_json(silent=True) or {}
    if not isinstance(body, dict):
        body = {}

    user_id = _parse_user_id(request.headers.get('X-User-Id'), 'X-User-Id')
    if user_id is None:
        user_id = _parse_user_id(body.get('user_id'), 'user_id')

    role = request.headers.get('X-User-Role') or body.get('user_role')
    if not role:
        role = current_app.config.get('DEFAULT_ROLE', 'guest')

    return Identity(user_id=user_id, role=str(role).strip().lower())


def get_client_ip() -> Optional[str]:
    """
    Get the client's IP address from the request.

    Handles X-Forwarded-For and X-Real-IP headers for proxied requests.

    Returns:
        Client IP address string, or None outside a request context
    """
    if not has_request_context():
        return None

    # Check for X-Forwarded-For header (when behind proxy/load balancer)
    forwarded_for = request.headers.get('X-Forwarded-For')
    if forwarded_for:
        # Take the first IP in the list (client's original IP)
        return forwarded_for.split(',')[0].strip()

    # Check X-Real-IP (common with nginx)
    real_ip = request.headers.get('X-Real-IP')
    if real_ip:
        return real_ip.strip()

    return request.remote_addr
