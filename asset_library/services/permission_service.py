"""
Permission Service for Asset Library.

Maps a caller's role to a fixed set of permission strings and gates QC
actions. The role table is built once when the application starts, frozen,
and handed to the rest of the code through `app.extensions['permission_gate']`;
nothing mutates it afterwards.

Roles (most to least privileged):
- admin: every permission
- qc: review permissions (perform_qc_review, approve_assets)
- manager: content and master-data management, no QC decisions
- user: upload, submit, manage own links
- guest: read-only

Usage:
    from asset_library.services.permission_service import require_qc_permission

    @blueprint.route('/<int:asset_id>/approve', methods=['POST'])
    @require_qc_permission
    def approve(asset_id):
        ...

    gate = get_permission_gate()
    if gate.has_permission('manager', PERM_MANAGE_LINKS):
        ...
"""

from functools import wraps
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, Optional

from flask import current_app, has_app_context

from asset_library.errors import PermissionDenied


# Permission strings
PERM_VIEW_ASSETS = 'view_assets'
PERM_UPLOAD_ASSETS = 'upload_assets'
PERM_EDIT_ASSETS = 'edit_assets'
PERM_DELETE_ASSETS = 'delete_assets'
PERM_SUBMIT_FOR_QC = 'submit_for_qc'
PERM_PERFORM_QC_REVIEW = 'perform_qc_review'
PERM_APPROVE_ASSETS = 'approve_assets'
PERM_MANAGE_LINKS = 'manage_links'
PERM_VIEW_AUDIT_LOGS = 'view_audit_logs'
PERM_MANAGE_MASTERS = 'manage_masters'
PERM_MANAGE_USERS = 'manage_users'

ALL_PERMISSIONS = frozenset([
    PERM_VIEW_ASSETS,
    PERM_UPLOAD_ASSETS,
    PERM_EDIT_ASSETS,
    PERM_DELETE_ASSETS,
    PERM_SUBMIT_FOR_QC,
    PERM_PERFORM_QC_REVIEW,
    PERM_APPROVE_ASSETS,
    PERM_MANAGE_LINKS,
    PERM_VIEW_AUDIT_LOGS,
    PERM_MANAGE_MASTERS,
    PERM_MANAGE_USERS,
])

# Role names
ROLE_ADMIN = 'admin'
ROLE_MANAGER = 'manager'
ROLE_QC = 'qc'
ROLE_USER = 'user'
ROLE_GUEST = 'guest'

VALID_ROLES = [ROLE_ADMIN, ROLE_MANAGER, ROLE_QC, ROLE_USER, ROLE_GUEST]

DEFAULT_ROLE_PERMISSIONS = {
    ROLE_ADMIN: ALL_PERMISSIONS,
    ROLE_QC: [
        PERM_VIEW_ASSETS,
        PERM_PERFORM_QC_REVIEW,
        PERM_APPROVE_ASSETS,
        PERM_VIEW_AUDIT_LOGS,
    ],
    ROLE_MANAGER: [
        PERM_VIEW_ASSETS,
        PERM_UPLOAD_ASSETS,
        PERM_EDIT_ASSETS,
        PERM_SUBMIT_FOR_QC,
        PERM_MANAGE_LINKS,
        PERM_VIEW_AUDIT_LOGS,
        PERM_MANAGE_MASTERS,
    ],
    ROLE_USER: [
        PERM_VIEW_ASSETS,
        PERM_UPLOAD_ASSETS,
        PERM_SUBMIT_FOR_QC,
        PERM_MANAGE_LINKS,
    ],
    ROLE_GUEST: [
        PERM_VIEW_ASSETS,
    ],
}

# Permissions that each allow a QC decision
QC_DECISION_PERMISSIONS = {
    'approve': (PERM_PERFORM_QC_REVIEW, PERM_APPROVE_ASSETS),
    'reject': (PERM_PERFORM_QC_REVIEW,),
    'rework': (PERM_PERFORM_QC_REVIEW,),
}


class PermissionGate:
    """
    Immutable role -> permission lookup.

    Unknown roles have no permissions. Role names are matched
    case-insensitively.
    """

    def __init__(self, role_permissions: Mapping[str, Iterable[str]]):
        frozen = {
            role.lower(): frozenset(permissions)
            for role, permissions in role_permissions.items()
        }
        self._table = MappingProxyType(frozen)

    @classmethod
    def from_config(cls, config) -> 'PermissionGate':
        """Build the gate from app config, falling back to the default table."""
        overrides = config.get('ROLE_PERMISSIONS')
        return cls(overrides or DEFAULT_ROLE_PERMISSIONS)

    @property
    def roles(self):
        return list(self._table.keys())

    def permissions_for(self, role: Optional[str]) -> FrozenSet[str]:
        if not role:
            return frozenset()
        return self._table.get(role.lower(), frozenset())

    def has_permission(self, role: Optional[str], permission: str) -> bool:
        """Pure set-membership check."""
        return permission in self.permissions_for(role)

    def has_any_permission(self, role: Optional[str], permissions: Iterable[str]) -> bool:
        granted = self.permissions_for(role)
        return any(permission in granted for permission in permissions)

    def require(self, role: Optional[str], *permissions: str) -> None:
        """
        Raise PermissionDenied unless the role holds at least one of the permissions.

        Args:
            role: Caller's role name
            *permissions: Acceptable permissions (any one suffices)

        Raises:
            PermissionDenied: If none of the permissions is granted
        """
        if not self.has_any_permission(role, permissions):
            raise PermissionDenied(
                f"Role '{role or 'anonymous'}' lacks permission: {' or '.join(permissions)}"
            )

    def require_qc_decision(self, role: Optional[str], decision: str) -> None:
        """Raise PermissionDenied unless the role may make the given QC decision."""
        self.require(role, *QC_DECISION_PERMISSIONS.get(decision, (PERM_PERFORM_QC_REVIEW,)))


_default_gate = PermissionGate(DEFAULT_ROLE_PERMISSIONS)


def get_permission_gate() -> PermissionGate:
    """
    Return the application's permission gate.

    Outside an application context (scripts, unit tests of pure logic)
    the default table is used.
    """
    if has_app_context():
        gate = current_app.extensions.get('permission_gate')
        if gate is not None:
            return gate
    return _default_gate


def require_permission(*permissions):
    """
    Decorator to require one of the given permissions for a route.

    The caller's role is read from the request identity (X-User-Role header
    or user_role body field). Raises PermissionDenied, which the app's error
    handler renders as a 403 response.

    Usage:
        @blueprint.route('/masters/countries', methods=['POST'])
        @require_permission(PERM_MANAGE_MASTERS)
        def create_country():
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            from asset_library.utils.identity import get_current_identity

            identity = get_current_identity()
            get_permission_gate().require(identity.role, *permissions)
            return f(*args, **kwargs)

        return decorated_function

    return decorator


def require_qc_permission(f):
    """
    Decorator shorthand to require perform_qc_review.

    Equivalent to @require_permission('perform_qc_review').
    """
    return require_permission(PERM_PERFORM_QC_REVIEW)(f)
