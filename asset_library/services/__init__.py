"""
Asset Library Services Package.

Business logic for the QC workflow, link registry, audit trail,
permission gate and master data.
"""

from asset_library.services.audit_service import AuditService
from asset_library.services.link_service import LinkService
from asset_library.services.master_service import MasterService
from asset_library.services.permission_service import PermissionGate, get_permission_gate
from asset_library.services.workflow_service import WorkflowService, apply_transition

__all__ = [
    'AuditService',
    'LinkService',
    'MasterService',
    'PermissionGate',
    'get_permission_gate',
    'WorkflowService',
    'apply_transition',
]
