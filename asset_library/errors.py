"""
Error taxonomy for the Asset Library service.

Every error raised by the store, the link registry, the QC workflow engine or
the permission gate derives from AssetLibraryError. The HTTP layer renders
them with a single error handler (see app._register_error_handlers).
"""

from typing import Any, Dict, Optional


class AssetLibraryError(Exception):
    """Base error for the Asset Library service."""

    status_code = 500
    error = 'Internal Server Error'

    def __init__(self, message: Optional[str] = None, **details: Any):
        super().__init__(message or self.error)
        self.message = message or self.error
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'status': 'error',
            'error': self.error,
            'message': self.message,
        }
        if self.details:
            payload['details'] = self.details
        return payload


class NotFound(AssetLibraryError):
    """Referenced asset, service, sub-service or link does not exist."""

    status_code = 404
    error = 'Not Found'


class PermissionDenied(AssetLibraryError):
    """Caller's role lacks the permission required for the action."""

    status_code = 403
    error = 'Permission Denied'


class StaticLinkProtected(AssetLibraryError):
    """Attempt to remove a link that was created during upload."""

    status_code = 403
    error = 'Static Link Protected'


class ValidationError(AssetLibraryError):
    """Missing or malformed input."""

    status_code = 400
    error = 'Validation Error'


class InvalidTransition(AssetLibraryError):
    """Requested workflow action is not legal from the asset's current state."""

    status_code = 409
    error = 'Invalid Transition'


class ConcurrentUpdate(AssetLibraryError):
    """The asset kept changing underneath the transition; caller may retry."""

    status_code = 409
    error = 'Concurrent Update'


class StoreError(AssetLibraryError):
    """Underlying persistence failure. The message never carries driver details."""

    status_code = 500
    error = 'Store Error'

    def __init__(self, message: Optional[str] = None, original: Optional[BaseException] = None):
        super().__init__(message or 'An unexpected storage error occurred')
        self.original = original

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': 'error',
            'error': self.error,
            'message': self.message,
        }
