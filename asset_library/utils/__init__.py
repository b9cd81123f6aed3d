"""
Asset Library Utility Functions.

This package contains helpers used across the service:
- identity: Caller identity (user id and role) from request headers/body
- pagination: page/per_page query parameter parsing
"""

from asset_library.utils.identity import Identity, get_current_identity, get_client_ip
from asset_library.utils.pagination import Page, get_page

__all__ = [
    'Identity',
    'get_current_identity',
    'get_client_ip',
    'Page',
    'get_page',
]
