"""
Asset Library Routes Package.

Blueprint registration for all API route modules:
- Assets: Asset upload, QC workflow, history and link management
- Services: Services, sub-services and their linked assets
- QC: Cross-asset QC audit log
- Masters: Master data CRUD
"""

# Import blueprints for registration
from asset_library.routes.assets import assets_bp
from asset_library.routes.services import services_bp, sub_services_bp
from asset_library.routes.qc import qc_bp
from asset_library.routes.masters import masters_bp

__all__ = [
    'assets_bp',
    'services_bp',
    'sub_services_bp',
    'qc_bp',
    'masters_bp',
]
