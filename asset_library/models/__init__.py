"""
Asset Library Models Package.

SQLAlchemy models for the Asset Library service including:
- Assets (digital content under QC governance)
- Asset Workflow Log (append-only per-asset transition history)
- Services and Sub-Services (content taxonomy nodes)
- Service/Sub-Service Asset Links (static and dynamic associations)
- QC Audit Log (cross-asset QC decision trail)
- Master data (countries, SEO error types, workflow stages, platforms,
  QC weightage configurations)
"""

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    All models should inherit from db.Model which uses this Base class.
    """
    pass


# SQLAlchemy database instance
# Initialize with model_class=Base for proper declarative base setup
db = SQLAlchemy(model_class=Base)


# Import models after db is defined to avoid circular imports
from asset_library.models.asset import Asset, AssetWorkflowLog
from asset_library.models.service import Service, SubService
from asset_library.models.link import ServiceAssetLink, SubServiceAssetLink
from asset_library.models.audit import QCAuditLog
from asset_library.models.master import (
    Country,
    SeoErrorType,
    WorkflowStage,
    Platform,
    QCWeightageConfig,
    QCWeightageItem,
)

__all__ = [
    'db',
    'Base',
    'Asset',
    'AssetWorkflowLog',
    'Service',
    'SubService',
    'ServiceAssetLink',
    'SubServiceAssetLink',
    'QCAuditLog',
    'Country',
    'SeoErrorType',
    'WorkflowStage',
    'Platform',
    'QCWeightageConfig',
    'QCWeightageItem',
]
