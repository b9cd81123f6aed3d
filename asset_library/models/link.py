"""
Asset Link Models for Asset Library Service.

Join records between an Asset and a Service or Sub-Service. A static link is
created together with the asset at upload time and can never be removed
through the unlink path; it only disappears when the asset itself is deleted.
A dynamic link is created and removed later by authorized users.
"""

from datetime import datetime, timezone

from asset_library.models import db


class ServiceAssetLink(db.Model):
    """
    Association between an asset and a service.

    Attributes:
        id: Unique integer identifier
        asset_id: Foreign key to the asset (cascade on asset delete)
        service_id: Foreign key to the service
        is_static: True when created during upload; immutable afterwards
        created_by: User who created the link
        created_at: When the link was created
    """

    __tablename__ = 'service_asset_links'
    __table_args__ = (
        db.UniqueConstraint('asset_id', 'service_id', name='uq_service_asset_link'),
    )

    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(
        db.Integer,
        db.ForeignKey('assets.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    service_id = db.Column(db.Integer, db.ForeignKey('services.id'), nullable=False, index=True)
    is_static = db.Column(db.Boolean, default=False, nullable=False)
    created_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    asset = db.relationship('Asset', back_populates='service_links')
    service = db.relationship('Service')

    def to_dict(self):
        return {
            'id': self.id,
            'asset_id': self.asset_id,
            'service_id': self.service_id,
            'is_static': bool(self.is_static),
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        kind = 'static' if self.is_static else 'dynamic'
        return f'<ServiceAssetLink asset={self.asset_id} service={self.service_id} {kind}>'


class SubServiceAssetLink(db.Model):
    """
    Association between an asset and a sub-service.

    Same semantics as ServiceAssetLink, keyed by sub_service_id.
    """

    __tablename__ = 'subservice_asset_links'
    __table_args__ = (
        db.UniqueConstraint('asset_id', 'sub_service_id', name='uq_subservice_asset_link'),
    )

    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(
        db.Integer,
        db.ForeignKey('assets.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    sub_service_id = db.Column(db.Integer, db.ForeignKey('sub_services.id'), nullable=False, index=True)
    is_static = db.Column(db.Boolean, default=False, nullable=False)
    created_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    asset = db.relationship('Asset', back_populates='sub_service_links')
    sub_service = db.relationship('SubService')

    def to_dict(self):
        return {
            'id': self.id,
            'asset_id': self.asset_id,
            'sub_service_id': self.sub_service_id,
            'is_static': bool(self.is_static),
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        kind = 'static' if self.is_static else 'dynamic'
        return f'<SubServiceAssetLink asset={self.asset_id} sub_service={self.sub_service_id} {kind}>'
