"""
Service and Sub-Service Models for Asset Library Service.

Content taxonomy nodes. The QC workflow never mutates them; they own zero or
more asset links.
"""

from datetime import datetime, timezone

from asset_library.models import db


class Service(db.Model):
    """
    SQLAlchemy model representing a service content page.

    Attributes:
        id: Unique integer identifier
        service_name: Display name (required)
        service_code: Optional short code
        slug: URL slug
        status: 'Draft', 'Published' or 'Archived'
        created_at: Timestamp when service was created
    """

    __tablename__ = 'services'

    STATUS_DRAFT = 'Draft'
    STATUS_PUBLISHED = 'Published'
    STATUS_ARCHIVED = 'Archived'

    id = db.Column(db.Integer, primary_key=True)
    service_name = db.Column(db.String(255), nullable=False)
    service_code = db.Column(db.String(50), nullable=True, unique=True)
    slug = db.Column(db.String(255), nullable=True, index=True)
    status = db.Column(db.String(20), default=STATUS_DRAFT, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    sub_services = db.relationship(
        'SubService',
        back_populates='service',
        order_by='SubService.id'
    )

    def to_dict(self):
        return {
            'id': self.id,
            'service_name': self.service_name,
            'service_code': self.service_code,
            'slug': self.slug,
            'status': self.status,
            'sub_service_count': len(self.sub_services),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Service {self.service_name}>'


class SubService(db.Model):
    """
    SQLAlchemy model representing a sub-service under a parent service.

    Attributes:
        id: Unique integer identifier
        service_id: Foreign key to the parent service
        sub_service_name: Display name (required)
        slug: URL slug
        status: 'Draft', 'Published' or 'Archived'
        created_at: Timestamp when sub-service was created
    """

    __tablename__ = 'sub_services'

    id = db.Column(db.Integer, primary_key=True)
    service_id = db.Column(db.Integer, db.ForeignKey('services.id'), nullable=False, index=True)
    sub_service_name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(20), default=Service.STATUS_DRAFT, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    service = db.relationship('Service', back_populates='sub_services')

    def to_dict(self):
        return {
            'id': self.id,
            'service_id': self.service_id,
            'sub_service_name': self.sub_service_name,
            'slug': self.slug,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<SubService {self.sub_service_name}>'
