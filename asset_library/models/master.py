"""
Master Data Models for Asset Library Service.

Lookup tables maintained by administrators: countries, SEO error types,
workflow stages, platforms, and QC weightage configurations.

Every master model declares REQUIRED_FIELDS and EDITABLE_FIELDS so the
generic master service can validate and update it.
"""

from datetime import datetime, timezone

from asset_library.models import db


STATUS_ACTIVE = 'active'
STATUS_INACTIVE = 'inactive'


def _timestamps(obj):
    return {
        'created_at': obj.created_at.isoformat() if obj.created_at else None,
        'updated_at': obj.updated_at.isoformat() if obj.updated_at else None,
    }


class Country(db.Model):
    """Country master record."""

    __tablename__ = 'countries'

    REQUIRED_FIELDS = ['country_name']
    EDITABLE_FIELDS = ['country_name', 'code', 'region', 'status']

    id = db.Column(db.Integer, primary_key=True)
    country_name = db.Column(db.String(150), nullable=False, unique=True)
    code = db.Column(db.String(10), nullable=True)
    region = db.Column(db.String(100), nullable=True)
    status = db.Column(db.String(20), default=STATUS_ACTIVE, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, nullable=True, onupdate=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': self.id,
            'country_name': self.country_name,
            'code': self.code,
            'region': self.region,
            'status': self.status,
            **_timestamps(self),
        }


class SeoErrorType(db.Model):
    """SEO error type master record."""

    __tablename__ = 'seo_error_types'

    SEVERITIES = ['Low', 'Medium', 'High', 'Critical']

    REQUIRED_FIELDS = ['error_type']
    EDITABLE_FIELDS = ['error_type', 'category', 'severity', 'description', 'status']
    CHOICES = {'severity': SEVERITIES}

    id = db.Column(db.Integer, primary_key=True)
    error_type = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(100), nullable=True)
    severity = db.Column(db.String(20), default='Medium', nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), default=STATUS_ACTIVE, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, nullable=True, onupdate=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': self.id,
            'error_type': self.error_type,
            'category': self.category,
            'severity': self.severity,
            'description': self.description,
            'status': self.status,
            **_timestamps(self),
        }


class WorkflowStage(db.Model):
    """Workflow stage master record, used to label pipeline columns."""

    __tablename__ = 'workflow_stages'

    COLOR_OPTIONS = ['blue', 'orange', 'green', 'purple', 'pink', 'red', 'indigo', 'gray']

    REQUIRED_FIELDS = ['stage_name']
    EDITABLE_FIELDS = ['stage_name', 'stage_order', 'color', 'description', 'status']
    CHOICES = {'color': COLOR_OPTIONS}

    id = db.Column(db.Integer, primary_key=True)
    stage_name = db.Column(db.String(100), nullable=False)
    stage_order = db.Column(db.Integer, default=0, nullable=False)
    color = db.Column(db.String(20), default='blue', nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), default=STATUS_ACTIVE, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, nullable=True, onupdate=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': self.id,
            'stage_name': self.stage_name,
            'stage_order': self.stage_order,
            'color': self.color,
            'description': self.description,
            'status': self.status,
            **_timestamps(self),
        }


class Platform(db.Model):
    """Publishing platform master record (social networks, web, etc.)."""

    __tablename__ = 'platforms'

    REQUIRED_FIELDS = ['platform_name']
    EDITABLE_FIELDS = ['platform_name', 'description', 'status']

    id = db.Column(db.Integer, primary_key=True)
    platform_name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), default=STATUS_ACTIVE, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, nullable=True, onupdate=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': self.id,
            'platform_name': self.platform_name,
            'description': self.description,
            'status': self.status,
            **_timestamps(self),
        }


class QCWeightageConfig(db.Model):
    """
    QC weightage configuration.

    A named set of checklist items whose weight percentages must add up to
    exactly 100. total_weight and is_valid are derived from the items.
    """

    __tablename__ = 'qc_weightage_configs'

    REQUIRED_WEIGHT_TOTAL = 100

    REQUIRED_FIELDS = ['config_name']
    EDITABLE_FIELDS = ['config_name', 'description', 'status']

    id = db.Column(db.Integer, primary_key=True)
    config_name = db.Column(db.String(200), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    total_weight = db.Column(db.Float, default=0, nullable=False)
    is_valid = db.Column(db.Boolean, default=False, nullable=False)
    status = db.Column(db.String(20), default=STATUS_ACTIVE, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, nullable=True, onupdate=lambda: datetime.now(timezone.utc))

    items = db.relationship(
        'QCWeightageItem',
        back_populates='config',
        order_by='QCWeightageItem.item_order',
        cascade='all, delete-orphan'
    )

    def to_dict(self):
        return {
            'id': self.id,
            'config_name': self.config_name,
            'description': self.description,
            'total_weight': self.total_weight,
            'is_valid': bool(self.is_valid),
            'status': self.status,
            'item_count': len(self.items),
            'items': [item.to_dict() for item in self.items],
            **_timestamps(self),
        }


class QCWeightageItem(db.Model):
    """One weighted checklist line inside a QC weightage configuration."""

    __tablename__ = 'qc_weightage_items'

    id = db.Column(db.Integer, primary_key=True)
    config_id = db.Column(
        db.Integer,
        db.ForeignKey('qc_weightage_configs.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    checklist_id = db.Column(db.Integer, nullable=True)
    checklist_type = db.Column(db.String(100), nullable=True)
    weight_percentage = db.Column(db.Float, nullable=False)
    is_mandatory = db.Column(db.Boolean, default=False, nullable=False)
    applies_to_stage = db.Column(db.String(50), nullable=True)
    item_order = db.Column(db.Integer, nullable=False)

    config = db.relationship('QCWeightageConfig', back_populates='items')

    def to_dict(self):
        return {
            'id': self.id,
            'checklist_id': self.checklist_id,
            'checklist_type': self.checklist_type,
            'weight_percentage': self.weight_percentage,
            'is_mandatory': bool(self.is_mandatory),
            'applies_to_stage': self.applies_to_stage,
            'item_order': self.item_order,
        }
