"""
Asset Model for Asset Library Service.

Represents a digital content unit governed by the QC workflow, together with
its append-only workflow log.
"""

from datetime import datetime, timezone

from asset_library.models import db


def _isoformat(value):
    return value.isoformat() if value else None


class Asset(db.Model):
    """
    SQLAlchemy model representing a digital asset in the library.

    Content fields (name, type, category, format) are opaque to the QC
    workflow. Workflow fields are only ever written by the QC workflow
    engine (see services/workflow_service.py):

    QC Status Values:
        - 'Pending': Created or submitted, waiting for a QC decision
        - 'Approved': Passed QC; links to services become visible
        - 'Rejected': Failed QC
        - 'Rework': Sent back to the author for changes

    Workflow Stage Values:
        - 'Add', 'Submit', 'QC', 'Approve', 'Publish'

    Status Values (business-facing label):
        - 'Draft', 'Pending QC', 'Published', 'Rejected', 'Rework Requested'

    Attributes:
        id: Unique integer identifier
        name: Human-readable asset name (required)
        asset_type: Asset type (e.g. article, infographic, video)
        asset_category: Asset category
        asset_format: File/content format
        application_type: Channel the asset targets (WEB, SEO, SMM)
        file_url: Location of the stored file
        status: Business-facing status label
        qc_status: QC decision state
        workflow_stage: Coarse pipeline position
        rework_count: Number of rework requests, never decreases
        linking_active: True only while the latest QC decision is Approve
        qc_reviewer_id: User who made the latest QC decision
        qc_reviewed_at: Timestamp of the latest QC decision
        qc_remarks: Reviewer remarks on the latest QC decision
        qc_score: Reviewer score (0-100) on the latest QC decision
        submitted_by: User who last submitted the asset for QC
        submitted_at: Timestamp of the last submission
        created_by: User who uploaded the asset
        version: Optimistic concurrency counter managed by SQLAlchemy
    """

    __tablename__ = 'assets'

    # QC status constants
    QC_PENDING = 'Pending'
    QC_APPROVED = 'Approved'
    QC_REJECTED = 'Rejected'
    QC_REWORK = 'Rework'

    VALID_QC_STATUSES = [QC_PENDING, QC_APPROVED, QC_REJECTED, QC_REWORK]

    # Statuses that place an asset in the QC pending queue
    PENDING_QUEUE_STATUSES = [QC_PENDING, QC_REWORK]

    # Workflow stage constants
    STAGE_ADD = 'Add'
    STAGE_SUBMIT = 'Submit'
    STAGE_QC = 'QC'
    STAGE_APPROVE = 'Approve'
    STAGE_PUBLISH = 'Publish'

    VALID_STAGES = [STAGE_ADD, STAGE_SUBMIT, STAGE_QC, STAGE_APPROVE, STAGE_PUBLISH]

    # Business-facing status constants
    STATUS_DRAFT = 'Draft'
    STATUS_PENDING_QC = 'Pending QC'
    STATUS_PUBLISHED = 'Published'
    STATUS_REJECTED = 'Rejected'
    STATUS_REWORK_REQUESTED = 'Rework Requested'

    VALID_STATUSES = [
        STATUS_DRAFT,
        STATUS_PENDING_QC,
        STATUS_PUBLISHED,
        STATUS_REJECTED,
        STATUS_REWORK_REQUESTED,
    ]

    # Application types
    APPLICATION_WEB = 'WEB'
    APPLICATION_SEO = 'SEO'
    APPLICATION_SMM = 'SMM'

    VALID_APPLICATION_TYPES = [APPLICATION_WEB, APPLICATION_SEO, APPLICATION_SMM]

    # Primary key
    id = db.Column(db.Integer, primary_key=True)

    # Content metadata
    name = db.Column(db.String(500), nullable=False)
    asset_type = db.Column(db.String(100), nullable=True)
    asset_category = db.Column(db.String(100), nullable=True)
    asset_format = db.Column(db.String(50), nullable=True)
    application_type = db.Column(db.String(20), nullable=True)
    file_url = db.Column(db.String(1000), nullable=True)
    description = db.Column(db.Text, nullable=True)

    # Workflow state
    status = db.Column(db.String(50), default=STATUS_DRAFT, nullable=False, index=True)
    qc_status = db.Column(db.String(20), default=QC_PENDING, nullable=False, index=True)
    workflow_stage = db.Column(db.String(20), default=STAGE_ADD, nullable=False)
    rework_count = db.Column(db.Integer, default=0, nullable=False)
    linking_active = db.Column(db.Boolean, default=False, nullable=False, index=True)

    # QC review fields
    qc_reviewer_id = db.Column(db.Integer, nullable=True)
    qc_reviewed_at = db.Column(db.DateTime, nullable=True)
    qc_remarks = db.Column(db.Text, nullable=True)
    qc_score = db.Column(db.Float, nullable=True)

    # Submission tracking
    submitted_by = db.Column(db.Integer, nullable=True)
    submitted_at = db.Column(db.DateTime, nullable=True)

    # Upload tracking
    created_by = db.Column(db.Integer, nullable=True, index=True)

    # Optimistic concurrency
    version = db.Column(db.Integer, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, nullable=True, onupdate=lambda: datetime.now(timezone.utc))

    __mapper_args__ = {'version_id_col': version}

    # Relationships
    workflow_entries = db.relationship(
        'AssetWorkflowLog',
        back_populates='asset',
        order_by='AssetWorkflowLog.seq',
        cascade='all, delete-orphan'
    )
    service_links = db.relationship(
        'ServiceAssetLink',
        back_populates='asset',
        cascade='all, delete-orphan'
    )
    sub_service_links = db.relationship(
        'SubServiceAssetLink',
        back_populates='asset',
        cascade='all, delete-orphan'
    )

    @property
    def workflow_log(self):
        """Ordered (oldest-first) list of workflow log entries as dicts."""
        return [entry.to_dict() for entry in self.workflow_entries]

    @property
    def in_pending_queue(self):
        """Check if asset is waiting for a QC decision."""
        return self.qc_status in self.PENDING_QUEUE_STATUSES

    def to_dict(self, include_log=True):
        """
        Serialize the asset to a dictionary for API responses.

        Args:
            include_log: Include the full workflow log (default True)

        Returns:
            Dictionary containing asset fields
        """
        data = {
            'id': self.id,
            'name': self.name,
            'asset_type': self.asset_type,
            'asset_category': self.asset_category,
            'asset_format': self.asset_format,
            'application_type': self.application_type,
            'file_url': self.file_url,
            'description': self.description,
            'status': self.status,
            'qc_status': self.qc_status,
            'workflow_stage': self.workflow_stage,
            'rework_count': self.rework_count,
            'linking_active': bool(self.linking_active),
            'qc_reviewer_id': self.qc_reviewer_id,
            'qc_reviewed_at': _isoformat(self.qc_reviewed_at),
            'qc_remarks': self.qc_remarks,
            'qc_score': self.qc_score,
            'submitted_by': self.submitted_by,
            'submitted_at': _isoformat(self.submitted_at),
            'created_by': self.created_by,
            'version': self.version,
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at),
        }
        if include_log:
            data['workflow_log'] = self.workflow_log
        return data

    def __repr__(self):
        """String representation for debugging."""
        return f'<Asset {self.id} {self.name} qc={self.qc_status}>'


class AssetWorkflowLog(db.Model):
    """
    One append-only entry in an asset's workflow history.

    Entries are numbered per asset by `seq` starting at 1. The unique
    (asset_id, seq) constraint rejects a second writer that computed the
    same sequence number, so insertion order equals commit order.

    Attributes:
        id: Unique integer identifier
        asset_id: Foreign key to the asset
        seq: 1-based position in the asset's history
        action: Transition name (created, submitted, approved, ...)
        timestamp: When the transition happened
        user_id: Who performed the transition
        status: Asset status after the transition
        workflow_stage: Asset workflow stage after the transition
        remarks: Optional remarks (expected on QC decisions)
    """

    __tablename__ = 'asset_workflow_log'
    __table_args__ = (
        db.UniqueConstraint('asset_id', 'seq', name='uq_asset_workflow_log_seq'),
    )

    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(
        db.Integer,
        db.ForeignKey('assets.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    seq = db.Column(db.Integer, nullable=False)
    action = db.Column(db.String(50), nullable=False)
    timestamp = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    user_id = db.Column(db.Integer, nullable=True)
    status = db.Column(db.String(50), nullable=True)
    workflow_stage = db.Column(db.String(20), nullable=True)
    remarks = db.Column(db.Text, nullable=True)

    asset = db.relationship('Asset', back_populates='workflow_entries')

    def to_dict(self):
        return {
            'seq': self.seq,
            'action': self.action,
            'timestamp': _isoformat(self.timestamp),
            'user_id': self.user_id,
            'status': self.status,
            'workflow_stage': self.workflow_stage,
            'remarks': self.remarks,
        }

    def __repr__(self):
        return f'<AssetWorkflowLog asset={self.asset_id} seq={self.seq} {self.action}>'
