"""
QCAuditLog Model for Asset Library Service.

Cross-asset record of QC workflow actions. Complements the per-asset
workflow log with a table that can be queried by user, action or time.
"""

import json
from datetime import datetime, timezone

from asset_library.models import db


class QCAuditLog(db.Model):
    """
    SQLAlchemy model representing a QC audit log entry.

    Action Types:
        - 'created': Asset uploaded
        - 'submitted': Asset submitted for QC
        - 'resubmitted': Asset resubmitted after rework
        - 'approved': QC approved the asset
        - 'rejected': QC rejected the asset
        - 'rework_requested': QC sent the asset back for rework

    Attributes:
        id: Unique integer identifier
        asset_id: Asset the action applies to
        user_id: User who performed the action (nullable for system actions)
        action: Type of action performed
        details: JSON object (as text) with before/after state and remarks
        ip_address: IP address from which the action was performed
        created_at: Timestamp when the action occurred
    """

    __tablename__ = 'qc_audit_log'

    ACTION_CREATED = 'created'
    ACTION_SUBMITTED = 'submitted'
    ACTION_RESUBMITTED = 'resubmitted'
    ACTION_APPROVED = 'approved'
    ACTION_REJECTED = 'rejected'
    ACTION_REWORK_REQUESTED = 'rework_requested'

    VALID_ACTIONS = [
        ACTION_CREATED,
        ACTION_SUBMITTED,
        ACTION_RESUBMITTED,
        ACTION_APPROVED,
        ACTION_REJECTED,
        ACTION_REWORK_REQUESTED,
    ]

    # Primary key
    id = db.Column(db.Integer, primary_key=True)

    # Asset affected; kept as a plain column so entries survive asset cleanup
    asset_id = db.Column(db.Integer, nullable=False, index=True)

    # User who performed the action
    user_id = db.Column(db.Integer, nullable=True, index=True)

    # Action performed
    action = db.Column(db.String(50), nullable=False, index=True)

    # Additional details as JSON text
    details = db.Column(db.Text, nullable=True)

    # Client information
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 can be up to 45 chars

    # Timestamp
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc), index=True)

    @property
    def parsed_details(self):
        """Details decoded from JSON, or the raw text if it is not valid JSON."""
        if not self.details:
            return None
        try:
            return json.loads(self.details)
        except ValueError:
            return self.details

    def to_dict(self):
        """
        Serialize the audit log to a dictionary for API responses.

        Returns:
            Dictionary containing all audit log fields
        """
        return {
            'id': self.id,
            'asset_id': self.asset_id,
            'user_id': self.user_id,
            'action': self.action,
            'details': self.parsed_details,
            'ip_address': self.ip_address,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        """String representation for debugging."""
        return f'<QCAuditLog {self.action} asset={self.asset_id} user={self.user_id}>'
