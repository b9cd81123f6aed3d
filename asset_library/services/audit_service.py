"""
Audit Service for Asset Library.

Writes and reads the two histories every QC workflow transition produces:

- The per-asset workflow log (AssetWorkflowLog rows). Appending an entry is
  part of the transition itself; if it fails the transition fails.
- The cross-asset QC audit log (QCAuditLog rows). Writing it is best effort:
  the entry is written inside a SAVEPOINT and a failure is logged without
  aborting the parent transition.

Usage:
    AuditService.append_workflow_entry(
        db_session=db.session,
        asset=asset,
        action='approved',
        user_id=reviewer.user_id,
        remarks='Looks good'
    )

    AuditService.record_qc_action(
        db_session=db.session,
        asset_id=asset.id,
        action='approved',
        user_id=reviewer.user_id,
        details={'before': {...}, 'after': {...}}
    )
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from asset_library.utils.identity import get_client_ip


logger = logging.getLogger(__name__)


class AuditService:
    """
    Audit service for the QC workflow histories.

    This service handles:
    1. Appending ordered entries to an asset's workflow log
    2. Best-effort logging of QC actions to the cross-asset audit table
    3. Querying both histories
    """

    @classmethod
    def next_sequence(cls, db_session, asset) -> int:
        """
        Compute the next workflow log sequence number for an asset.

        Args:
            db_session: SQLAlchemy database session
            asset: The Asset instance (must already have an id)

        Returns:
            1-based sequence number for the next entry
        """
        from asset_library.models.asset import AssetWorkflowLog

        current = db_session.query(func.max(AssetWorkflowLog.seq)).filter(
            AssetWorkflowLog.asset_id == asset.id
        ).scalar()
        return (current or 0) + 1

    @classmethod
    def append_workflow_entry(
        cls,
        db_session,
        asset,
        action: str,
        user_id: Optional[int] = None,
        remarks: Optional[str] = None,
        timestamp: Optional[datetime] = None
    ):
        """
        Append one entry to the asset's workflow log.

        The entry snapshots the asset's status and workflow_stage as they are
        at call time, so call this after the transition has been applied.

        Args:
            db_session: SQLAlchemy database session
            asset: The Asset instance the transition was applied to
            action: Transition name (e.g. 'approved')
            user_id: Who performed the transition
            remarks: Optional remarks
            timestamp: Override for the entry time (defaults to now)

        Returns:
            AssetWorkflowLog: The new entry (added to the session, not committed)
        """
        from asset_library.models.asset import AssetWorkflowLog

        if asset.id is None:
            db_session.flush()

        entry = AssetWorkflowLog(
            asset_id=asset.id,
            seq=cls.next_sequence(db_session, asset),
            action=action,
            timestamp=timestamp or datetime.now(timezone.utc),
            user_id=user_id,
            status=asset.status,
            workflow_stage=asset.workflow_stage,
            remarks=remarks
        )
        asset.workflow_entries.append(entry)
        db_session.add(entry)
        return entry

    @classmethod
    def record_qc_action(
        cls,
        db_session,
        asset_id: int,
        action: str,
        user_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None
    ):
        """
        Log a QC action to the cross-asset audit table, best effort.

        Runs inside a SAVEPOINT so that a failed insert rolls back only the
        audit row. Failures are logged and swallowed.

        Args:
            db_session: SQLAlchemy database session
            asset_id: Asset the action applies to
            action: The action performed (e.g. 'rejected')
            user_id: Who performed the action
            details: Dictionary of additional details (serialized to JSON)
            ip_address: Client IP (auto-extracted from the request if not provided)

        Returns:
            QCAuditLog instance, or None if the write failed
        """
        if ip_address is None:
            ip_address = get_client_ip()

        try:
            with db_session.begin_nested():
                audit_log = cls._build_qc_entry(asset_id, action, user_id, details, ip_address)
                db_session.add(audit_log)
            return audit_log
        except (SQLAlchemyError, TypeError, ValueError) as e:
            logger.error(f'Failed to write QC audit log for asset {asset_id} ({action}): {e}')
            return None

    @classmethod
    def _build_qc_entry(cls, asset_id, action, user_id, details, ip_address):
        from asset_library.models.audit import QCAuditLog

        return QCAuditLog(
            asset_id=asset_id,
            user_id=user_id,
            action=action,
            details=json.dumps(details, default=str) if details is not None else None,
            ip_address=ip_address
        )

    @classmethod
    def get_workflow_history(cls, db_session, asset_id: int, newest_first: bool = False) -> List:
        """
        Get the workflow log of an asset in insertion order.

        Args:
            db_session: SQLAlchemy database session
            asset_id: The asset ID
            newest_first: Reverse the order (default oldest-first)

        Returns:
            List of AssetWorkflowLog instances
        """
        from asset_library.models.asset import AssetWorkflowLog

        order = AssetWorkflowLog.seq.desc() if newest_first else AssetWorkflowLog.seq.asc()
        return db_session.query(AssetWorkflowLog).filter_by(
            asset_id=asset_id
        ).order_by(order).all()

    @classmethod
    def get_qc_audit_log(
        cls,
        db_session,
        asset_id: Optional[int] = None,
        user_id: Optional[int] = None,
        action: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Tuple[List, int]:
        """
        Query the QC audit log, newest first.

        Args:
            db_session: SQLAlchemy database session
            asset_id: Filter by asset (optional)
            user_id: Filter by acting user (optional)
            action: Filter by action (optional)
            limit: Maximum number of entries
            offset: Number of entries to skip

        Returns:
            Tuple of (entries, total matching count)
        """
        from asset_library.models.audit import QCAuditLog

        query = db_session.query(QCAuditLog)
        if asset_id is not None:
            query = query.filter(QCAuditLog.asset_id == asset_id)
        if user_id is not None:
            query = query.filter(QCAuditLog.user_id == user_id)
        if action:
            query = query.filter(QCAuditLog.action == action)

        total = query.count()
        entries = query.order_by(
            QCAuditLog.created_at.desc(),
            QCAuditLog.id.desc()
        ).offset(offset).limit(limit).all()
        return entries, total
