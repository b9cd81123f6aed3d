"""
QC Workflow Service for Asset Library.

Owns an asset's workflow fields (status, qc_status, workflow_stage,
rework_count, linking_active and the qc_* review fields). All changes go
through `apply_transition`, a pure function from (state, action, payload) to
the next state; `WorkflowService` loads the asset, applies the transition,
appends the workflow log entry, asks the link registry to re-evaluate
visibility and commits.

Transitions:
    create  -> Pending / Add / Draft, linking inactive
    submit  -> QC / Pending QC (only from Pending or Rework)
    approve -> Approved / Approve / Published, linking active
    reject  -> Rejected / QC / Rejected, linking inactive
    rework  -> Rework / QC / Rework Requested, rework_count + 1, linking inactive

QC decisions (approve, reject, rework) may be repeated on an asset that
already carries that decision; the effect is simply applied again.

Concurrency: the assets.version column is SQLAlchemy's version_id_col and
workflow log entries are unique per (asset_id, seq). When another request
changes the asset between load and flush, the transition is rolled back,
the asset reloaded and the transition re-applied, up to
QC_MAX_TRANSITION_ATTEMPTS times.

Usage:
    asset = WorkflowService.create_asset(
        db_session=db.session,
        data={'name': 'Landing page hero', 'linked_service_id': 3},
        actor=Identity(user_id=12, role='user')
    )
    WorkflowService.submit(db.session, asset.id, actor)
    WorkflowService.approve(db.session, asset.id, reviewer, remarks='ok', score=95)
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from flask import current_app, has_app_context
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from asset_library.errors import (
    ConcurrentUpdate,
    InvalidTransition,
    NotFound,
    StoreError,
    ValidationError,
)
from asset_library.models.asset import Asset
from asset_library.services.audit_service import AuditService
from asset_library.services.link_service import LinkService
from asset_library.services.permission_service import (
    PERM_SUBMIT_FOR_QC,
    PERM_UPLOAD_ASSETS,
    get_permission_gate,
)
from asset_library.store import Store
from asset_library.utils.identity import Identity


logger = logging.getLogger(__name__)


ACTION_CREATE = 'create'
ACTION_SUBMIT = 'submit'
ACTION_APPROVE = 'approve'
ACTION_REJECT = 'reject'
ACTION_REWORK = 'rework'

QC_DECISIONS = (ACTION_APPROVE, ACTION_REJECT, ACTION_REWORK)

# Workflow log action names
LOG_CREATED = 'created'
LOG_SUBMITTED = 'submitted'
LOG_RESUBMITTED = 'resubmitted'
LOG_APPROVED = 'approved'
LOG_REJECTED = 'rejected'
LOG_REWORK_REQUESTED = 'rework_requested'

SUBMITTABLE_QC_STATUSES = (Asset.QC_PENDING, Asset.QC_REWORK)

DEFAULT_MAX_ATTEMPTS = 3


class AssetState(NamedTuple):
    """Snapshot of every workflow-owned column of an asset."""

    qc_status: str
    workflow_stage: str
    status: str
    linking_active: bool
    rework_count: int
    qc_reviewer_id: Optional[int] = None
    qc_reviewed_at: Optional[datetime] = None
    qc_remarks: Optional[str] = None
    qc_score: Optional[float] = None
    submitted_by: Optional[int] = None
    submitted_at: Optional[datetime] = None

    @classmethod
    def from_asset(cls, asset: Asset) -> 'AssetState':
        return cls(**{field: getattr(asset, field) for field in cls._fields})

    def apply_to(self, asset: Asset) -> None:
        for field in self._fields:
            setattr(asset, field, getattr(self, field))

    def summary(self) -> Dict[str, Any]:
        """The fields recorded as before/after in the audit trail."""
        return {
            'qc_status': self.qc_status,
            'workflow_stage': self.workflow_stage,
            'status': self.status,
            'linking_active': bool(self.linking_active),
            'rework_count': self.rework_count,
        }


INITIAL_STATE = AssetState(
    qc_status=Asset.QC_PENDING,
    workflow_stage=Asset.STAGE_ADD,
    status=Asset.STATUS_DRAFT,
    linking_active=False,
    rework_count=0,
)


def log_action_for(state: Optional[AssetState], action: str) -> str:
    """Name of the workflow log entry a transition from `state` produces."""
    if action == ACTION_CREATE:
        return LOG_CREATED
    if action == ACTION_SUBMIT:
        if state is not None and state.qc_status == Asset.QC_REWORK:
            return LOG_RESUBMITTED
        return LOG_SUBMITTED
    if action == ACTION_APPROVE:
        return LOG_APPROVED
    if action == ACTION_REJECT:
        return LOG_REJECTED
    if action == ACTION_REWORK:
        return LOG_REWORK_REQUESTED
    raise InvalidTransition(f"Unknown workflow action '{action}'")


def apply_transition(state: Optional[AssetState], action: str, payload: Optional[Dict[str, Any]] = None) -> AssetState:
    """
    Compute the next workflow state.

    Args:
        state: Current state (None for create)
        action: One of create, submit, approve, reject, rework
        payload: user_id, remarks, score and timestamp of the transition

    Returns:
        The new AssetState

    Raises:
        InvalidTransition: Unknown action, or submit from Approved/Rejected
    """
    payload = payload or {}
    user_id = payload.get('user_id')
    timestamp = payload.get('timestamp') or datetime.now(timezone.utc)

    if action == ACTION_CREATE:
        return INITIAL_STATE

    if state is None:
        raise InvalidTransition(f"Cannot {action} an asset that does not exist yet")

    if action == ACTION_SUBMIT:
        if state.qc_status not in SUBMITTABLE_QC_STATUSES:
            raise InvalidTransition(
                f"Asset cannot be submitted for QC while qc_status is '{state.qc_status}'"
            )
        return state._replace(
            workflow_stage=Asset.STAGE_QC,
            status=Asset.STATUS_PENDING_QC,
            linking_active=False,
            submitted_by=user_id,
            submitted_at=timestamp,
        )

    if action not in QC_DECISIONS:
        raise InvalidTransition(f"Unknown workflow action '{action}'")

    review = dict(
        qc_reviewer_id=user_id,
        qc_reviewed_at=timestamp,
        qc_remarks=payload.get('remarks'),
        qc_score=payload.get('score'),
    )

    if action == ACTION_APPROVE:
        return state._replace(
            qc_status=Asset.QC_APPROVED,
            workflow_stage=Asset.STAGE_APPROVE,
            status=Asset.STATUS_PUBLISHED,
            linking_active=True,
            **review
        )

    if action == ACTION_REJECT:
        return state._replace(
            qc_status=Asset.QC_REJECTED,
            workflow_stage=Asset.STAGE_QC,
            status=Asset.STATUS_REJECTED,
            linking_active=False,
            **review
        )

    # rework
    return state._replace(
        qc_status=Asset.QC_REWORK,
        workflow_stage=Asset.STAGE_QC,
        status=Asset.STATUS_REWORK_REQUESTED,
        linking_active=False,
        rework_count=(state.rework_count or 0) + 1,
        **review
    )


def _max_attempts() -> int:
    if has_app_context():
        return int(current_app.config.get('QC_MAX_TRANSITION_ATTEMPTS', DEFAULT_MAX_ATTEMPTS))
    return DEFAULT_MAX_ATTEMPTS


def _max_score() -> float:
    if has_app_context():
        return float(current_app.config.get('QC_MAX_SCORE', 100))
    return 100.0


def _coerce_id(value, field) -> Optional[int]:
    """Integer id from a request value; None and '' mean not given."""
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValidationError(f'{field} must contain integer ids')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must contain integer ids')


class WorkflowService:
    """
    QC workflow engine for the Asset Library.

    This service handles:
    1. Creating assets (with static links to selected services)
    2. Submitting assets for QC
    3. QC decisions: approve, reject, request rework
    4. The pending QC queue and QC statistics

    Every method checks the caller's permission through the permission gate
    before reading or writing anything. Transition methods commit the
    session on success and roll it back on failure.
    """

    @classmethod
    def get_asset(cls, db_session, asset_id: int) -> Asset:
        """
        Get an asset by id.

        Raises:
            NotFound: If no asset has this id
        """
        asset = db_session.get(Asset, asset_id)
        if asset is None:
            raise NotFound(f'Asset {asset_id} not found')
        return asset

    @classmethod
    def create_asset(
        cls,
        db_session,
        data: Dict[str, Any],
        actor: Identity,
        permission_gate=None
    ) -> Asset:
        """
        Create (upload) a new asset.

        The asset starts as Pending / Add / Draft with linking inactive and a
        single 'created' log entry. When `linked_service_id` and/or
        `linked_sub_service_ids` are given, static links are created in the
        same transaction. When `submit` is true the asset is submitted for QC
        right away, which appends a second log entry.

        Args:
            db_session: SQLAlchemy database session
            data: Asset fields (name required) plus linking/submit options
            actor: Identity of the uploader
            permission_gate: Gate to check against (defaults to the app's gate)

        Returns:
            Asset: The committed asset

        Raises:
            PermissionDenied: Role lacks upload_assets
            ValidationError: Missing name or bad application_type
            NotFound: A selected service or sub-service does not exist
        """
        gate = permission_gate or get_permission_gate()
        gate.require(actor.role, PERM_UPLOAD_ASSETS)

        name = (data.get('name') or data.get('asset_name') or '').strip()
        if not name:
            raise ValidationError('Asset name is required')

        application_type = data.get('application_type')
        if application_type and application_type not in Asset.VALID_APPLICATION_TYPES:
            raise ValidationError(
                f"Invalid application_type. Must be one of: {', '.join(Asset.VALID_APPLICATION_TYPES)}"
            )

        service_id = _coerce_id(data.get('linked_service_id'), 'linked_service_id')
        if not isinstance(data.get('linked_sub_service_ids') or [], list):
            raise ValidationError('linked_sub_service_ids must be a list')
        sub_service_ids = [
            _coerce_id(value, 'linked_sub_service_ids')
            for value in (data.get('linked_sub_service_ids') or [])
        ]
        extra_sub_service_id = _coerce_id(data.get('linked_sub_service_id'), 'linked_sub_service_id')
        if extra_sub_service_id is not None and extra_sub_service_id not in sub_service_ids:
            sub_service_ids.append(extra_sub_service_id)

        created_by = actor.user_id if actor.user_id is not None else data.get('created_by')

        asset = Asset(
            name=name,
            asset_type=data.get('asset_type'),
            asset_category=data.get('asset_category'),
            asset_format=data.get('asset_format'),
            application_type=application_type,
            file_url=data.get('file_url'),
            description=data.get('description'),
            created_by=created_by,
        )
        INITIAL_STATE.apply_to(asset)

        try:
            db_session.add(asset)
            db_session.flush()

            AuditService.append_workflow_entry(db_session, asset, LOG_CREATED, user_id=created_by)

            if service_id:
                LinkService.create_static_link(
                    db_session, asset.id, service_id=service_id, created_by=created_by
                )
            for sub_service_id in sub_service_ids:
                LinkService.create_static_link(
                    db_session, asset.id, sub_service_id=sub_service_id, created_by=created_by
                )

            AuditService.record_qc_action(
                db_session,
                asset_id=asset.id,
                action=LOG_CREATED,
                user_id=created_by,
                details={
                    'after': INITIAL_STATE.summary(),
                    'linked_service_id': service_id,
                    'linked_sub_service_ids': sub_service_ids,
                }
            )
            db_session.commit()
        except SQLAlchemyError as e:
            db_session.rollback()
            logger.error(f'Failed to create asset {name!r}: {e}')
            raise StoreError(original=e) from e
        except Exception:
            db_session.rollback()
            raise

        logger.info(f'Created asset {asset.id} ({asset.name}) by user {created_by}')

        if data.get('submit'):
            asset = cls.submit(db_session, asset.id, actor, permission_gate=gate)

        return asset

    @classmethod
    def submit(cls, db_session, asset_id: int, actor: Identity, remarks: Optional[str] = None,
               permission_gate=None) -> Asset:
        """
        Submit an asset (or resubmit after rework) for QC.

        Raises:
            PermissionDenied: Role lacks submit_for_qc
            NotFound: Unknown asset
            InvalidTransition: Asset is Approved or Rejected
        """
        gate = permission_gate or get_permission_gate()
        gate.require(actor.role, PERM_SUBMIT_FOR_QC)
        return cls._transition(db_session, asset_id, ACTION_SUBMIT, actor, remarks=remarks)

    @classmethod
    def approve(cls, db_session, asset_id: int, actor: Identity, remarks: Optional[str] = None,
                score=None, permission_gate=None) -> Asset:
        """Approve an asset: Published, linking active."""
        return cls.decide(db_session, asset_id, ACTION_APPROVE, actor, remarks, score, permission_gate)

    @classmethod
    def reject(cls, db_session, asset_id: int, actor: Identity, remarks: Optional[str] = None,
               score=None, permission_gate=None) -> Asset:
        """Reject an asset: linking inactive. Remarks are required."""
        return cls.decide(db_session, asset_id, ACTION_REJECT, actor, remarks, score, permission_gate)

    @classmethod
    def request_rework(cls, db_session, asset_id: int, actor: Identity, remarks: Optional[str] = None,
                       score=None, permission_gate=None) -> Asset:
        """Send an asset back for rework: rework_count + 1, linking inactive. Remarks are required."""
        return cls.decide(db_session, asset_id, ACTION_REWORK, actor, remarks, score, permission_gate)

    @classmethod
    def decide(
        cls,
        db_session,
        asset_id: int,
        decision: str,
        actor: Identity,
        remarks: Optional[str] = None,
        score=None,
        permission_gate=None
    ) -> Asset:
        """
        Apply a QC decision to an asset.

        Args:
            db_session: SQLAlchemy database session
            asset_id: Asset to decide on
            decision: 'approve', 'reject' or 'rework'
            actor: Identity of the reviewer
            remarks: Reviewer remarks (required for reject and rework)
            score: Optional QC score between 0 and QC_MAX_SCORE
            permission_gate: Gate to check against (defaults to the app's gate)

        Returns:
            Asset: The committed asset

        Raises:
            ValidationError: Unknown decision, missing remarks or bad score
            PermissionDenied: Role may not make this decision
            NotFound: Unknown asset
            ConcurrentUpdate: Asset kept changing during every attempt
        """
        if decision not in QC_DECISIONS:
            raise ValidationError(
                f"Invalid QC action '{decision}'. Must be one of: {', '.join(QC_DECISIONS)}"
            )

        gate = permission_gate or get_permission_gate()
        gate.require_qc_decision(actor.role, decision)

        remarks = remarks.strip() if isinstance(remarks, str) else remarks
        if decision in (ACTION_REJECT, ACTION_REWORK) and not remarks:
            label = 'rejection' if decision == ACTION_REJECT else 'rework request'
            raise ValidationError(f'qc_remarks is required for {label}')

        return cls._transition(
            db_session, asset_id, decision, actor,
            remarks=remarks or None,
            score=cls._validate_score(score)
        )

    @classmethod
    def _validate_score(cls, score) -> Optional[float]:
        if score is None or score == '':
            return None
        if isinstance(score, bool):
            raise ValidationError('qc_score must be a number')
        try:
            value = float(score)
        except (TypeError, ValueError):
            raise ValidationError('qc_score must be a number')
        max_score = _max_score()
        if value < 0 or value > max_score:
            raise ValidationError(f'qc_score must be between 0 and {max_score:g}')
        return value

    @classmethod
    def _transition(
        cls,
        db_session,
        asset_id: int,
        action: str,
        actor: Identity,
        remarks: Optional[str] = None,
        score: Optional[float] = None
    ) -> Asset:
        """Load, apply, log, commit; reload and retry on a concurrent update."""
        attempts = _max_attempts()

        for attempt in range(1, attempts + 1):
            asset = cls.get_asset(db_session, asset_id)
            before = AssetState.from_asset(asset)
            now = datetime.now(timezone.utc)
            after = apply_transition(before, action, {
                'user_id': actor.user_id,
                'remarks': remarks,
                'score': score,
                'timestamp': now,
            })
            log_action = log_action_for(before, action)

            try:
                after.apply_to(asset)
                asset.updated_at = now
                AuditService.append_workflow_entry(
                    db_session, asset, log_action,
                    user_id=actor.user_id, remarks=remarks, timestamp=now
                )
                db_session.flush()
            except (StaleDataError, IntegrityError) as e:
                db_session.rollback()
                logger.warning(
                    f'Concurrent update on asset {asset_id} during {action} '
                    f'(attempt {attempt}/{attempts}): {e}'
                )
                continue
            except SQLAlchemyError as e:
                db_session.rollback()
                logger.error(f'Failed to {action} asset {asset_id}: {e}')
                raise StoreError(original=e) from e

            LinkService.sync_link_activation(db_session, asset)
            AuditService.record_qc_action(
                db_session,
                asset_id=asset.id,
                action=log_action,
                user_id=actor.user_id,
                details={
                    'before': before.summary(),
                    'after': after.summary(),
                    'remarks': remarks,
                    'score': score,
                }
            )

            try:
                db_session.commit()
            except SQLAlchemyError as e:
                db_session.rollback()
                logger.error(f'Failed to commit {action} on asset {asset_id}: {e}')
                raise StoreError(original=e) from e

            logger.info(
                f'Asset {asset_id} {log_action} by user {actor.user_id}: '
                f'{before.qc_status} -> {after.qc_status}'
            )
            return asset

        raise ConcurrentUpdate(
            f'Asset {asset_id} was modified concurrently; {action} not applied after {attempts} attempts'
        )

    @classmethod
    def list_assets(
        cls,
        db_session,
        qc_status: Optional[str] = None,
        status: Optional[str] = None,
        linking_active: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Asset], int]:
        """
        List assets newest first with optional filters.

        Returns:
            Tuple of (assets, total matching count)
        """
        query = db_session.query(Asset)
        if qc_status:
            query = query.filter(Asset.qc_status == qc_status)
        if status:
            query = query.filter(Asset.status == status)
        if linking_active is not None:
            query = query.filter(Asset.linking_active == linking_active)

        total = query.count()
        assets = query.order_by(Asset.created_at.desc(), Asset.id.desc()).offset(offset).limit(limit).all()
        return assets, total

    @classmethod
    def pending_queue(
        cls,
        db_session,
        qc_status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Asset], int]:
        """
        Assets waiting for a QC decision (qc_status Pending or Rework).

        Args:
            db_session: SQLAlchemy database session
            qc_status: Narrow to 'Pending' or 'Rework' (optional)
            limit: Page size
            offset: Number of assets to skip

        Returns:
            Tuple of (assets ordered by latest submission first, total)

        Raises:
            ValidationError: qc_status is not a pending-queue status
        """
        statuses = list(Asset.PENDING_QUEUE_STATUSES)
        if qc_status and qc_status != 'all':
            if qc_status not in statuses:
                raise ValidationError(
                    f"Invalid status. Must be one of: {', '.join(statuses)}"
                )
            statuses = [qc_status]

        query = db_session.query(Asset).filter(Asset.qc_status.in_(statuses))
        total = query.count()
        assets = query.order_by(
            func.coalesce(Asset.submitted_at, Asset.created_at).desc(),
            Asset.id.desc()
        ).offset(offset).limit(limit).all()
        return assets, total

    @classmethod
    def qc_statistics(cls, db_session) -> Dict[str, Any]:
        """
        Aggregate QC counts across all assets.

        Returns:
            Dict with pending, approved, rejected, rework, total,
            averageScore and approvalRate (percent of all assets approved)
        """
        row = Store(db_session).fetch_one(
            """
            SELECT
                COUNT(CASE WHEN qc_status = :pending THEN 1 END) AS pending_count,
                COUNT(CASE WHEN qc_status = :approved THEN 1 END) AS approved_count,
                COUNT(CASE WHEN qc_status = :rejected THEN 1 END) AS rejected_count,
                COUNT(CASE WHEN qc_status = :rework THEN 1 END) AS rework_count,
                COUNT(*) AS total_count,
                AVG(qc_score) AS avg_qc_score
            FROM assets
            """,
            {
                'pending': Asset.QC_PENDING,
                'approved': Asset.QC_APPROVED,
                'rejected': Asset.QC_REJECTED,
                'rework': Asset.QC_REWORK,
            }
        ) or {}

        total = row.get('total_count') or 0
        approved = row.get('approved_count') or 0
        average = row.get('avg_qc_score')

        return {
            'pending': row.get('pending_count') or 0,
            'approved': approved,
            'rejected': row.get('rejected_count') or 0,
            'rework': row.get('rework_count') or 0,
            'total': total,
            'averageScore': round(float(average), 2) if average is not None else 0,
            'approvalRate': round(approved * 100 / total) if total else 0,
        }
