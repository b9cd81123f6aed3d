"""
Unit tests for the QC workflow in Asset Library service.

Tests WorkflowService and apply_transition functionality including:
- The pure transition function (create, submit, approve, reject, rework)
- Asset creation with and without static links
- Submit preconditions (only from Pending or Rework)
- QC decisions: permission checks, remarks and score validation
- linking_active follows the latest QC decision
- rework_count only increases
- Workflow log entries per transition
- Retry on concurrent updates
- Pending queue and QC statistics
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from asset_library.errors import (
    ConcurrentUpdate,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from asset_library.models import db, Asset, AssetWorkflowLog, ServiceAssetLink, SubServiceAssetLink
from asset_library.services import workflow_service
from asset_library.services.audit_service import AuditService
from asset_library.services.workflow_service import (
    INITIAL_STATE,
    AssetState,
    WorkflowService,
    apply_transition,
    log_action_for,
)
from asset_library.utils.identity import Identity


# =============================================================================
# apply_transition Tests
# =============================================================================

class TestApplyTransition:
    """Tests for the pure apply_transition function."""

    def test_create_returns_initial_state(self):
        """create should produce Pending / Add / Draft with linking inactive."""
        state = apply_transition(None, 'create')

        assert state.qc_status == Asset.QC_PENDING
        assert state.workflow_stage == Asset.STAGE_ADD
        assert state.status == Asset.STATUS_DRAFT
        assert state.linking_active is False
        assert state.rework_count == 0

    def test_submit_moves_to_qc_stage(self):
        """submit should move the asset to QC / Pending QC and record the submitter."""
        now = datetime(2024, 5, 1, tzinfo=timezone.utc)
        state = apply_transition(INITIAL_STATE, 'submit', {'user_id': 4, 'timestamp': now})

        assert state.qc_status == Asset.QC_PENDING
        assert state.workflow_stage == Asset.STAGE_QC
        assert state.status == Asset.STATUS_PENDING_QC
        assert state.submitted_by == 4
        assert state.submitted_at == now
        assert state.linking_active is False

    def test_submit_from_approved_is_invalid(self):
        """submit should raise InvalidTransition for an approved asset."""
        approved = apply_transition(INITIAL_STATE, 'approve', {'user_id': 2})

        with pytest.raises(InvalidTransition):
            apply_transition(approved, 'submit', {'user_id': 4})

    def test_submit_from_rejected_is_invalid(self):
        """submit should raise InvalidTransition for a rejected asset."""
        rejected = apply_transition(INITIAL_STATE, 'reject', {'user_id': 2, 'remarks': 'no'})

        with pytest.raises(InvalidTransition):
            apply_transition(rejected, 'submit', {'user_id': 4})

    def test_submit_from_rework_is_allowed(self):
        """submit should be legal after a rework request."""
        rework = apply_transition(INITIAL_STATE, 'rework', {'user_id': 2, 'remarks': 'fix'})
        state = apply_transition(rework, 'submit', {'user_id': 4})

        assert state.workflow_stage == Asset.STAGE_QC
        assert state.status == Asset.STATUS_PENDING_QC
        assert state.qc_status == Asset.QC_REWORK
        assert state.rework_count == 1

    def test_approve_sets_review_fields_and_activates_linking(self):
        """approve should publish the asset and set every review field."""
        now = datetime(2024, 5, 2, tzinfo=timezone.utc)
        state = apply_transition(INITIAL_STATE, 'approve', {
            'user_id': 2, 'remarks': 'ok', 'score': 95.0, 'timestamp': now
        })

        assert state.qc_status == Asset.QC_APPROVED
        assert state.workflow_stage == Asset.STAGE_APPROVE
        assert state.status == Asset.STATUS_PUBLISHED
        assert state.linking_active is True
        assert state.qc_reviewer_id == 2
        assert state.qc_reviewed_at == now
        assert state.qc_remarks == 'ok'
        assert state.qc_score == 95.0

    def test_reject_after_approve_deactivates_linking(self):
        """reject should clear linking_active even if it was previously set."""
        approved = apply_transition(INITIAL_STATE, 'approve', {'user_id': 2})
        state = apply_transition(approved, 'reject', {'user_id': 2, 'remarks': 'broken'})

        assert state.qc_status == Asset.QC_REJECTED
        assert state.workflow_stage == Asset.STAGE_QC
        assert state.status == Asset.STATUS_REJECTED
        assert state.linking_active is False

    def test_rework_increments_count(self):
        """rework should bump rework_count by one each time."""
        once = apply_transition(INITIAL_STATE, 'rework', {'user_id': 2, 'remarks': 'a'})
        twice = apply_transition(once, 'rework', {'user_id': 2, 'remarks': 'b'})

        assert once.rework_count == 1
        assert twice.rework_count == 2
        assert twice.status == Asset.STATUS_REWORK_REQUESTED
        assert twice.linking_active is False

    def test_reapprove_is_idempotent_overwrite(self):
        """Approving twice should re-apply the effect with the new review fields."""
        first = apply_transition(INITIAL_STATE, 'approve', {'user_id': 2, 'score': 80})
        second = apply_transition(first, 'approve', {'user_id': 1, 'score': 90})

        assert second.qc_status == Asset.QC_APPROVED
        assert second.linking_active is True
        assert second.qc_reviewer_id == 1
        assert second.qc_score == 90

    def test_unknown_action_is_invalid(self):
        """An unknown action should raise InvalidTransition."""
        with pytest.raises(InvalidTransition):
            apply_transition(INITIAL_STATE, 'publish')

    def test_input_state_is_not_modified(self):
        """apply_transition should return a new state and leave the input untouched."""
        apply_transition(INITIAL_STATE, 'approve', {'user_id': 2})

        assert INITIAL_STATE.qc_status == Asset.QC_PENDING
        assert INITIAL_STATE.linking_active is False

    def test_linking_active_matches_approved_for_every_sequence(self):
        """linking_active should equal (qc_status == Approved) after every decision."""
        sequence = ['approve', 'reject', 'rework', 'submit', 'approve', 'rework', 'submit', 'reject']
        state = INITIAL_STATE
        payload = {'user_id': 2, 'remarks': 'r'}

        for action in sequence:
            state = apply_transition(state, action, payload)
            if action != 'submit':
                assert state.linking_active == (state.qc_status == Asset.QC_APPROVED)

    def test_log_action_names(self):
        """log_action_for should distinguish first submissions from resubmissions."""
        rework = INITIAL_STATE._replace(qc_status=Asset.QC_REWORK)

        assert log_action_for(None, 'create') == 'created'
        assert log_action_for(INITIAL_STATE, 'submit') == 'submitted'
        assert log_action_for(rework, 'submit') == 'resubmitted'
        assert log_action_for(INITIAL_STATE, 'approve') == 'approved'
        assert log_action_for(INITIAL_STATE, 'reject') == 'rejected'
        assert log_action_for(INITIAL_STATE, 'rework') == 'rework_requested'


# =============================================================================
# create_asset Tests
# =============================================================================

class TestCreateAsset:
    """Tests for WorkflowService.create_asset."""

    def test_create_asset_initial_state(self, app, db_session, uploader):
        """A new asset should start Pending / Add / Draft with one log entry."""
        asset = WorkflowService.create_asset(db_session, {'name': 'Banner'}, uploader)

        assert asset.id is not None
        assert asset.qc_status == Asset.QC_PENDING
        assert asset.workflow_stage == Asset.STAGE_ADD
        assert asset.status == Asset.STATUS_DRAFT
        assert asset.linking_active is False
        assert asset.rework_count == 0
        assert asset.created_by == uploader.user_id
        assert [entry['action'] for entry in asset.workflow_log] == ['created']

    def test_create_asset_requires_name(self, app, db_session, uploader):
        """Missing or blank name should raise ValidationError."""
        with pytest.raises(ValidationError):
            WorkflowService.create_asset(db_session, {'name': '   '}, uploader)

        assert db_session.query(Asset).count() == 0

    def test_create_asset_rejects_unknown_application_type(self, app, db_session, uploader):
        """application_type must be WEB, SEO or SMM."""
        with pytest.raises(ValidationError):
            WorkflowService.create_asset(
                db_session, {'name': 'Banner', 'application_type': 'PRINT'}, uploader
            )

    def test_create_asset_requires_upload_permission(self, app, db_session, guest):
        """A guest should not be able to upload assets."""
        with pytest.raises(PermissionDenied):
            WorkflowService.create_asset(db_session, {'name': 'Banner'}, guest)

        assert db_session.query(Asset).count() == 0

    def test_create_with_linked_service_creates_one_static_link(
        self, app, db_session, uploader, sample_service
    ):
        """linked_service_id should produce exactly one static link for the pair."""
        asset = WorkflowService.create_asset(
            db_session, {'name': 'Banner', 'linked_service_id': sample_service.id}, uploader
        )

        links = db_session.query(ServiceAssetLink).filter_by(asset_id=asset.id).all()
        assert len(links) == 1
        assert links[0].service_id == sample_service.id
        assert links[0].is_static is True
        assert links[0].created_by == uploader.user_id

    def test_create_with_sub_services_creates_static_links(
        self, app, db_session, statically_linked_asset, sample_sub_service
    ):
        """linked_sub_service_ids should produce static sub-service links."""
        links = db_session.query(SubServiceAssetLink).filter_by(
            asset_id=statically_linked_asset.id
        ).all()

        assert len(links) == 1
        assert links[0].sub_service_id == sample_sub_service.id
        assert links[0].is_static is True

    def test_create_without_selection_creates_no_links(self, app, db_session, sample_asset):
        """An asset uploaded with no service selection should have no links."""
        assert db_session.query(ServiceAssetLink).filter_by(asset_id=sample_asset.id).count() == 0
        assert db_session.query(SubServiceAssetLink).filter_by(asset_id=sample_asset.id).count() == 0

    def test_create_with_missing_service_rolls_back(self, app, db_session, uploader):
        """A missing linked service should raise NotFound and leave no asset behind."""
        with pytest.raises(NotFound):
            WorkflowService.create_asset(
                db_session, {'name': 'Banner', 'linked_service_id': 999}, uploader
            )

        assert db_session.query(Asset).count() == 0
        assert db_session.query(AssetWorkflowLog).count() == 0

    @pytest.mark.parametrize('selection', [
        {'linked_service_id': 'abc'},
        {'linked_sub_service_ids': ['7', {'id': 7}]},
        {'linked_sub_service_ids': '7'},
        {'linked_sub_service_id': 'seven'},
    ])
    def test_create_rejects_non_integer_link_ids(self, app, db_session, uploader, selection):
        """Link ids that are not integers should raise ValidationError before anything is stored."""
        with pytest.raises(ValidationError):
            WorkflowService.create_asset(db_session, {'name': 'Banner', **selection}, uploader)

        assert db_session.query(Asset).count() == 0

    def test_create_accepts_numeric_string_link_ids(self, app, db_session, uploader, sample_service, sample_sub_service):
        """Numeric strings should be accepted as link ids."""
        asset = WorkflowService.create_asset(db_session, {
            'name': 'Banner',
            'linked_service_id': str(sample_service.id),
            'linked_sub_service_ids': [str(sample_sub_service.id)],
        }, uploader)

        link = db_session.query(ServiceAssetLink).filter_by(asset_id=asset.id).one()
        assert link.service_id == sample_service.id
        assert link.is_static is True
        assert db_session.query(SubServiceAssetLink).filter_by(asset_id=asset.id).count() == 1

    def test_create_and_submit(self, app, db_session, uploader):
        """submit=True should create and submit the asset in one call."""
        asset = WorkflowService.create_asset(
            db_session, {'name': 'Banner', 'submit': True}, uploader
        )

        assert asset.workflow_stage == Asset.STAGE_QC
        assert asset.status == Asset.STATUS_PENDING_QC
        assert [entry['action'] for entry in asset.workflow_log] == ['created', 'submitted']


# =============================================================================
# submit Tests
# =============================================================================

class TestSubmit:
    """Tests for WorkflowService.submit."""

    def test_submit_pending_asset(self, app, db_session, sample_asset, uploader):
        """Submitting a new asset should move it to the QC stage."""
        asset = WorkflowService.submit(db_session, sample_asset.id, uploader)

        assert asset.workflow_stage == Asset.STAGE_QC
        assert asset.status == Asset.STATUS_PENDING_QC
        assert asset.submitted_by == uploader.user_id
        assert asset.submitted_at is not None
        assert asset.workflow_log[-1]['action'] == 'submitted'

    def test_resubmit_after_rework(self, app, db_session, submitted_asset, uploader, qc_reviewer):
        """Resubmitting after a rework request should log 'resubmitted'."""
        WorkflowService.request_rework(db_session, submitted_asset.id, qc_reviewer, remarks='Fix logo')
        asset = WorkflowService.submit(db_session, submitted_asset.id, uploader)

        assert asset.status == Asset.STATUS_PENDING_QC
        assert asset.rework_count == 1
        assert asset.linking_active is False
        assert asset.workflow_log[-1]['action'] == 'resubmitted'

    def test_submit_approved_asset_is_invalid(self, app, db_session, approved_asset, uploader):
        """Submitting an approved asset should raise InvalidTransition and change nothing."""
        entries_before = len(approved_asset.workflow_log)

        with pytest.raises(InvalidTransition):
            WorkflowService.submit(db_session, approved_asset.id, uploader)

        asset = db_session.get(Asset, approved_asset.id)
        assert asset.qc_status == Asset.QC_APPROVED
        assert asset.linking_active is True
        assert len(asset.workflow_log) == entries_before

    def test_submit_requires_permission(self, app, db_session, sample_asset, guest):
        """A guest should not be able to submit assets."""
        with pytest.raises(PermissionDenied):
            WorkflowService.submit(db_session, sample_asset.id, guest)

    def test_submit_unknown_asset(self, app, db_session, uploader):
        """Submitting an unknown asset should raise NotFound."""
        with pytest.raises(NotFound):
            WorkflowService.submit(db_session, 12345, uploader)


# =============================================================================
# QC Decision Tests
# =============================================================================

class TestQCDecisions:
    """Tests for approve, reject and request_rework."""

    def test_approve_scenario(self, app, db_session, sample_asset, qc_reviewer):
        """Approve(score=95, remarks='ok') should publish the asset and activate links."""
        asset = WorkflowService.approve(
            db_session, sample_asset.id, qc_reviewer, remarks='ok', score=95
        )

        assert asset.qc_status == Asset.QC_APPROVED
        assert asset.linking_active is True
        assert asset.status == Asset.STATUS_PUBLISHED
        assert asset.qc_score == 95
        assert asset.qc_remarks == 'ok'
        assert asset.qc_reviewer_id == qc_reviewer.user_id
        assert asset.qc_reviewed_at is not None
        assert any(entry['action'] == 'approved' for entry in asset.workflow_log)

    def test_reject_requires_remarks(self, app, db_session, submitted_asset, qc_reviewer):
        """Rejecting without remarks should raise ValidationError."""
        with pytest.raises(ValidationError):
            WorkflowService.reject(db_session, submitted_asset.id, qc_reviewer, remarks='')

    def test_rework_requires_remarks(self, app, db_session, submitted_asset, qc_reviewer):
        """Requesting rework without remarks should raise ValidationError."""
        with pytest.raises(ValidationError):
            WorkflowService.request_rework(db_session, submitted_asset.id, qc_reviewer)

    @pytest.mark.parametrize('score', [-1, 101, 'high'])
    def test_invalid_score(self, app, db_session, submitted_asset, qc_reviewer, score):
        """Scores outside 0..100 or non-numeric should raise ValidationError."""
        with pytest.raises(ValidationError):
            WorkflowService.approve(db_session, submitted_asset.id, qc_reviewer, score=score)

    def test_rework_twice(self, app, db_session, sample_asset, qc_reviewer):
        """Two rework requests should leave rework_count at 2 and qc_status Rework."""
        first = WorkflowService.request_rework(db_session, sample_asset.id, qc_reviewer, remarks='one')
        assert first.qc_status == Asset.QC_REWORK

        second = WorkflowService.request_rework(db_session, sample_asset.id, qc_reviewer, remarks='two')
        assert second.qc_status == Asset.QC_REWORK
        assert second.rework_count == 2

    def test_reject_after_approve_clears_linking(self, app, db_session, approved_asset, qc_reviewer):
        """A later rejection should force linking_active back to False."""
        asset = WorkflowService.reject(db_session, approved_asset.id, qc_reviewer, remarks='Outdated')

        assert asset.qc_status == Asset.QC_REJECTED
        assert asset.linking_active is False

    @pytest.mark.parametrize('decision', ['approve', 'reject', 'rework'])
    def test_user_role_cannot_decide(self, app, db_session, submitted_asset, uploader, decision):
        """Role 'user' should get PermissionDenied and leave the asset unchanged."""
        entries_before = len(submitted_asset.workflow_log)

        with pytest.raises(PermissionDenied):
            WorkflowService.decide(
                db_session, submitted_asset.id, decision, uploader, remarks='x', score=50
            )

        asset = db_session.get(Asset, submitted_asset.id)
        assert asset.qc_status == Asset.QC_PENDING
        assert asset.linking_active is False
        assert len(asset.workflow_log) == entries_before

    def test_manager_cannot_decide(self, app, db_session, submitted_asset, manager):
        """Managers manage content but do not make QC decisions."""
        with pytest.raises(PermissionDenied):
            WorkflowService.approve(db_session, submitted_asset.id, manager)

    def test_admin_can_decide(self, app, db_session, submitted_asset, admin):
        """Admins hold every permission, including QC decisions."""
        asset = WorkflowService.approve(db_session, submitted_asset.id, admin)
        assert asset.qc_status == Asset.QC_APPROVED

    def test_unknown_decision(self, app, db_session, submitted_asset, qc_reviewer):
        """An unknown decision should raise ValidationError."""
        with pytest.raises(ValidationError):
            WorkflowService.decide(db_session, submitted_asset.id, 'publish', qc_reviewer)

    def test_decide_on_unknown_asset(self, app, db_session, qc_reviewer):
        """A decision on an unknown asset should raise NotFound."""
        with pytest.raises(NotFound):
            WorkflowService.approve(db_session, 4242, qc_reviewer)

    def test_one_log_entry_per_transition(self, app, db_session, sample_asset, uploader, qc_reviewer):
        """Every transition should append exactly one workflow log entry."""
        WorkflowService.submit(db_session, sample_asset.id, uploader)
        WorkflowService.request_rework(db_session, sample_asset.id, qc_reviewer, remarks='a')
        WorkflowService.submit(db_session, sample_asset.id, uploader)
        WorkflowService.approve(db_session, sample_asset.id, qc_reviewer, remarks='ok')
        asset = WorkflowService.reject(db_session, sample_asset.id, qc_reviewer, remarks='b')

        actions = [entry['action'] for entry in asset.workflow_log]
        assert actions == [
            'created', 'submitted', 'rework_requested', 'resubmitted', 'approved', 'rejected'
        ]
        assert [entry['seq'] for entry in asset.workflow_log] == [1, 2, 3, 4, 5, 6]

    def test_log_entry_snapshots_state(self, app, db_session, submitted_asset, qc_reviewer):
        """The log entry should carry status, stage, user and remarks after the transition."""
        asset = WorkflowService.reject(db_session, submitted_asset.id, qc_reviewer, remarks='Blurry')
        entry = asset.workflow_log[-1]

        assert entry['action'] == 'rejected'
        assert entry['status'] == Asset.STATUS_REJECTED
        assert entry['workflow_stage'] == Asset.STAGE_QC
        assert entry['user_id'] == qc_reviewer.user_id
        assert entry['remarks'] == 'Blurry'
        assert entry['timestamp'] is not None

    def test_rework_count_never_decreases(self, app, db_session, sample_asset, uploader, qc_reviewer):
        """rework_count should be non-decreasing across any history."""
        counts = []
        steps = [
            lambda: WorkflowService.request_rework(db_session, sample_asset.id, qc_reviewer, remarks='a'),
            lambda: WorkflowService.submit(db_session, sample_asset.id, uploader),
            lambda: WorkflowService.approve(db_session, sample_asset.id, qc_reviewer),
            lambda: WorkflowService.request_rework(db_session, sample_asset.id, qc_reviewer, remarks='b'),
            lambda: WorkflowService.reject(db_session, sample_asset.id, qc_reviewer, remarks='c'),
        ]
        for step in steps:
            counts.append(step().rework_count)

        assert counts == sorted(counts)
        assert counts[-1] == 2

    def test_version_increases_on_every_transition(self, app, db_session, sample_asset, qc_reviewer):
        """The optimistic concurrency version should bump on each transition."""
        start = sample_asset.version
        asset = WorkflowService.approve(db_session, sample_asset.id, qc_reviewer)
        asset = WorkflowService.approve(db_session, asset.id, qc_reviewer)

        assert asset.version == start + 2


# =============================================================================
# Concurrency Tests
# =============================================================================

class TestConcurrentUpdates:
    """Tests for the reload-and-retry loop around transitions."""

    def test_retries_after_stale_data(self, app, db_session, submitted_asset, qc_reviewer, monkeypatch):
        """A single concurrent update should be retried and applied once."""
        original = AuditService.append_workflow_entry.__func__
        calls = {'count': 0}

        def flaky_append(cls, *args, **kwargs):
            calls['count'] += 1
            if calls['count'] == 1:
                raise StaleDataError('asset changed underneath')
            return original(cls, *args, **kwargs)

        monkeypatch.setattr(AuditService, 'append_workflow_entry', classmethod(flaky_append))

        asset = WorkflowService.approve(db_session, submitted_asset.id, qc_reviewer, remarks='ok')

        assert calls['count'] == 2
        assert asset.qc_status == Asset.QC_APPROVED
        assert [entry['action'] for entry in asset.workflow_log].count('approved') == 1

    def test_gives_up_after_max_attempts(self, app, db_session, submitted_asset, qc_reviewer, monkeypatch):
        """Persistent conflicts should raise ConcurrentUpdate and leave the asset unchanged."""
        app.config['QC_MAX_TRANSITION_ATTEMPTS'] = 2
        calls = {'count': 0}

        def always_stale(cls, *args, **kwargs):
            calls['count'] += 1
            raise StaleDataError('asset changed underneath')

        monkeypatch.setattr(AuditService, 'append_workflow_entry', classmethod(always_stale))

        with pytest.raises(ConcurrentUpdate):
            WorkflowService.approve(db_session, submitted_asset.id, qc_reviewer)

        assert calls['count'] == 2
        asset = db_session.get(Asset, submitted_asset.id)
        assert asset.qc_status == Asset.QC_PENDING
        assert asset.linking_active is False

    def test_concurrent_writer_detected_by_version(
        self, app, db_session, submitted_asset, qc_reviewer, monkeypatch
    ):
        """A commit from another session between load and flush should force one reload."""
        asset_id = submitted_asset.id
        start_version = submitted_asset.version
        start_log_length = len(submitted_asset.workflow_log)
        calls = {'count': 0}

        def transition_after_other_writer(state, action, payload=None):
            calls['count'] += 1
            if calls['count'] == 1:
                with Session(db.engine) as other:
                    row = other.get(Asset, asset_id)
                    row.description = 'edited elsewhere'
                    other.commit()
            return apply_transition(state, action, payload)

        monkeypatch.setattr(workflow_service, 'apply_transition', transition_after_other_writer)

        asset = WorkflowService.approve(db_session, asset_id, qc_reviewer, remarks='ok')

        assert calls['count'] == 2
        assert asset.qc_status == Asset.QC_APPROVED
        assert asset.linking_active is True
        assert asset.description == 'edited elsewhere'
        assert asset.version == start_version + 2
        assert len(asset.workflow_log) == start_log_length + 1
        assert [entry['action'] for entry in asset.workflow_log].count('approved') == 1


# =============================================================================
# Queue and Statistics Tests
# =============================================================================

class TestPendingQueueAndStatistics:
    """Tests for pending_queue, list_assets and qc_statistics."""

    def _make(self, db_session, identity, name):
        return WorkflowService.create_asset(db_session, {'name': name}, identity)

    def test_pending_queue_excludes_decided_assets(self, app, db_session, uploader, qc_reviewer):
        """Only Pending and Rework assets should be in the pending queue."""
        pending = self._make(db_session, uploader, 'pending')
        rework = self._make(db_session, uploader, 'rework')
        approved = self._make(db_session, uploader, 'approved')
        rejected = self._make(db_session, uploader, 'rejected')

        WorkflowService.request_rework(db_session, rework.id, qc_reviewer, remarks='fix')
        WorkflowService.approve(db_session, approved.id, qc_reviewer)
        WorkflowService.reject(db_session, rejected.id, qc_reviewer, remarks='no')

        assets, total = WorkflowService.pending_queue(db_session)
        ids = {asset.id for asset in assets}

        assert total == 2
        assert ids == {pending.id, rework.id}
        assert all(asset.in_pending_queue for asset in assets)

    def test_pending_queue_status_filter(self, app, db_session, uploader, qc_reviewer):
        """status='Rework' should narrow the queue to rework assets."""
        self._make(db_session, uploader, 'pending')
        rework = self._make(db_session, uploader, 'rework')
        WorkflowService.request_rework(db_session, rework.id, qc_reviewer, remarks='fix')

        assets, total = WorkflowService.pending_queue(db_session, qc_status=Asset.QC_REWORK)

        assert total == 1
        assert assets[0].id == rework.id

    def test_pending_queue_rejects_decided_status(self, app, db_session):
        """Filtering the queue by a decided status should raise ValidationError."""
        with pytest.raises(ValidationError):
            WorkflowService.pending_queue(db_session, qc_status=Asset.QC_APPROVED)

    def test_list_assets_filters(self, app, db_session, uploader, qc_reviewer):
        """list_assets should filter by linking_active."""
        self._make(db_session, uploader, 'a')
        approved = self._make(db_session, uploader, 'b')
        WorkflowService.approve(db_session, approved.id, qc_reviewer)

        assets, total = WorkflowService.list_assets(db_session, linking_active=True)

        assert total == 1
        assert assets[0].id == approved.id

    def test_qc_statistics(self, app, db_session, uploader, qc_reviewer):
        """qc_statistics should count assets per qc_status and compute the approval rate."""
        first = self._make(db_session, uploader, 'a')
        second = self._make(db_session, uploader, 'b')
        third = self._make(db_session, uploader, 'c')
        self._make(db_session, uploader, 'd')

        WorkflowService.approve(db_session, first.id, qc_reviewer, score=90)
        WorkflowService.approve(db_session, second.id, qc_reviewer, score=80)
        WorkflowService.reject(db_session, third.id, qc_reviewer, remarks='no', score=40)

        stats = WorkflowService.qc_statistics(db_session)

        assert stats['total'] == 4
        assert stats['approved'] == 2
        assert stats['rejected'] == 1
        assert stats['pending'] == 1
        assert stats['rework'] == 0
        assert stats['averageScore'] == 70
        assert stats['approvalRate'] == 50

    def test_qc_statistics_empty(self, app, db_session):
        """qc_statistics should return zeros with no assets."""
        stats = WorkflowService.qc_statistics(db_session)

        assert stats['total'] == 0
        assert stats['approvalRate'] == 0
        assert stats['averageScore'] == 0


# =============================================================================
# AssetState Tests
# =============================================================================

class TestAssetState:
    """Tests for AssetState snapshots."""

    def test_from_asset_round_trips_fields(self, app, db_session, approved_asset):
        """from_asset should capture the workflow columns of an asset."""
        state = AssetState.from_asset(approved_asset)

        assert state.qc_status == Asset.QC_APPROVED
        assert state.linking_active is True
        assert state.summary()['status'] == Asset.STATUS_PUBLISHED

    def test_identity_without_user_id(self, app, db_session, sample_asset):
        """Transitions should work for callers without a user id."""
        anonymous_admin = Identity(user_id=None, role='admin')
        asset = WorkflowService.approve(db_session, sample_asset.id, anonymous_admin)

        assert asset.qc_reviewer_id is None
        assert asset.workflow_log[-1]['user_id'] is None
