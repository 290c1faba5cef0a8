from datetime import timedelta
from types import SimpleNamespace

import pytest

from assignment_engine.core.errors import AuthorizationError, ConflictError, NotFoundError
from assignment_engine.engine.eligibility import LateBasis, SubmissionEligibility, compute_eligibility
from assignment_engine.engine.extensions import ExtensionManager
from assignment_engine.engine.lifecycle import AssignmentLifecycle
from assignment_engine.engine.store import AssignmentStore
from tests.conftest import NOW, add_submission, assignment_fields


def make_assignment(**overrides):
    values = dict(
        is_published=True,
        due_date=NOW + timedelta(days=10),
        allow_late_submission=False,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_overdue_without_late_submission():
    result = compute_eligibility(make_assignment(), None, None, NOW + timedelta(days=11))
    assert result.is_overdue is True
    assert result.can_submit_now is False


def test_late_submission_allowed_is_flagged_late():
    assignment = make_assignment(allow_late_submission=True, late_penalty=10)
    result = compute_eligibility(assignment, None, None, NOW + timedelta(days=11))
    assert result.can_submit_now is True
    assert result.is_late is True


def test_extension_moves_cutoff():
    extension = SimpleNamespace(new_due_date=NOW + timedelta(days=20))
    result = compute_eligibility(make_assignment(), extension, None, NOW + timedelta(days=15))
    assert result.effective_due_date == NOW + timedelta(days=20)
    assert result.is_overdue is False
    assert result.can_submit_now is True


def test_lateness_follows_base_due_date_by_default():
    extension = SimpleNamespace(new_due_date=NOW + timedelta(days=20))
    at = NOW + timedelta(days=15)

    assert compute_eligibility(make_assignment(), extension, None, at).is_late is True
    assert (
        compute_eligibility(make_assignment(), extension, None, at, LateBasis.EFFECTIVE_DUE_DATE).is_late
        is False
    )


def test_submitted_student_is_never_overdue():
    result = compute_eligibility(make_assignment(), None, object(), NOW + timedelta(days=30))
    assert result.has_submitted is True
    assert result.is_overdue is False
    assert result.can_submit_now is False


def test_draft_cannot_take_submissions():
    assert compute_eligibility(make_assignment(is_published=False), None, None, NOW).can_submit_now is False


def test_on_time_boundary_is_inclusive():
    result = compute_eligibility(make_assignment(), None, None, NOW + timedelta(days=10))
    assert result.is_overdue is False
    assert result.can_submit_now is True


# against the store


@pytest.fixture()
def published(db, clock, seed):
    lifecycle = AssignmentLifecycle(db, clock=clock)
    a = lifecycle.create(assignment_fields(seed.course_id), seed.instructor_id)
    return lifecycle.publish(a.id, seed.instructor_id)


def test_get_eligibility_scenario_with_extension(db, clock, seed, published):
    ExtensionManager(db, clock=clock).grant(
        published.id,
        seed.student_id,
        NOW + timedelta(days=20),
        "Medical leave, documented.",
        seed.instructor_id,
    )
    eligibility = SubmissionEligibility(db, clock=clock)

    result = eligibility.get_eligibility(published.id, seed.student_id, NOW + timedelta(days=15))
    assert result.effective_due_date == NOW + timedelta(days=20)
    assert result.is_overdue is False

    other = eligibility.get_eligibility(published.id, seed.student2_id, NOW + timedelta(days=15))
    assert other.is_overdue is True


def test_get_eligibility_unknown_assignment(db, clock, seed):
    with pytest.raises(NotFoundError):
        SubmissionEligibility(db, clock=clock).get_eligibility(999999, seed.student_id)


def test_list_for_student_hides_drafts(db, clock, seed, published):
    AssignmentLifecycle(db, clock=clock).create(assignment_fields(seed.course_id, title="Draft"), seed.instructor_id)
    rows = SubmissionEligibility(db, clock=clock).list_for_student(seed.course_id, seed.student_id)
    assert [r.assignment.id for r in rows] == [published.id]
    assert rows[0].eligibility.can_submit_now is True


def test_list_for_student_requires_active_enrollment(db, clock, seed, published):
    with pytest.raises(NotFoundError):
        SubmissionEligibility(db, clock=clock).list_for_student(seed.course_id, seed.dropped_id)


def test_submit_records_one_submission(db, clock, seed, published):
    eligibility = SubmissionEligibility(db, clock=clock)
    submission = eligibility.submit(published.id, seed.student_id, "my essay")
    assert submission.is_late is False

    with pytest.raises(ConflictError):
        eligibility.submit(published.id, seed.student_id, "again")


def test_submit_requires_enrollment(db, clock, seed, published):
    with pytest.raises(AuthorizationError):
        SubmissionEligibility(db, clock=clock).submit(published.id, seed.dropped_id, "hi")


def test_submit_after_deadline_refused_without_late_policy(db, clock, seed, published):
    clock.advance(days=11)
    with pytest.raises(ConflictError):
        SubmissionEligibility(db, clock=clock).submit(published.id, seed.student_id, "late")


def test_submit_to_draft_is_not_found(db, clock, seed):
    draft = AssignmentLifecycle(db, clock=clock).create(assignment_fields(seed.course_id), seed.instructor_id)
    with pytest.raises(NotFoundError):
        SubmissionEligibility(db, clock=clock).submit(draft.id, seed.student_id, "hi")


def test_has_submitted_from_store(db, clock, seed, published):
    add_submission(db, published.id, seed.student_id)
    result = SubmissionEligibility(db, clock=clock).get_eligibility(published.id, seed.student_id)
    assert result.has_submitted is True
    assert result.can_submit_now is False


def test_submit_takes_the_assignment_row_lock(db, clock, seed, published, monkeypatch):
    # update, delete and grant lock the row before counting submissions
    locks = []
    original = AssignmentStore.get_assignment

    def recording(self, assignment_id, for_update=False):
        locks.append(for_update)
        return original(self, assignment_id, for_update=for_update)

    monkeypatch.setattr(AssignmentStore, "get_assignment", recording)
    SubmissionEligibility(db, clock=clock).submit(published.id, seed.student_id, "my essay")
    assert locks == [True]


def test_roster_covers_active_students_only(db, clock, seed, published):
    ExtensionManager(db, clock=clock).grant(
        published.id,
        seed.student2_id,
        NOW + timedelta(days=20),
        "Medical leave, documented.",
        seed.instructor_id,
    )
    add_submission(db, published.id, seed.student_id)
    clock.advance(days=15)

    roster = SubmissionEligibility(db, clock=clock).roster(published.id)
    by_student = {row.student_id: row.eligibility for row in roster}

    assert sorted(by_student) == sorted([seed.student_id, seed.student2_id])
    assert by_student[seed.student_id].has_submitted is True
    assert by_student[seed.student_id].is_overdue is False
    assert by_student[seed.student2_id].effective_due_date == NOW + timedelta(days=20)
    assert by_student[seed.student2_id].can_submit_now is True


def test_roster_of_missing_assignment(db, clock, seed):
    with pytest.raises(NotFoundError):
        SubmissionEligibility(db, clock=clock).roster(999999)
