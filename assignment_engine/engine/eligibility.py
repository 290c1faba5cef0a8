import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from assignment_engine.core import config
from assignment_engine.core.clock import Clock, system_clock
from assignment_engine.core.dates import as_utc
from assignment_engine.core.errors import (
    AuthorizationError,
    ConflictError,
    ErrorCode,
    NotFoundError,
)
from assignment_engine.db.session import atomic
from assignment_engine.engine.directory import CourseDirectory, SqlCourseDirectory
from assignment_engine.engine.policy import DenyReason, can_submit, effective_due_date
from assignment_engine.engine.store import AssignmentStore
from assignment_engine.models.assignment import Assignment
from assignment_engine.models.submission import Submission

logger = logging.getLogger(__name__)


class LateBasis(str, enum.Enum):
    DUE_DATE = "due_date"
    EFFECTIVE_DUE_DATE = "effective_due_date"


@dataclass(frozen=True)
class Eligibility:
    effective_due_date: datetime
    is_overdue: bool
    has_submitted: bool
    can_submit_now: bool
    is_late: bool


def compute_eligibility(
    assignment: Any,
    extension: Any,
    submission: Any,
    now: datetime,
    late_basis: LateBasis | str = LateBasis.DUE_DATE,
) -> Eligibility:
    """Where a student stands on one assignment at ``now``.

    An extension moves the hard cutoff. Whether "late" follows it or stays
    on the base due date is decided by ``late_basis``.
    """
    now = as_utc(now)
    effective = effective_due_date(assignment, extension)
    has_submitted = submission is not None

    if LateBasis(late_basis) is LateBasis.EFFECTIVE_DUE_DATE:
        late_cutoff = effective
    else:
        late_cutoff = as_utc(assignment.due_date)

    return Eligibility(
        effective_due_date=effective,
        is_overdue=now > effective and not has_submitted,
        has_submitted=has_submitted,
        can_submit_now=bool(
            assignment.is_published
            and not has_submitted
            and (now <= effective or assignment.allow_late_submission)
        ),
        is_late=not has_submitted and now > late_cutoff,
    )


@dataclass
class StudentAssignment:
    assignment: Assignment
    eligibility: Eligibility


@dataclass
class StudentStanding:
    student_id: int
    eligibility: Eligibility


class SubmissionEligibility:
    def __init__(
        self,
        db: Session,
        clock: Clock = system_clock,
        directory: CourseDirectory | None = None,
        late_basis: LateBasis | str | None = None,
    ):
        self.db = db
        self.clock = clock
        self.store = AssignmentStore(db)
        self.directory = directory or SqlCourseDirectory(db)
        self.late_basis = LateBasis(late_basis or config.LATE_BASIS)

    def get_eligibility(self, assignment_id: int, student_id: int, now: datetime | None = None) -> Eligibility:
        assignment = self.store.get_assignment(assignment_id)
        if not assignment:
            raise NotFoundError("Assignment not found", ErrorCode.ASSIGNMENT_NOT_FOUND)
        return compute_eligibility(
            assignment,
            self.store.get_extension(assignment.id, student_id),
            self.store.get_submission(assignment.id, student_id),
            now or self.clock.now(),
            self.late_basis,
        )

    def for_student(self, assignment_id: int, student_id: int) -> Eligibility:
        """Like get_eligibility, but only for published work in a course the student is active in."""
        assignment = self.store.get_assignment(assignment_id)
        if (
            not assignment
            or not assignment.is_published
            or not self.directory.is_actively_enrolled(assignment.course_id, student_id)
        ):
            raise NotFoundError("Assignment not found", ErrorCode.ASSIGNMENT_NOT_FOUND)
        return self.get_eligibility(assignment.id, student_id)

    def list_for_student(self, course_id: int, student_id: int) -> list[StudentAssignment]:
        """Published assignments of a published course, annotated for one student."""
        course = self.directory.get_course(course_id)
        if course is None or not course.is_published:
            raise NotFoundError("Course not found or not published", ErrorCode.COURSE_NOT_FOUND)
        if not self.directory.is_actively_enrolled(course_id, student_id):
            raise NotFoundError("Student not enrolled in course", ErrorCode.STUDENT_NOT_ENROLLED)

        now = self.clock.now()
        rows = []
        for assignment in self.store.list_assignments(course_id=course_id, published_only=True):
            eligibility = compute_eligibility(
                assignment,
                self.store.get_extension(assignment.id, student_id),
                self.store.get_submission(assignment.id, student_id),
                now,
                self.late_basis,
            )
            rows.append(StudentAssignment(assignment=assignment, eligibility=eligibility))
        return rows

    def roster(self, assignment_id: int) -> list[StudentStanding]:
        """Every actively enrolled student's standing on one assignment, for staff views.

        The caller is responsible for checking the actor may see the assignment.
        """
        assignment = self.store.get_assignment(assignment_id)
        if not assignment:
            raise NotFoundError("Assignment not found", ErrorCode.ASSIGNMENT_NOT_FOUND)

        extensions = {e.student_id: e for e in self.store.list_extensions(assignment.id)}
        submissions = {s.student_id: s for s in self.store.list_submissions(assignment.id)}
        now = self.clock.now()
        return [
            StudentStanding(
                student_id=student_id,
                eligibility=compute_eligibility(
                    assignment,
                    extensions.get(student_id),
                    submissions.get(student_id),
                    now,
                    self.late_basis,
                ),
            )
            for student_id in self.directory.active_student_ids(assignment.course_id)
        ]

    def submit(self, assignment_id: int, student_id: int, content: str | None = None) -> Submission:
        """Record a student's single submission if the assignment accepts it now."""
        now = self.clock.now()

        with atomic(self.db, conflict_message="Assignment has already been submitted"):
            # same row lock as update, delete and grant take
            assignment = self.store.get_assignment(assignment_id, for_update=True)
            if not assignment:
                raise NotFoundError("Assignment not found", ErrorCode.ASSIGNMENT_NOT_FOUND)

            extension = self.store.get_extension(assignment.id, student_id)
            existing = self.store.get_submission(assignment.id, student_id)
            enrolled = self.directory.is_actively_enrolled(assignment.course_id, student_id)

            decision = can_submit(enrolled, assignment, existing, now, extension)
            if not decision:
                logger.warning(
                    "Refused submission on assignment %s for student %s: %s",
                    assignment.id,
                    student_id,
                    decision.reason.value,
                )
                match decision.reason:
                    case DenyReason.ALREADY_SUBMITTED:
                        raise ConflictError("Assignment has already been submitted", ErrorCode.ALREADY_SUBMITTED)
                    case DenyReason.DEADLINE_PASSED:
                        raise ConflictError(
                            "Assignment deadline has passed and late submissions are not allowed",
                            ErrorCode.LATE_SUBMISSION_NOT_ALLOWED,
                        )
                    case DenyReason.NOT_PUBLISHED:
                        # drafts are invisible to students
                        raise NotFoundError("Assignment not found", ErrorCode.ASSIGNMENT_NOT_FOUND)
                    case _:
                        raise AuthorizationError(ErrorCode.STUDENT_NOT_ENROLLED)

            eligibility = compute_eligibility(assignment, extension, None, now, self.late_basis)
            submission = self.store.add_submission(
                Submission(
                    assignment_id=assignment.id,
                    student_id=student_id,
                    content=content,
                    submitted_at=now,
                    is_late=eligibility.is_late,
                )
            )

        self.db.refresh(submission)
        logger.info(
            "Submission %s recorded for assignment %s by student %s%s",
            submission.id,
            assignment_id,
            student_id,
            " (late)" if submission.is_late else "",
        )
        return submission
