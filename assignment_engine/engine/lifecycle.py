import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from assignment_engine.core.clock import Clock, system_clock
from assignment_engine.core.config import EXTENSION_WINDOW
from assignment_engine.core.dates import as_utc
from assignment_engine.core.errors import (
    AuthorizationError,
    BoundsError,
    ConflictError,
    ErrorCode,
    NotFoundError,
)
from assignment_engine.core.roles import Role
from assignment_engine.db.session import atomic
from assignment_engine.engine.directory import CourseDirectory, SqlCourseDirectory
from assignment_engine.engine.policy import (
    DenyReason,
    MutationKind,
    can_access_course,
    can_mutate_assignment,
    may_learn_missing,
)
from assignment_engine.engine.rules import AssignmentPatch, validate_assignment, validate_patch
from assignment_engine.engine.store import AssignmentStore
from assignment_engine.models.assignment import Assignment

logger = logging.getLogger(__name__)

_datetime = TypeAdapter(datetime)


def _parse_datetime(value: Any) -> datetime | None:
    # unparseable values are left for the rule validator to report
    if value is None:
        return None
    try:
        return as_utc(_datetime.validate_python(value))
    except PydanticValidationError:
        return None


@dataclass
class AssignmentOverview:
    assignment: Assignment
    submission_count: int
    extension_count: int


class AssignmentLifecycle:
    """Draft -> Published state machine plus the mutations allowed along the way.

    Every public mutation is one transaction: load, ask the policy, validate,
    write. Any error rolls the whole thing back.
    """

    def __init__(
        self,
        db: Session,
        clock: Clock = system_clock,
        directory: CourseDirectory | None = None,
    ):
        self.db = db
        self.clock = clock
        self.store = AssignmentStore(db)
        self.directory = directory or SqlCourseDirectory(db)

    def _load(self, assignment_id: int, role: Role, for_update: bool = True) -> Assignment:
        assignment = self.store.get_assignment(assignment_id, for_update=for_update)
        if not assignment:
            if may_learn_missing(role):
                raise NotFoundError("Assignment not found", ErrorCode.ASSIGNMENT_NOT_FOUND)
            raise AuthorizationError()
        return assignment

    def _check(self, role: Role, actor_id: int, assignment: Assignment, kind: MutationKind, submission_count: int):
        decision = can_mutate_assignment(role, actor_id, assignment, kind, submission_count)
        if decision:
            return decision

        logger.warning(
            "Denied %s on assignment %s for %s %s: %s",
            kind.value,
            assignment.id,
            role.value,
            actor_id,
            decision.reason.value,
        )
        match decision.reason:
            case DenyReason.HAS_SUBMISSIONS:
                raise ConflictError(
                    "Cannot delete assignment with existing submissions",
                    ErrorCode.CANNOT_DELETE_WITH_SUBMISSIONS,
                )
            case DenyReason.ALREADY_PUBLISHED:
                raise ConflictError("Assignment is already published", ErrorCode.ASSIGNMENT_ALREADY_PUBLISHED)
            case DenyReason.INCOMPLETE:
                raise ConflictError(
                    "Assignment must have title, description, and due date to be published",
                    ErrorCode.ASSIGNMENT_INCOMPLETE,
                )
            case _:
                raise AuthorizationError()

    def create(self, fields: Mapping[str, Any], instructor_id: int, role: Role = Role.INSTRUCTOR) -> Assignment:
        role = Role(role)
        now = self.clock.now()

        with atomic(self.db):
            course_id = fields.get("course_id")
            if isinstance(course_id, bool) or not isinstance(course_id, int):
                # reports the bad course_id together with every other field error
                validate_assignment(fields, now=now)
            course = self.directory.get_course(course_id)
            if course is None:
                raise NotFoundError("Course not found", ErrorCode.COURSE_NOT_FOUND)

            if not can_access_course(role, instructor_id, course):
                logger.warning("Denied create in course %s for %s %s", course.id, role.value, instructor_id)
                raise AuthorizationError()

            validated = validate_assignment(fields, now=now, course_ends_at=course.ends_at)

            assignment = Assignment(
                **validated.model_dump(),
                instructor_id=instructor_id,
                is_published=False,
            )
            self.store.add_assignment(assignment)

        self.db.refresh(assignment)
        logger.info("Assignment %s created in course %s by %s", assignment.id, course.id, instructor_id)
        return assignment

    def update(
        self,
        assignment_id: int,
        fields: Mapping[str, Any] | AssignmentPatch,
        instructor_id: int,
        role: Role = Role.INSTRUCTOR,
    ) -> Assignment:
        role = Role(role)
        now = self.clock.now()
        if isinstance(fields, AssignmentPatch):
            fields = fields.model_dump(exclude_unset=True)

        with atomic(self.db):
            assignment = self._load(assignment_id, role)
            submission_count = self.store.count_submissions(assignment.id)
            decision = self._check(role, instructor_id, assignment, MutationKind.UPDATE, submission_count)

            if decision.restricted_fields:
                touched = sorted(decision.restricted_fields.intersection(fields))
                if touched:
                    raise ConflictError(
                        "Cannot modify file requirements or points after submissions have been made",
                        ErrorCode.CANNOT_MODIFY_WITH_SUBMISSIONS,
                        details={"fields": touched},
                    )
                new_due_date = _parse_datetime(fields.get("due_date"))
                if new_due_date is not None and new_due_date < as_utc(assignment.due_date):
                    raise BoundsError(
                        "Cannot move due date earlier after submissions have been made",
                        ErrorCode.DUE_DATE_MOVED_EARLIER,
                    )

            course = self.directory.get_course(assignment.course_id)
            changes = validate_patch(
                fields,
                now=now,
                current=assignment,
                course_ends_at=course.ends_at if course else None,
            )

            for name, value in changes.items():
                setattr(assignment, name, value)
            assignment.updated_at = now

            dropped = self._fit_extensions(assignment) if "due_date" in changes else 0

        self.db.refresh(assignment)
        logger.info("Assignment %s updated by %s (%s)", assignment.id, instructor_id, ", ".join(sorted(changes)))
        if dropped:
            logger.info("Dropped %d extensions on assignment %s overtaken by the new due date", dropped, assignment.id)
        return assignment

    def _fit_extensions(self, assignment: Assignment) -> int:
        """Keep every extension inside (due_date, due_date + window] after a due date move.

        Extensions the new due date has caught up with are dropped. One that
        would end up past the window refuses the move.
        """
        due_date = as_utc(assignment.due_date)
        extensions = self.store.list_extensions(assignment.id)

        too_long = [e.student_id for e in extensions if as_utc(e.new_due_date) > due_date + EXTENSION_WINDOW]
        if too_long:
            raise BoundsError(
                "Cannot move due date more than 30 days before a granted extension",
                ErrorCode.EXTENSION_TOO_LONG,
                details={"student_ids": too_long},
            )

        overtaken = [e for e in extensions if as_utc(e.new_due_date) <= due_date]
        for extension in overtaken:
            self.store.delete_extension(extension)
        return len(overtaken)

    def delete(self, assignment_id: int, instructor_id: int, role: Role = Role.INSTRUCTOR) -> None:
        role = Role(role)

        with atomic(self.db):
            assignment = self._load(assignment_id, role)
            submission_count = self.store.count_submissions(assignment.id)
            self._check(role, instructor_id, assignment, MutationKind.DELETE, submission_count)

            # extensions go with the assignment, never left behind
            removed = self.store.delete_extensions(assignment.id)
            self.store.delete_assignment(assignment)

        logger.info("Assignment %s deleted by %s (%d extensions removed)", assignment_id, instructor_id, removed)

    def publish(self, assignment_id: int, instructor_id: int, role: Role = Role.INSTRUCTOR) -> Assignment:
        role = Role(role)

        with atomic(self.db):
            assignment = self._load(assignment_id, role)
            submission_count = self.store.count_submissions(assignment.id)
            self._check(role, instructor_id, assignment, MutationKind.PUBLISH, submission_count)
            assignment.is_published = True

        self.db.refresh(assignment)
        logger.info("Assignment %s published by %s", assignment.id, instructor_id)
        return assignment

    # read side for owners/admins

    def get_for_instructor(self, assignment_id: int, actor_id: int, role: Role = Role.INSTRUCTOR) -> AssignmentOverview:
        role = Role(role)
        assignment = self._load(assignment_id, role, for_update=False)
        course = self.directory.get_course(assignment.course_id)
        owns_assignment = can_mutate_assignment(role, actor_id, assignment, MutationKind.UPDATE, 0)
        if not owns_assignment and not (course and can_access_course(role, actor_id, course)):
            raise AuthorizationError()
        return self._overview(assignment)

    def list_for_instructor(self, actor_id: int, role: Role = Role.INSTRUCTOR, course_id: int | None = None) -> list[AssignmentOverview]:
        role = Role(role)
        if course_id is not None:
            course = self.directory.get_course(course_id)
            if course is None:
                raise NotFoundError("Course not found", ErrorCode.COURSE_NOT_FOUND)
            if not can_access_course(role, actor_id, course):
                raise AuthorizationError()
            assignments = self.store.list_assignments(course_id=course_id)
        elif role is Role.ADMIN:
            assignments = self.store.list_assignments()
        else:
            assignments = self.store.list_assignments(instructor_id=actor_id)
        return [self._overview(a) for a in assignments]

    def _overview(self, assignment: Assignment) -> AssignmentOverview:
        return AssignmentOverview(
            assignment=assignment,
            submission_count=self.store.count_submissions(assignment.id),
            extension_count=self.store.count_extensions(assignment.id),
        )
