import logging
from datetime import datetime

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from assignment_engine.core.clock import Clock, system_clock
from assignment_engine.core.config import (
    EXTENSION_REASON_MAX_LENGTH,
    EXTENSION_REASON_MIN_LENGTH,
    EXTENSION_WINDOW,
)
from assignment_engine.core.dates import as_utc
from assignment_engine.core.errors import (
    AssignmentError,
    AuthorizationError,
    BoundsError,
    ConflictError,
    ErrorCode,
    FieldError,
    NotFoundError,
    ValidationError,
)
from assignment_engine.core.roles import Role
from assignment_engine.db.session import atomic
from assignment_engine.engine.directory import CourseDirectory, SqlCourseDirectory
from assignment_engine.engine.policy import can_access_course, can_grant_extension, may_learn_missing
from assignment_engine.engine.store import AssignmentStore
from assignment_engine.models.extension import Extension

logger = logging.getLogger(__name__)


class ExtensionGrant(BaseModel):
    new_due_date: datetime
    reason: str = Field(min_length=EXTENSION_REASON_MIN_LENGTH, max_length=EXTENSION_REASON_MAX_LENGTH)


def _validate_grant(new_due_date, reason) -> ExtensionGrant:
    try:
        return ExtensionGrant(new_due_date=new_due_date, reason=reason)
    except PydanticValidationError as exc:
        raise ValidationError(
            [
                FieldError(field=str(err["loc"][0]), message=err["msg"], code=err["type"])
                for err in exc.errors()
            ]
        ) from exc


class ExtensionManager:
    """Per-student due date overrides, granted by the course's instructor or an admin."""

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

    @staticmethod
    def _missing(role: Role) -> AssignmentError:
        if may_learn_missing(role):
            return NotFoundError("Assignment not found", ErrorCode.ASSIGNMENT_NOT_FOUND)
        return AuthorizationError()

    def grant(
        self,
        assignment_id: int,
        student_id: int,
        new_due_date: datetime,
        reason: str,
        instructor_id: int,
        role: Role = Role.INSTRUCTOR,
    ) -> Extension:
        """Create or overwrite the extension for (assignment, student).

        Granting twice replaces the earlier extension instead of failing.
        """
        role = Role(role)
        grant = _validate_grant(new_due_date, reason)
        new_due_date = as_utc(grant.new_due_date)

        with atomic(self.db):
            assignment = self.store.get_assignment(assignment_id, for_update=True)
            if not assignment:
                raise self._missing(role)

            course = self.directory.get_course(assignment.course_id)
            if course is None:
                raise NotFoundError("Course not found", ErrorCode.COURSE_NOT_FOUND)

            if not can_grant_extension(role, instructor_id, course):
                logger.warning(
                    "Denied extension on assignment %s for %s %s", assignment.id, role.value, instructor_id
                )
                raise AuthorizationError()

            if self.store.get_submission(assignment.id, student_id) is not None:
                raise ConflictError(
                    "Cannot grant extension after submission has been made",
                    ErrorCode.EXTENSION_AFTER_SUBMISSION,
                )

            due_date = as_utc(assignment.due_date)
            if new_due_date <= due_date:
                raise BoundsError(
                    "Extension due date must be after original due date",
                    ErrorCode.INVALID_EXTENSION_DATE,
                )
            if new_due_date > due_date + EXTENSION_WINDOW:
                raise BoundsError(
                    "Extension cannot be more than 30 days from original due date",
                    ErrorCode.EXTENSION_TOO_LONG,
                )

            if not self.directory.is_actively_enrolled(course.id, student_id):
                raise NotFoundError(
                    "Student not enrolled in course or enrollment inactive",
                    ErrorCode.STUDENT_NOT_ENROLLED,
                )

            extension = self.store.upsert_extension(
                assignment.id,
                student_id,
                new_due_date=new_due_date,
                reason=grant.reason,
                granted_by=instructor_id,
                granted_at=self.clock.now(),
            )

        self.db.refresh(extension)
        logger.info(
            "Extension for student %s on assignment %s granted by %s until %s",
            student_id,
            assignment_id,
            instructor_id,
            new_due_date.isoformat(),
        )
        return extension

    def list_for_assignment(self, assignment_id: int, actor_id: int, role: Role = Role.INSTRUCTOR) -> list[Extension]:
        role = Role(role)
        assignment = self.store.get_assignment(assignment_id)
        if not assignment:
            raise self._missing(role)
        course = self.directory.get_course(assignment.course_id)
        if course is None or not can_access_course(role, actor_id, course):
            raise AuthorizationError()
        return self.store.list_extensions(assignment.id)
