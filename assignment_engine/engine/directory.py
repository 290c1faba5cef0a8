"""Course/enrollment lookups the engine treats as read-only ground truth."""
from datetime import datetime
from typing import Protocol

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from assignment_engine.core.dates import add_weeks, as_utc
from assignment_engine.models.course import Course
from assignment_engine.models.enrollment import ENROLLMENT_ACTIVE, Enrollment


class CourseInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    instructor_id: int
    is_published: bool
    duration_weeks: int | None = None
    created_at: datetime

    @property
    def ends_at(self) -> datetime | None:
        if not self.duration_weeks:
            return None
        return add_weeks(as_utc(self.created_at), self.duration_weeks)


class CourseDirectory(Protocol):
    def get_course(self, course_id: int) -> CourseInfo | None: ...

    def is_actively_enrolled(self, course_id: int, student_id: int) -> bool: ...

    def active_student_ids(self, course_id: int) -> list[int]: ...


class SqlCourseDirectory:
    def __init__(self, db: Session):
        self.db = db

    def get_course(self, course_id: int) -> CourseInfo | None:
        course = self.db.query(Course).filter(Course.id == course_id).first()
        if not course:
            return None
        return CourseInfo.model_validate(course)

    def is_actively_enrolled(self, course_id: int, student_id: int) -> bool:
        return (
            self.db.query(Enrollment)
            .filter(
                Enrollment.course_id == course_id,
                Enrollment.student_id == student_id,
                Enrollment.status == ENROLLMENT_ACTIVE,
            )
            .first()
            is not None
        )

    def active_student_ids(self, course_id: int) -> list[int]:
        rows = (
            self.db.query(Enrollment.student_id)
            .filter(
                Enrollment.course_id == course_id,
                Enrollment.status == ENROLLMENT_ACTIVE,
            )
            .order_by(Enrollment.student_id.asc())
            .all()
        )
        return [student_id for (student_id,) in rows]
