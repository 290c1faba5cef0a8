from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from assignment_engine.core.current_user import get_current_user
from assignment_engine.core.deps import get_db
from assignment_engine.core.errors import ErrorCode, NotFoundError
from assignment_engine.db.session import atomic
from assignment_engine.models.course import Course
from assignment_engine.models.enrollment import ENROLLMENT_ACTIVE, ENROLLMENT_DROPPED, Enrollment
from assignment_engine.models.user import User
from assignment_engine.schemas.enrollment import EnrollmentCreate, EnrollmentOut

router = APIRouter()


@router.post("", response_model=EnrollmentOut, status_code=status.HTTP_201_CREATED)
def enroll_me(
    payload: EnrollmentCreate,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    with atomic(db, conflict_message="Already enrolled"):
        course = db.query(Course).filter(Course.id == payload.course_id).first()
        if not course:
            raise NotFoundError("Course not found", ErrorCode.COURSE_NOT_FOUND)

        enrollment = (
            db.query(Enrollment)
            .filter(Enrollment.course_id == course.id, Enrollment.student_id == me.id)
            .first()
        )
        if enrollment is None:
            enrollment = Enrollment(student_id=me.id, course_id=course.id)
            db.add(enrollment)
        # re-enrolling after a drop reactivates the same row
        enrollment.status = ENROLLMENT_ACTIVE

    db.refresh(enrollment)
    return enrollment


@router.get("/me", response_model=list[EnrollmentOut])
def my_enrollments(
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return db.query(Enrollment).filter(Enrollment.student_id == me.id).all()


@router.delete("/{course_id}", response_model=EnrollmentOut)
def drop_course(
    course_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    with atomic(db):
        enrollment = (
            db.query(Enrollment)
            .filter(Enrollment.course_id == course_id, Enrollment.student_id == me.id)
            .first()
        )
        if not enrollment:
            raise NotFoundError("Enrollment not found", ErrorCode.STUDENT_NOT_ENROLLED)
        enrollment.status = ENROLLMENT_DROPPED

    db.refresh(enrollment)
    return enrollment
