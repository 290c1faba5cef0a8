from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from assignment_engine.core.clock import Clock, get_clock
from assignment_engine.core.current_user import get_current_user
from assignment_engine.core.deps import get_db
from assignment_engine.core.errors import AuthorizationError, ErrorCode, NotFoundError
from assignment_engine.core.permissions import require_staff
from assignment_engine.core.roles import Role
from assignment_engine.db.session import atomic
from assignment_engine.engine.policy import can_access_course
from assignment_engine.models.course import Course
from assignment_engine.models.enrollment import ENROLLMENT_ACTIVE, Enrollment
from assignment_engine.models.user import User
from assignment_engine.schemas.course import CourseCreate, CourseRead

router = APIRouter()


@router.get("/", response_model=list[CourseRead])
def list_courses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return db.query(Course).order_by(Course.id.asc()).all()


@router.post("/", response_model=CourseRead, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreate,
    db: Session = Depends(get_db),
    staff: User = Depends(require_staff),
    clock: Clock = Depends(get_clock),
):
    course = Course(
        title=payload.title,
        description=payload.description,
        duration_weeks=payload.duration_weeks,
        instructor_id=staff.id,
        created_at=clock.now(),
    )
    with atomic(db):
        db.add(course)
    db.refresh(course)
    return course


@router.get("/me", response_model=list[CourseRead])
def my_courses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return (
        db.query(Course)
        .join(Enrollment, Enrollment.course_id == Course.id)
        .filter(
            Enrollment.student_id == current_user.id,
            Enrollment.status == ENROLLMENT_ACTIVE,
        )
        .all()
    )


@router.post("/{course_id}/publish", response_model=CourseRead)
def publish_course(
    course_id: int,
    db: Session = Depends(get_db),
    staff: User = Depends(require_staff),
):
    with atomic(db):
        course = db.query(Course).filter(Course.id == course_id).first()
        if not course:
            raise NotFoundError("Course not found", ErrorCode.COURSE_NOT_FOUND)
        if not can_access_course(Role(staff.role), staff.id, course):
            raise AuthorizationError()
        course.is_published = True
    db.refresh(course)
    return course
