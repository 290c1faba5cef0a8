from typing import Any

from fastapi import APIRouter, Body, Depends, Response, status

from assignment_engine.core.current_user import get_current_user
from assignment_engine.core.deps import get_eligibility, get_lifecycle
from assignment_engine.core.permissions import require_staff
from assignment_engine.core.roles import Role
from assignment_engine.engine.eligibility import SubmissionEligibility
from assignment_engine.engine.lifecycle import AssignmentLifecycle, AssignmentOverview
from assignment_engine.models.user import User
from assignment_engine.schemas.assignment import AssignmentDetail, AssignmentRead, StudentAssignmentRead
from assignment_engine.schemas.eligibility import EligibilityRead, StudentStandingRead
from assignment_engine.schemas.error import ErrorResponse

router = APIRouter()

ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


def _detail(overview: AssignmentOverview) -> AssignmentDetail:
    return AssignmentDetail(
        **AssignmentRead.model_validate(overview.assignment).model_dump(),
        submission_count=overview.submission_count,
        extension_count=overview.extension_count,
    )


@router.get(
    "/courses/{course_id}/assignments",
    response_model=list[StudentAssignmentRead] | list[AssignmentDetail],
    responses=ERRORS,
)
def list_assignments(
    course_id: int,
    current_user: User = Depends(get_current_user),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
    eligibility: SubmissionEligibility = Depends(get_eligibility),
):
    role = Role(current_user.role)

    # students see published work annotated with their own standing
    if role is Role.STUDENT:
        return [
            StudentAssignmentRead(
                **AssignmentRead.model_validate(row.assignment).model_dump(),
                eligibility=EligibilityRead.model_validate(row.eligibility),
            )
            for row in eligibility.list_for_student(course_id, current_user.id)
        ]

    return [_detail(o) for o in lifecycle.list_for_instructor(current_user.id, role, course_id=course_id)]


@router.post(
    "/courses/{course_id}/assignments",
    response_model=AssignmentRead,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
def create_assignment(
    course_id: int,
    payload: dict[str, Any] = Body(...),
    staff: User = Depends(require_staff),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
):
    fields = {**payload, "course_id": course_id}
    return lifecycle.create(fields, staff.id, Role(staff.role))


@router.get("/assignments", response_model=list[AssignmentDetail])
def my_assignments(
    staff: User = Depends(require_staff),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
):
    return [_detail(o) for o in lifecycle.list_for_instructor(staff.id, Role(staff.role))]


@router.get("/assignments/{assignment_id}", response_model=AssignmentDetail, responses=ERRORS)
def get_assignment(
    assignment_id: int,
    staff: User = Depends(require_staff),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
):
    return _detail(lifecycle.get_for_instructor(assignment_id, staff.id, Role(staff.role)))


@router.patch("/assignments/{assignment_id}", response_model=AssignmentRead, responses=ERRORS)
def update_assignment(
    assignment_id: int,
    payload: dict[str, Any] = Body(...),
    staff: User = Depends(require_staff),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
):
    return lifecycle.update(assignment_id, payload, staff.id, Role(staff.role))


@router.delete(
    "/assignments/{assignment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=ERRORS,
)
def delete_assignment(
    assignment_id: int,
    staff: User = Depends(require_staff),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
):
    lifecycle.delete(assignment_id, staff.id, Role(staff.role))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/assignments/{assignment_id}/publish", response_model=AssignmentRead, responses=ERRORS)
def publish_assignment(
    assignment_id: int,
    staff: User = Depends(require_staff),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
):
    return lifecycle.publish(assignment_id, staff.id, Role(staff.role))


@router.get("/assignments/{assignment_id}/eligibility", response_model=EligibilityRead, responses=ERRORS)
def my_eligibility(
    assignment_id: int,
    me: User = Depends(get_current_user),
    eligibility: SubmissionEligibility = Depends(get_eligibility),
):
    return eligibility.for_student(assignment_id, me.id)


@router.get(
    "/assignments/{assignment_id}/roster",
    response_model=list[StudentStandingRead],
    responses=ERRORS,
)
def assignment_roster(
    assignment_id: int,
    staff: User = Depends(require_staff),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
    eligibility: SubmissionEligibility = Depends(get_eligibility),
):
    # owner or admin only; the roster itself does no access checks
    lifecycle.get_for_instructor(assignment_id, staff.id, Role(staff.role))
    return eligibility.roster(assignment_id)


@router.get(
    "/assignments/{assignment_id}/eligibility/{student_id}",
    response_model=EligibilityRead,
    responses=ERRORS,
)
def student_eligibility(
    assignment_id: int,
    student_id: int,
    staff: User = Depends(require_staff),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
    eligibility: SubmissionEligibility = Depends(get_eligibility),
):
    lifecycle.get_for_instructor(assignment_id, staff.id, Role(staff.role))
    return eligibility.get_eligibility(assignment_id, student_id)
