from fastapi import APIRouter, Depends, status

from assignment_engine.core.current_user import get_current_user
from assignment_engine.core.deps import get_eligibility, get_lifecycle
from assignment_engine.core.permissions import require_staff
from assignment_engine.core.roles import Role
from assignment_engine.engine.eligibility import SubmissionEligibility
from assignment_engine.engine.lifecycle import AssignmentLifecycle
from assignment_engine.models.user import User
from assignment_engine.routers.assignments import ERRORS
from assignment_engine.schemas.submission import SubmissionCreate, SubmissionRead

router = APIRouter()


@router.post(
    "/assignments/{assignment_id}/submissions",
    response_model=SubmissionRead,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
def submit_assignment(
    assignment_id: int,
    payload: SubmissionCreate,
    me: User = Depends(get_current_user),
    eligibility: SubmissionEligibility = Depends(get_eligibility),
):
    # one submission per student; a second attempt is a 409
    return eligibility.submit(assignment_id, me.id, payload.content)


@router.get(
    "/assignments/{assignment_id}/submissions",
    response_model=list[SubmissionRead],
    responses=ERRORS,
)
def list_submissions_for_assignment(
    assignment_id: int,
    staff: User = Depends(require_staff),
    lifecycle: AssignmentLifecycle = Depends(get_lifecycle),
):
    overview = lifecycle.get_for_instructor(assignment_id, staff.id, Role(staff.role))
    return lifecycle.store.list_submissions(overview.assignment.id)
