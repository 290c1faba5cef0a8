from fastapi import APIRouter, Depends

from assignment_engine.core.deps import get_extension_manager
from assignment_engine.core.permissions import require_staff
from assignment_engine.core.roles import Role
from assignment_engine.engine.extensions import ExtensionManager
from assignment_engine.models.user import User
from assignment_engine.routers.assignments import ERRORS
from assignment_engine.schemas.extension import ExtensionGrantRequest, ExtensionRead

router = APIRouter()


@router.put(
    "/assignments/{assignment_id}/extensions/{student_id}",
    response_model=ExtensionRead,
    responses=ERRORS,
)
def grant_extension(
    assignment_id: int,
    student_id: int,
    payload: ExtensionGrantRequest,
    staff: User = Depends(require_staff),
    extensions: ExtensionManager = Depends(get_extension_manager),
):
    # PUT: granting again overwrites the previous extension
    return extensions.grant(
        assignment_id,
        student_id,
        payload.new_due_date,
        payload.reason,
        staff.id,
        Role(staff.role),
    )


@router.get(
    "/assignments/{assignment_id}/extensions",
    response_model=list[ExtensionRead],
    responses=ERRORS,
)
def list_extensions(
    assignment_id: int,
    staff: User = Depends(require_staff),
    extensions: ExtensionManager = Depends(get_extension_manager),
):
    return extensions.list_for_assignment(assignment_id, staff.id, Role(staff.role))
