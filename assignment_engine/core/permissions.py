from fastapi import Depends, HTTPException, status

from assignment_engine.core.current_user import get_current_user
from assignment_engine.core.roles import Role
from assignment_engine.models.user import User


def require_staff(current_user: User = Depends(get_current_user)) -> User:
    # instructors and admins
    if current_user.role not in (Role.INSTRUCTOR.value, Role.ADMIN.value):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Instructor or admin role required",
        )
    return current_user
