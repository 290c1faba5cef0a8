from typing import Annotated

from pydantic import AfterValidator, BaseModel, EmailStr, Field

from assignment_engine.core.roles import Role
from assignment_engine.core.security import BCRYPT_MAX_BYTES


def _fits_bcrypt(value: str) -> str:
    # the limit is in encoded bytes, not characters
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password cannot be longer than {BCRYPT_MAX_BYTES} bytes")
    return value


Password = Annotated[str, AfterValidator(_fits_bcrypt)]


class UserCreate(BaseModel):
    email: EmailStr
    password: Annotated[str, Field(min_length=8), AfterValidator(_fits_bcrypt)]
    full_name: str | None = None


class UserRead(BaseModel):
    id: int
    email: EmailStr
    full_name: str | None = None
    role: Role

    class Config:
        from_attributes = True
