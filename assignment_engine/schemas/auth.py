from pydantic import BaseModel, EmailStr

from assignment_engine.schemas.user import Password


class LoginRequest(BaseModel):
    email: EmailStr
    password: Password
