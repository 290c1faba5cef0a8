from datetime import datetime

from pydantic import BaseModel


class ExtensionGrantRequest(BaseModel):
    # lengths are checked by the extension manager so errors share one shape
    new_due_date: datetime
    reason: str


class ExtensionRead(BaseModel):
    id: int
    assignment_id: int
    student_id: int
    new_due_date: datetime
    reason: str
    granted_by: int
    granted_at: datetime

    class Config:
        from_attributes = True
