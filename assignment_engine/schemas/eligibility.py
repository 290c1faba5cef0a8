from datetime import datetime

from pydantic import BaseModel


class EligibilityRead(BaseModel):
    effective_due_date: datetime
    is_overdue: bool
    has_submitted: bool
    can_submit_now: bool
    is_late: bool

    class Config:
        from_attributes = True


class StudentStandingRead(BaseModel):
    student_id: int
    eligibility: EligibilityRead

    class Config:
        from_attributes = True
