from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from assignment_engine.engine.rules import Attachment
from assignment_engine.schemas.eligibility import EligibilityRead


class AssignmentRead(BaseModel):
    id: int
    course_id: int
    instructor_id: int
    title: str
    description: str
    instructions: Optional[str] = None
    due_date: datetime
    max_file_size: int
    allowed_formats: list[str]
    max_files: int
    allow_late_submission: bool
    late_penalty: Optional[int] = None
    total_points: int
    attachments: Optional[list[Attachment]] = None
    is_published: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AssignmentDetail(AssignmentRead):
    submission_count: int = 0
    extension_count: int = 0


class StudentAssignmentRead(AssignmentRead):
    eligibility: EligibilityRead
