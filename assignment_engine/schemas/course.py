from datetime import datetime

from pydantic import BaseModel, Field


class CourseCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    duration_weeks: int | None = Field(default=None, ge=1, le=104)


class CourseRead(BaseModel):
    id: int
    title: str
    description: str | None = None
    instructor_id: int
    is_published: bool
    duration_weeks: int | None = None
    created_at: datetime

    class Config:
        from_attributes = True
