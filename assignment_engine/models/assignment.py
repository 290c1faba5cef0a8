from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from assignment_engine.db.base_class import Base

class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    instructor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    instructions = Column(Text, nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=False)

    # File requirements (frozen once a submission exists)
    max_file_size = Column(Integer, nullable=False)
    allowed_formats = Column(JSON, nullable=False)
    max_files = Column(Integer, nullable=False)
    total_points = Column(Integer, nullable=False)

    allow_late_submission = Column(Boolean, nullable=False, default=False)
    late_penalty = Column(Integer, nullable=True)

    # Instructor file references, passed through untouched
    attachments = Column(JSON, nullable=True)

    is_published = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    course = relationship("Course", back_populates="assignments")

    submissions = relationship("Submission", back_populates="assignment", cascade="all, delete-orphan")
    extensions = relationship("Extension", back_populates="assignment", cascade="all, delete-orphan")
