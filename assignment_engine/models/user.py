from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assignment_engine.core.roles import Role
from assignment_engine.db.base_class import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    full_name: Mapped[str | None] = mapped_column(String(255))
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default=Role.STUDENT.value)

    enrollments = relationship(
        "Enrollment", back_populates="student", cascade="all, delete-orphan"
    )

    submissions = relationship(
        "Submission",
        back_populates="student",
        cascade="all, delete-orphan",
        foreign_keys="Submission.student_id",
    )
