from sqlalchemy import func
from sqlalchemy.orm import Session

from assignment_engine.models.assignment import Assignment
from assignment_engine.models.extension import Extension
from assignment_engine.models.submission import Submission


class AssignmentStore:
    """Assignment, Submission and Extension records behind one session.

    The session's transaction is owned by the caller (see ``db.session.atomic``).
    """

    def __init__(self, db: Session):
        self.db = db

    # assignments

    def get_assignment(self, assignment_id: int, for_update: bool = False) -> Assignment | None:
        q = self.db.query(Assignment).filter(Assignment.id == assignment_id)
        if for_update:
            q = q.with_for_update()
        return q.first()

    def list_assignments(
        self,
        instructor_id: int | None = None,
        course_id: int | None = None,
        published_only: bool = False,
    ) -> list[Assignment]:
        q = self.db.query(Assignment)
        if instructor_id is not None:
            q = q.filter(Assignment.instructor_id == instructor_id)
        if course_id is not None:
            q = q.filter(Assignment.course_id == course_id)
        if published_only:
            q = q.filter(Assignment.is_published.is_(True))
        return q.order_by(Assignment.due_date.asc(), Assignment.id.asc()).all()

    def add_assignment(self, assignment: Assignment) -> Assignment:
        self.db.add(assignment)
        self.db.flush()
        return assignment

    def delete_assignment(self, assignment: Assignment) -> None:
        self.db.delete(assignment)

    # submissions

    def count_submissions(self, assignment_id: int) -> int:
        return (
            self.db.query(func.count(Submission.id))
            .filter(Submission.assignment_id == assignment_id)
            .scalar()
        ) or 0

    def get_submission(self, assignment_id: int, student_id: int) -> Submission | None:
        return (
            self.db.query(Submission)
            .filter(
                Submission.assignment_id == assignment_id,
                Submission.student_id == student_id,
            )
            .first()
        )

    def list_submissions(self, assignment_id: int) -> list[Submission]:
        return (
            self.db.query(Submission)
            .filter(Submission.assignment_id == assignment_id)
            .order_by(Submission.submitted_at.asc(), Submission.id.asc())
            .all()
        )

    def add_submission(self, submission: Submission) -> Submission:
        self.db.add(submission)
        self.db.flush()
        return submission

    # extensions

    def count_extensions(self, assignment_id: int) -> int:
        return (
            self.db.query(func.count(Extension.id))
            .filter(Extension.assignment_id == assignment_id)
            .scalar()
        ) or 0

    def get_extension(self, assignment_id: int, student_id: int) -> Extension | None:
        return (
            self.db.query(Extension)
            .filter(
                Extension.assignment_id == assignment_id,
                Extension.student_id == student_id,
            )
            .first()
        )

    def list_extensions(self, assignment_id: int) -> list[Extension]:
        return (
            self.db.query(Extension)
            .filter(Extension.assignment_id == assignment_id)
            .order_by(Extension.student_id.asc())
            .all()
        )

    def upsert_extension(self, assignment_id: int, student_id: int, **values) -> Extension:
        extension = self.get_extension(assignment_id, student_id)
        if extension is None:
            extension = Extension(assignment_id=assignment_id, student_id=student_id)
            self.db.add(extension)
        for key, value in values.items():
            setattr(extension, key, value)
        self.db.flush()
        return extension

    def delete_extensions(self, assignment_id: int) -> int:
        return (
            self.db.query(Extension)
            .filter(Extension.assignment_id == assignment_id)
            .delete(synchronize_session="fetch")
        )

    def delete_extension(self, extension: Extension) -> None:
        self.db.delete(extension)
        self.db.flush()
