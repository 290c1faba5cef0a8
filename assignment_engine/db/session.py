from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from assignment_engine.core.config import DATABASE_URL
from assignment_engine.core.errors import ConflictError, ErrorCode

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


@contextmanager
def atomic(db: Session, conflict_message: str = "Record already exists") -> Iterator[Session]:
    """Run one read-decide-write unit: commit on success, roll back on any error.

    A uniqueness violation at commit time means a concurrent request won the
    race; it is reported as a ConflictError.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(conflict_message, ErrorCode.DUPLICATE_RECORD) from exc
    except Exception:
        db.rollback()
        raise
