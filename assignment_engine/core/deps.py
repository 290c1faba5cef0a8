from fastapi import Depends
from sqlalchemy.orm import Session

from assignment_engine.core.clock import Clock, get_clock
from assignment_engine.db.session import SessionLocal
from assignment_engine.engine.eligibility import SubmissionEligibility
from assignment_engine.engine.extensions import ExtensionManager
from assignment_engine.engine.lifecycle import AssignmentLifecycle


# every request that needs DB will get a fresh session, and it will always close.
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_lifecycle(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> AssignmentLifecycle:
    return AssignmentLifecycle(db, clock=clock)


def get_extension_manager(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> ExtensionManager:
    return ExtensionManager(db, clock=clock)


def get_eligibility(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> SubmissionEligibility:
    return SubmissionEligibility(db, clock=clock)
