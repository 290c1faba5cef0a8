from assignment_engine.db.base_class import Base

# import models so SQLAlchemy registers them on Base.metadata
from assignment_engine.models import assignment, course, enrollment, extension, submission, user  # noqa: F401
