import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent

DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR}/assignment_engine.db")

# DEV default only: set SECRET_KEY in the environment for anything real.
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE = timedelta(minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")))

# Assignment rules
TITLE_MAX_LENGTH = 200
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 5000
INSTRUCTIONS_MAX_LENGTH = 10000
DUE_DATE_HORIZON = timedelta(days=365)

MIN_FILE_SIZE = 1024  # 1 KiB
MAX_FILE_SIZE = 524288000  # 500 MiB
DEFAULT_MAX_FILE_SIZE = 52428800  # 50 MiB
MAX_ALLOWED_FORMATS = 8
DEFAULT_MAX_FILES = 5
MAX_FILES_LIMIT = 10
DEFAULT_TOTAL_POINTS = 100
MAX_TOTAL_POINTS = 1000

# Extension policy
EXTENSION_WINDOW = timedelta(days=30)
EXTENSION_REASON_MIN_LENGTH = 10
EXTENSION_REASON_MAX_LENGTH = 500

# Late policy: which deadline "is_late" is judged against.
#   "due_date"           -> the assignment's base due date (extensions only move the cutoff)
#   "effective_due_date" -> the student's extended due date when one exists
LATE_BASIS = os.getenv("LATE_BASIS", "due_date")
