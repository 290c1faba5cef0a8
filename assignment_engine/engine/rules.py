"""Static business rules for assignment field values.

Everything here is pure: the caller passes ``now`` (and, when known, the end
of the course) and gets back either the validated values or a
``ValidationError`` listing every violated constraint at once.
"""
import enum
from datetime import datetime
from typing import Annotated, Any, Mapping

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, TypeAdapter, ValidationInfo
from pydantic import ValidationError as PydanticValidationError

from assignment_engine.core.config import (
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_MAX_FILES,
    DEFAULT_TOTAL_POINTS,
    DESCRIPTION_MAX_LENGTH,
    DESCRIPTION_MIN_LENGTH,
    DUE_DATE_HORIZON,
    INSTRUCTIONS_MAX_LENGTH,
    MAX_ALLOWED_FORMATS,
    MAX_FILE_SIZE,
    MAX_FILES_LIMIT,
    MAX_TOTAL_POINTS,
    MIN_FILE_SIZE,
    TITLE_MAX_LENGTH,
)
from assignment_engine.core.dates import as_utc
from assignment_engine.core.errors import FieldError, ValidationError


class FileFormat(str, enum.Enum):
    PDF = "pdf"
    DOC = "doc"
    DOCX = "docx"
    MP4 = "mp4"
    MOV = "mov"
    AVI = "avi"
    JPG = "jpg"
    PNG = "png"


class Attachment(BaseModel):
    """Reference to an instructor-provided file. Stored as-is, never inspected."""

    file_name: str
    url: str
    size_bytes: int | None = None
    content_type: str | None = None


# Fields that become immutable once any submission exists.
RESTRICTED_FIELDS = frozenset({"allowed_formats", "max_file_size", "max_files", "total_points"})

# Optional fields an update may explicitly clear by sending null.
CLEARABLE_FIELDS = frozenset({"instructions", "late_penalty", "attachments"})


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("Title cannot be empty or whitespace only")
    return value


def _due_date_window(value: datetime, info: ValidationInfo) -> datetime:
    value = as_utc(value)
    context = info.context or {}

    now = context.get("now")
    if now is not None:
        now = as_utc(now)
        if value <= now:
            raise ValueError("Due date must be in the future")
        if value > now + DUE_DATE_HORIZON:
            raise ValueError("Due date cannot be more than 1 year in the future")

    course_ends_at = context.get("course_ends_at")
    if course_ends_at is not None and value > as_utc(course_ends_at):
        raise ValueError("Due date must be within course duration")

    return value


def _distinct(formats: list) -> list:
    return list(dict.fromkeys(formats))


Title = Annotated[str, Field(max_length=TITLE_MAX_LENGTH), AfterValidator(_not_blank)]
Description = Annotated[str, Field(min_length=DESCRIPTION_MIN_LENGTH, max_length=DESCRIPTION_MAX_LENGTH)]
Instructions = Annotated[str, Field(max_length=INSTRUCTIONS_MAX_LENGTH)]
DueDate = Annotated[datetime, AfterValidator(_due_date_window)]
MaxFileSize = Annotated[int, Field(ge=MIN_FILE_SIZE, le=MAX_FILE_SIZE)]
AllowedFormats = Annotated[
    list[FileFormat],
    Field(min_length=1, max_length=MAX_ALLOWED_FORMATS),
    AfterValidator(_distinct),
]
MaxFiles = Annotated[int, Field(ge=1, le=MAX_FILES_LIMIT)]
LatePenalty = Annotated[int, Field(ge=0, le=100)]
TotalPoints = Annotated[int, Field(ge=1, le=MAX_TOTAL_POINTS)]


class AssignmentFields(BaseModel):
    """A complete, validated field set for a new assignment."""

    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    course_id: int
    title: Title
    description: Description
    instructions: Instructions | None = None
    due_date: DueDate
    max_file_size: MaxFileSize = DEFAULT_MAX_FILE_SIZE
    allowed_formats: AllowedFormats
    max_files: MaxFiles = DEFAULT_MAX_FILES
    allow_late_submission: bool = False
    late_penalty: LatePenalty | None = None
    total_points: TotalPoints = DEFAULT_TOTAL_POINTS
    attachments: list[Attachment] | None = None


class AssignmentPatch(BaseModel):
    """Partial update.

    ``model_fields_set`` tells a field that was left out (keep the current
    value) apart from one sent as null (clear it).
    """

    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    title: Title | None = None
    description: Description | None = None
    instructions: Instructions | None = None
    due_date: DueDate | None = None
    max_file_size: MaxFileSize | None = None
    allowed_formats: AllowedFormats | None = None
    max_files: MaxFiles | None = None
    allow_late_submission: bool | None = None
    late_penalty: LatePenalty | None = None
    total_points: TotalPoints | None = None
    attachments: list[Attachment] | None = None

    def changes(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


_bool = TypeAdapter(bool)


def _as_bool(value: Any) -> bool:
    try:
        return _bool.validate_python(value)
    except PydanticValidationError:
        return False


def _field_errors(exc: PydanticValidationError) -> list[FieldError]:
    errors = []
    for err in exc.errors():
        loc = err.get("loc") or ()
        field = str(loc[0]) if loc else "__root__"
        if err["type"] == "value_error":
            message = str(err["ctx"]["error"])
        else:
            message = err["msg"]
        errors.append(FieldError(field=field, message=message, code=err["type"]))
    return errors


def _late_penalty_error(allow_late: Any, late_penalty: Any, errors: list[FieldError]) -> FieldError | None:
    if any(e.field == "late_penalty" for e in errors):
        return None
    if _as_bool(allow_late) and late_penalty is None:
        return FieldError(
            field="late_penalty",
            message="Late penalty is required when late submissions are allowed",
            code="late_penalty_required",
        )
    return None


def validate_assignment(
    fields: Mapping[str, Any],
    *,
    now: datetime,
    course_ends_at: datetime | None = None,
) -> AssignmentFields:
    """Validate a full field set for creation. Raises ValidationError."""
    errors: list[FieldError] = []
    validated = None
    try:
        validated = AssignmentFields.model_validate(
            dict(fields), context={"now": now, "course_ends_at": course_ends_at}
        )
    except PydanticValidationError as exc:
        errors.extend(_field_errors(exc))

    source = validated.model_dump() if validated is not None else fields
    penalty_error = _late_penalty_error(
        source.get("allow_late_submission", False), source.get("late_penalty"), errors
    )
    if penalty_error:
        errors.append(penalty_error)

    if errors:
        raise ValidationError(errors)
    return validated


def validate_patch(
    patch: Mapping[str, Any] | AssignmentPatch,
    *,
    now: datetime,
    current: Any,
    course_ends_at: datetime | None = None,
) -> dict[str, Any]:
    """Validate only the supplied fields of an update; return the changes to apply.

    ``current`` is the stored assignment; the late-penalty rule is checked
    against the patch merged over it.
    """
    errors: list[FieldError] = []
    supplied: dict[str, Any]

    if isinstance(patch, AssignmentPatch):
        patch = patch.model_dump(exclude_unset=True)

    try:
        validated = AssignmentPatch.model_validate(
            dict(patch), context={"now": now, "course_ends_at": course_ends_at}
        )
        supplied = validated.changes()
    except PydanticValidationError as exc:
        errors.extend(_field_errors(exc))
        supplied = dict(patch)

    for name, value in supplied.items():
        if value is None and name in AssignmentPatch.model_fields and name not in CLEARABLE_FIELDS:
            errors.append(FieldError(field=name, message="This field cannot be cleared", code="not_clearable"))

    allow_late = supplied.get("allow_late_submission", current.allow_late_submission)
    late_penalty = supplied["late_penalty"] if "late_penalty" in supplied else current.late_penalty
    penalty_error = _late_penalty_error(allow_late, late_penalty, errors)
    if penalty_error:
        errors.append(penalty_error)

    if errors:
        raise ValidationError(errors)

    if "attachments" in supplied and supplied["attachments"] is not None:
        supplied["attachments"] = [a.model_dump() for a in supplied["attachments"]]
    return supplied
