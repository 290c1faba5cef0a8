"""Who may do what to an assignment.

Decision functions only look at the snapshots handed to them (role, actor
id, the course/assignment as loaded by the caller, counts); they never
query anything themselves.
"""
import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, assert_never

from assignment_engine.core.dates import as_utc
from assignment_engine.core.roles import Role
from assignment_engine.engine.rules import RESTRICTED_FIELDS


class MutationKind(str, enum.Enum):
    UPDATE = "update"
    DELETE = "delete"
    PUBLISH = "publish"


class DenyReason(str, enum.Enum):
    NOT_OWNER = "not_owner"
    ROLE_NOT_PERMITTED = "role_not_permitted"
    HAS_SUBMISSIONS = "has_submissions"
    ALREADY_PUBLISHED = "already_published"
    INCOMPLETE = "incomplete"
    NOT_ENROLLED = "not_enrolled"
    NOT_PUBLISHED = "not_published"
    ALREADY_SUBMITTED = "already_submitted"
    DEADLINE_PASSED = "deadline_passed"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None
    restricted_fields: frozenset[str] = field(default_factory=frozenset)

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: DenyReason) -> Decision:
    return Decision(False, reason)


def _owns(role: Role, actor_id: int, owner_id: int) -> bool:
    match role:
        case Role.ADMIN:
            return True
        case Role.INSTRUCTOR:
            return owner_id == actor_id
        case Role.STUDENT:
            return False
        case _:
            assert_never(role)


def can_access_course(role: Role, actor_id: int, course: Any) -> Decision:
    """Admins reach every course; instructors only the ones they teach."""
    if _owns(role, actor_id, course.instructor_id):
        return ALLOW
    if role is Role.STUDENT:
        return deny(DenyReason.ROLE_NOT_PERMITTED)
    return deny(DenyReason.NOT_OWNER)


def can_mutate_assignment(
    role: Role,
    actor_id: int,
    assignment: Any,
    kind: MutationKind,
    submission_count: int,
) -> Decision:
    """Ownership first, then the per-kind state rules.

    An allowed update carries the restricted-field set when submissions
    exist; the caller must refuse any change to those fields and any move of
    the due date to an earlier time.
    """
    if not _owns(role, actor_id, assignment.instructor_id):
        if role is Role.STUDENT:
            return deny(DenyReason.ROLE_NOT_PERMITTED)
        return deny(DenyReason.NOT_OWNER)

    match kind:
        case MutationKind.DELETE:
            if submission_count > 0:
                return deny(DenyReason.HAS_SUBMISSIONS)
            return ALLOW
        case MutationKind.PUBLISH:
            if assignment.is_published:
                return deny(DenyReason.ALREADY_PUBLISHED)
            if not assignment.title or not assignment.description or not assignment.due_date:
                return deny(DenyReason.INCOMPLETE)
            return ALLOW
        case MutationKind.UPDATE:
            if submission_count > 0:
                return Decision(True, restricted_fields=RESTRICTED_FIELDS)
            return ALLOW
        case _:
            assert_never(kind)


def can_grant_extension(role: Role, actor_id: int, course: Any) -> Decision:
    match role:
        case Role.ADMIN | Role.INSTRUCTOR:
            return can_access_course(role, actor_id, course)
        case Role.STUDENT:
            return deny(DenyReason.ROLE_NOT_PERMITTED)
        case _:
            assert_never(role)


def effective_due_date(assignment: Any, extension: Any = None) -> datetime:
    if extension is not None:
        return as_utc(extension.new_due_date)
    return as_utc(assignment.due_date)


def can_submit(
    enrollment_active: bool,
    assignment: Any,
    existing_submission: Any,
    now: datetime,
    extension: Any = None,
) -> Decision:
    """Late-but-allowed submissions pass; flagging them is the caller's job."""
    if not enrollment_active:
        return deny(DenyReason.NOT_ENROLLED)
    if not assignment.is_published:
        return deny(DenyReason.NOT_PUBLISHED)
    if existing_submission is not None:
        return deny(DenyReason.ALREADY_SUBMITTED)
    if as_utc(now) > effective_due_date(assignment, extension) and not assignment.allow_late_submission:
        return deny(DenyReason.DEADLINE_PASSED)
    return ALLOW


def may_learn_missing(role: Role) -> bool:
    """Whether a missing assignment may be reported as missing to this role.

    Everyone but an admin gets the same answer for "absent" and "not yours".
    """
    match role:
        case Role.ADMIN:
            return True
        case Role.INSTRUCTOR | Role.STUDENT:
            return False
        case _:
            assert_never(role)
