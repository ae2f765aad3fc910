"""
UAT entity records.

Plain in-memory records for the five UAT entities plus the signed-in user.
They carry no behaviour: the persistence mappers build them from store
rows, the workspace keeps them in its collections and the report service
renders them.

Identifiers are UUID4 strings generated before the first write, so a record
can be upserted by key whether or not it already exists in the store.
"""

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

# ── Constants ────────────────────────────────────────────────────────────────

STATUS_PASS = "Pass"
STATUS_PARTIAL = "Partial"
STATUS_FAIL = "Fail"
STATUS_INAPPLICABLE = "Inapplicable"
STATUS_NOT_RUN = ""

TEST_STATUSES = (
    STATUS_NOT_RUN,
    STATUS_PASS,
    STATUS_PARTIAL,
    STATUS_FAIL,
    STATUS_INAPPLICABLE,
)

PARTICIPANT_TYPES = ("internal", "vendor", "external")
DEFAULT_PARTICIPANT_TYPE = "external"

CHANGE_ENTITIES = ("project", "test_case", "participant", "approval_signoff")


def new_id() -> str:
    """Return a fresh primary key."""
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ── Records ──────────────────────────────────────────────────────────────────


@dataclass
class Project:
    """A UAT cycle: one tested version in one month."""

    id: str
    name: str = ""
    test_version: str = ""
    month: str = ""
    created_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Participant:
    id: str
    project_id: str
    demo_account: str = ""
    role: str = ""
    name: str = ""
    email: str = ""
    participant_type: str = DEFAULT_PARTICIPANT_TYPE

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TestCase:
    """
    One scripted UAT check.

    ``test_number`` through ``expected_results`` are written while the test
    is designed; ``actual_results``, ``status`` and ``remarks`` while it is
    executed.
    """

    __test__ = False  # not a pytest class

    id: str
    project_id: str
    test_number: str = ""
    category: str = ""
    role: str = ""
    test_scenario: str = ""
    preconditions: str = ""
    test_steps: str = ""
    expected_results: str = ""
    actual_results: str = ""
    status: str = STATUS_NOT_RUN
    remarks: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ApprovalSignoff:
    id: str
    project_id: str
    role: str = ""
    name: str = ""
    unit: str = ""
    date: str = ""
    signature_file_path: str = ""
    verified_by: str = ""
    remarks: str = ""
    month: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ChangeLogEntry:
    """One field-level transition. Never mutated once written."""

    id: str
    project_id: str
    entity: str
    entity_id: str
    field: str
    old_value: str | None
    new_value: str | None
    user_name: str = "Unknown"
    created_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AuthUser:
    id: str
    name: str
    email: str
    provider: str
    is_internal: bool

    def to_dict(self) -> dict:
        return asdict(self)
