"""
UAT persistence gateway.

Reads and writes for every UAT entity against the database, translating
between store columns and entity records through
``uat_tracker.services.mappers``. Projects and change-log rows have no
delete.

Error policy:
    - Reads never raise. A store failure is logged, the session is rolled
      back and an empty list is returned.
    - Writes return a result tuple: ``(record, None)`` on success,
      ``(None, {"error": ..., "status": int})`` on validation or store
      failure. Nothing is kept in the session after a failed write.
    - Upserts are keyed on the primary key: an existing row is overwritten
      field by field, a missing one is created.

Orderings:
    projects             created_at DESC
    test cases           test_number ASC
    participants         created_at ASC
    approvals            created_at ASC
    change log           created_at DESC (newest first)
"""

from __future__ import annotations

import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from uat_tracker.models import db
from uat_tracker.models.records import (
    CHANGE_ENTITIES,
    PARTICIPANT_TYPES,
    TEST_STATUSES,
    ApprovalSignoff,
    ChangeLogEntry,
    Participant,
    Project,
    TestCase,
    new_id,
)
from uat_tracker.models.uat import (
    ApprovalRow,
    ChangeLogRow,
    ParticipantRow,
    TestCaseRow,
    UatProject,
)
from uat_tracker.services.mappers import (
    columns_of,
    map_approval,
    map_change,
    map_participant,
    map_project,
    map_test_case,
    unmap_approval,
    unmap_change,
    unmap_participant,
    unmap_project,
    unmap_test_case,
)

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────────


def _read_all(stmt, mapper, label: str, project_id: str | None = None) -> list:
    """Run a SELECT and map every row; any store error yields []."""
    try:
        rows = db.session.execute(stmt).scalars().all()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("%s read failed", label, extra={"project_id": project_id})
        return []
    return [mapper(columns_of(row)) for row in rows]


def _write(model, values: dict, mapper, label: str):
    """Upsert ``values`` into ``model`` keyed on ``values['id']``."""
    try:
        obj = db.session.get(model, values["id"])
        if obj is None:
            obj = model(**values)
            db.session.add(obj)
        else:
            for column, value in values.items():
                setattr(obj, column, value)
        db.session.commit()
        return mapper(columns_of(obj)), None
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(
            "%s write failed", label,
            extra={"project_id": values.get("project_id")},
        )
        return None, {"error": f"Could not save {label}.", "status": 500}


def _delete(model, record_id: str, label: str):
    try:
        obj = db.session.get(model, record_id)
        if obj is None:
            # Deleting an absent row is not an error; the end state is the same.
            logger.debug("%s %s already absent", label, record_id)
            return True, None
        db.session.delete(obj)
        db.session.commit()
        return True, None
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("%s delete failed", label)
        return None, {"error": f"Could not delete {label}.", "status": 500}


def _project_exists(project_id: str | None) -> bool:
    if not project_id:
        return False
    try:
        return db.session.get(UatProject, project_id) is not None
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Project lookup failed", extra={"project_id": project_id})
        return False


def _check_child(record, label: str) -> dict | None:
    """Common checks for rows that belong to a project."""
    if not record.id:
        return {"error": f"{label} id is required.", "status": 400}
    if not _project_exists(record.project_id):
        return {"error": f"Project '{record.project_id}' not found.", "status": 404}
    return None


# ── Projects ───────────────────────────────────────────────────────────────────


def list_projects() -> list[Project]:
    """All projects, newest first. Not project-scoped."""
    stmt = select(UatProject).order_by(UatProject.created_at.desc())
    return _read_all(stmt, map_project, "Projects")


def get_project(project_id: str) -> Project | None:
    try:
        row = db.session.get(UatProject, project_id)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Project read failed", extra={"project_id": project_id})
        return None
    return map_project(columns_of(row)) if row else None


def create_project(name: str, test_version: str = "", month: str = ""):
    """Create a project from its three editable fields."""
    project = Project(
        id=new_id(),
        name=name or "",
        test_version=test_version or "",
        month=month or "",
    )
    return upsert_project(project)


def update_project(project: Project):
    """Overwrite the editable fields of an existing project."""
    if not _project_exists(project.id):
        return None, {"error": f"Project '{project.id}' not found.", "status": 404}
    return upsert_project(project)


def upsert_project(project: Project):
    if not (project.name or "").strip():
        return None, {"error": "Project name is required.", "status": 400}
    if not project.id:
        return None, {"error": "Project id is required.", "status": 400}
    values = unmap_project(project)
    values.pop("created_at")  # set once by the store
    return _write(UatProject, values, map_project, "project")


# ── Test cases ─────────────────────────────────────────────────────────────────


def list_test_cases(project_id: str) -> list[TestCase]:
    stmt = (
        select(TestCaseRow)
        .where(TestCaseRow.project_id == project_id)
        .order_by(TestCaseRow.test_number.asc())
    )
    return _read_all(stmt, map_test_case, "Test cases", project_id)


def upsert_test_case(test_case: TestCase):
    err = _check_child(test_case, "Test case")
    if err:
        return None, err
    if test_case.status not in TEST_STATUSES:
        return None, {
            "error": f"Invalid status '{test_case.status}'. "
                     f"Must be one of: {', '.join(s for s in TEST_STATUSES if s)} or empty.",
            "status": 400,
        }
    return _write(TestCaseRow, unmap_test_case(test_case), map_test_case, "test case")


def delete_test_case(test_case_id: str):
    return _delete(TestCaseRow, test_case_id, "test case")


# ── Participants ───────────────────────────────────────────────────────────────


def list_participants(project_id: str) -> list[Participant]:
    stmt = (
        select(ParticipantRow)
        .where(ParticipantRow.project_id == project_id)
        .order_by(ParticipantRow.created_at.asc())
    )
    return _read_all(stmt, map_participant, "Participants", project_id)


def upsert_participant(participant: Participant):
    err = _check_child(participant, "Participant")
    if err:
        return None, err
    if participant.participant_type not in PARTICIPANT_TYPES:
        return None, {
            "error": f"Invalid participant_type '{participant.participant_type}'. "
                     f"Must be one of: {', '.join(PARTICIPANT_TYPES)}",
            "status": 400,
        }
    if participant.email:
        try:
            validate_email(participant.email, check_deliverability=False)
        except EmailNotValidError as exc:
            return None, {"error": f"Invalid email: {exc}", "status": 400}
    return _write(ParticipantRow, unmap_participant(participant), map_participant, "participant")


def delete_participant(participant_id: str):
    return _delete(ParticipantRow, participant_id, "participant")


# ── Approval sign-offs ─────────────────────────────────────────────────────────


def list_approvals(project_id: str) -> list[ApprovalSignoff]:
    stmt = (
        select(ApprovalRow)
        .where(ApprovalRow.project_id == project_id)
        .order_by(ApprovalRow.created_at.asc())
    )
    return _read_all(stmt, map_approval, "Approvals", project_id)


def upsert_approval(approval: ApprovalSignoff):
    err = _check_child(approval, "Approval")
    if err:
        return None, err
    return _write(ApprovalRow, unmap_approval(approval), map_approval, "approval")


def delete_approval(approval_id: str):
    return _delete(ApprovalRow, approval_id, "approval")


# ── Change log (append-only) ───────────────────────────────────────────────────


def list_change_log(project_id: str) -> list[ChangeLogEntry]:
    stmt = (
        select(ChangeLogRow)
        .where(ChangeLogRow.project_id == project_id)
        .order_by(ChangeLogRow.created_at.desc())
    )
    return _read_all(stmt, map_change, "Change log", project_id)


def append_change_log(entry: ChangeLogEntry):
    """Insert one history row. There is no update or delete counterpart."""
    if entry.entity not in CHANGE_ENTITIES:
        return None, {"error": f"Invalid entity '{entry.entity}'.", "status": 400}
    if not _project_exists(entry.project_id):
        return None, {"error": f"Project '{entry.project_id}' not found.", "status": 404}
    values = unmap_change(entry)
    values.pop("created_at")
    values["id"] = values.get("id") or new_id()
    try:
        row = ChangeLogRow(**values)
        db.session.add(row)
        db.session.commit()
        return map_change(columns_of(row)), None
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Change log write failed", extra={"project_id": entry.project_id})
        return None, {"error": "Could not write change log entry.", "status": 500}
