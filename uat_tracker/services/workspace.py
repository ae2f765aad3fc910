"""
UAT workspace controller.

Holds the active-project selection and the four collections loaded for it
(test cases, participants, approvals, change log). It is the only
integration point for a presentation layer: blueprints read its state and
call its mutation methods, never the store directly.

Active-project states:

    no_project ──select/initialize──▶ loading ──all four fetched──▶ loaded
                                         ▲                            │
                                         └────────re-select───────────┘

A failed fetch does not produce an error state: the gateway turns read
failures into empty lists, so loading always ends in ``loaded``.

Mutation contract (save/remove per entity):
    1. call the gateway;
    2. on success only, apply the same change to the in-memory collection
       (replace by id, append if new, drop if removed);
    3. record field-level history through the change tracker;
    4. reload the change log.
    Every mutation returns the gateway's ``(result, error)`` tuple. A write
    error is also kept on ``self.error`` for display; memory is untouched.

Removals and imports without an active project are no-ops that return a
409-style error. Concurrent edits to the same row are not detected: the
last write wins in the store.
"""

from __future__ import annotations

import logging

from uat_tracker.models.records import (
    ApprovalSignoff,
    AuthUser,
    Participant,
    Project,
    TestCase,
    new_id,
)
from uat_tracker.services import uat_store
from uat_tracker.services.change_tracker import track_changes, track_deletion
from uat_tracker.services.mappers import (
    DISPLAY_FIELDS,
    TEST_CASE_FIELDS,
    TRACKED_FIELDS,
    record_from_payload,
)
from uat_tracker.services.results_summary import ResultsSummary, summarize

logger = logging.getLogger(__name__)

STATUS_NO_PROJECT = "no_project"
STATUS_LOADING = "loading"
STATUS_LOADED = "loaded"

_NO_ACTIVE_PROJECT = {"error": "No active project", "status": 409}


def _find(records, record_id):
    return next((r for r in records if r.id == record_id), None)


def _apply(records, saved) -> list:
    """Replace the record with the same id, or append it."""
    if any(r.id == saved.id for r in records):
        return [saved if r.id == saved.id else r for r in records]
    return [*records, saved]


class UatWorkspace:
    """Per-user view over exactly one active UAT project.

    ``select_project`` loads the four collections (test cases, participants,
    approvals, change log) one after another on the request's session, not
    in parallel. Each read fails on its own: a store error leaves that
    collection empty and the others still load.
    """

    def __init__(self, user: AuthUser, store=uat_store):
        self.user = user
        self.store = store
        self.projects: list[Project] = []
        self.active_project_id: str | None = None
        self.status = STATUS_NO_PROJECT
        self.test_cases: list[TestCase] = []
        self.participants: list[Participant] = []
        self.approvals: list[ApprovalSignoff] = []
        self.changes: list = []
        self.error: str | None = None

    # ── Loading ──────────────────────────────────────────────────────────

    def refresh_projects(self) -> list[Project]:
        self.projects = self.store.list_projects()
        return self.projects

    def initialize(self) -> "UatWorkspace":
        """Load the project list and auto-select the first project, if any."""
        self.refresh_projects()
        if self.active_project_id is None and self.projects:
            self.select_project(self.projects[0].id)
        return self

    def select_project(self, project_id: str) -> None:
        """Make ``project_id`` active and reload its four collections.

        The previous project's collections are discarded first; nothing is
        cached for inactive projects. Each fetch is independent, so one
        failing collection only comes back empty.
        """
        self.active_project_id = project_id
        self.status = STATUS_LOADING
        self.test_cases, self.participants, self.approvals, self.changes = [], [], [], []

        self.test_cases = self.store.list_test_cases(project_id)
        self.participants = self.store.list_participants(project_id)
        self.approvals = self.store.list_approvals(project_id)
        self.changes = self.store.list_change_log(project_id)

        self.status = STATUS_LOADED
        logger.debug(
            "Workspace loaded: %d test cases, %d participants, %d approvals, %d changes",
            len(self.test_cases), len(self.participants), len(self.approvals), len(self.changes),
            extra={"project_id": project_id},
        )

    def open_project(self, project_id: str) -> bool:
        """Refresh the project list and select ``project_id`` if it exists."""
        if _find(self.refresh_projects(), project_id) is None:
            return False
        self.select_project(project_id)
        return True

    def refresh_changes(self) -> None:
        if not self.active_project_id:
            return
        self.changes = self.store.list_change_log(self.active_project_id)

    # ── Derived state ────────────────────────────────────────────────────

    @property
    def active_project(self) -> Project | None:
        if self.active_project_id is None:
            return None
        return _find(self.projects, self.active_project_id)

    @property
    def summary(self) -> ResultsSummary:
        """Recomputed from the loaded test cases on every read."""
        return summarize(self.test_cases)

    def dashboard(self) -> dict:
        return {
            "project_count": len(self.projects),
            "test_case_count": len(self.test_cases),
            "summary": self.summary.to_dict(),
            "active_project_id": self.active_project_id,
            "projects": [p.to_dict() for p in self.projects],
        }

    def report_inputs(self) -> dict | None:
        """Arguments for the report builders, or None without an active project."""
        project = self.active_project
        if project is None:
            return None
        return {
            "project": project,
            "participants": list(self.participants),
            "test_cases": list(self.test_cases),
            "summary": self.summary,
            "approvals": list(self.approvals),
        }

    def to_dict(self) -> dict:
        project = self.active_project
        return {
            "status": self.status,
            "active_project_id": self.active_project_id,
            "project": project.to_dict() if project else None,
            "test_cases": [tc.to_dict() for tc in self.test_cases],
            "participants": [p.to_dict() for p in self.participants],
            "approvals": [a.to_dict() for a in self.approvals],
            "changes": [c.to_dict() for c in self.changes],
            "summary": self.summary.to_dict(),
            "error": self.error,
        }

    # ── Internal mutation helpers ────────────────────────────────────────

    def _fail(self, err: dict):
        self.error = err.get("error")
        logger.info(
            "Workspace write rejected: %s", self.error,
            extra={"project_id": self.active_project_id},
        )
        return None, err

    def _save(self, entity: str, collection: str, upsert, record, *, refresh: bool = True):
        if not self.active_project_id:
            return self._fail(_NO_ACTIVE_PROJECT)
        if record.project_id != self.active_project_id:
            return self._fail({
                "error": f"Record belongs to project '{record.project_id}', "
                         f"not the active project.",
                "status": 409,
            })

        previous = _find(getattr(self, collection), record.id)
        saved, err = upsert(record)
        if err:
            return self._fail(err)

        self.error = None
        setattr(self, collection, _apply(getattr(self, collection), saved))
        track_changes(
            self.store,
            entity=entity,
            previous=previous,
            next_=saved,
            fields=TRACKED_FIELDS[entity],
            user_name=self.user.name,
        )
        if refresh:
            self.refresh_changes()
        return saved, None

    def _remove(self, entity: str, collection: str, delete, record_id: str):
        if not self.active_project_id:
            return self._fail(_NO_ACTIVE_PROJECT)
        previous = _find(getattr(self, collection), record_id)
        if previous is None:
            return self._fail({"error": f"{entity} '{record_id}' not found.", "status": 404})

        ok, err = delete(record_id)
        if err:
            return self._fail(err)

        self.error = None
        setattr(self, collection, [r for r in getattr(self, collection) if r.id != record_id])
        track_deletion(
            self.store,
            entity=entity,
            project_id=self.active_project_id,
            entity_id=record_id,
            display_value=getattr(previous, DISPLAY_FIELDS[entity]),
            user_name=self.user.name,
        )
        self.refresh_changes()
        return ok, None

    # ── Projects ─────────────────────────────────────────────────────────

    def create_project(self, name: str, test_version: str = "", month: str = ""):
        """Create a project, put it first in the list and make it active."""
        saved, err = self.store.create_project(name, test_version, month)
        if err:
            return self._fail(err)
        self.error = None
        self.projects = [saved, *self.projects]
        track_changes(
            self.store,
            entity="project",
            previous=None,
            next_=saved,
            fields=TRACKED_FIELDS["project"],
            user_name=self.user.name,
        )
        self.select_project(saved.id)
        return saved, None

    def update_project(self, project: Project):
        previous = _find(self.projects, project.id)
        saved, err = self.store.update_project(project)
        if err:
            return self._fail(err)
        self.error = None
        self.projects = _apply(self.projects, saved)
        track_changes(
            self.store,
            entity="project",
            previous=previous,
            next_=saved,
            fields=TRACKED_FIELDS["project"],
            user_name=self.user.name,
        )
        if saved.id == self.active_project_id:
            self.refresh_changes()
        return saved, None

    # ── Test cases ───────────────────────────────────────────────────────

    def save_test_case(self, test_case: TestCase):
        return self._save("test_case", "test_cases", self.store.upsert_test_case, test_case)

    def remove_test_case(self, test_case_id: str):
        return self._remove("test_case", "test_cases", self.store.delete_test_case, test_case_id)

    def import_test_cases(self, rows: list[dict]):
        """Create one test case per parsed import row.

        Returns ``({"created": [...], "failed": [...]}, None)``; individual
        row failures do not stop the import.
        """
        if not self.active_project_id:
            return self._fail(_NO_ACTIVE_PROJECT)

        created, failed = [], []
        for row in rows:
            record = record_from_payload(
                TestCase, TEST_CASE_FIELDS, row,
                id=new_id(), project_id=self.active_project_id,
            )
            saved, err = self._save(
                "test_case", "test_cases", self.store.upsert_test_case, record, refresh=False,
            )
            if err:
                failed.append({"row_num": row.get("row_num"), "error": err["error"]})
            else:
                created.append(saved)

        self.refresh_changes()
        self.error = None if not failed else f"{len(failed)} row(s) could not be imported."
        logger.info(
            "Test case import: %d created, %d failed", len(created), len(failed),
            extra={"project_id": self.active_project_id},
        )
        return {"created": created, "failed": failed}, None

    # ── Participants ─────────────────────────────────────────────────────

    def save_participant(self, participant: Participant):
        return self._save("participant", "participants", self.store.upsert_participant, participant)

    def remove_participant(self, participant_id: str):
        return self._remove("participant", "participants", self.store.delete_participant, participant_id)

    # ── Approval sign-offs ───────────────────────────────────────────────

    def save_approval(self, approval: ApprovalSignoff):
        return self._save("approval_signoff", "approvals", self.store.upsert_approval, approval)

    def remove_approval(self, approval_id: str):
        return self._remove("approval_signoff", "approvals", self.store.delete_approval, approval_id)
