"""
UAT workspace blueprint.

Every project-scoped request builds a ``UatWorkspace`` for the current user,
opens the project (404 if it does not exist) and goes through the
workspace's mutation methods, so change history is recorded the same way
regardless of the caller.

Endpoints (all under /api/v1):
    GET    /me
    GET    /dashboard
    GET    /projects                               POST /projects
    PUT    /projects/<pid>
    GET    /projects/<pid>/workspace
    GET    /projects/<pid>/summary
    GET    /projects/<pid>/test-cases              POST (create)
    PUT    /projects/<pid>/test-cases/<id>         DELETE
    GET    /projects/<pid>/participants            POST (create)
    PUT    /projects/<pid>/participants/<id>       DELETE
    GET    /projects/<pid>/approvals               POST (create)
    PUT    /projects/<pid>/approvals/<id>          DELETE
    GET    /projects/<pid>/changes
    GET    /projects/<pid>/test-cases/import/template
    POST   /projects/<pid>/test-cases/import

Layer contract:
    - Blueprint: parse input, call the workspace, return JSON.
    - NO db.session calls here; the store owns all writes.
"""

import logging

from flask import Blueprint, Response, g, jsonify, request

from uat_tracker.models.records import (
    ApprovalSignoff,
    Participant,
    Project,
    TestCase,
    new_id,
)
from uat_tracker.services.import_service import generate_csv_template, parse_test_case_file
from uat_tracker.services.mappers import (
    APPROVAL_FIELDS,
    PARTICIPANT_FIELDS,
    PROJECT_FIELDS,
    TEST_CASE_FIELDS,
    record_from_payload,
)
from uat_tracker.services.results_summary import format_percent
from uat_tracker.services.workspace import UatWorkspace
from uat_tracker.utils.errors import E, api_error, service_error

logger = logging.getLogger(__name__)

uat_bp = Blueprint("uat", __name__, url_prefix="/api/v1")


# ── Helpers ────────────────────────────────────────────────────────────────────


def _open_workspace(project_id: str):
    """Return ``(workspace, None)`` or ``(None, 404 response)``."""
    ws = UatWorkspace(g.current_user)
    if not ws.open_project(project_id):
        return None, api_error(E.NOT_FOUND, f"Project '{project_id}' not found.")
    return ws, None


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _find(records, record_id):
    return next((r for r in records if r.id == record_id), None)


def _create(ws: UatWorkspace, cls, specs, save):
    record = record_from_payload(cls, specs, _payload(), id=new_id(), project_id=ws.active_project_id)
    saved, err = save(record)
    if err:
        return service_error(err)
    return jsonify(saved.to_dict()), 201


def _update(ws: UatWorkspace, cls, specs, existing, save):
    """Merge the payload over the stored record; absent keys keep their value."""
    merged = {**existing.to_dict(), **_payload()}
    record = record_from_payload(cls, specs, merged, id=existing.id, project_id=ws.active_project_id)
    saved, err = save(record)
    if err:
        return service_error(err)
    return jsonify(saved.to_dict()), 200


def _remove(record_id: str, remove):
    _, err = remove(record_id)
    if err:
        return service_error(err)
    return jsonify({"deleted": record_id}), 200


# ── Session / dashboard ────────────────────────────────────────────────────────


@uat_bp.route("/me", methods=["GET"])
def me():
    return jsonify(g.current_user.to_dict()), 200


@uat_bp.route("/dashboard", methods=["GET"])
def dashboard():
    """Project count, active project test case count and its results summary.

    Query params:
        project_id (str, optional): project to summarise; defaults to the
            newest project.
    """
    ws = UatWorkspace(g.current_user)
    project_id = request.args.get("project_id")
    if project_id:
        if not ws.open_project(project_id):
            return api_error(E.NOT_FOUND, f"Project '{project_id}' not found.")
    else:
        ws.initialize()
    data = ws.dashboard()
    data["result_percent_display"] = format_percent(ws.summary.result_percent)
    return jsonify(data), 200


# ── Projects ───────────────────────────────────────────────────────────────────


@uat_bp.route("/projects", methods=["GET"])
def list_projects():
    projects = UatWorkspace(g.current_user).refresh_projects()
    return jsonify({"items": [p.to_dict() for p in projects], "total": len(projects)}), 200


@uat_bp.route("/projects", methods=["POST"])
def create_project():
    data = _payload()
    name = str(data.get("name") or "").strip()
    if not name:
        return api_error(E.VALIDATION_REQUIRED, "Field 'name' is required.")

    ws = UatWorkspace(g.current_user)
    ws.refresh_projects()
    project, err = ws.create_project(
        name,
        str(data.get("test_version") or ""),
        str(data.get("month") or ""),
    )
    if err:
        return service_error(err)
    return jsonify(project.to_dict()), 201


@uat_bp.route("/projects/<project_id>", methods=["PUT"])
def update_project(project_id: str):
    ws, err = _open_workspace(project_id)
    if err:
        return err
    merged = {**ws.active_project.to_dict(), **_payload()}
    project = record_from_payload(Project, PROJECT_FIELDS, merged, id=project_id)
    saved, err = ws.update_project(project)
    if err:
        return service_error(err)
    return jsonify(saved.to_dict()), 200


@uat_bp.route("/projects/<project_id>/workspace", methods=["GET"])
def get_workspace(project_id: str):
    """Everything loaded for the project plus the derived summary."""
    ws, err = _open_workspace(project_id)
    if err:
        return err
    return jsonify(ws.to_dict()), 200


@uat_bp.route("/projects/<project_id>/summary", methods=["GET"])
def get_summary(project_id: str):
    ws, err = _open_workspace(project_id)
    if err:
        return err
    summary = ws.summary
    data = summary.to_dict()
    data["result_percent_display"] = format_percent(summary.result_percent)
    return jsonify(data), 200


# ── Test cases ─────────────────────────────────────────────────────────────────


@uat_bp.route("/projects/<project_id>/test-cases", methods=["GET"])
def list_test_cases(project_id: str):
    ws, err = _open_workspace(project_id)
    if err:
        return err
    return jsonify({"items": [tc.to_dict() for tc in ws.test_cases], "total": len(ws.test_cases)}), 200


@uat_bp.route("/projects/<project_id>/test-cases", methods=["POST"])
def create_test_case(project_id: str):
    ws, err = _open_workspace(project_id)
    if err:
        return err
    return _create(ws, TestCase, TEST_CASE_FIELDS, ws.save_test_case)


@uat_bp.route("/projects/<project_id>/test-cases/<test_case_id>", methods=["PUT"])
def update_test_case(project_id: str, test_case_id: str):
    ws, err = _open_workspace(project_id)
    if err:
        return err
    existing = _find(ws.test_cases, test_case_id)
    if existing is None:
        return api_error(E.NOT_FOUND, f"Test case '{test_case_id}' not found.")
    return _update(ws, TestCase, TEST_CASE_FIELDS, existing, ws.save_test_case)


@uat_bp.route("/projects/<project_id>/test-cases/<test_case_id>", methods=["DELETE"])
def delete_test_case(project_id: str, test_case_id: str):
    ws, err = _open_workspace(project_id)
    if err:
        return err
    return _remove(test_case_id, ws.remove_test_case)


# ── Participants ───────────────────────────────────────────────────────────────


@uat_bp.route("/projects/<project_id>/participants", methods=["GET"])
def list_participants(project_id: str):
    ws, err = _open_workspace(project_id)
    if err:
        return err
    return jsonify({"items": [p.to_dict() for p in ws.participants], "total": len(ws.participants)}), 200


@uat_bp.route("/projects/<project_id>/participants", methods=["POST"])
def create_participant(project_id: str):
    ws, err = _open_workspace(project_id)
    if err:
        return err
    return _create(ws, Participant, PARTICIPANT_FIELDS, ws.save_participant)


@uat_bp.route("/projects/<project_id>/participants/<participant_id>", methods=["PUT"])
def update_participant(project_id: str, participant_id: str):
    ws, err = _open_workspace(project_id)
    if err:
        return err
    existing = _find(ws.participants, participant_id)
    if existing is None:
        return api_error(E.NOT_FOUND, f"Participant '{participant_id}' not found.")
    return _update(ws, Participant, PARTICIPANT_FIELDS, existing, ws.save_participant)


@uat_bp.route("/projects/<project_id>/participants/<participant_id>", methods=["DELETE"])
def delete_participant(project_id: str, participant_id: str):
    ws, err = _open_workspace(project_id)
    if err:
        return err
    return _remove(participant_id, ws.remove_participant)


# ── Approval sign-offs ─────────────────────────────────────────────────────────


@uat_bp.route("/projects/<project_id>/approvals", methods=["GET"])
def list_approvals(project_id: str):
    ws, err = _open_workspace(project_id)
    if err:
        return err
    return jsonify({"items": [a.to_dict() for a in ws.approvals], "total": len(ws.approvals)}), 200


@uat_bp.route("/projects/<project_id>/approvals", methods=["POST"])
def create_approval(project_id: str):
    ws, err = _open_workspace(project_id)
    if err:
        return err
    return _create(ws, ApprovalSignoff, APPROVAL_FIELDS, ws.save_approval)


@uat_bp.route("/projects/<project_id>/approvals/<approval_id>", methods=["PUT"])
def update_approval(project_id: str, approval_id: str):
    ws, err = _open_workspace(project_id)
    if err:
        return err
    existing = _find(ws.approvals, approval_id)
    if existing is None:
        return api_error(E.NOT_FOUND, f"Approval '{approval_id}' not found.")
    return _update(ws, ApprovalSignoff, APPROVAL_FIELDS, existing, ws.save_approval)


@uat_bp.route("/projects/<project_id>/approvals/<approval_id>", methods=["DELETE"])
def delete_approval(project_id: str, approval_id: str):
    ws, err = _open_workspace(project_id)
    if err:
        return err
    return _remove(approval_id, ws.remove_approval)


# ── Change history ─────────────────────────────────────────────────────────────


@uat_bp.route("/projects/<project_id>/changes", methods=["GET"])
def list_changes(project_id: str):
    """Field-level history for the project, newest first."""
    ws, err = _open_workspace(project_id)
    if err:
        return err
    return jsonify({"items": [c.to_dict() for c in ws.changes], "total": len(ws.changes)}), 200


# ── Bulk test case import ──────────────────────────────────────────────────────


@uat_bp.route("/projects/<project_id>/test-cases/import/template", methods=["GET"])
def download_import_template(project_id: str):
    """Download a CSV template for bulk test case import."""
    return Response(
        generate_csv_template(),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=test_case_import_template.csv"},
    )


@uat_bp.route("/projects/<project_id>/test-cases/import", methods=["POST"])
def import_test_cases(project_id: str):
    """Upload a CSV/XLSX file (multipart ``file``) or a raw CSV body.

    Returns 200 when every row was created, 207 when some rows failed.
    """
    ws, err = _open_workspace(project_id)
    if err:
        return err

    filename, content = _extract_file_content()
    if not content:
        return api_error(E.VALIDATION_REQUIRED, "A CSV or XLSX file is required (file upload or raw body).")

    rows = parse_test_case_file(filename, content)
    if not rows:
        return api_error(E.VALIDATION_INVALID, "File has no data rows.")

    result, err = ws.import_test_cases(rows)
    if err:
        return service_error(err)

    status_code = 200 if not result["failed"] else 207
    return jsonify({
        "total_rows": len(rows),
        "created_count": len(result["created"]),
        "failed_count": len(result["failed"]),
        "created": [tc.to_dict() for tc in result["created"]],
        "failed": result["failed"],
    }), status_code


def _extract_file_content() -> tuple[str, bytes | None]:
    """Return ``(filename, bytes)`` from a multipart upload or the raw body."""
    if request.files:
        file = request.files.get("file")
        if file:
            return file.filename or "", file.read()

    data = request.get_json(silent=True)
    if isinstance(data, dict) and "csv_content" in data:
        return "import.csv", str(data["csv_content"]).encode("utf-8")

    if request.data:
        return "import.csv", request.data

    return "", None
