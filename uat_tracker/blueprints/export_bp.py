"""
UAT final report export.

    GET /api/v1/projects/<project_id>/report
        format: html | xlsx (default: html)

The report is built in memory from the project's current workspace and
returned as an attachment named ``uat-report-<project name>.<ext>``.
"""

import io
import logging

from flask import Blueprint, g, request, send_file

from uat_tracker.services.report_service import (
    build_report_html,
    build_report_xlsx,
    report_filename,
)
from uat_tracker.services.workspace import UatWorkspace
from uat_tracker.utils.errors import E, api_error

logger = logging.getLogger(__name__)

export_bp = Blueprint("export", __name__, url_prefix="/api/v1")

_XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@export_bp.route("/projects/<project_id>/report", methods=["GET"])
def export_report(project_id: str):
    """Download the consolidated UAT report for one project."""
    fmt = request.args.get("format", "html").lower()
    if fmt not in ("html", "xlsx"):
        return api_error(E.VALIDATION_INVALID, "Unsupported format. Supported values: html, xlsx.")

    ws = UatWorkspace(g.current_user)
    if not ws.open_project(project_id):
        return api_error(E.NOT_FOUND, f"Project '{project_id}' not found.")

    inputs = ws.report_inputs()
    filename = report_filename(inputs["project"].name, fmt)
    try:
        if fmt == "xlsx":
            content, mimetype = build_report_xlsx(**inputs), _XLSX_MIMETYPE
        else:
            content, mimetype = build_report_html(**inputs).encode("utf-8"), "text/html"
    except Exception:
        logger.exception("Report export failed format=%s", fmt, extra={"project_id": project_id})
        return api_error(E.INTERNAL, "Export failed. Please try again.")

    logger.info("Report exported format=%s", fmt, extra={"project_id": project_id})
    return send_file(
        io.BytesIO(content),
        mimetype=mimetype,
        as_attachment=True,
        download_name=filename,
    )
