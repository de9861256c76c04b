"""
Idea Blueprint - submission, review decisions, bookmarks.

Routes:
  POST   /api/v1/ideas                          – submit an idea (JSON or multipart)
  GET    /api/v1/ideas                          – list active ideas
  GET    /api/v1/ideas/<id>                     – idea detail
  PUT    /api/v1/ideas/<id>/status              – approve / recommend / reject
  PUT    /api/v1/ideas/<id>/reject              – reject and archive
  PUT    /api/v1/ideas/<id>/bookmark            – toggle the admin's bookmark
  GET    /api/v1/rejected-ideas                 – archived ideas
  GET    /api/v1/employees/<employee_id>/ideas  – submitter summary
  GET    /api/v1/uploads/<name>                 – stored attachment

Layer contract:
    - Blueprint: parse input, call idea_service, return JSON.
    - Malformed ids are rejected by idea_service (ValidationError -> 400).
    - NO db.session calls here - all writes owned by idea_service.
    - Acting admin defaults to the bearer token identity when the body
      omits adminId / adminRole.
"""

import logging
import os

from flask import Blueprint, g, jsonify, request, send_from_directory

from ideabox.services import attachment_service, idea_service
from ideabox.services.workflow_status import parse_role
from ideabox.utils.errors import E, api_error, register_error_handlers

logger = logging.getLogger(__name__)

idea_bp = Blueprint("ideas", __name__, url_prefix="/api/v1")
register_error_handlers(idea_bp)


# ── helpers ──────────────────────────────────────────────────────────────


def _acting_admin(data: dict):
    """(admin_id, admin_role, admin_name) from the body, falling back to the token."""
    admin_id = data.get("adminId") or data.get("admin_id") or getattr(g, "jwt_corporate_id", None)
    admin_role = data.get("adminRole") or data.get("admin_role") or getattr(g, "jwt_role", None)
    admin_name = data.get("adminName") or data.get("admin_name")
    return admin_id, admin_role, admin_name


# ═════════════════════════════════════════════════════════════════════════
# SUBMISSION & READS
# ═════════════════════════════════════════════════════════════════════════


@idea_bp.route("/ideas", methods=["POST"])
def submit_idea():
    """Submit a new idea.

    Accepts JSON, or multipart/form-data with an optional ``attachment`` file.
    Required: employeeId, employeeName, ideaDescription.
    """
    if request.files or request.form:
        fields = request.form.to_dict()
        attachment = request.files.get("attachment")
    else:
        fields = request.get_json(silent=True) or {}
        attachment = None

    idea = idea_service.submit_idea(fields, attachment=attachment)
    return jsonify(idea), 201


@idea_bp.route("/ideas", methods=["GET"])
def list_ideas():
    """List active ideas. Query: status, exclude_status, employee_id."""
    ideas = idea_service.list_ideas(
        status=request.args.get("status"),
        exclude_status=request.args.get("exclude_status"),
        employee_id=request.args.get("employee_id"),
    )
    return jsonify(ideas)


@idea_bp.route("/ideas/<idea_id>", methods=["GET"])
def get_idea(idea_id):
    return jsonify(idea_service.get_idea(idea_id))


@idea_bp.route("/rejected-ideas", methods=["GET"])
def list_rejected_ideas():
    return jsonify(idea_service.list_rejected_ideas(employee_id=request.args.get("employee_id")))


@idea_bp.route("/employees/<employee_id>/ideas", methods=["GET"])
def employee_summary(employee_id):
    """Total / approved / rejected counts plus active ideas for one employee."""
    return jsonify(idea_service.get_employee_summary(employee_id))


@idea_bp.route("/uploads/<path:name>", methods=["GET"])
def download_attachment(name):
    path = attachment_service.attachment_path(name)
    return send_from_directory(os.path.dirname(path), os.path.basename(path))


# ═════════════════════════════════════════════════════════════════════════
# REVIEW DECISIONS
# ═════════════════════════════════════════════════════════════════════════


@idea_bp.route("/ideas/<idea_id>/status", methods=["PUT"])
def update_status(idea_id):
    """Approve, recommend to L2, or reject.

    Body: { status, comment, adminId, adminRole, adminName? }
    The stored status is "<status>By<adminRole>", e.g. "ApprovedByL1Admin".
    """
    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip()
    if not status:
        return api_error(E.VALIDATION_REQUIRED, "Field 'status' is required.")

    admin_id, admin_role, admin_name = _acting_admin(data)
    if not admin_role:
        return api_error(E.VALIDATION_REQUIRED, "Field 'adminRole' is required.")

    idea = idea_service.advance_status(
        idea_id,
        status,
        data.get("comment", ""),
        admin_id,
        admin_role,
        admin_name,
    )
    return jsonify(idea), 200


@idea_bp.route("/ideas/<idea_id>/reject", methods=["PUT"])
def reject_idea(idea_id):
    """Reject an idea and move it to the archive.

    Body: { reason?, adminId?, adminRole?, adminName? }
    """
    data = request.get_json(silent=True) or {}
    admin_id, admin_role, admin_name = _acting_admin(data)
    if admin_role:
        # "L1" / "adminL1" / "L1Admin" all mean the same tier
        admin_role = parse_role(admin_role)

    archived = idea_service.reject_idea(
        idea_id,
        data.get("reason") or data.get("rejectionReason"),
        admin_id=admin_id,
        admin_role=admin_role,
        admin_name=admin_name,
    )
    return jsonify({"message": "Idea rejected and archived", "rejected_idea": archived}), 200


@idea_bp.route("/ideas/<idea_id>/bookmark", methods=["PUT"])
def toggle_bookmark(idea_id):
    """Toggle the calling admin's bookmark. Body: { adminId }"""
    data = request.get_json(silent=True) or {}
    admin_id, _role, _name = _acting_admin(data)
    if not admin_id:
        return api_error(E.VALIDATION_REQUIRED, "Admin ID is required")

    bookmarked_by = idea_service.toggle_bookmark(idea_id, admin_id)
    return jsonify({"message": "Bookmark updated successfully", "bookmarked_by": bookmarked_by})
