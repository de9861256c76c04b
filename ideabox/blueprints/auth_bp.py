"""
Auth Blueprint - passwordless OTP login and credential lookups.

Endpoints:
    POST /api/v1/auth/request-otp            Body: { corporateId }
    POST /api/v1/auth/resend-otp             Body: { corporateId }
    POST /api/v1/auth/verify-otp             Body: { corporateId, otp }
         Returns: { message, role, name, kind, access_token }
    GET  /api/v1/auth/admins/<cid>/role      Returns: { role: "L1" | "L2" | ... }
    POST /api/v1/auth/user-details           Body: { corporateId }

The whole blueprint is rate limited outside testing (see rate_limiter).
"""

import logging

from flask import Blueprint, jsonify, request

from ideabox.services import credential_service, otp_service
from ideabox.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")
register_error_handlers(auth_bp)


def _corporate_id(data: dict):
    return data.get("corporateId") or data.get("corporate_id")


@auth_bp.route("/request-otp", methods=["POST"])
def request_otp():
    data = request.get_json(silent=True) or {}
    otp_service.request_otp(_corporate_id(data))
    return jsonify({"message": "OTP sent successfully"}), 200


@auth_bp.route("/resend-otp", methods=["POST"])
def resend_otp():
    """Same as request-otp: a fresh code replaces any earlier one."""
    data = request.get_json(silent=True) or {}
    otp_service.request_otp(_corporate_id(data))
    return jsonify({"message": "OTP sent successfully"}), 200


@auth_bp.route("/verify-otp", methods=["POST"])
def verify_otp():
    data = request.get_json(silent=True) or {}
    identity = otp_service.verify_otp(_corporate_id(data), data.get("otp"))
    return jsonify({
        "message": "Login successful",
        "role": identity["role"],
        "name": identity["name"],
        "kind": identity["kind"],
        "access_token": identity["access_token"],
        "token_type": "Bearer",
    }), 200


@auth_bp.route("/admins/<corporate_id>/role", methods=["GET"])
def admin_role(corporate_id):
    return jsonify({"role": credential_service.get_admin_role(corporate_id)})


@auth_bp.route("/user-details", methods=["POST"])
def user_details():
    """Profile fields for pre-filling the submission form."""
    data = request.get_json(silent=True) or {}
    return jsonify(credential_service.get_user_details(_corporate_id(data)))
