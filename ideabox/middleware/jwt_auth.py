"""
JWT identity middleware - reads an optional Bearer token into ``g``.

Sets g.jwt_corporate_id, g.jwt_role and g.jwt_kind when a valid access
token is present. Requests without a token, or with an invalid/expired one,
proceed anonymously; the idea routes still accept adminId / adminRole in the
body and use the token identity only as a fallback.
"""

import jwt as pyjwt
from flask import g, request

from ideabox.services.jwt_service import decode_access_token

# Paths that never look at the Authorization header
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/",
    "/api/v1/health",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_identity():
        g.jwt_corporate_id = None
        g.jwt_role = None
        g.jwt_kind = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        if path.startswith(JWT_SKIP_PREFIXES):
            return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        try:
            payload = decode_access_token(auth_header[7:])
        except pyjwt.InvalidTokenError:
            # ExpiredSignatureError is a subclass; stay anonymous
            app.logger.debug("Ignoring invalid bearer token on %s", path)
            return

        g.jwt_corporate_id = payload.get("sub")
        g.jwt_role = payload.get("role")
        g.jwt_kind = payload.get("kind")
