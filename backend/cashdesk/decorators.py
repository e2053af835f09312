# Overview: Request authentication decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

ROLE_ADMIN = "admin"
ROLE_STAFF = "staff"
KNOWN_ROLES = (ROLE_ADMIN, ROLE_STAFF)


def _is_authenticated() -> bool:
    return hasattr(g, 'current_role') and hasattr(g, 'current_token')


def require_auth(f):
    """
    Require a bearer token issued by the auth collaborator.

    Sets the following Flask g attributes:
    - g.current_token: The presented token
    - g.current_role: "admin" or "staff"

    SECURITY: Returns 401 if:
    - No Authorization header
    - Token unknown to API_TOKENS
    - Token mapped to an unknown role
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()
        role = current_app.config.get("API_TOKENS", {}).get(token)

        if role not in KNOWN_ROLES:
            current_app.logger.warning("Rejected token for %s %s", request.method, request.path)
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_token = token
        g.current_role = role

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Require the admin role (reversals, day close, consolidation, catalog edits).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # Ensure @require_auth was called first
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401

        if g.current_role != ROLE_ADMIN:
            return jsonify({
                "error": "Permission denied",
                "required_role": ROLE_ADMIN,
            }), 403

        return f(*args, **kwargs)

    return decorated_function
