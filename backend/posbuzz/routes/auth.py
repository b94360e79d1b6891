# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/posbuzz/routes/auth.py
"""
Authentication API routes

- Self-registration with email + password
- Login issues an opaque bearer token (see session_service)
- Login failures are reported uniformly; unknown email and wrong password
  produce the same 401 body
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, bearer_token
from posbuzz.time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.post("/register")
def register_route():
    """
    Register a new user.

    Request body:
    {
        "email": "cashier@example.com",  // required
        "password": "secret1",           // required, min 6 characters
        "name": "Cashier One"            // optional
    }

    Returns 201 {id, email, name}; 409 if the email is already registered.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        user = auth_service.register_user(
            data.get("email"),
            data.get("password"),
            data.get("name"),
        )
        return jsonify(user.to_summary()), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate(email, password)

        if not user:
            current_app.logger.info("Failed login for %s from %s", email, request.remote_addr)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr
        )

        return jsonify({
            "access_token": token,
            "token_type": "bearer",
            "expires_at": to_utc_z(session.expires_at),
            "user": user.to_summary(),
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        revoked = session_service.revoke_session(token, reason="User logout")

        if not revoked:
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/profile")
@require_auth
def profile_route():
    """Who is calling: {id, email, name} of the token's user."""
    return jsonify(g.current_user.to_summary()), 200
