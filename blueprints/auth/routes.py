# blueprints/auth/routes.py
from __future__ import annotations
import logging
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, request, jsonify, abort, current_app
from flask_login import login_user, logout_user, login_required, current_user
from werkzeug.security import check_password_hash

from extensions import csrf, login_manager
from models import Role, User
from .principal import Principal

log = logging.getLogger(__name__)

api_bp = Blueprint("auth_api", __name__)

# ---------- role decorators ----------
def roles_required(*roles: str):
    def decorator(fn: Callable):
        @wraps(fn)
        @login_required
        def wrapper(*args, **kwargs):
            if getattr(current_user, "role", None) not in roles:
                abort(403)
            return fn(*args, **kwargs)
        return wrapper
    return decorator

admin_required = roles_required(Role.ADMIN.value)

def current_principal() -> Principal:
    return Principal.from_user(current_user)

# ---------- 401/403 handlers ----------
@login_manager.unauthorized_handler
def _unauth():
    # the admin screens talk to the API over fetch(): always answer with the JSON envelope
    return jsonify({"success": False, "message": "Authentication required"}), 401

@api_bp.app_errorhandler(403)
def _forbidden(e):
    return jsonify({"success": False, "message": "Access denied"}), 403

# ---------- API ----------
@api_bp.post("/auth/login")
@csrf.exempt
def api_login():
    payload = request.get_json(silent=True) or request.form or {}
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    if not email or not password:
        return jsonify({"success": False, "message": "Email and password are required"}), 400

    user: Optional[User] = User.query.filter_by(email=email).first()
    if not user or not user.password_hash or not check_password_hash(user.password_hash, password):
        log.info("failed login for %s", email)
        return jsonify({"success": False, "message": "Invalid credentials"}), 401

    if not user.is_active:
        return jsonify({"success": False, "message": "Account is disabled"}), 403

    login_user(user, remember=bool(current_app.config.get("REMEMBER_LOGIN", False)))
    return jsonify({"success": True, "user": {"id": user.id, "email": user.email, "role": user.role}})

@api_bp.post("/auth/logout")
@login_required
def api_logout():
    logout_user()
    return jsonify({"success": True, "message": "Logged out"})

@api_bp.get("/auth/me")
@login_required
def api_me():
    return jsonify({"success": True, "user": {
        "id": current_user.id, "email": current_user.email, "role": current_user.role,
    }})
