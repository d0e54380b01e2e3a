from flask import Blueprint, jsonify
from flask_login import current_user, login_user, logout_user, login_required

from errors import ValidationError
from logging_config import get_logger
from models import db, User
from routes.common import json_body

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

log = get_logger("routes.auth")


def serialize_user(user: User) -> dict:
    return {"id": user.id, "username": user.username}


@auth_bp.post("/register")
def register():
    payload = json_body()
    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""
    if not username or not password:
        raise ValidationError("Username and password are required.")
    if User.query.filter_by(username=username).first():
        raise ValidationError("Username already taken.", field="username")

    user = User(username=username)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    log.info("Registered user %s", user.id)
    return jsonify({"ok": True, "user": serialize_user(user)}), 201


@auth_bp.post("/login")
def login():
    payload = json_body()
    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""
    user = User.query.filter_by(username=username).first()
    if not user or not user.check_password(password):
        return jsonify({"ok": False, "error": "Invalid username or password.", "kind": "Unauthorized"}), 401
    login_user(user)
    return jsonify({"ok": True, "user": serialize_user(user)})


@auth_bp.post("/logout")
@login_required
def logout():
    logout_user()
    return jsonify({"ok": True})


@auth_bp.get("/me")
@login_required
def me():
    return jsonify({"ok": True, "user": serialize_user(current_user)})
