from flask import Blueprint, jsonify, g, request

from services import get_core
from utils.auth_context import login_required

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@auth_bp.post("/check-email")
def check_email():
    data = _payload()
    result = get_core().auth.check_email(data.get("email"))
    return jsonify(success=True, data=result), 200


@auth_bp.post("/register")
def register():
    data = _payload()
    user = get_core().auth.register(
        data.get("email"),
        data.get("password"),
        first_name=data.get("first_name") or data.get("firstName"),
        last_name=data.get("last_name") or data.get("lastName"),
    )
    return jsonify(success=True, message="Registration successful", data={"user": user.public_profile()}), 201


@auth_bp.post("/login")
def login():
    data = _payload()
    result = get_core().auth.login(data.get("email"), data.get("password"))
    return jsonify(
        success=True,
        message="Verification code sent to your email",
        requires_otp=True,
        data=result,
    ), 200


@auth_bp.post("/verify")
def verify():
    data = _payload()
    result = get_core().auth.verify_otp(data.get("email"), data.get("otp") or data.get("code"))
    return jsonify(success=True, message="Login successful", data=result), 200


@auth_bp.post("/resend-otp")
def resend_otp():
    data = _payload()
    result = get_core().auth.resend_otp(data.get("email"))
    return jsonify(success=True, message="New verification code sent", data=result), 200


@auth_bp.get("/me")
@login_required
def me():
    claims = g.claims
    return jsonify(success=True, data={"id": claims.get("id"), "role": claims.get("role"), "exp": claims.get("exp")}), 200
