from flask import Blueprint, jsonify, g, request

from errors import ValidationError
from services import get_core
from utils.auth_context import login_required

agreements_bp = Blueprint("agreements", __name__, url_prefix="/agreements")


@agreements_bp.post("/sign")
@login_required
def sign():
    data = request.get_json(silent=True) or {}
    try:
        lease_id = int(data.get("lease_id", data.get("leaseId")))
    except (TypeError, ValueError):
        raise ValidationError("lease_id is required")

    result = get_core().signatures.sign(lease_id, g.user_id, data.get("signature"))
    return jsonify(success=True, message="Agreement signed successfully", data=result), 200


@agreements_bp.get("/signature-status/<int:lease_id>")
@login_required
def signature_status(lease_id):
    result = get_core().signatures.signature_status(lease_id, g.user_id)
    return jsonify(success=result["authorized"], data=result), 200


@agreements_bp.get("/signature-qr/<int:lease_id>")
@login_required
def signature_qr(lease_id):
    result = get_core().signatures.signature_qr(lease_id, g.user_id)
    return jsonify(success=True, data=result), 200


@agreements_bp.get("/pending-signatures")
@login_required
def pending_signatures():
    items = get_core().signatures.pending_signatures(g.user_id)
    return jsonify(success=True, data={"agreements": items, "count": len(items)}), 200
