import pytest
from sqlalchemy import update

from errors import AgreementNotFound, AlreadyFinalized, AlreadySigned, NotAgreementParty, ValidationError
from models import db
from models.lease import Lease
from models.rental_agreement import AgreementStatus, RentalAgreement
from services.qr import PLACEHOLDER_DATA_URL
from tests.conftest import PASSWORD


def sign(client, header, lease_id, signature, ip="192.0.2.1"):
    return client.post(
        "/agreements/sign",
        json={"lease_id": lease_id, "signature": signature},
        headers={**header, "User-Agent": "pytest-browser"},
        environ_base={"REMOTE_ADDR": ip},
    )


def reload(agreement):
    db.session.expire_all()
    return db.session.get(RentalAgreement, agreement.id)


# ---------- sign ----------

def test_tenant_signs_first(client, agreement, tenant, auth_header):
    resp = sign(client, auth_header(tenant), agreement.lease_id, "Jane Doe", ip="192.0.2.10")

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["agreement"]["status"] == AgreementStatus.SIGNED_BY_TENANT
    assert data["signature"]["party"] == "tenant"
    assert data["signature"]["ip_address"] == "192.0.2.10"
    assert data["signature"]["signature_id"].startswith("SIG-")

    row = reload(agreement)
    assert row.tenant_signature == "Jane Doe"
    assert row.tenant_ip_address == "192.0.2.10"
    assert row.tenant_user_agent == "pytest-browser"
    assert row.tenant_signed_at is not None
    assert row.landlord_signature is None


def test_landlord_completes_after_tenant(client, core, agreement, tenant, landlord, auth_header):
    sign(client, auth_header(tenant), agreement.lease_id, "Jane Doe")
    resp = sign(client, auth_header(landlord), agreement.lease_id, "John Roe")

    assert resp.get_json()["data"]["agreement"]["status"] == AgreementStatus.COMPLETED
    assert core.signatures.is_fully_signed(agreement.lease_id) is True


def test_landlord_first_reaches_same_terminal_state(client, core, agreement, tenant, landlord, auth_header):
    first = sign(client, auth_header(landlord), agreement.lease_id, "John Roe")
    assert first.get_json()["data"]["agreement"]["status"] == AgreementStatus.SIGNED_BY_LANDLORD
    assert core.signatures.is_fully_signed(agreement.lease_id) is False

    second = sign(client, auth_header(tenant), agreement.lease_id, "Jane Doe")
    assert second.get_json()["data"]["agreement"]["status"] == AgreementStatus.COMPLETED
    assert core.signatures.is_fully_signed(agreement.lease_id) is True


def test_resign_is_rejected_and_leaves_fields_untouched(client, agreement, tenant, auth_header):
    sign(client, auth_header(tenant), agreement.lease_id, "Jane Doe", ip="192.0.2.10")
    before = reload(agreement)
    snapshot = (before.tenant_signature, before.tenant_signed_at, before.tenant_ip_address, before.tenant_user_agent)

    resp = sign(client, auth_header(tenant), agreement.lease_id, "Someone Else", ip="192.0.2.99")

    assert resp.status_code == 409
    assert resp.get_json()["code"] == "already_signed"
    after = reload(agreement)
    assert (after.tenant_signature, after.tenant_signed_at, after.tenant_ip_address, after.tenant_user_agent) == snapshot


def test_non_party_cannot_sign(client, agreement, make_user, auth_header):
    stranger = make_user(email="stranger@rentverse.test")
    resp = sign(client, auth_header(stranger), agreement.lease_id, "Mallory")

    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Unauthorized: You are not a party to this agreement."
    assert reload(agreement).tenant_signature is None


def test_admin_is_not_a_party(client, agreement, admin, auth_header):
    assert sign(client, auth_header(admin), agreement.lease_id, "Ada").status_code == 403


def test_sign_unknown_lease(client, tenant, auth_header):
    resp = sign(client, auth_header(tenant), 9999, "Jane Doe")
    assert resp.status_code == 404


def test_sign_requires_token(client, agreement):
    resp = client.post("/agreements/sign", json={"lease_id": agreement.lease_id, "signature": "x"})
    assert resp.status_code == 401


@pytest.mark.parametrize("signature", ["", "   ", None, "x" * 300])
def test_sign_validates_signature_text(client, agreement, tenant, auth_header, signature):
    assert sign(client, auth_header(tenant), agreement.lease_id, signature).status_code == 400


@pytest.mark.parametrize("status", [AgreementStatus.CANCELLED, AgreementStatus.COMPLETED])
def test_finalized_agreement_cannot_be_signed(core, agreement, tenant, status):
    agreement.status = status
    db.session.commit()

    with pytest.raises(AlreadyFinalized):
        core.signatures.sign(agreement.lease_id, tenant.id, "Jane Doe")


def test_lost_race_is_reported_as_already_signed(core, agreement, tenant, mocker):
    # another request signs between our checks and our UPDATE
    original = RentalAgreement.has_signed
    calls = {"n": 0}

    def stale_has_signed(self, party):
        calls["n"] += 1
        if calls["n"] == 1:
            db.session.execute(
                update(RentalAgreement)
                .where(RentalAgreement.id == self.id)
                .values(tenant_signature="Jane (other tab)", status=AgreementStatus.SIGNED_BY_TENANT)
            )
            db.session.commit()
            return False
        return original(self, party)

    mocker.patch.object(RentalAgreement, "has_signed", stale_has_signed)

    with pytest.raises(AlreadySigned):
        core.signatures.sign(agreement.lease_id, tenant.id, "Jane Doe")


# ---------- read paths ----------

def test_signature_status_for_party(client, agreement, tenant, landlord, auth_header):
    sign(client, auth_header(tenant), agreement.lease_id, "Jane Doe")

    resp = client.get(f"/agreements/signature-status/{agreement.lease_id}", headers=auth_header(landlord))

    data = resp.get_json()["data"]
    assert resp.status_code == 200
    assert data["authorized"] is True
    assert data["party"] == "landlord"
    assert data["has_signed"] is False
    assert data["agreement"]["tenant_signed"] is True
    assert data["agreement"]["fully_signed"] is False
    assert data["agreement"]["status"] == AgreementStatus.SIGNED_BY_TENANT


def test_signature_status_for_non_party_is_a_result(client, agreement, make_user, auth_header):
    stranger = make_user(email="stranger@rentverse.test")
    resp = client.get(f"/agreements/signature-status/{agreement.lease_id}", headers=auth_header(stranger))

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is False
    assert body["data"]["authorized"] is False
    assert "agreement" not in body["data"]


def test_fully_signed_is_false_for_missing_agreement(core):
    assert core.signatures.is_fully_signed(4242) is False


def test_signature_qr_returns_png_data_url(client, agreement, tenant, auth_header):
    resp = client.get(f"/agreements/signature-qr/{agreement.lease_id}", headers=auth_header(tenant))

    data = resp.get_json()["data"]
    assert resp.status_code == 200
    assert data["qr_code"].startswith("data:image/png;base64,")
    assert data["qr_code"] != PLACEHOLDER_DATA_URL
    assert data["user"] == {"name": "Jane Doe", "role": "tenant", "email": tenant.email}


def test_signature_qr_falls_back_to_placeholder(client, agreement, tenant, auth_header, mocker):
    mocker.patch("services.qr.qrcode.QRCode", side_effect=RuntimeError("no PIL"))
    resp = client.get(f"/agreements/signature-qr/{agreement.lease_id}", headers=auth_header(tenant))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["qr_code"] == PLACEHOLDER_DATA_URL


def test_signature_qr_rejects_non_party(core, agreement, make_user):
    stranger = make_user(email="stranger@rentverse.test")
    with pytest.raises(NotAgreementParty):
        core.signatures.signature_qr(agreement.lease_id, stranger.id)


def test_pending_signatures_lists_half_signed(client, core, agreement, tenant, landlord, auth_header):
    assert core.signatures.pending_signatures(landlord.id) == []
    sign(client, auth_header(tenant), agreement.lease_id, "Jane Doe")

    resp = client.get("/agreements/pending-signatures", headers=auth_header(landlord))

    items = resp.get_json()["data"]["agreements"]
    assert len(items) == 1
    assert items[0]["party"] == "landlord"
    assert items[0]["awaiting_you"] is True

    sign(client, auth_header(landlord), agreement.lease_id, "John Roe")
    assert core.signatures.pending_signatures(landlord.id) == []


# ---------- lifecycle ----------

def test_open_agreement_is_idempotent(core, lease):
    first = core.signatures.open_agreement(lease)
    second = core.signatures.open_agreement(lease)
    assert first.id == second.id
    assert first.status == AgreementStatus.PENDING
    assert RentalAgreement.query.count() == 1


def test_open_agreement_requires_approved_lease(core, tenant, landlord):
    lease = Lease(tenant_id=tenant.id, landlord_id=landlord.id, status="PENDING")
    db.session.add(lease)
    db.session.commit()
    with pytest.raises(ValidationError):
        core.signatures.open_agreement(lease)


def test_cancel_then_sign_is_refused(core, agreement, admin, tenant):
    core.signatures.cancel_agreement(agreement.lease_id, admin.id, "duplicate listing")
    row = reload(agreement)
    assert row.status == AgreementStatus.CANCELLED
    assert row.cancel_reason == "duplicate listing"

    with pytest.raises(AlreadyFinalized):
        core.signatures.sign(agreement.lease_id, tenant.id, "Jane Doe")
    with pytest.raises(AlreadyFinalized):
        core.signatures.cancel_agreement(agreement.lease_id, admin.id)


def test_reset_clears_both_signatures(core, agreement, tenant, landlord, admin):
    core.signatures.sign(agreement.lease_id, tenant.id, "Jane Doe")
    core.signatures.sign(agreement.lease_id, landlord.id, "John Roe")

    core.signatures.reset_signatures(agreement.lease_id, admin.id)

    row = reload(agreement)
    assert row.status == AgreementStatus.PENDING
    assert row.tenant_signature is None and row.landlord_signed_at is None
    assert core.signatures.sign(agreement.lease_id, tenant.id, "Jane Doe")["agreement"]["status"] == (
        AgreementStatus.SIGNED_BY_TENANT
    )


def test_missing_agreement_errors(core, admin):
    with pytest.raises(AgreementNotFound):
        core.signatures.cancel_agreement(123, admin.id)
    with pytest.raises(AgreementNotFound):
        core.signatures.reset_signatures(123)


# ---------- end to end ----------

def test_login_then_both_parties_sign(client, core, agreement, tenant, landlord):
    client.post("/auth/login", json={"email": tenant.email, "password": PASSWORD})
    code = core.otp_store.get(tenant.email).code
    token = client.post("/auth/verify", json={"email": tenant.email, "otp": code}).get_json()["data"]["token"]

    resp = sign(client, {"Authorization": f"Bearer {token}"}, agreement.lease_id, "Jane Doe")
    assert resp.get_json()["data"]["agreement"]["status"] == AgreementStatus.SIGNED_BY_TENANT

    client.post("/auth/login", json={"email": landlord.email, "password": PASSWORD})
    code = core.otp_store.get(landlord.email).code
    token = client.post("/auth/verify", json={"email": landlord.email, "otp": code}).get_json()["data"]["token"]

    resp = sign(client, {"Authorization": f"Bearer {token}"}, agreement.lease_id, "John Roe")
    assert resp.get_json()["data"]["agreement"]["status"] == AgreementStatus.COMPLETED
    assert core.signatures.is_fully_signed(agreement.lease_id) is True
