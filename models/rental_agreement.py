from datetime import datetime
from models.db import db

PARTY_TENANT = "tenant"
PARTY_LANDLORD = "landlord"


class AgreementStatus:
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    SIGNED_BY_TENANT = "SIGNED_BY_TENANT"
    SIGNED_BY_LANDLORD = "SIGNED_BY_LANDLORD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    FINAL = (COMPLETED, CANCELLED)

    AWAITING_OTHER_PARTY = {
        PARTY_TENANT: SIGNED_BY_TENANT,
        PARTY_LANDLORD: SIGNED_BY_LANDLORD,
    }


class RentalAgreement(db.Model):
    __tablename__ = "rental_agreements"

    id = db.Column(db.Integer, primary_key=True)
    lease_id = db.Column(db.Integer, db.ForeignKey("leases.id"), unique=True, nullable=False, index=True)

    status = db.Column(db.String(32), nullable=False, default=AgreementStatus.PENDING)

    # Typed-name e-signatures with metadata. These are not cryptographic
    # signatures; each quadruple is written once, in a single UPDATE.
    tenant_signature = db.Column(db.Text, nullable=True)
    tenant_signed_at = db.Column(db.DateTime, nullable=True)
    tenant_ip_address = db.Column(db.String(64), nullable=True)
    tenant_user_agent = db.Column(db.String(255), nullable=True)

    landlord_signature = db.Column(db.Text, nullable=True)
    landlord_signed_at = db.Column(db.DateTime, nullable=True)
    landlord_ip_address = db.Column(db.String(64), nullable=True)
    landlord_user_agent = db.Column(db.String(255), nullable=True)

    pdf_url = db.Column(db.String(512), nullable=True)
    generated_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(255), nullable=True)

    lease = db.relationship("Lease", lazy="joined")

    def party_for(self, user_id):
        if self.lease is None or user_id is None:
            return None
        if self.lease.tenant_id == user_id:
            return PARTY_TENANT
        if self.lease.landlord_id == user_id:
            return PARTY_LANDLORD
        return None

    def has_signed(self, party: str) -> bool:
        return getattr(self, f"{party}_signature") is not None

    @property
    def is_finalized(self) -> bool:
        return self.status in AgreementStatus.FINAL

    @property
    def is_fully_signed(self) -> bool:
        return self.tenant_signature is not None and self.landlord_signature is not None

    def to_dict(self) -> dict:
        def _iso(value):
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "lease_id": self.lease_id,
            "status": self.status,
            "tenant_signature": self.tenant_signature,
            "tenant_signed_at": _iso(self.tenant_signed_at),
            "landlord_signature": self.landlord_signature,
            "landlord_signed_at": _iso(self.landlord_signed_at),
            "pdf_url": self.pdf_url,
            "generated_at": _iso(self.generated_at),
            "created_at": _iso(self.created_at),
            "cancelled_at": _iso(self.cancelled_at),
            "cancel_reason": self.cancel_reason,
        }
