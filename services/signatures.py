"""
Dual-party e-signature workflow for rental agreements.

A signature here is a typed name plus when/where it was typed. It carries no
cryptographic proof. Each party writes its quadruple exactly once with a
conditional UPDATE guarded by "own signature is NULL and status is not final",
so concurrent signs by the same party cannot both succeed. The new status is
computed inside the same statement from the other party's column.
"""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import and_, case, or_, update

from errors import (
    AgreementNotFound,
    AlreadyFinalized,
    AlreadySigned,
    ConflictError,
    NotAgreementParty,
    ValidationError,
)
from models import db
from models.lease import Lease
from models.rental_agreement import (
    PARTY_LANDLORD,
    PARTY_TENANT,
    AgreementStatus,
    RentalAgreement,
)
from services.qr import render_qr_data_url
from utils.audit import log_event
from utils.codes import generate_signature_id
from utils.logger import get_logger
from utils.request_meta import Actor, current_actor

log = get_logger(__name__)

SIGNATURE_MAX_LEN = 255
LEASE_APPROVED = "APPROVED"

_OTHER_PARTY = {PARTY_TENANT: PARTY_LANDLORD, PARTY_LANDLORD: PARTY_TENANT}


def _iso(value: Optional[datetime]):
    return value.isoformat() if value else None


def get_agreement(lease_id) -> Optional[RentalAgreement]:
    return RentalAgreement.query.filter_by(lease_id=lease_id).first()


def _reload(agreement: RentalAgreement) -> RentalAgreement:
    db.session.refresh(agreement)
    return agreement


class SignatureService:
    def __init__(self, clock: Callable[[], datetime] = datetime.utcnow) -> None:
        self.clock = clock

    # ---------- signing ----------

    def sign(self, lease_id, user_id, signature_text, actor: Optional[Actor] = None) -> dict:
        actor = actor or current_actor()
        signature_text = signature_text.strip() if isinstance(signature_text, str) else ""
        if not signature_text:
            raise ValidationError("Signature is required")
        if len(signature_text) > SIGNATURE_MAX_LEN:
            raise ValidationError(f"Signature must be at most {SIGNATURE_MAX_LEN} characters")

        agreement = get_agreement(lease_id)
        if agreement is None:
            raise AgreementNotFound()

        party = agreement.party_for(user_id)
        if party is None:
            log_event(
                "SIGNATURE_UNAUTHORIZED",
                user_id=user_id,
                details=f"Attempted to sign agreement for lease {lease_id} without being a party",
                severity="WARNING",
                actor=actor,
            )
            raise NotAgreementParty()
        if agreement.is_finalized:
            raise AlreadyFinalized()
        if agreement.has_signed(party):
            raise AlreadySigned()

        now = self.clock()
        own = getattr(RentalAgreement, f"{party}_signature")
        other = getattr(RentalAgreement, f"{_OTHER_PARTY[party]}_signature")
        stmt = (
            update(RentalAgreement)
            .where(
                RentalAgreement.id == agreement.id,
                own.is_(None),
                RentalAgreement.status.notin_(AgreementStatus.FINAL),
            )
            .values({
                own: signature_text,
                getattr(RentalAgreement, f"{party}_signed_at"): now,
                getattr(RentalAgreement, f"{party}_ip_address"): actor.ip,
                getattr(RentalAgreement, f"{party}_user_agent"): actor.user_agent,
                RentalAgreement.status: case(
                    (other.isnot(None), AgreementStatus.COMPLETED),
                    else_=AgreementStatus.AWAITING_OTHER_PARTY[party],
                ),
                RentalAgreement.updated_at: now,
            })
            .execution_options(synchronize_session=False)
        )
        result = db.session.execute(stmt)

        if result.rowcount != 1:
            # lost a race against another writer; report what it left behind
            db.session.rollback()
            agreement = _reload(agreement)
            if agreement.is_finalized:
                raise AlreadyFinalized()
            if agreement.has_signed(party):
                raise AlreadySigned()
            raise ConflictError("Agreement changed while signing. Please retry.")

        db.session.commit()
        agreement = _reload(agreement)

        signature_id = generate_signature_id()
        log_event(
            "AGREEMENT_SIGNED",
            user_id=user_id,
            details=f"Signed agreement for lease {lease_id} as {party} ({signature_id}); status {agreement.status}",
            actor=actor,
        )
        if agreement.status == AgreementStatus.COMPLETED:
            log.info("agreement_completed", lease_id=lease_id, agreement_id=agreement.id)

        return {
            "agreement": agreement.to_dict(),
            "signature": {
                "signature_id": signature_id,
                "party": party,
                "signed_at": _iso(now),
                "ip_address": actor.ip,
                "user_agent": actor.user_agent,
            },
        }

    # ---------- read paths ----------

    def signature_status(self, lease_id, user_id) -> dict:
        agreement = get_agreement(lease_id)
        if agreement is None:
            return {"authorized": False, "reason": "Agreement not found"}

        party = agreement.party_for(user_id)
        if party is None:
            return {"authorized": False, "reason": "You are not a party to this agreement"}

        return {
            "authorized": True,
            "party": party,
            "has_signed": agreement.has_signed(party),
            "signed_at": _iso(getattr(agreement, f"{party}_signed_at")),
            "agreement": {
                "lease_id": agreement.lease_id,
                "status": agreement.status,
                "tenant_signed": agreement.has_signed(PARTY_TENANT),
                "landlord_signed": agreement.has_signed(PARTY_LANDLORD),
                "tenant_signed_at": _iso(agreement.tenant_signed_at),
                "landlord_signed_at": _iso(agreement.landlord_signed_at),
                "fully_signed": agreement.is_fully_signed,
            },
        }

    def is_fully_signed(self, lease_id) -> bool:
        agreement = get_agreement(lease_id)
        return agreement is not None and agreement.is_fully_signed

    def signature_qr(self, lease_id, user_id, actor: Optional[Actor] = None) -> dict:
        actor = actor or current_actor()
        agreement = get_agreement(lease_id)
        if agreement is None:
            raise AgreementNotFound()

        party = agreement.party_for(user_id)
        if party is None:
            raise NotAgreementParty()

        user = agreement.lease.tenant if party == PARTY_TENANT else agreement.lease.landlord
        payload = {
            "name": user.name,
            "timestamp": _iso(self.clock()),
            "leaseId": agreement.lease_id,
            "role": party,
            "signatureId": generate_signature_id(),
            "userId": user_id,
            "ipAddress": actor.ip or "unknown",
            "userAgent": actor.user_agent or "unknown",
        }
        return {
            "qr_code": render_qr_data_url(payload),
            "user": {"name": user.name, "role": party, "email": user.email},
            "agreement": {"lease_id": agreement.lease_id, "status": agreement.status},
        }

    def pending_signatures(self, user_id) -> list:
        """Agreements of ``user_id`` where exactly one party has signed."""
        one_signed = or_(
            and_(RentalAgreement.tenant_signature.isnot(None), RentalAgreement.landlord_signature.is_(None)),
            and_(RentalAgreement.tenant_signature.is_(None), RentalAgreement.landlord_signature.isnot(None)),
        )
        rows = (
            RentalAgreement.query
            .join(Lease, RentalAgreement.lease_id == Lease.id)
            .filter(or_(Lease.tenant_id == user_id, Lease.landlord_id == user_id))
            .filter(RentalAgreement.status.notin_(AgreementStatus.FINAL))
            .filter(one_signed)
            .order_by(RentalAgreement.updated_at.desc())
            .all()
        )
        items = []
        for agreement in rows:
            party = agreement.party_for(user_id)
            data = agreement.to_dict()
            data["party"] = party
            data["awaiting_you"] = not agreement.has_signed(party)
            items.append(data)
        return items

    # ---------- lifecycle ----------

    def open_agreement(self, lease: Lease) -> RentalAgreement:
        """Create the PENDING agreement for an approved lease. Idempotent."""
        if lease.status != LEASE_APPROVED:
            raise ValidationError("Agreements can only be opened for approved leases")

        existing = get_agreement(lease.id)
        if existing is not None:
            return existing

        now = self.clock()
        agreement = RentalAgreement(lease_id=lease.id, status=AgreementStatus.PENDING, generated_at=now)
        db.session.add(agreement)
        db.session.commit()

        log_event(
            "AGREEMENT_OPENED",
            user_id=lease.landlord_id,
            details=f"Rental agreement opened for lease {lease.id}",
        )
        return agreement

    def cancel_agreement(self, lease_id, admin_id, reason=None) -> RentalAgreement:
        agreement = get_agreement(lease_id)
        if agreement is None:
            raise AgreementNotFound()
        if agreement.is_finalized:
            raise AlreadyFinalized("Agreement is already finalized")

        now = self.clock()
        agreement.status = AgreementStatus.CANCELLED
        agreement.cancelled_at = now
        agreement.cancel_reason = (reason or "").strip()[:255] or None
        db.session.commit()

        log_event(
            "AGREEMENT_CANCELLED",
            user_id=admin_id,
            details=f"Cancelled agreement for lease {lease_id}: {agreement.cancel_reason or 'no reason given'}",
            severity="WARNING",
        )
        return agreement

    def reset_signatures(self, lease_id, admin_id=None) -> RentalAgreement:
        """Clear both signature quadruples and return the agreement to PENDING."""
        agreement = get_agreement(lease_id)
        if agreement is None:
            raise AgreementNotFound()
        if agreement.status == AgreementStatus.CANCELLED:
            raise AlreadyFinalized("Cancelled agreements cannot be reset")

        for party in (PARTY_TENANT, PARTY_LANDLORD):
            for suffix in ("signature", "signed_at", "ip_address", "user_agent"):
                setattr(agreement, f"{party}_{suffix}", None)
        agreement.status = AgreementStatus.PENDING
        db.session.commit()

        log_event(
            "AGREEMENT_SIGNATURES_RESET",
            user_id=admin_id,
            details=f"Signatures cleared for lease {lease_id}",
            severity="WARNING",
        )
        return agreement
