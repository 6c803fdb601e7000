from datetime import datetime
from models.db import db


class Lease(db.Model):
    """Lease between a tenant and a landlord. Managed by the booking module;
    the signature workflow only reads the two party ids."""

    __tablename__ = "leases"

    id = db.Column(db.Integer, primary_key=True)

    tenant_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    landlord_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    property_ref = db.Column(db.String(64), nullable=True)

    status = db.Column(db.String(20), nullable=False, default="PENDING")
    # status values: PENDING, APPROVED, REJECTED, CANCELLED

    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    tenant = db.relationship("User", foreign_keys=[tenant_id])
    landlord = db.relationship("User", foreign_keys=[landlord_id])
