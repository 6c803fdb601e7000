from datetime import datetime
from models.db import db


class ActivityLog(db.Model):
    __tablename__ = "activity_logs"

    id = db.Column(db.Integer, primary_key=True)
    # anonymous events never reach this table, they only go to the console log
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    action = db.Column(db.String(80), nullable=False, index=True)  # e.g. LOGIN_FAILED, OTP_SENT
    details = db.Column(db.Text, nullable=True)
    severity = db.Column(db.String(16), nullable=False, default="INFO")

    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)

    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    user = db.relationship("User", lazy="joined")
