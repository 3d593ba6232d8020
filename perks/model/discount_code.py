# --- perks/model/discount_code.py ---

import uuid
from sqlalchemy.sql import func
from ..extensions import db
from ..utils.clock import isoformat
from .types import GUID

CODE_ACTIVE = "active"
CODE_USED = "used"
CODE_EXPIRED = "expired"

class DiscountCode(db.Model):
    __tablename__ = "discount_codes"

    id = db.Column(GUID(), primary_key=True, default=uuid.uuid4)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), index=True, nullable=False)
    division_id = db.Column(db.Integer, db.ForeignKey("divisions.id"), index=True, nullable=False)

    # snapshot of the rule at issuance
    discount_percentage = db.Column(db.Numeric(5, 2), nullable=False)

    # unique only among active codes; see services.code_store
    manual_code = db.Column(db.String(16), index=True, nullable=False)
    qr_payload = db.Column(db.Text, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=CODE_ACTIVE, index=True)
    expires_at = db.Column(db.DateTime, nullable=False)
    used_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, server_default=func.now(), index=True)

    employee = db.relationship("Employee", lazy="joined")
    division = db.relationship("Division", lazy="joined")

    def is_past_expiry(self, now) -> bool:
        return now >= self.expires_at

    def as_api(self, now=None):
        data = {
            "id": str(self.id),
            "employee_id": self.employee_id,
            "division_id": self.division_id,
            "division_name": self.division.name if self.division else None,
            "discount_percentage": float(self.discount_percentage),
            "manual_code": self.manual_code,
            "qr_payload": self.qr_payload,
            "status": self.status,
            "expires_at": isoformat(self.expires_at),
            "created_at": isoformat(self.created_at),
        }
        if now is not None:
            data["seconds_left"] = max(0, int((self.expires_at - now).total_seconds()))
        return data
