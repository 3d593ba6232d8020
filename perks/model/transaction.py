# --- perks/model/transaction.py ---

import uuid
from ..extensions import db
from ..utils.clock import isoformat
from .types import GUID

class Transaction(db.Model):
    """One redemption. Written once by the validator, never updated."""
    __tablename__ = "transactions"

    id = db.Column(GUID(), primary_key=True, default=uuid.uuid4)
    discount_code_id = db.Column(GUID(), db.ForeignKey("discount_codes.id"), unique=True, nullable=False)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), index=True, nullable=False)
    division_id = db.Column(db.Integer, db.ForeignKey("divisions.id"), index=True, nullable=False)

    # Money snapshot
    original_amount = db.Column(db.Numeric(12, 2), nullable=False)
    discount_percentage = db.Column(db.Numeric(5, 2), nullable=False)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False)
    final_amount = db.Column(db.Numeric(12, 2), nullable=False)

    location = db.Column(db.String(255), nullable=True)
    validated_by = db.Column(db.Integer, db.ForeignKey("employees.id"), index=True, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, index=True)

    employee = db.relationship("Employee", foreign_keys=[employee_id], lazy="joined")
    division = db.relationship("Division", lazy="joined")

    def as_api(self):
        return {
            "id": str(self.id),
            "discount_code_id": str(self.discount_code_id),
            "employee_id": self.employee_id,
            "employee_name": self.employee.full_name if self.employee else "Unknown",
            "division_id": self.division_id,
            "division_name": self.division.name if self.division else "Unknown",
            "money": {
                "original_amount": float(self.original_amount or 0),
                "discount_percentage": float(self.discount_percentage or 0),
                "discount_amount": float(self.discount_amount or 0),
                "final_amount": float(self.final_amount or 0),
            },
            "location": self.location,
            "validated_by": self.validated_by,
            "created_at": isoformat(self.created_at),
        }
