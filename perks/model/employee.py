# --- perks/model/employee.py ---
# Directory data owned by the admin screens and the identity provider.
# The discount core only reads these rows.

from sqlalchemy.sql import func
from ..extensions import db

employee_divisions = db.Table(
    "employee_divisions",
    db.Column("employee_id", db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), primary_key=True),
    db.Column("division_id", db.Integer, db.ForeignKey("divisions.id", ondelete="CASCADE"), primary_key=True),
)

class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    first_name = db.Column(db.String(120), nullable=True)
    last_name = db.Column(db.String(120), nullable=True)
    role = db.Column(db.String(20), nullable=False, default="employee", index=True)  # employee, admin
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    employee_number = db.Column(db.String(64), nullable=True)

    # per-employee override; NULL falls back to the configured default
    monthly_spending_limit = db.Column(db.Numeric(12, 2), nullable=True)

    created_at = db.Column(db.DateTime, server_default=func.now())

    divisions = db.relationship("Division", secondary=employee_divisions, lazy="selectin",
                                back_populates="employees")

    @property
    def full_name(self):
        return " ".join(p for p in (self.first_name, self.last_name) if p) or "Unknown"

    def as_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "is_active": self.is_active,
            "employee_number": self.employee_number,
            "monthly_spending_limit": float(self.monthly_spending_limit)
                if self.monthly_spending_limit is not None else None,
        }

class Division(db.Model):
    __tablename__ = "divisions"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), unique=True, nullable=False, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    employees = db.relationship("Employee", secondary=employee_divisions, back_populates="divisions")
    brands = db.relationship("Brand", back_populates="division", lazy="selectin")
    rules = db.relationship("DiscountRule", back_populates="division", lazy="selectin")

    @property
    def active_rule(self):
        return next((r for r in self.rules if r.is_active), None)

class Brand(db.Model):
    __tablename__ = "brands"

    id = db.Column(db.Integer, primary_key=True)
    division_id = db.Column(db.Integer, db.ForeignKey("divisions.id", ondelete="CASCADE"), index=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    division = db.relationship("Division", back_populates="brands")

class DiscountRule(db.Model):
    __tablename__ = "discount_rules"

    id = db.Column(db.Integer, primary_key=True)
    division_id = db.Column(db.Integer, db.ForeignKey("divisions.id", ondelete="CASCADE"), index=True, nullable=False)
    discount_percentage = db.Column(db.Numeric(5, 2), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    division = db.relationship("Division", back_populates="rules")

class AppSetting(db.Model):
    __tablename__ = "app_settings"

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.String(255), nullable=True)
