# perks/services/limit_policy.py
"""
Monthly spending cap.

The period is the calendar month (UTC) containing ``at``. Reads only; the
validator calls this again at redemption time so a stale figure at issuance
is harmless.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..model import AppSetting, Employee
from ..utils.money import D, Money, round_money, to_float_money
from . import ledger

DEFAULT_LIMIT_SETTING = "default_monthly_spending_limit"

@dataclass(frozen=True)
class SpendingSummary:
    limit: Money
    spent: Money
    remaining: Money
    percentage: Decimal

    def as_api(self):
        return {
            "limit": to_float_money(self.limit),
            "spent": to_float_money(self.spent),
            "remaining": to_float_money(self.remaining),
            "percentage": float(self.percentage),
        }

def month_bounds(at: datetime) -> tuple[datetime, datetime]:
    start = at.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end

def default_limit() -> Money:
    setting = db.session.get(AppSetting, DEFAULT_LIMIT_SETTING)
    if setting and setting.value not in (None, ""):
        return round_money(D(setting.value))
    return round_money(D(current_app.config["DEFAULT_MONTHLY_LIMIT"]))

def limit_for(employee: Employee) -> Money:
    if employee.monthly_spending_limit is not None:
        return round_money(D(employee.monthly_spending_limit))
    return default_limit()

def remaining(employee: Employee, at: datetime) -> SpendingSummary:
    limit = limit_for(employee)
    start, _ = month_bounds(at)
    spent = ledger.sum_spent(employee.id, start, at, current_app.config["SPEND_BASIS"])
    left = max(D(0), limit - spent)
    # not clamped at 100: over-spend (limit lowered mid-month) stays visible
    pct = round_money(spent / limit * 100) if limit > 0 else D(0)
    return SpendingSummary(limit=limit, spent=spent, remaining=round_money(left), percentage=pct)

def lock_employee(employee_id) -> Employee | None:
    """Employee row read FOR UPDATE; holds writers for this employee until commit or rollback."""
    return (db.session.query(Employee)
            .filter(Employee.id == employee_id)
            .populate_existing()
            .with_for_update()
            .one_or_none())
