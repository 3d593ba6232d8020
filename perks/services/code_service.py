# perks/services/code_service.py
"""
Issuing discount codes.

An employee holds at most one active code. Issuing a new one expires the
previous one in the same database transaction as the insert.
"""
import json
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

from flask import current_app

from ..extensions import db
from ..model import DiscountCode, Division, Employee, CODE_ACTIVE
from ..utils import clock
from ..utils.clock import isoformat
from ..utils.money import D
from . import code_store, limit_policy

logger = logging.getLogger(__name__)

class IssueError(str, Enum):
    EMPLOYEE_NOT_FOUND = "employee_not_found"
    EMPLOYEE_INACTIVE = "employee_inactive"
    DIVISION_NOT_FOUND = "division_not_found"
    NOT_ASSIGNED = "not_assigned"
    DIVISION_INACTIVE = "division_inactive"
    NO_DISCOUNT_RULE = "no_discount_rule"
    LIMIT_REACHED = "limit_reached"
    CODE_SPACE_EXHAUSTED = "code_space_exhausted"

ISSUE_MESSAGES = {
    IssueError.EMPLOYEE_NOT_FOUND: "Employee not found.",
    IssueError.EMPLOYEE_INACTIVE: "Your account has been deactivated. Contact your administrator.",
    IssueError.DIVISION_NOT_FOUND: "Division not found.",
    IssueError.NOT_ASSIGNED: "You are not assigned to this division.",
    IssueError.DIVISION_INACTIVE: "This division is currently inactive.",
    IssueError.NO_DISCOUNT_RULE: "No active discount rule for this division.",
    IssueError.LIMIT_REACHED: "You have reached your monthly spending limit.",
    IssueError.CODE_SPACE_EXHAUSTED: "Failed to generate discount code. Please try again.",
}

@dataclass(frozen=True)
class IssueResult:
    code: DiscountCode | None = None
    error: IssueError | None = None
    message: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def fail(cls, error: IssueError, message: str | None = None):
        return cls(error=error, message=message or ISSUE_MESSAGES[error])

def generate_manual_code() -> str | None:
    """Random manual code not held by any currently active code."""
    cfg = current_app.config
    alphabet = cfg["MANUAL_CODE_ALPHABET"]
    length = cfg["MANUAL_CODE_LENGTH"]
    for _ in range(cfg["MANUAL_CODE_ATTEMPTS"]):
        candidate = "".join(secrets.choice(alphabet) for _ in range(length))
        if not code_store.manual_code_in_use(candidate):
            return candidate
    return None

def build_qr_payload(code: DiscountCode) -> str:
    return json.dumps({
        "code_id": str(code.id),
        "employee_id": code.employee_id,
        "division_id": code.division_id,
        "manual_code": code.manual_code,
        "discount_percentage": float(code.discount_percentage),
        "expires_at": isoformat(code.expires_at),
    }, separators=(",", ":"))

def _check_preconditions(employee: Employee | None, division: Division | None):
    if employee is None:
        return IssueResult.fail(IssueError.EMPLOYEE_NOT_FOUND)
    if not employee.is_active:
        return IssueResult.fail(IssueError.EMPLOYEE_INACTIVE)
    if division is None:
        return IssueResult.fail(IssueError.DIVISION_NOT_FOUND)
    if division not in employee.divisions:
        return IssueResult.fail(IssueError.NOT_ASSIGNED)
    if not division.is_active:
        return IssueResult.fail(IssueError.DIVISION_INACTIVE)
    rule = division.active_rule
    if rule is None or D(rule.discount_percentage) <= 0:
        return IssueResult.fail(IssueError.NO_DISCOUNT_RULE)
    return None

def issue_code(employee_id: int, division_id: int, now=None) -> IssueResult:
    now = now or clock.utcnow()
    # row lock serializes issuance per employee up to the commit
    employee = limit_policy.lock_employee(employee_id)
    division = db.session.get(Division, division_id)

    failed = _check_preconditions(employee, division)
    if failed:
        db.session.rollback()
        logger.info("code issue refused for employee %s division %s: %s",
                    employee_id, division_id, failed.error.value)
        return failed

    summary = limit_policy.remaining(employee, now)
    if summary.remaining <= 0:
        db.session.rollback()
        logger.info("code issue refused for employee %s: limit %s reached", employee_id, summary.limit)
        return IssueResult.fail(
            IssueError.LIMIT_REACHED,
            f"You have reached your monthly spending limit of {summary.limit:,.2f}.",
        )

    try:
        superseded = code_store.expire_active_for_employee(employee.id)

        manual_code = generate_manual_code()
        if manual_code is None:
            db.session.rollback()
            logger.error("no free manual code after %s attempts", current_app.config["MANUAL_CODE_ATTEMPTS"])
            return IssueResult.fail(IssueError.CODE_SPACE_EXHAUSTED)

        code = DiscountCode(
            id=uuid.uuid4(),
            employee_id=employee.id,
            division_id=division.id,
            discount_percentage=D(division.active_rule.discount_percentage),
            manual_code=manual_code,
            status=CODE_ACTIVE,
            expires_at=now + timedelta(seconds=current_app.config["CODE_TTL_SECONDS"]),
            created_at=now,
        )
        code.qr_payload = build_qr_payload(code)
        code_store.add_code(code)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("issued code %s to employee %s for division %s (superseded %s)",
                code.id, employee.id, division.id, superseded)
    return IssueResult(code=code)

def get_active_code(employee_id: int, now=None) -> DiscountCode | None:
    """The employee's live code, expiring it first if its time is up."""
    now = now or clock.utcnow()
    code = code_store.get_active_for_employee(employee_id)
    if code is None:
        return None
    if code.is_past_expiry(now):
        code_store.mark_expired(code)
        db.session.commit()
        return None
    return code

def available_discounts(employee: Employee) -> list[dict]:
    out = []
    for div in employee.divisions:
        if not div.is_active:
            continue
        rule = div.active_rule
        if rule is None or D(rule.discount_percentage) <= 0:
            continue
        out.append({
            "division": {"id": div.id, "name": div.name, "code": div.code},
            "discount_percentage": float(rule.discount_percentage),
            "brand_count": len(div.brands),
        })
    return out
