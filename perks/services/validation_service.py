# perks/services/validation_service.py
"""
Cashier-side validation and redemption of discount codes.

Checks run in a fixed order and the first failure wins:

    1) code lookup          -> invalid_code
    2) already used         -> already_used
    3) expired              -> expired (flips the row if still active)
    4) employee inactive    -> inactive_employee
    5) monthly limit        -> over_limit (code stays active)
    6) redeem               -> success

Step 6 flips the status with a conditional UPDATE and inserts the ledger row
in the same database transaction. A validator that loses the flip gets
already_used and writes nothing.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from flask import current_app

from ..extensions import db
from ..model import DiscountCode, Transaction, CODE_USED, CODE_EXPIRED
from ..utils import clock
from ..utils.clock import isoformat
from ..utils.money import D, Money, percent_of, round_money, parse_amount, to_float_money
from . import code_store, ledger, limit_policy

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.I)
_NON_ALNUM = re.compile(r"[^A-Z0-9]")

class ValidationError(str, Enum):
    INVALID_CODE = "invalid_code"
    ALREADY_USED = "already_used"
    EXPIRED = "expired"
    INACTIVE_EMPLOYEE = "inactive_employee"
    OVER_LIMIT = "over_limit"
    INVALID_AMOUNT = "invalid_amount"

VALIDATION_MESSAGES = {
    ValidationError.INVALID_CODE: "This discount code does not exist or is invalid.",
    ValidationError.ALREADY_USED: "This discount code has already been used.",
    ValidationError.EXPIRED: "This discount code has expired. The employee needs to generate a new one.",
    ValidationError.INACTIVE_EMPLOYEE: "This employee account has been deactivated.",
    ValidationError.OVER_LIMIT: "This transaction would exceed the employee monthly spending limit.",
    ValidationError.INVALID_AMOUNT: "Amount must be a positive number.",
}

@dataclass(frozen=True)
class ValidationResult:
    success: bool
    error: ValidationError | None = None
    message: str | None = None
    details: dict | None = None

    transaction_id: str | None = None
    employee_name: str | None = None
    division_name: str | None = None
    discount_percentage: Money | None = None
    original_amount: Money | None = None
    discount_amount: Money | None = None
    final_amount: Money | None = None
    remaining_limit: Money | None = None

    @classmethod
    def fail(cls, error: ValidationError, message: str | None = None, details: dict | None = None):
        return cls(success=False, error=error, message=message or VALIDATION_MESSAGES[error], details=details)

    def as_api(self):
        if not self.success:
            out = {"success": False, "error": self.error.value, "message": self.message}
            if self.details is not None:
                out["details"] = self.details
            return out
        return {
            "success": True,
            "transaction_id": self.transaction_id,
            "employee_name": self.employee_name,
            "division_name": self.division_name,
            "discount_percentage": float(self.discount_percentage),
            "original_amount": to_float_money(self.original_amount),
            "discount_amount": to_float_money(self.discount_amount),
            "final_amount": to_float_money(self.final_amount),
            "remaining_limit": to_float_money(self.remaining_limit),
        }

@dataclass(frozen=True)
class CodeRef:
    """A normalized code: either a record id or a bare manual code."""
    value: str
    is_id: bool = field(default=False)

# ---- input handling --------------------------------------------------------

def normalize_code(raw) -> CodeRef | None:
    """
    Accepts a QR JSON envelope, a code id, or a manual code typed with or
    without the display prefix. None when nothing usable is left.
    """
    if isinstance(raw, dict):
        # terminals that already decoded the QR envelope
        raw = json.dumps(raw)
    if not isinstance(raw, str):
        return None
    s = raw.strip()
    if not s:
        return None

    if s.startswith("{"):
        try:
            payload = json.loads(s)
        except ValueError:
            return None
        if not isinstance(payload, dict):
            return None
        manual = payload.get("manual_code")
        if isinstance(manual, str) and manual.strip():
            return normalize_code(manual)
        code_id = payload.get("code_id")
        if isinstance(code_id, str) and _UUID_RE.match(code_id.strip()):
            return CodeRef(code_id.strip().lower(), is_id=True)
        return None

    if _UUID_RE.match(s):
        return CodeRef(s.lower(), is_id=True)

    s = s.upper()
    prefix = current_app.config["MANUAL_CODE_PREFIX"].upper()
    if prefix and s.startswith(prefix):
        s = s[len(prefix):]
    s = _NON_ALNUM.sub("", s)
    return CodeRef(s) if s else None

def clean_amount(raw) -> Money | None:
    """Positive amount within MAX_PURCHASE_AMOUNT, rounded to cents; else None."""
    amount = parse_amount(raw)
    # bound before quantize, which overflows past 28 digits
    if amount is None or amount <= 0 or amount > D(current_app.config["MAX_PURCHASE_AMOUNT"]):
        return None
    amount = round_money(amount)
    return amount if amount > 0 else None

def find_code(ref: CodeRef | None) -> DiscountCode | None:
    if ref is None:
        return None
    if ref.is_id:
        return code_store.get_by_id(ref.value)
    return code_store.get_by_manual_code(ref.value)

def expire_if_due(code: DiscountCode, now) -> bool:
    """Lazy expiry. True when the code is (now) expired."""
    if code.status == CODE_EXPIRED:
        return True
    if code.status != CODE_USED and code.is_past_expiry(now):
        code_store.mark_expired(code)
        db.session.commit()
        # a redeeming validator may have flipped it to used first
        return code.status == CODE_EXPIRED
    return False

# ---- operations ------------------------------------------------------------

def lookup_code(raw, now=None) -> DiscountCode | None:
    """Preview without redeeming. Expires the code on the way if it is due."""
    now = now or clock.utcnow()
    code = find_code(normalize_code(raw))
    if code is not None:
        expire_if_due(code, now)
    return code

def validate_code(raw_code, amount, validated_by: int | None, location: str | None = None,
                  now=None) -> ValidationResult:
    now = now or clock.utcnow()
    code, result = _check_and_redeem(raw_code, amount, validated_by, location, now)
    logger.info("validation of code %s by %s: %s", code.id if code is not None else "-", validated_by,
                "success" if result.success else result.error.value)
    return result

def _check_and_redeem(raw_code, amount, validated_by, location, now):
    original = clean_amount(amount)
    if original is None:
        return None, ValidationResult.fail(ValidationError.INVALID_AMOUNT)

    code = find_code(normalize_code(raw_code))
    if code is None:
        return None, ValidationResult.fail(ValidationError.INVALID_CODE)
    if code.status == CODE_USED:
        return code, ValidationResult.fail(ValidationError.ALREADY_USED)
    if expire_if_due(code, now):
        return code, ValidationResult.fail(ValidationError.EXPIRED)

    try:
        return code, _redeem(code, original, validated_by, location, now)
    except Exception:
        db.session.rollback()
        raise

def _redeem(code: DiscountCode, original: Money, validated_by, location, now) -> ValidationResult:
    employee = limit_policy.lock_employee(code.employee_id)
    if employee is None or not employee.is_active:
        db.session.rollback()
        return ValidationResult.fail(ValidationError.INACTIVE_EMPLOYEE)

    summary = limit_policy.remaining(employee, now)
    if original > summary.remaining:
        db.session.rollback()
        return ValidationResult.fail(ValidationError.OVER_LIMIT, details={
            "limit": to_float_money(summary.limit),
            "spent": to_float_money(summary.spent),
            "remaining": to_float_money(summary.remaining),
            "requested": to_float_money(original),
        })

    if not code_store.claim(code, now):
        db.session.rollback()
        return ValidationResult.fail(ValidationError.ALREADY_USED)

    pct = D(code.discount_percentage)
    discount = percent_of(original, pct)
    final = round_money(original - discount)

    tx = ledger.append(Transaction(
        discount_code_id=code.id,
        employee_id=employee.id,
        division_id=code.division_id,
        original_amount=original,
        discount_percentage=pct,
        discount_amount=discount,
        final_amount=final,
        location=(location or "").strip()[:255] or None,
        validated_by=validated_by,
        created_at=now,
    ))
    db.session.commit()

    after = limit_policy.remaining(employee, now)
    return ValidationResult(
        success=True,
        transaction_id=str(tx.id),
        employee_name=employee.full_name,
        division_name=code.division.name if code.division else "Unknown",
        discount_percentage=pct,
        original_amount=original,
        discount_amount=discount,
        final_amount=final,
        remaining_limit=after.remaining,
    )

def lookup_as_api(code: DiscountCode):
    return {
        "id": str(code.id),
        "manual_code": code.manual_code,
        "status": code.status,
        "employee_name": code.employee.full_name if code.employee else "Unknown",
        "division_name": code.division.name if code.division else "Unknown",
        "discount_percentage": float(code.discount_percentage),
        "expires_at": isoformat(code.expires_at),
        "created_at": isoformat(code.created_at),
    }
