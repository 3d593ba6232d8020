# perks/codes/routes.py
from __future__ import annotations
from flask import request

from ..services import code_service, ledger, limit_policy
from ..utils import clock
from ..utils.api import ok, err
from ..utils.decorators import role_at_least, current_employee
from . import bp

ISSUE_STATUS = {
    "employee_not_found": 404,
    "employee_inactive": 403,
    "division_not_found": 404,
    "not_assigned": 403,
    "division_inactive": 409,
    "no_discount_rule": 409,
    "limit_reached": 409,
    "code_space_exhausted": 503,
}

def _int_arg(name, default, lo, hi):
    raw = request.args.get(name)
    if raw is None:
        return default
    try:
        v = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer")
    if v < lo or v > hi:
        raise ValueError(f"{name} must be between {lo} and {hi}")
    return v

@bp.post("/codes")
@role_at_least("employee")
def issue():
    data = request.get_json(silent=True) or {}
    division_id = data.get("division_id")
    if isinstance(division_id, bool) or not isinstance(division_id, (int, str)) \
            or not str(division_id).strip().isdigit():
        return err("division_id is required", 400)

    now = clock.utcnow()
    res = code_service.issue_code(current_employee().id, int(division_id), now=now)
    if not res.success:
        return err(res.message, ISSUE_STATUS[res.error.value], {"error": res.error.value})
    return ok("Discount code generated", {"code": res.code.as_api(now)}, status=201)

@bp.get("/codes/active")
@role_at_least("employee")
def active():
    now = clock.utcnow()
    code = code_service.get_active_code(current_employee().id, now=now)
    return ok("active code", {"code": code.as_api(now) if code else None})

@bp.get("/me/spending")
@role_at_least("employee")
def spending():
    summary = limit_policy.remaining(current_employee(), clock.utcnow())
    return ok("spending summary", {"summary": summary.as_api()})

@bp.get("/me/discounts")
@role_at_least("employee")
def discounts():
    return ok("discounts", {"discounts": code_service.available_discounts(current_employee())})

@bp.get("/me/transactions")
@role_at_least("employee")
def transactions():
    page = _int_arg("page", 1, 1, 10_000)
    per = _int_arg("per_page", 20, 1, 100)
    paged = ledger.page_for_employee(current_employee().id, page, per)
    return ok("transactions", {
        "page": page,
        "per_page": per,
        "total": paged.total,
        "pages": paged.pages,
        "items": [t.as_api() for t in paged.items],
    })
