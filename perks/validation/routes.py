# perks/validation/routes.py
from __future__ import annotations
import logging
from flask import request

from ..services import ledger, validation_service
from ..utils.api import ok, err
from ..utils.decorators import role_required, current_employee
from ..utils.net import get_client_ip
from . import bp

logger = logging.getLogger(__name__)

# cashiers are admins
CASHIER_ONLY = "Only cashiers can validate discount codes"

@bp.post("")
@role_required("admin", message=CASHIER_ONLY)
def validate():
    data = request.get_json(silent=True) or {}
    location = data.get("location")
    if location is not None and not isinstance(location, str):
        location = None

    cashier = current_employee()
    logger.info("validation attempt by cashier %s from %s", cashier.id, get_client_ip())
    result = validation_service.validate_code(
        data.get("code"), data.get("amount"),
        validated_by=cashier.id, location=location,
    )
    if result.success:
        return ok("Discount applied", {"result": result.as_api()})
    # business outcomes are not HTTP errors; the terminal branches on result.error
    return err(result.message, 200, {"result": result.as_api()})

@bp.get("/lookup")
@role_required("admin", message=CASHIER_ONLY)
def lookup():
    raw = request.args.get("code") or ""
    if not raw.strip():
        return err("Code is required", 400)
    code = validation_service.lookup_code(raw)
    if code is None:
        return err("Code not found.", 404)
    return ok("code", {"code": validation_service.lookup_as_api(code)})

@bp.get("/recent")
@role_required("admin", message=CASHIER_ONLY)
def recent():
    raw = request.args.get("limit", "10")
    try:
        limit = int(raw)
    except ValueError:
        return err("Invalid limit parameter.", 400)
    if limit < 1 or limit > 100:
        return err("Invalid limit parameter.", 400)
    rows = ledger.recent_for_validator(current_employee().id, limit)
    return ok("recent validations", {"validations": [t.as_api() for t in rows]})
