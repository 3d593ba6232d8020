# perks/services/code_store.py
"""
Persistence for discount codes.

Status only ever moves active -> used or active -> expired. Every transition
goes through a conditional UPDATE guarded on ``status = 'active'`` so two
writers can never both win the same code.
"""
import logging
import uuid

from sqlalchemy import update

from ..extensions import db
from ..model import DiscountCode, CODE_ACTIVE, CODE_USED, CODE_EXPIRED

logger = logging.getLogger(__name__)

def add_code(code: DiscountCode) -> DiscountCode:
    db.session.add(code)
    db.session.flush()
    return code

def get_by_id(code_id) -> DiscountCode | None:
    try:
        key = code_id if isinstance(code_id, uuid.UUID) else uuid.UUID(str(code_id))
    except (TypeError, ValueError):
        return None
    return db.session.get(DiscountCode, key)

def get_by_manual_code(manual_code: str) -> DiscountCode | None:
    # manual codes are recycled once a code leaves "active"; newest wins
    return (DiscountCode.query
            .filter(DiscountCode.manual_code == manual_code)
            .order_by(DiscountCode.created_at.desc())
            .first())

def get_active_for_employee(employee_id: int) -> DiscountCode | None:
    return (DiscountCode.query
            .filter(DiscountCode.employee_id == employee_id,
                    DiscountCode.status == CODE_ACTIVE)
            .order_by(DiscountCode.created_at.desc())
            .first())

def manual_code_in_use(manual_code: str) -> bool:
    q = db.session.query(DiscountCode.id).filter(
        DiscountCode.manual_code == manual_code,
        DiscountCode.status == CODE_ACTIVE,
    )
    return db.session.query(q.exists()).scalar()

def expire_active_for_employee(employee_id: int) -> int:
    """Supersede every active code of the employee. Returns rows touched."""
    res = db.session.execute(
        update(DiscountCode)
        .where(DiscountCode.employee_id == employee_id,
               DiscountCode.status == CODE_ACTIVE)
        .values(status=CODE_EXPIRED)
        .execution_options(synchronize_session="fetch")
    )
    return res.rowcount or 0

def _transition(code: DiscountCode, new_status: str, **values) -> bool:
    res = db.session.execute(
        update(DiscountCode)
        .where(DiscountCode.id == code.id,
               DiscountCode.status == CODE_ACTIVE)
        .values(status=new_status, **values)
        .execution_options(synchronize_session=False)
    )
    won = res.rowcount == 1
    # keep the in-memory row honest for the caller either way
    db.session.refresh(code)
    return won

def claim(code: DiscountCode, now) -> bool:
    """active -> used. False when another validator got there first."""
    return _transition(code, CODE_USED, used_at=now)

def mark_expired(code: DiscountCode) -> bool:
    """active -> expired. False when the code had already left active."""
    won = _transition(code, CODE_EXPIRED)
    if won:
        logger.info("discount code %s expired", code.id)
    return won
