# perks/services/ledger.py
"""Append-only transaction ledger."""
from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..model import Transaction
from ..utils.money import D, round_money

SPEND_COLUMNS = {
    "original": Transaction.original_amount,
    "final": Transaction.final_amount,
}

def append(tx: Transaction) -> Transaction:
    db.session.add(tx)
    db.session.flush()
    return tx

def sum_spent(employee_id: int, start: datetime, until: datetime, basis: str = "original"):
    """Sum of the employee's amounts with start <= created_at <= until."""
    try:
        column = SPEND_COLUMNS[basis]
    except KeyError:
        raise ValueError(f"SPEND_BASIS must be one of {sorted(SPEND_COLUMNS)}") from None
    total = (db.session.query(func.coalesce(func.sum(column), 0))
             .filter(Transaction.employee_id == employee_id,
                     Transaction.created_at >= start,
                     Transaction.created_at <= until)
             .scalar())
    return round_money(D(total))

def count_for_code(code_id) -> int:
    return Transaction.query.filter(Transaction.discount_code_id == code_id).count()

def page_for_employee(employee_id: int, page: int, per_page: int):
    q = (Transaction.query
         .filter(Transaction.employee_id == employee_id)
         .order_by(Transaction.created_at.desc()))
    return q.paginate(page=page, per_page=per_page, error_out=False)

def recent_for_validator(validated_by: int, limit: int):
    return (Transaction.query
            .filter(Transaction.validated_by == validated_by)
            .order_by(Transaction.created_at.desc())
            .limit(limit)
            .all())
