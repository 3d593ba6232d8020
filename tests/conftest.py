"""
Shared fixtures.

Every test gets a fresh SQLite file. Service tests run inside ``ctx``; HTTP
tests use ``client`` and seed through ``world`` without holding a context.
"""
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from flask_jwt_extended import create_access_token
from sqlalchemy import event
from sqlalchemy.dialects import postgresql

from perks import create_app
from perks.config import TestConfig
from perks.extensions import db
from perks.model import (
    DiscountCode, DiscountRule, Division, Employee, Transaction, CODE_USED,
)

NOW = datetime(2026, 3, 15, 12, 0, 0)


@pytest.fixture
def app(tmp_path):
    app = create_app(TestConfig, SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'perks.db'}")
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def make_employee(email, role="employee", limit=None, active=True, first="Ana", last="Silva"):
    e = Employee(email=email, role=role, is_active=active, first_name=first, last_name=last,
                 monthly_spending_limit=Decimal(str(limit)) if limit is not None else None)
    db.session.add(e)
    db.session.flush()
    return e


def make_division(name="Fashion", code="FASH", percent="10", active=True, rule_active=True):
    d = Division(name=name, code=code, is_active=active)
    if percent is not None:
        d.rules.append(DiscountRule(discount_percentage=Decimal(percent), is_active=rule_active))
    db.session.add(d)
    db.session.flush()
    return d


def add_spend(employee, division, amount, when=NOW, final=None):
    """Record a past redemption for the employee."""
    amount = Decimal(str(amount))
    code = DiscountCode(
        id=uuid.uuid4(), employee_id=employee.id, division_id=division.id,
        discount_percentage=Decimal("10"), manual_code="SEED00", qr_payload="{}",
        status=CODE_USED, expires_at=when + timedelta(minutes=5), created_at=when, used_at=when,
    )
    db.session.add(code)
    final = Decimal(str(final)) if final is not None else amount
    db.session.add(Transaction(
        discount_code_id=code.id, employee_id=employee.id, division_id=division.id,
        original_amount=amount, discount_percentage=Decimal("10"),
        discount_amount=amount - final, final_amount=final, created_at=when,
    ))
    db.session.flush()


@pytest.fixture
def seeded(ctx):
    """Employee Ana (10% Fashion, limit 500) and a cashier, inside an app context."""
    division = make_division()
    ana = make_employee("ana@example.com", limit=500)
    ana.divisions.append(division)
    cashier = make_employee("till@example.com", role="admin", first="Till", last="One")
    db.session.commit()
    return SimpleNamespace(division=division, ana=ana, cashier=cashier)


@pytest.fixture
def world(app):
    """Same data as ``seeded`` but only ids, for HTTP tests."""
    with app.app_context():
        division = make_division()
        ana = make_employee("ana@example.com", limit=500)
        ana.divisions.append(division)
        cashier = make_employee("till@example.com", role="admin", first="Till", last="One")
        db.session.commit()
        return SimpleNamespace(division_id=division.id, ana_id=ana.id, cashier_id=cashier.id)


def auth_headers(app, employee_id):
    with app.app_context():
        token = create_access_token(identity=str(employee_id))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def orm_selects(ctx):
    """ORM SELECTs issued on the current session, rendered as PostgreSQL."""
    seen = []
    session = db.session()

    def record(state):
        if state.is_select:
            seen.append(str(state.statement.compile(dialect=postgresql.dialect())))

    event.listen(session, "do_orm_execute", record)
    yield seen
    event.remove(session, "do_orm_execute", record)
