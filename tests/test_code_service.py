import json
from datetime import timedelta
from decimal import Decimal

from conftest import NOW, add_spend, make_division, make_employee
from perks.extensions import db
from perks.model import DiscountCode, CODE_ACTIVE, CODE_EXPIRED
from perks.services import code_service, code_store
from perks.services.code_service import IssueError


class TestIssue:
    def test_issue_creates_active_code(self, seeded, app):
        res = code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW)

        assert res.success
        code = res.code
        assert code.status == CODE_ACTIVE
        assert code.discount_percentage == Decimal("10")
        assert code.expires_at == NOW + timedelta(seconds=300)
        assert len(code.manual_code) == 6
        assert set(code.manual_code) <= set(app.config["MANUAL_CODE_ALPHABET"])

    def test_qr_payload_carries_code_and_id(self, seeded):
        code = code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW).code

        payload = json.loads(code.qr_payload)
        assert payload["manual_code"] == code.manual_code
        assert payload["code_id"] == str(code.id)
        assert payload["division_id"] == seeded.division.id
        assert payload["discount_percentage"] == 10.0

    def test_ttl_is_configurable(self, seeded, app):
        app.config["CODE_TTL_SECONDS"] = 90
        code = code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW).code
        assert code.expires_at == NOW + timedelta(seconds=90)

    def test_new_code_supersedes_previous(self, seeded):
        first = code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW).code
        second = code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW + timedelta(seconds=10)).code

        db.session.refresh(first)
        assert first.status == CODE_EXPIRED
        assert second.status == CODE_ACTIVE
        active = DiscountCode.query.filter_by(employee_id=seeded.ana.id, status=CODE_ACTIVE).all()
        assert [c.id for c in active] == [second.id]

    def test_issue_locks_employee_row(self, seeded, orm_selects):
        code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW)

        locks = [sql for sql in orm_selects if sql.rstrip().endswith("FOR UPDATE")]
        assert len(locks) == 1
        assert "FROM employees" in locks[0]

    def test_rule_percentage_is_snapshotted(self, seeded):
        code = code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW).code
        seeded.division.active_rule.discount_percentage = Decimal("25")
        db.session.commit()

        db.session.refresh(code)
        assert code.discount_percentage == Decimal("10")


class TestIssueRefusals:
    def test_unknown_employee(self, seeded):
        res = code_service.issue_code(9999, seeded.division.id, now=NOW)
        assert res.error is IssueError.EMPLOYEE_NOT_FOUND

    def test_inactive_employee(self, seeded):
        seeded.ana.is_active = False
        db.session.commit()
        res = code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW)
        assert res.error is IssueError.EMPLOYEE_INACTIVE
        assert not res.success

    def test_unknown_division(self, seeded):
        res = code_service.issue_code(seeded.ana.id, 9999, now=NOW)
        assert res.error is IssueError.DIVISION_NOT_FOUND

    def test_not_assigned(self, seeded):
        other = make_division(name="Home", code="HOME", percent="15")
        db.session.commit()
        res = code_service.issue_code(seeded.ana.id, other.id, now=NOW)
        assert res.error is IssueError.NOT_ASSIGNED

    def test_inactive_division(self, seeded):
        seeded.division.is_active = False
        db.session.commit()
        res = code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW)
        assert res.error is IssueError.DIVISION_INACTIVE

    def test_no_active_rule(self, seeded):
        seeded.division.rules[0].is_active = False
        db.session.commit()
        res = code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW)
        assert res.error is IssueError.NO_DISCOUNT_RULE

    def test_zero_percent_rule(self, ctx):
        division = make_division(percent="0")
        emp = make_employee("zero@example.com")
        emp.divisions.append(division)
        db.session.commit()
        res = code_service.issue_code(emp.id, division.id, now=NOW)
        assert res.error is IssueError.NO_DISCOUNT_RULE

    def test_limit_reached(self, seeded):
        add_spend(seeded.ana, seeded.division, "500.00")
        db.session.commit()

        res = code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW)
        assert res.error is IssueError.LIMIT_REACHED
        assert "500.00" in res.message

    def test_refusal_keeps_existing_code(self, seeded):
        first = code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW).code
        seeded.division.is_active = False
        db.session.commit()

        code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW)
        db.session.refresh(first)
        assert first.status == CODE_ACTIVE

    def test_refusal_releases_employee_lock(self, seeded):
        seeded.division.is_active = False
        db.session.commit()

        code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW)
        assert not db.session.in_transaction()

    def test_code_space_exhausted(self, seeded, monkeypatch):
        first = code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW).code
        monkeypatch.setattr(code_store, "manual_code_in_use", lambda candidate: True)

        res = code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW)
        assert res.error is IssueError.CODE_SPACE_EXHAUSTED
        # supersession rolled back with the failed insert
        db.session.refresh(first)
        assert first.status == CODE_ACTIVE


class TestManualCode:
    def test_skips_codes_held_by_active_codes(self, ctx, monkeypatch):
        taken = iter([True, True, False])
        monkeypatch.setattr(code_store, "manual_code_in_use", lambda candidate: next(taken))
        assert code_service.generate_manual_code() is not None

    def test_respects_alphabet_and_length(self, ctx):
        ctx.config["MANUAL_CODE_ALPHABET"] = "AB"
        ctx.config["MANUAL_CODE_LENGTH"] = 8
        value = code_service.generate_manual_code()
        assert len(value) == 8
        assert set(value) <= {"A", "B"}


class TestActiveCode:
    def test_returns_live_code(self, seeded):
        code = code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW).code
        assert code_service.get_active_code(seeded.ana.id, now=NOW + timedelta(seconds=60)).id == code.id

    def test_expires_lazily(self, seeded):
        code = code_service.issue_code(seeded.ana.id, seeded.division.id, now=NOW).code

        assert code_service.get_active_code(seeded.ana.id, now=code.expires_at) is None
        db.session.refresh(code)
        assert code.status == CODE_EXPIRED

    def test_none_without_code(self, seeded):
        assert code_service.get_active_code(seeded.ana.id, now=NOW) is None


class TestAvailableDiscounts:
    def test_lists_active_divisions_with_rules(self, seeded):
        inactive = make_division(name="Old", code="OLD", active=False)
        no_rule = make_division(name="Bare", code="BARE", percent=None)
        seeded.ana.divisions.extend([inactive, no_rule])
        db.session.commit()

        out = code_service.available_discounts(seeded.ana)
        assert [d["division"]["code"] for d in out] == ["FASH"]
        assert out[0]["discount_percentage"] == 10.0

    def test_skips_zero_percent_rule(self, seeded):
        zero = make_division(name="Promo", code="PROMO", percent="0")
        seeded.ana.divisions.append(zero)
        db.session.commit()

        out = code_service.available_discounts(seeded.ana)
        assert [d["division"]["code"] for d in out] == ["FASH"]
        assert code_service.issue_code(seeded.ana.id, zero.id, now=NOW).error is IssueError.NO_DISCOUNT_RULE
