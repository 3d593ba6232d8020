# perks/cli.py
from decimal import Decimal

import click
from flask.cli import with_appcontext
from flask_jwt_extended import create_access_token
from .extensions import db
from .model import AppSetting, DiscountRule, Division, Employee
from .services.limit_policy import DEFAULT_LIMIT_SETTING

@click.command("create-employee")
@with_appcontext
@click.option("--email", required=True)
@click.option("--first-name", default=None)
@click.option("--last-name", default=None)
@click.option("--role", type=click.Choice(["employee", "admin"]), default="employee")
@click.option("--limit", "monthly_limit", type=Decimal, default=None, help="monthly spending limit override")
def create_employee(email, first_name, last_name, role, monthly_limit):
    email = email.strip().lower()
    if Employee.query.filter_by(email=email).first():
        click.echo("Email already exists"); return
    e = Employee(email=email, first_name=first_name, last_name=last_name, role=role,
                 monthly_spending_limit=monthly_limit)
    db.session.add(e); db.session.commit()
    click.echo(f"Employee created: {e.id} {e.email}")

@click.command("create-division")
@with_appcontext
@click.option("--name", required=True)
@click.option("--code", required=True)
@click.option("--percent", type=Decimal, required=True, help="discount percentage for the division")
def create_division(name, code, percent):
    code = code.strip().upper()
    if not (Decimal(0) < percent <= Decimal(100)):
        raise click.BadParameter("percent must be > 0 and <= 100", param_hint="--percent")
    if Division.query.filter_by(code=code).first():
        click.echo("Division code already exists"); return
    d = Division(name=name, code=code)
    d.rules.append(DiscountRule(discount_percentage=percent, is_active=True))
    db.session.add(d); db.session.commit()
    click.echo(f"Division created: {d.id} {d.code} ({percent}%)")

@click.command("assign-division")
@with_appcontext
@click.option("--email", required=True)
@click.option("--division", "division_code", required=True)
def assign_division(email, division_code):
    e = Employee.query.filter_by(email=email.strip().lower()).first()
    d = Division.query.filter_by(code=division_code.strip().upper()).first()
    if not e or not d:
        click.echo("Employee or division not found"); return
    if d not in e.divisions:
        e.divisions.append(d)
        db.session.commit()
    click.echo(f"{e.email} assigned to {d.code}")

@click.command("set-default-limit")
@with_appcontext
@click.argument("amount", type=Decimal)
def set_default_limit(amount):
    if amount < 0:
        raise click.BadParameter("amount must be >= 0")
    row = db.session.get(AppSetting, DEFAULT_LIMIT_SETTING) or AppSetting(key=DEFAULT_LIMIT_SETTING)
    row.value = str(amount)
    db.session.add(row); db.session.commit()
    click.echo(f"Default monthly limit set to {amount}")

@click.command("issue-token")
@with_appcontext
@click.option("--email", required=True)
def issue_token(email):
    """Print an access token for an employee (development only)."""
    e = Employee.query.filter_by(email=email.strip().lower()).first()
    if not e:
        click.echo("Employee not found"); return
    click.echo(create_access_token(identity=str(e.id)))

def register_cli(app):
    for cmd in (create_employee, create_division, assign_division, set_default_limit, issue_token):
        app.cli.add_command(cmd)
