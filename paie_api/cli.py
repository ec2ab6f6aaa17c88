"""`flask <command>` entries: demo seeding, RBAC, holidays and the batch worker."""
from datetime import date

import click
from flask import current_app

from paie_api.extensions import db

DEMO_PASSWORD = "4445"
DEMO_USERS = (
    ("admin@demo.local", "Admin Démo", "admin"),
    ("hr@demo.local", "RH Démo", "hr"),
)


@click.command("seed-core")
def seed_core():
    """Demo company with an admin and an HR account."""
    from paie_api import seed_rbac
    from paie_api.models.master import Company
    from paie_api.models.user import User

    company = Company.query.filter_by(code="DEMO").first()
    if company is None:
        company = Company(code="DEMO", name="Démo CI", country_code=current_app.config["PAIE_COUNTRY_CODE"])
        db.session.add(company)
        db.session.flush()

    for email, name, role in DEMO_USERS:
        user = User.query.filter_by(email=email).first()
        state = "existing"
        if user is None:
            user = User(email=email, full_name=name, status="active", company_id=company.id)
            user.set_password(DEMO_PASSWORD)
            db.session.add(user)
            db.session.flush()
            state = "created"
        seed_rbac.assign_role(user, role)
        click.echo(f"{email} ({state}) / {DEMO_PASSWORD} [{role}]")
    db.session.commit()
    click.echo(f"company {company.code} id={company.id}")


@click.command("seed-rbac")
def seed_rbac_cmd():
    """Roles, permission catalogue and role grants."""
    from paie_api import seed_rbac
    click.echo(seed_rbac.run())


@click.command("grant-admin")
@click.argument("email")
def grant_admin(email):
    """Give the admin role to an existing user."""
    from paie_api import seed_rbac
    from paie_api.models.user import User

    user = User.query.filter_by(email=email.strip().lower()).first()
    if user is None:
        raise click.ClickException(f"No user with email {email}")
    if not seed_rbac.assign_role(user, "admin"):
        click.echo(f"{user.email} is already admin")
        return
    db.session.commit()
    click.echo(f"Granted admin to {user.email}")


@click.command("seed-holidays")
@click.option("--year", type=int, default=None, help="Calendar year (defaults to the current one)")
@click.option("--country", default=None, help="ISO country code")
def seed_holidays(year, country):
    """Fixed-date public holidays of a year."""
    from paie_api.services.holidays import seed_fixed_holidays
    year = year or date.today().year
    created = seed_fixed_holidays(year, country or current_app.config["PAIE_COUNTRY_CODE"])
    click.echo(f"{created} public holidays created for {year}")


@click.command("process-batches")
@click.option("--company-id", type=int, default=None)
def process_batches(company_id):
    """Run every pending batch operation."""
    from paie_api.services.batch_processor import process_pending
    done = process_pending(company_id)
    click.echo(f"Processed {len(done)} batch operation(s)")


COMMANDS = (seed_core, seed_rbac_cmd, grant_admin, seed_holidays, process_batches)


def register_cli(app):
    for command in COMMANDS:
        app.cli.add_command(command)
