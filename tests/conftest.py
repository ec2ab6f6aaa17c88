import os
from datetime import date
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from paie_api import create_app
from paie_api.extensions import db
from paie_api.models.employee import Employee, EmployeeSalary, EmploymentContract
from paie_api.models.master import Company
from paie_api.models.user import User


@pytest.fixture()
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def company(app):
    c = Company(code="T1", name="Test CI", country_code="CI", sector="services")
    db.session.add(c); db.session.commit()
    return c


@pytest.fixture()
def admin(app, company):
    u = User(email="admin@test.local", full_name="Admin Test", company_id=company.id, status="active")
    u.set_password("secret")
    db.session.add(u); db.session.commit()
    return u


@pytest.fixture()
def auth(app, company, admin):
    token = create_access_token(identity=str(admin.id),
                                additional_claims={"roles": ["admin"], "company_id": company.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_employee(company):
    counter = {"n": 0}

    def _make(base_salary="300000", contract_type="CDI", hire_date=date(2024, 1, 1),
              end_date=None, payment_frequency="MONTHLY", **fields):
        counter["n"] += 1
        e = Employee(company_id=company.id, code=f"E{counter['n']:03d}",
                     first_name=fields.pop("first_name", "Awa"),
                     last_name=fields.pop("last_name", f"Kone{counter['n']}"),
                     hire_date=hire_date, payment_frequency=payment_frequency, **fields)
        db.session.add(e); db.session.flush()
        db.session.add(EmploymentContract(
            company_id=company.id, employee_id=e.id, contract_type=contract_type,
            start_date=hire_date, end_date=end_date, is_active=True,
            cdd_reason="Accroissement temporaire d'activité" if contract_type == "CDD" else None))
        if base_salary is not None:
            db.session.add(EmployeeSalary(employee_id=e.id, base_salary=Decimal(base_salary),
                                          categorical_salary=Decimal(base_salary),
                                          effective_from=hire_date))
        db.session.commit()
        return e

    return _make
