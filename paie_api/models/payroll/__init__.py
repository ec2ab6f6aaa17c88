# paie_api/models/payroll/__init__.py
from .pay_run import PayrollRun, PayrollRunItem

__all__ = ["PayrollRun", "PayrollRunItem"]
