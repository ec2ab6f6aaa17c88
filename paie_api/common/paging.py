"""Query-string paging and the lenient parsers shared by the blueprints."""
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from flask import request

DEFAULT_SIZE = 20
MAX_SIZE = 100


def _int_arg(name: str, default: int, lo: int, hi: Optional[int] = None) -> int:
    try:
        value = int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default
    value = max(value, lo)
    return min(value, hi) if hi is not None else value


def page_limit():
    """?page=&size= (1-based page)."""
    return _int_arg("page", 1, 1), _int_arg("size", DEFAULT_SIZE, 1, MAX_SIZE)


def limit_offset(default_limit=50, max_limit=100):
    """?limit=&offset= as used by the termination, workflow and batch lists."""
    return _int_arg("limit", default_limit, 1, max_limit), _int_arg("offset", 0, 0)


def text_q():
    return (request.args.get("q") or "").strip() or None


def parse_date(s) -> Optional[date]:
    if isinstance(s, date):
        return s
    try:
        return date.fromisoformat(str(s)[:10]) if s else None
    except ValueError:
        return None


def parse_dec(x) -> Optional[Decimal]:
    if x is None or x == "":
        return None
    try:
        return Decimal(str(x))
    except InvalidOperation:
        return None


def iso(v):
    return v.isoformat() if v is not None else None


def num(v):
    return float(v) if v is not None else None
