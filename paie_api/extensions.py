import os

from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()

PSYCOPG_PREFIXES = ("postgres://", "postgresql://")

# applied to PostgreSQL engines only
PG_ENGINE_OPTIONS = {
    "pool_pre_ping": True,
    "pool_recycle": 270,
    "pool_size": 5,
    "max_overflow": 2,
    "pool_timeout": 30,
}


def normalize_db_url(url: str) -> str:
    """Point bare postgres URLs at the psycopg 3 driver."""
    for prefix in PSYCOPG_PREFIXES:
        if url and url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def init_db(app):
    url = normalize_db_url(os.getenv("DATABASE_URL") or app.config.get("SQLALCHEMY_DATABASE_URI") or "")
    app.config["SQLALCHEMY_DATABASE_URI"] = url
    if url.startswith("postgresql"):
        app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", dict(PG_ENGINE_OPTIONS))
    db.init_app(app)
