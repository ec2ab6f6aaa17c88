"""Alembic environment bound to the paie_api Flask app."""
from logging.config import fileConfig

from alembic import context
from flask import current_app, has_app_context
from sqlalchemy import engine_from_config, pool

from paie_api import create_app
from paie_api.extensions import db

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

# `flask db ...` runs inside an app context; bare `alembic` does not
app = current_app._get_current_object() if has_app_context() else create_app()

URL = app.config["SQLALCHEMY_DATABASE_URI"]
config.set_main_option("sqlalchemy.url", URL.replace("%", "%%"))

OPTIONS = {
    "target_metadata": db.metadata,
    "compare_type": True,
    "render_as_batch": URL.startswith("sqlite"),
}


def run_offline():
    context.configure(url=URL, literal_binds=True, **OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_online():
    engine = engine_from_config(config.get_section(config.config_ini_section, {}),
                                prefix="sqlalchemy.", poolclass=pool.NullPool)
    with engine.connect() as connection, app.app_context():
        context.configure(connection=connection, **OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
