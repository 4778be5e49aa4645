"""Extension singletons: database, migrations and the access-token guard."""

from __future__ import annotations

from flask import Flask
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData

# Constraint names are stable across backends so IntegrityErrors can be
# matched by name (see ``violates``)
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

db: SQLAlchemy = SQLAlchemy(
    metadata=MetaData(naming_convention=NAMING_CONVENTION),
    session_options={"autoflush": False},
)
migrate = Migrate(render_as_batch=True)
jwt = JWTManager()


def init_app(app: Flask) -> None:
    """Bind the extensions to ``app``.

    Access tokens are minted by the token codec; ``flask-jwt-extended`` only
    verifies them on guarded routes, so its key is the access secret and
    never the refresh secret.
    """
    db.init_app(app)

    # Register the account table on the metadata before Alembic inspects it
    from authflow import models  # noqa: F401

    migrate.init_app(app, db, directory=app.config.get("MIGRATIONS_DIR", "migrations"))

    app.config["JWT_SECRET_KEY"] = app.config["ACCESS_TOKEN_SECRET"]
    jwt.init_app(app)
