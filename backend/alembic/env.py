import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from mathstreak.db.base import Base
import mathstreak.db.models  # noqa: F401

config = context.config

url = config.get_main_option("sqlalchemy.url")
if not url:
    url = os.getenv("MATHSTREAK_DATABASE_URL", "")
if not url:
    raise RuntimeError("MATHSTREAK_DATABASE_URL must be set before running migrations.")
config.set_main_option("sqlalchemy.url", url)

if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=url.startswith("sqlite"),
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
