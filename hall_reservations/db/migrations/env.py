from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from hall_reservations.core import config as settings
from hall_reservations.db.base import Base

alembic_config = context.config

# An explicit sqlalchemy.url (tests, -x overrides) wins over DATABASE_URL
url = alembic_config.get_main_option("sqlalchemy.url") or settings.DATABASE_URL
alembic_config.set_main_option("sqlalchemy.url", url)

if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)

target_metadata = Base.metadata

COMMON_OPTIONS = {
    "target_metadata": target_metadata,
    "compare_type": True,
    "compare_server_default": True,
    # SQLite cannot ALTER most constraints in place
    "render_as_batch": url.startswith("sqlite"),
}


def run_migrations_offline():
    """Emit SQL to stdout instead of touching a database."""
    context.configure(url=url, literal_binds=True, **COMMON_OPTIONS)

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = create_engine(url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, **COMMON_OPTIONS)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
