"""
Migration Runner - Applies Alembic migrations at application startup.

Enabled with RUN_MIGRATIONS=true; otherwise run `alembic upgrade head`
before deploying.
"""

from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import Connection, create_engine, pool
from structlog import get_logger

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from calculator_api.config import settings

logger = get_logger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]
ALEMBIC_INI_PATH = PROJECT_ROOT / "alembic.ini"


def get_sync_database_url(url: str | None = None) -> str:
    """
    Convert the async DATABASE_URL to its psycopg2 form.

    Alembic drives migrations over a synchronous connection.
    """
    return (url or settings.database_url).replace("+asyncpg", "+psycopg2")


def build_alembic_config(connection: Connection | None = None) -> Config:
    """Alembic config pointing at the project's migrations, optionally bound to a connection."""
    alembic_cfg = Config(str(ALEMBIC_INI_PATH))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", get_sync_database_url().replace("%", "%%"))
    if connection is not None:
        # env.py reuses this connection instead of opening its own
        alembic_cfg.attributes["connection"] = connection
    return alembic_cfg


def configure_alembic_logging(alembic_cfg: Config) -> None:
    """
    Apply alembic.ini logging for the `alembic` CLI only.

    When run_migrations() drives the upgrade inside the app, structlog owns
    the root logger and alembic.ini must not replace its handlers or level.
    """
    if alembic_cfg.attributes.get("connection") is not None:
        return
    if alembic_cfg.config_file_name is not None:
        fileConfig(alembic_cfg.config_file_name, disable_existing_loggers=False)


def pending_upgrade(connection: Connection, alembic_cfg: Config) -> tuple[str | None, str | None]:
    """Return (current, head) when the schema is behind, else (current, None)."""
    current = MigrationContext.configure(connection).get_current_revision()
    head = ScriptDirectory.from_config(alembic_cfg).get_current_head()
    return current, (head if head != current else None)


def run_migrations() -> None:
    """
    Upgrade the schema to head if it is behind.

    Raises:
        RuntimeError: Migration failed; the application must not start
    """
    if not ALEMBIC_INI_PATH.exists():
        logger.warning("migrations_skipped", reason="alembic_ini_missing", path=str(ALEMBIC_INI_PATH))
        return

    engine = create_engine(get_sync_database_url(), poolclass=pool.NullPool)
    try:
        with engine.begin() as connection:
            alembic_cfg = build_alembic_config(connection)
            current, head = pending_upgrade(connection, alembic_cfg)

            if head is None:
                logger.info("schema_up_to_date", revision=current)
                return

            logger.info("migrations_starting", from_revision=current, to_revision=head)
            command.upgrade(alembic_cfg, "head")
            logger.info("migrations_complete", revision=head)
    except Exception as exc:
        logger.error("migrations_failed", error=str(exc), exc_info=True)
        raise RuntimeError(f"Database migration failed: {exc}") from exc
    finally:
        engine.dispose()
