# eldercare/main.py
import asyncio
import logging

from eldercare.config import Settings
from eldercare.database import Database


def setup_logging(is_dev: bool) -> None:
    """
    Clean production logging:
    - app logs: INFO (or DEBUG in dev)
    - SQLAlchemy / HTTP client logs: WARNING+ (no query/pool spam)
    """
    app_level = logging.DEBUG if is_dev else logging.INFO

    logging.basicConfig(
        level=app_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    for name in (
        "sqlalchemy",
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "sqlalchemy.orm",
        "asyncpg",
        "aiosqlite",
        "httpx",
        "httpcore",
    ):
        logging.getLogger(name).setLevel(logging.WARNING)


async def main() -> None:
    settings = Settings.load()
    setup_logging(settings.is_dev)
    log = logging.getLogger("eldercare")

    if settings.ledger_backend == "rpc":
        # schema lives on the hosted backend (sql/ledger_procedures.sql)
        log.info("Ledger backend is rpc (%s); nothing to initialize locally", settings.rpc_url)
        return

    db = Database(settings.database_url)
    try:
        await db.init_models()
        log.info("DB initialized (%s)", db.dialect_name)
    except Exception:
        log.exception("DB initialization failed")
        raise
    finally:
        try:
            await db.close()
        except Exception:
            log.exception("Failed to close DB")


if __name__ == "__main__":
    asyncio.run(main())
