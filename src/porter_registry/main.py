# porter_registry/main.py
import os
import logging

from . import database

# --- Logging Setup ---
def setup_logging(level: str | None = None):
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


def main():
    """Prepares the configured store: connects and creates the registry tables."""
    setup_logging()
    logger = logging.getLogger(__name__)

    engine = database.init_engine()
    database.create_db_and_tables(engine)
    logger.info(f"Registry schema ready on {engine.url.render_as_string(hide_password=True)}")


if __name__ == "__main__":
    main()
