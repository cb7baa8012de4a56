"""Main entry point for the drill bot."""
import logging
import sys

from derdiedas.app import DrillBot
from derdiedas.config import ensure_directories
from derdiedas.logging_config import setup_logging
from derdiedas.services.catalog_service import CatalogError

logger = logging.getLogger(__name__)


def main() -> int:
    """Configure logging and run the bot."""
    ensure_directories()
    setup_logging("Starting DerDieDas ...")

    try:
        DrillBot().run()
    except CatalogError as e:
        logger.error(f"Cannot start without a catalog: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
