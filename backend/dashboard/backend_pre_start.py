import logging

from tenacity import after_log, before_log, retry, stop_after_attempt, wait_fixed

from dashboard.core.config import settings
from dashboard.core.db import Database, get_db

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

max_tries = 60 * 5  # 5 minutes
wait_seconds = 1


@retry(
    stop=stop_after_attempt(max_tries),
    wait=wait_fixed(wait_seconds),
    before=before_log(logger, logging.INFO),
    after=after_log(logger, logging.WARN),
)
def init(db: Database) -> None:
    try:
        # Try to run a statement to check if the DB is awake
        db.query("SELECT 1")
    except Exception as e:
        logger.error(e)
        raise e


def main() -> None:
    logger.info("Initializing service")
    init(get_db())
    logger.info("Service finished initializing")


if __name__ == "__main__":
    main()
