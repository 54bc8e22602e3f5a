import logging
from typing import Optional

logger: logging.Logger = logging.getLogger("restweave")


def setup_logging(should_debug: Optional[bool] = None) -> None:
    logging.basicConfig(
        format="%(message)s",
        datefmt="[%X]",
    )
    if should_debug:
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)
