import logging
import sys

from flowplanner.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    root_logger = logging.getLogger()
    resolved = (level or settings.log_level).upper()
    root_logger.setLevel(resolved)

    # create_app may run more than once in a process (tests, reload)
    if not any(getattr(h, "_flowplanner", False) for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._flowplanner = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
