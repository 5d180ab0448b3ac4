import logging
import sys

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _QuietThirdPartyFilter(logging.Filter):
    """Keep taskboard and server logs; let other libraries through at WARNING+."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith("taskboard") or name.startswith("uvicorn"):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level: str | int = logging.INFO) -> None:
    """
    Configure the root logger with a single stderr handler.

    Call this once, early. Calling it again replaces the handler instead of
    adding a duplicate.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    for handler in list(root.handlers):
        if getattr(handler, "_taskboard", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(_QuietThirdPartyFilter())
    handler._taskboard = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    logging.captureWarnings(True)
