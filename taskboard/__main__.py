"""Run the API with uvicorn: ``python -m taskboard``."""

import os

import uvicorn

from taskboard.config import get_settings
from taskboard.logging_setup import setup_logging


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run(
        "taskboard.main:app",
        host=os.getenv("TASKBOARD_HOST", "127.0.0.1"),
        port=int(os.getenv("TASKBOARD_PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
