from __future__ import annotations

import logging

import watchtower

from .config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings) -> None:
    """
    Configure the root logger once per process.

    Console output is always on. When ``CLOUDWATCH_LOG_GROUP`` is configured the
    same records are shipped to CloudWatch Logs through watchtower.
    """
    root = logging.getLogger()
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        level = logging.INFO
    root.setLevel(level)

    if not any(getattr(h, "_gradeflow", False) for h in root.handlers):
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        console._gradeflow = True
        root.addHandler(console)

    if settings.cloudwatch_log_group and not any(
        isinstance(h, watchtower.CloudWatchLogHandler) for h in root.handlers
    ):
        handler = watchtower.CloudWatchLogHandler(
            log_group_name=settings.cloudwatch_log_group,
            create_log_group=False,
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        logging.getLogger(__name__).info(
            f"CloudWatch logging enabled for group {settings.cloudwatch_log_group}"
        )

    # botocore is chatty at DEBUG and can echo request signatures
    logging.getLogger("botocore").setLevel(max(level, logging.INFO))
