from __future__ import annotations

import logging

from .config import Settings
from .index import create_app
from .logging_config import configure_logging
from .services import build_services

settings = Settings.from_env()
configure_logging(settings)

logger = logging.getLogger(__name__)
logger.info(
    f"Starting gradeflow (environment={settings.environment}, "
    f"records={settings.record_store_backend}, blobs={settings.blob_store_backend}, "
    f"identity={settings.identity_backend})"
)

app = create_app(build_services(settings))
