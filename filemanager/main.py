from __future__ import annotations

import logging

from .auth import Authorization
from .config import Settings, get_settings
from .logging_config import setup_logging
from .services.storage import LocalStorage

logger = logging.getLogger(__name__)


def create_storage(settings: Settings | None = None, authorization: Authorization | None = None) -> LocalStorage:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    storage = LocalStorage(settings, authorization)
    storage.set_root(settings.root, mkdir=True)
    logger.info('%s serving %s storage at %s', settings.app_name, storage.get_name(), storage.get_root())
    return storage

