from __future__ import annotations

import logging
from typing import Callable, Protocol

from .services.paths import is_within_root

logger = logging.getLogger(__name__)

PathPredicate = Callable[[str], bool]


class Authorization(Protocol):
    """Application level ACL consulted after the system permission checks."""

    def has_read_permission(self, path: str) -> bool:
        ...

    def has_write_permission(self, path: str) -> bool:
        ...


class AllowAll:
    def has_read_permission(self, path: str) -> bool:
        return True

    def has_write_permission(self, path: str) -> bool:
        return True


class CallbackAuthorization:
    def __init__(self, read: PathPredicate | None = None, write: PathPredicate | None = None):
        self._read = read
        self._write = write

    def has_read_permission(self, path: str) -> bool:
        return True if self._read is None else bool(self._read(path))

    def has_write_permission(self, path: str) -> bool:
        return True if self._write is None else bool(self._write(path))


class ScopedAuthorization:
    """Confines a user to ``home`` and everything below it."""

    def __init__(self, home: str, read_only: bool = False):
        self.home = home
        self.read_only = read_only

    def has_read_permission(self, path: str) -> bool:
        allowed = is_within_root(self.home, path)
        if not allowed:
            logger.info('Read outside of %s denied: %s', self.home, path)
        return allowed

    def has_write_permission(self, path: str) -> bool:
        if self.read_only:
            return False
        return self.has_read_permission(path)
