from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKey(str, Enum):
    DIRECTORY_NOT_EXIST = 'DIRECTORY_NOT_EXIST'
    FILE_DOES_NOT_EXIST = 'FILE_DOES_NOT_EXIST'
    FORBIDDEN_NAME = 'FORBIDDEN_NAME'
    INVALID_FILE_TYPE = 'INVALID_FILE_TYPE'
    NOT_ALLOWED_SYSTEM = 'NOT_ALLOWED_SYSTEM'
    NOT_ALLOWED = 'NOT_ALLOWED'


@dataclass(frozen=True)
class ItemError:
    """Outcome of a failed item check.

    ``args`` is the positional context passed on to whoever localizes the
    message (usually the relative path). ``reason`` tells apart causes that
    share one key, e.g. ``missing`` and ``outside_root`` for
    ``FILE_DOES_NOT_EXIST``.
    """

    key: ErrorKey
    args: tuple[str, ...] = ()
    reason: str = ''


class FileManagerError(Exception):
    def __init__(self, error: ItemError):
        super().__init__(error.key.value, *error.args)
        self.error = error

    @property
    def key(self) -> ErrorKey:
        return self.error.key


class PathTraversalError(PermissionError):
    pass


def raise_for(error: ItemError | None) -> None:
    if error is not None:
        raise FileManagerError(error)
