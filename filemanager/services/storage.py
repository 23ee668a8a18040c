from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime
from fnmatch import fnmatchcase
from typing import Protocol

import cv2

from ..auth import AllowAll, Authorization
from ..config import ALLOW_LIST, RestrictionRules, Settings, get_settings
from ..errors import PathTraversalError
from .paths import PathResolver, clean_path

logger = logging.getLogger(__name__)


def file_extension(path: str) -> str:
    name = path.rstrip('/').rsplit('/', 1)[-1]
    if '.' not in name:
        return ''
    return name.rsplit('.', 1)[1]


class StorageBackend(Protocol):
    name: str
    settings: Settings
    authorization: Authorization

    def get_name(self) -> str:
        ...

    def get_root(self) -> str:
        ...

    def set_root(self, path: str, mkdir: bool = False, relative_to_document_root: bool = False) -> None:
        ...

    def get_dynamic_root(self) -> str:
        ...

    def has_read_permission(self, path: str, authorization: Authorization | None = None) -> bool:
        ...

    def has_write_permission(self, path: str, authorization: Authorization | None = None) -> bool:
        ...

    def has_system_read_permission(self, path: str) -> bool:
        ...

    def has_system_write_permission(self, path: str) -> bool:
        ...

    def is_allowed_extension(self, relative_path: str) -> bool:
        ...

    def is_allowed_path(self, relative_path: str) -> bool:
        ...

    def is_valid_path(self, absolute_path: str) -> bool:
        ...

    def is_image_file(self, path: str) -> bool:
        ...

    def get_real_file_size(self, path: str) -> int:
        ...

    def get_image_size(self, path: str) -> tuple[int, int]:
        ...

    def format_date(self, timestamp: float) -> str:
        ...

    def get_dynamic_path(self, absolute_path: str) -> str:
        ...

    def clean_path(self, path: str) -> str:
        ...

    def unlink_recursive(self, path: str) -> None:
        ...


class LocalStorage:
    name = 'local'

    def __init__(
        self,
        settings: Settings | None = None,
        authorization: Authorization | None = None,
        root: str | None = None,
    ):
        self.settings = settings or get_settings()
        self.authorization = authorization or AllowAll()
        self._resolver = PathResolver('/')
        self.set_root(root or self.settings.root)

    def get_name(self) -> str:
        return self.name

    def get_root(self) -> str:
        return self._resolver.root

    def set_root(self, path: str, mkdir: bool = False, relative_to_document_root: bool = False) -> None:
        if relative_to_document_root:
            path = self.settings.document_root.rstrip('/') + '/' + path.lstrip('/')
        root = os.path.abspath(path).rstrip('/') + '/'
        if mkdir:
            os.makedirs(root, exist_ok=True)
        self._resolver = PathResolver(root)
        logger.debug('Storage root set to %s', root)

    def get_dynamic_root(self) -> str:
        root = self.get_root()
        doc_root = self.settings.document_root.rstrip('/')
        if doc_root and root.startswith(doc_root + '/'):
            return clean_path(root[len(doc_root):]).rstrip('/') + '/'
        return root

    def clean_path(self, path: str) -> str:
        return clean_path(path)

    def is_valid_path(self, absolute_path: str) -> bool:
        return self._resolver.is_valid(absolute_path)

    def _relative(self, absolute_path: str) -> str | None:
        try:
            return self._resolver.relative_to_root(absolute_path)
        except PathTraversalError:
            return None

    def has_read_permission(self, path: str, authorization: Authorization | None = None) -> bool:
        relative = self._relative(path)
        if relative is None or not self._is_unrestricted(relative, os.path.isdir(path)):
            return False
        return (authorization or self.authorization).has_read_permission(path)

    def has_write_permission(self, path: str, authorization: Authorization | None = None) -> bool:
        if self.settings.security.read_only:
            return False
        relative = self._relative(path)
        if relative is None or not self._is_unrestricted(relative, os.path.isdir(path)):
            return False
        return (authorization or self.authorization).has_write_permission(path)

    def _is_unrestricted(self, relative_path: str, is_dir: bool) -> bool:
        if not is_dir and not self.is_allowed_extension(relative_path):
            return False
        return self.is_allowed_path(relative_path)

    def has_system_read_permission(self, path: str) -> bool:
        return os.path.exists(path) and os.access(path, os.R_OK)

    def has_system_write_permission(self, path: str) -> bool:
        return os.path.exists(path) and os.access(path, os.W_OK)

    def is_allowed_extension(self, relative_path: str) -> bool:
        rules = self.settings.security.extensions
        extension = file_extension(relative_path)
        restrictions = rules.restrictions
        if rules.ignore_case:
            extension = extension.lower()
            restrictions = [r.lower() for r in restrictions]
        listed = extension in restrictions
        return listed if rules.policy == ALLOW_LIST else not listed

    def is_allowed_path(self, relative_path: str) -> bool:
        rules = self.settings.security.patterns
        subject = clean_path(relative_path)
        listed = _matches_any(subject, rules)
        return listed if rules.policy == ALLOW_LIST else not listed

    def is_image_file(self, path: str) -> bool:
        extension = file_extension(path).lower()
        return extension in {e.lower() for e in self.settings.images.extensions}

    def get_real_file_size(self, path: str) -> int:
        try:
            return os.path.getsize(path)
        except OSError:
            return 0

    def get_image_size(self, path: str) -> tuple[int, int]:
        image = cv2.imread(path, cv2.IMREAD_UNCHANGED)
        if image is None:
            logger.warning('Could not decode image %s', path)
            return 0, 0
        height, width = image.shape[:2]
        return int(width), int(height)

    def format_date(self, timestamp: float) -> str:
        return datetime.fromtimestamp(timestamp).strftime(self.settings.options.date_format)

    def get_dynamic_path(self, absolute_path: str) -> str:
        relative = self._relative(absolute_path) or '/'
        if os.path.isdir(absolute_path) and not relative.endswith('/'):
            relative += '/'
        return relative

    def unlink_recursive(self, path: str) -> None:
        shutil.rmtree(path)
        logger.info('Removed folder %s', path)


def _matches_any(subject: str, rules: RestrictionRules) -> bool:
    patterns = rules.restrictions
    if rules.ignore_case:
        subject = subject.lower()
        patterns = [p.lower() for p in patterns]
    return any(fnmatchcase(subject, pattern) for pattern in patterns)
