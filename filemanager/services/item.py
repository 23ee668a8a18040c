from __future__ import annotations

import logging
import os
import posixpath

from ..auth import Authorization
from ..config import Settings
from ..errors import ErrorKey, ItemError, raise_for
from ..schemas import FileAttributes, FileInfo, FolderAttributes, FolderInfo
from .paths import clean_path, resolve
from .storage import StorageBackend, file_extension

logger = logging.getLogger(__name__)

CHECKS = ('path', 'restrictions', 'read_permission', 'write_permission')


class Item:
    """A file or folder addressed by a path relative to the storage root.

    Existence and folder-ness are looked up once, when the item is created.
    A path that does not exist is a folder only if it ends with ``/``, so
    folder paths must always carry the trailing slash.
    """

    def __init__(
        self,
        relative_path: str,
        storage: StorageBackend,
        settings: Settings | None = None,
        authorization: Authorization | None = None,
    ):
        self.storage = storage
        self.settings = settings or storage.settings
        self.authorization = authorization or storage.authorization

        self.relative_path = relative_path
        self.absolute_path = resolve(storage.get_root(), relative_path)
        self.is_valid = storage.is_valid_path(self.absolute_path)
        self.exists = self.is_valid and os.path.exists(self.absolute_path)
        self.is_dir = self._detect_dir()

        self._parent: Item | None = None
        self._parent_resolved = False
        self._thumbnail: Item | None = None

    def __repr__(self) -> str:
        return f'Item({self.relative_path!r}, exists={self.exists}, is_dir={self.is_dir})'

    def _detect_dir(self) -> bool:
        if self.exists:
            return os.path.isdir(self.absolute_path)
        return self.relative_path.endswith('/')

    def _spawn(self, relative_path: str) -> Item:
        return Item(relative_path, self.storage, settings=self.settings, authorization=self.authorization)

    def get_info(self) -> FileInfo | FolderInfo:
        path = self.absolute_path
        stat = os.stat(path) if self.exists else None
        readable = (
            self.is_valid
            and self.storage.has_system_read_permission(path)
            and self.storage.has_read_permission(path, self.authorization)
        )
        writable = (
            self.is_valid
            and self.storage.has_system_write_permission(path)
            and self.storage.has_write_permission(path, self.authorization)
        )

        common = {
            'name': posixpath.basename(path.rstrip('/')),
            'path': self.storage.get_dynamic_path(path),
            'readable': int(readable),
            'writable': int(writable),
            'timestamp': int(stat.st_mtime) if stat else None,
            'modified': self.storage.format_date(stat.st_mtime) if stat else '',
            'created': '',
        }
        birth = getattr(stat, 'st_birthtime', None)
        if birth:
            common['created'] = self.storage.format_date(birth)

        if self.is_dir:
            return FolderInfo(id=self.relative_path, attributes=FolderAttributes(**common))

        attributes = FileAttributes(extension=file_extension(path), **common)
        if readable:
            attributes.size = self.storage.get_real_file_size(path)
            # empty files are never handed to the image decoder
            if attributes.size and self.storage.is_image_file(path):
                attributes.width, attributes.height = self.storage.get_image_size(path)
        return FileInfo(id=self.relative_path, attributes=attributes)

    def closest(self) -> Item | None:
        """Parent folder item, or None for the storage root."""
        if not self._parent_resolved:
            current = clean_path(self.relative_path)
            path = clean_path(posixpath.dirname(current.rstrip('/')))
            if path != '/':
                path += '/'
            if path != current:
                self._parent = self._spawn(path)
            self._parent_resolved = True
        return self._parent

    def thumbnail(self) -> Item:
        if self._thumbnail is None:
            self._thumbnail = self._spawn(self.thumbnail_path())
        return self._thumbnail

    def thumbnail_path(self) -> str:
        thumbnail_dir = self.settings.get('images.thumbnail.dir')
        return clean_path(f'/{thumbnail_dir}/{self.relative_path}')

    def is_root(self) -> bool:
        return self.storage.get_root().rstrip('/') == self.absolute_path.rstrip('/')

    def remove(self) -> None:
        if self.is_dir:
            self.storage.unlink_recursive(self.absolute_path)
        else:
            os.unlink(self.absolute_path)
            logger.info('Removed file %s', self.absolute_path)

    def check_path(self) -> ItemError | None:
        if not self.is_valid:
            reason = 'outside_root'
            logger.warning('Rejected %r: resolves outside of the storage root', self.relative_path)
        elif not self.exists:
            reason = 'missing'
        else:
            return None
        key = ErrorKey.DIRECTORY_NOT_EXIST if self.is_dir else ErrorKey.FILE_DOES_NOT_EXIST
        return ItemError(key, (self.relative_path,), reason)

    def check_restrictions(self) -> ItemError | None:
        # folders have no extension to check, only the path patterns apply
        if not self.is_dir and not self.storage.is_allowed_extension(self.relative_path):
            logger.info('Forbidden extension: %s', self.relative_path)
            return ItemError(ErrorKey.FORBIDDEN_NAME, (self.relative_path,), 'extension')
        if not self.storage.is_allowed_path(self.relative_path):
            logger.info('Forbidden path: %s', self.relative_path)
            return ItemError(ErrorKey.FORBIDDEN_NAME, (self.relative_path,), 'pattern')
        return None

    def is_unrestricted(self) -> bool:
        if not self.is_dir and not self.storage.is_allowed_extension(self.relative_path):
            return False
        return self.storage.is_allowed_path(self.relative_path)

    def check_read_permission(self) -> ItemError | None:
        if not self.is_valid:
            logger.warning('Read of %r refused: resolves outside of the storage root', self.relative_path)
            return ItemError(ErrorKey.NOT_ALLOWED_SYSTEM, (self.relative_path,), 'outside_root')
        if not self.storage.has_system_read_permission(self.absolute_path):
            logger.info('No system read permission on %s', self.absolute_path)
            return ItemError(ErrorKey.NOT_ALLOWED_SYSTEM, (self.relative_path,), 'system')
        if not self.authorization.has_read_permission(self.absolute_path):
            logger.info('Read denied by authorization: %s', self.absolute_path)
            return ItemError(ErrorKey.NOT_ALLOWED, (self.relative_path,), 'authorization')
        return None

    def check_write_permission(self) -> ItemError | None:
        path = self.absolute_path
        if not self.exists:
            # creating a new entry: what matters is whether the parent folder accepts it
            path = os.path.dirname(path.rstrip('/'))
        if not self.is_valid or not self.storage.is_valid_path(path):
            logger.warning('Write to %r refused: resolves outside of the storage root', self.relative_path)
            return ItemError(ErrorKey.NOT_ALLOWED_SYSTEM, (self.relative_path,), 'outside_root')

        if not self.storage.has_system_write_permission(path):
            logger.info('No system write permission on %s', path)
            return ItemError(ErrorKey.NOT_ALLOWED_SYSTEM, (self.relative_path,), 'system')
        if self.settings.get('security.read_only'):
            logger.info('Write to %s refused, storage is read-only', path)
            return ItemError(ErrorKey.NOT_ALLOWED, (self.relative_path,), 'read_only')
        if not self.authorization.has_write_permission(path):
            logger.info('Write denied by authorization: %s', path)
            return ItemError(ErrorKey.NOT_ALLOWED, (self.relative_path,), 'authorization')
        return None

    def require(self, *checks: str) -> None:
        """Run the named checks in order, raising FileManagerError on the first failure."""
        for name in checks or CHECKS:
            if name not in CHECKS:
                raise ValueError(f'Unknown check: {name}')
            raise_for(getattr(self, f'check_{name}')())
