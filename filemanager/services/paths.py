from __future__ import annotations

import logging
from pathlib import Path

from ..errors import PathTraversalError

logger = logging.getLogger(__name__)


def clean_path(path: str) -> str:
    """Canonical root-relative form of ``path``.

    Always absolute (``/``-prefixed), separators collapsed, ``.`` and ``..``
    folded lexically without ever climbing above ``/``. A trailing slash
    is kept since it marks a folder.
    """
    raw = (path or '').replace('\\', '/')
    trailing = raw.endswith('/') or raw.endswith('/.') or raw.endswith('/..') or raw in {'.', '..'}

    parts: list[str] = []
    for segment in raw.split('/'):
        if segment in {'', '.'}:
            continue
        if segment == '..':
            if parts:
                parts.pop()
            continue
        parts.append(segment)

    if not parts:
        return '/'
    cleaned = '/' + '/'.join(parts)
    return cleaned + '/' if trailing else cleaned


def resolve(root: str, relative_path: str) -> str:
    base = root.rstrip('/') if root != '/' else ''
    return base + clean_path(relative_path)


def is_within_root(root: str, absolute_path: str) -> bool:
    if '\x00' in absolute_path or '\x00' in root:
        return False
    base = Path(root).resolve(strict=False)
    candidate = Path(absolute_path).resolve(strict=False)
    return candidate == base or base in candidate.parents


class PathResolver:
    def __init__(self, root: str):
        self.root = root

    def resolve(self, relative_path: str) -> str:
        return resolve(self.root, relative_path)

    def is_valid(self, absolute_path: str) -> bool:
        return is_within_root(self.root, absolute_path)

    def resolve_strict(self, relative_path: str) -> str:
        absolute = self.resolve(relative_path)
        if not self.is_valid(absolute):
            logger.warning('Path traversal detected: %r resolves outside %s', relative_path, self.root)
            raise PathTraversalError('Path traversal detected')
        return absolute

    def relative_to_root(self, absolute_path: str) -> str:
        base = self.root.rstrip('/')
        if absolute_path == base or absolute_path == base + '/':
            return '/'
        if not absolute_path.startswith(base + '/'):
            raise PathTraversalError('Path traversal detected')
        return clean_path(absolute_path[len(base):])
