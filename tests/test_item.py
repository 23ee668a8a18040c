from __future__ import annotations

import os

import cv2
import numpy as np
import pytest

from filemanager.auth import CallbackAuthorization
from filemanager.config import Settings
from filemanager.schemas import FileInfo, FolderInfo
from filemanager.services.item import Item
from filemanager.services.storage import LocalStorage


@pytest.fixture
def storage(tmp_path):
    (tmp_path / 'docs').mkdir()
    (tmp_path / 'docs' / 'a.txt').write_bytes(b'x' * 120)
    return LocalStorage(Settings(root=str(tmp_path)))


def test_existing_file_is_resolved(storage, tmp_path):
    item = Item('/docs/a.txt', storage)
    assert item.absolute_path == f'{tmp_path}/docs/a.txt'
    assert item.exists
    assert not item.is_dir


def test_existing_folder_without_trailing_slash_is_a_folder(storage):
    assert Item('/docs', storage).is_dir


def test_missing_path_type_comes_from_trailing_slash(storage):
    assert Item('/new-folder/', storage).is_dir
    assert not Item('/new-file.txt', storage).is_dir
    assert not Item('/new-file.txt', storage).exists


def test_is_dir_is_fixed_at_construction(storage, tmp_path):
    item = Item('/later', storage)
    (tmp_path / 'later').mkdir()
    assert not item.exists
    assert not item.is_dir


def test_get_info_for_file(storage):
    info = Item('/docs/a.txt', storage).get_info()

    assert isinstance(info, FileInfo)
    assert info.id == '/docs/a.txt'
    assert info.type == 'file'
    assert info.attributes.name == 'a.txt'
    assert info.attributes.extension == 'txt'
    assert info.attributes.size == 120
    assert info.attributes.readable == 1
    assert info.attributes.writable == 1
    assert info.attributes.path == '/docs/a.txt'
    assert isinstance(info.attributes.timestamp, int)
    assert info.attributes.modified


def test_get_info_for_folder(storage):
    info = Item('/docs/', storage).get_info()

    assert isinstance(info, FolderInfo)
    assert info.type == 'folder'
    assert info.attributes.name == 'docs'
    assert info.attributes.path == '/docs/'
    assert not hasattr(info.attributes, 'size')


def test_get_info_on_missing_item_is_best_effort(storage):
    info = Item('/ghost.txt', storage).get_info()
    assert info.attributes.readable == 0
    assert info.attributes.writable == 0
    assert info.attributes.timestamp is None
    assert info.attributes.modified == ''
    assert info.attributes.size == 0


def test_unreadable_file_has_no_size_or_dimensions(storage, monkeypatch, tmp_path):
    cv2.imwrite(str(tmp_path / 'pic.png'), np.zeros((10, 20, 3), dtype=np.uint8))
    calls = []
    monkeypatch.setattr(storage, 'has_system_read_permission', lambda path: False)
    monkeypatch.setattr(storage, 'get_real_file_size', lambda path: calls.append(path) or 1)
    monkeypatch.setattr(storage, 'get_image_size', lambda path: calls.append(path) or (1, 1))

    info = Item('/pic.png', storage).get_info()

    assert info.attributes.readable == 0
    assert (info.attributes.size, info.attributes.width, info.attributes.height) == (0, 0, 0)
    assert calls == []


def test_image_dimensions(storage, tmp_path):
    cv2.imwrite(str(tmp_path / 'pic.png'), np.zeros((10, 20, 3), dtype=np.uint8))
    info = Item('/pic.png', storage).get_info()
    assert (info.attributes.width, info.attributes.height) == (20, 10)


def test_empty_image_is_never_decoded(storage, monkeypatch, tmp_path):
    (tmp_path / 'empty.png').write_bytes(b'')

    def _fail(path):
        raise AssertionError('decoder must not run on empty files')

    monkeypatch.setattr(storage, 'get_image_size', _fail)
    info = Item('/empty.png', storage).get_info()
    assert (info.attributes.size, info.attributes.width, info.attributes.height) == (0, 0, 0)


def test_closest_walks_up_to_root(storage):
    item = Item('/docs/a.txt', storage)
    parent = item.closest()
    assert parent.relative_path == '/docs/'
    assert parent.is_dir

    root = parent.closest()
    assert root.relative_path == '/'
    assert root.is_root()
    assert root.closest() is None


def test_closest_of_nested_folder(storage):
    assert Item('/docs/sub/', storage).closest().relative_path == '/docs/'


def test_closest_is_cached(storage):
    item = Item('/docs/a.txt', storage)
    assert item.closest() is item.closest()


def test_thumbnail_points_into_thumbnail_folder(storage):
    item = Item('/docs/a.txt', storage)
    assert item.thumbnail().relative_path == '/_thumbs/docs/a.txt'
    assert item.thumbnail() is item.thumbnail()
    assert Item('/docs/', storage).thumbnail().relative_path == '/_thumbs/docs/'
    assert Item('/docs/', storage).thumbnail().is_dir


def test_thumbnail_dir_from_settings(tmp_path):
    storage = LocalStorage(Settings(root=str(tmp_path), images={'thumbnail': {'dir': '/.thumbs/'}}))
    assert Item('/a.png', storage).thumbnail().relative_path == '/.thumbs/a.png'


def test_traversal_path_stays_in_root(storage, tmp_path):
    item = Item('/secret/../../etc/passwd', storage)
    assert item.absolute_path == f'{tmp_path}/etc/passwd'
    assert not item.exists


def test_remove_file_and_folder(storage, tmp_path):
    Item('/docs/a.txt', storage).remove()
    assert not (tmp_path / 'docs' / 'a.txt').exists()

    (tmp_path / 'docs' / 'deep').mkdir()
    Item('/docs/', storage).remove()
    assert not (tmp_path / 'docs').exists()


@pytest.mark.parametrize(
    'path, parent',
    [
        ('/docs/../', None),
        ('/docs/./', '/'),
        ('/a/./', '/'),
        ('/docs/sub/../a.txt', '/docs/'),
    ],
)
def test_closest_uses_cleaned_path(storage, path, parent):
    item = Item(path, storage)
    found = item.closest()
    if parent is None:
        assert item.is_root()
        assert found is None
    else:
        assert not item.is_root()
        assert found.relative_path == parent


def test_get_info_uses_item_authorization(storage):
    item = Item('/docs/a.txt', storage, authorization=CallbackAuthorization(read=lambda p: False, write=lambda p: False))
    info = item.get_info()

    assert item.check_read_permission() is not None
    assert (info.attributes.readable, info.attributes.writable, info.attributes.size) == (0, 0, 0)


def test_get_info_on_symlink_escape_reports_nothing(tmp_path):
    root = tmp_path / 'root'
    root.mkdir()
    (tmp_path / 'secret.txt').write_bytes(b'x' * 50)
    os.symlink(tmp_path, root / 'escape')
    storage = LocalStorage(Settings(root=str(root)))

    info = Item('/escape/secret.txt', storage).get_info()
    assert (info.attributes.readable, info.attributes.writable, info.attributes.size) == (0, 0, 0)
