from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

TYPE_FILE = 'file'
TYPE_FOLDER = 'folder'


class FolderAttributes(BaseModel):
    name: str = ''
    path: str = ''
    readable: int = Field(default=1, ge=0, le=1)
    writable: int = Field(default=1, ge=0, le=1)
    created: str = ''
    modified: str = ''
    timestamp: Optional[int] = None


class FileAttributes(FolderAttributes):
    extension: str = ''
    size: int = 0
    width: int = 0
    height: int = 0


class FolderInfo(BaseModel):
    id: str
    type: Literal['folder'] = TYPE_FOLDER
    attributes: FolderAttributes


class FileInfo(BaseModel):
    id: str
    type: Literal['file'] = TYPE_FILE
    attributes: FileAttributes
