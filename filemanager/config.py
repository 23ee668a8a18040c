from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ALLOW_LIST = 'ALLOW_LIST'
DISALLOW_LIST = 'DISALLOW_LIST'


class RestrictionRules(BaseModel):
    policy: str = Field(default=DISALLOW_LIST, pattern='^(ALLOW_LIST|DISALLOW_LIST)$')
    ignore_case: bool = True
    restrictions: list[str] = []


class SecuritySettings(BaseModel):
    read_only: bool = False
    extensions: RestrictionRules = RestrictionRules(
        policy=ALLOW_LIST,
        restrictions=[
            '', 'jpg', 'jpe', 'jpeg', 'gif', 'png', 'svg', 'webp', 'bmp', 'txt', 'md', 'csv', 'pdf',
            'odt', 'ods', 'odp', 'doc', 'docx', 'xls', 'xlsx', 'ppt', 'pptx', 'rtf', 'zip', 'tar', 'gz',
            'ogv', 'mp4', 'webm', 'm4v', 'ogg', 'mp3', 'wav', 'json', 'xml', 'html', 'css',
        ],
    )
    patterns: RestrictionRules = RestrictionRules(
        policy=DISALLOW_LIST,
        restrictions=['*/.thumbs/*', '*/.htaccess', '*/web.config', '*/.DS_Store', '*/.git/*'],
    )


class ThumbnailSettings(BaseModel):
    dir: str = '_thumbs'

    @field_validator('dir')
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        return value.strip('/')


class ImageSettings(BaseModel):
    thumbnail: ThumbnailSettings = ThumbnailSettings()
    extensions: list[str] = ['jpg', 'jpe', 'jpeg', 'gif', 'png', 'svg', 'webp', 'bmp']


class OptionSettings(BaseModel):
    date_format: str = '%d %b %Y %H:%M'


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        env_prefix='FM_',
        env_nested_delimiter='__',
        extra='ignore',
    )

    app_name: str = 'File Manager'
    root: str = '/srv/filemanager'
    document_root: str = ''
    log_level: str = 'info'
    security: SecuritySettings = SecuritySettings()
    images: ImageSettings = ImageSettings()
    options: OptionSettings = OptionSettings()

    def get(self, key: str) -> Any:
        """Dotted lookup, e.g. ``settings.get('images.thumbnail.dir')``."""
        node: Any = self
        for part in key.split('.'):
            if not isinstance(node, BaseModel) or part not in type(node).model_fields:
                raise KeyError(key)
            node = getattr(node, part)
        return node


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
