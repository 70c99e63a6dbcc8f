"""Pydantic models for clipharness configuration validation."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clipharness.clipboard.types import USER_FORMATS, FormatTag

# 1x1 transparent PNG, used when no image source is configured
DEFAULT_IMAGE_PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class ChannelApi(str, Enum):
    """Which transfer channel adapter writes the system clipboard."""

    DATA_TRANSFER = "data_transfer"  # capture listener + capture request
    ASYNC_CLIPBOARD = "async_clipboard"  # direct async clipboard calls


class StorageMode(str, Enum):
    """Where copied content is replicated."""

    CLIPBOARD = "clipboard"  # channel only
    MIRRORED = "local_storage_and_clipboard"  # channel + mirror store


class ContentConfig(BaseModel):
    """Content sources the harness copies.

    Each source is either literal content or an http(s) URL that is fetched
    when the format is resolved. The image source, when literal, is base64.

    Example in config.json:
        "content": {
            "text": "Hello",
            "image": "https://example.com/logo.png",
            "resolve_delay": 0.5
        }
    """

    model_config = ConfigDict(extra="forbid")

    text: str = "Hello from clipharness"
    """Plain-text source."""

    html: str = "<b>Hello</b> from <i>clipharness</i>"
    """Rich-text source (wrapped with the timestamp marker on copy)."""

    custom: str = '{"workbook": {"sheets": [{"name": "Sheet1", "cells": {"A1": "Hello"}}]}}'
    """Custom-format source. Must be a JSON document."""

    image: str = DEFAULT_IMAGE_PNG_BASE64
    """Image source: base64 PNG or a URL."""

    resolve_delay: float = Field(default=0.0, ge=0.0, le=60.0)
    """Artificial delay in seconds before resolved content is published."""

    request_timeout: float = Field(default=10.0, gt=0)
    """Timeout in seconds when fetching URL sources."""

    def source_for(self, tag: str) -> str | None:
        return {
            FormatTag.TEXT.value: self.text,
            FormatTag.HTML.value: self.html,
            FormatTag.CUSTOM.value: self.custom,
            FormatTag.IMAGE.value: self.image,
        }.get(tag)


class MirrorConfig(BaseModel):
    """Mirror store settings."""

    model_config = ConfigDict(extra="forbid")

    path: str | None = None
    """SQLite file shared by all contexts of the origin (default ~/.clipharness/mirror.db)."""


class HarnessConfig(BaseModel):
    """Root configuration."""

    model_config = ConfigDict(extra="forbid")

    clipboard_api: ChannelApi = ChannelApi.DATA_TRANSFER
    """Transfer channel adapter: data_transfer or async_clipboard."""

    data_storage: StorageMode = StorageMode.MIRRORED
    """Replication policy: clipboard only, or clipboard plus mirror store."""

    copy_formats: list[FormatTag] = Field(
        default_factory=lambda: [FormatTag.TEXT, FormatTag.HTML, FormatTag.IMAGE]
    )
    """Formats copied when a copy does not name its own."""

    capture_timeout: float = Field(default=2.0, gt=0)
    """Seconds to wait for a keyboard capture signal before giving up."""

    mirror: MirrorConfig = Field(default_factory=MirrorConfig)
    content: ContentConfig = Field(default_factory=ContentConfig)

    @field_validator("copy_formats")
    @classmethod
    def validate_copy_formats(cls, v: list[FormatTag]) -> list[FormatTag]:
        """Only user formats, no duplicates (order kept)."""
        seen: list[FormatTag] = []
        for tag in v:
            if tag not in USER_FORMATS:
                raise ValueError(f"'{tag.value}' is not a copyable format")
            if tag not in seen:
                seen.append(tag)
        return seen

    @property
    def mirroring_enabled(self) -> bool:
        return self.data_storage == StorageMode.MIRRORED
