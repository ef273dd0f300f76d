"""Media intake and inline-part encoding for generation requests."""

from __future__ import annotations

import asyncio
import base64
import binascii
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable

from app.errors import MediaReadError

DEFAULT_CONTENT_TYPE = "application/octet-stream"

ByteReader = Callable[[], Awaitable[bytes]]


def resolve_content_type(name: str, declared: str | None = None) -> str:
    """Prefer the declared content type, otherwise guess from the file name."""
    if declared and "/" in declared:
        return declared
    guessed, _ = mimetypes.guess_type(name)
    return guessed or DEFAULT_CONTENT_TYPE


def strip_data_url_prefix(payload: str) -> str:
    """Drop a leading ``data:<mime>;base64,`` prefix if present."""
    if payload.startswith("data:") and "," in payload:
        return payload.split(",", 1)[1]
    return payload


def _parse_data_url(data_url: str) -> tuple[str | None, str]:
    if not data_url.startswith("data:") or "," not in data_url:
        return None, data_url
    header = data_url[len("data:") : data_url.index(",")]
    mime = header.split(";", 1)[0].strip() or None
    return mime, strip_data_url_prefix(data_url)


@dataclass(slots=True, frozen=True)
class MediaFile:
    """User-selected input file handed to the pipeline by value."""

    name: str
    content_type: str
    size: int
    reader: ByteReader

    async def read_all_bytes(self) -> bytes:
        return await self.reader()

    @classmethod
    def from_path(cls, path: str | Path, content_type: str | None = None) -> "MediaFile":
        source = Path(path)
        size = source.stat().st_size if source.is_file() else 0

        async def _read() -> bytes:
            return await asyncio.to_thread(source.read_bytes)

        return cls(
            name=source.name,
            content_type=resolve_content_type(source.name, content_type),
            size=size,
            reader=_read,
        )

    @classmethod
    def from_bytes(cls, name: str, data: bytes, content_type: str | None = None) -> "MediaFile":
        payload = bytes(data)

        async def _read() -> bytes:
            return payload

        return cls(
            name=name,
            content_type=resolve_content_type(name, content_type),
            size=len(payload),
            reader=_read,
        )

    @classmethod
    def from_data_url(cls, name: str, data_url: str) -> "MediaFile":
        """Build a file from the ``FileReader.readAsDataURL`` browser form."""
        mime, encoded = _parse_data_url(data_url)
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise MediaReadError(f"Invalid base64 payload for {name}") from exc
        return cls.from_bytes(name, data, mime)


@dataclass(slots=True, frozen=True)
class EncodedPart:
    """Base64 inline payload plus its declared media type."""

    data: str
    mime_type: str

    def to_part(self) -> dict[str, Any]:
        return {"inline_data": {"data": self.data, "mime_type": self.mime_type}}


async def encode_media(file: MediaFile) -> EncodedPart:
    """Read a media file fully and encode it as a base64 inline part."""
    try:
        raw = await file.read_all_bytes()
    except OSError as exc:
        raise MediaReadError(f"Failed to read {file.name}: {exc}") from exc
    return EncodedPart(data=base64.b64encode(raw).decode("ascii"), mime_type=file.content_type)
