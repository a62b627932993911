"""
Helpers for moving images between data URIs, raw base64 and bytes.

Everything the adapters send upstream goes through `SourceImage`, so every
provider sees the same un-prefixed base64 payload and the same MIME type.
"""

from __future__ import annotations

import base64
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_MIME = "image/jpeg"

_PREFIX_MIMES = (
    ("data:image/png", "image/png"),
    ("data:image/jpeg", "image/jpeg"),
    ("data:image/webp", "image/webp"),
)

_MAGIC_MIMES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
)


def sniff_mime_type(image: str) -> str:
    """Detect the MIME type from a data-URI prefix; anything unrecognised is JPEG."""
    for prefix, mime in _PREFIX_MIMES:
        if image.startswith(prefix):
            return mime
    return DEFAULT_MIME


def strip_data_uri(image: str) -> str:
    parts = image.split(",", 1)
    if len(parts) == 2 and parts[1]:
        return parts[1]
    return image


def sniff_bytes_mime(data: bytes, default: str = DEFAULT_MIME) -> str:
    for magic, mime in _MAGIC_MIMES:
        if data.startswith(magic):
            return mime
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return default


@dataclass(frozen=True)
class SourceImage:
    b64: str = field(repr=False)
    mime_type: str = DEFAULT_MIME

    @classmethod
    def from_data_uri(cls, image: str) -> "SourceImage":
        return cls(b64=strip_data_uri(image), mime_type=sniff_mime_type(image))

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str | None = None) -> "SourceImage":
        mime = mime_type or sniff_bytes_mime(data)
        return cls(b64=base64.b64encode(data).decode("ascii"), mime_type=mime)

    @classmethod
    def from_path(cls, path: Path) -> "SourceImage":
        data = Path(path).read_bytes()
        guessed, _ = mimetypes.guess_type(str(path))
        if guessed not in {"image/png", "image/jpeg", "image/webp"}:
            guessed = sniff_bytes_mime(data)
        return cls.from_bytes(data, guessed)

    def to_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.b64}"
