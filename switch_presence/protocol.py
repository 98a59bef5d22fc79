"""Binary frame reader for the sysmodule title feed.

Each frame is a fixed 628-byte unit::

    offset  size  field
    0       8     magic (not validated)
    8       8     title id, unsigned little-endian
    16      612   title name, NUL-padded UTF-8

There is no length prefix.  Bytes past the fixed layout are ignored.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .errors import DecodeError

NAME_BLOCK_SIZE = 612

_FRAME = struct.Struct(f"<QQ{NAME_BLOCK_SIZE}s")

FRAME_SIZE = _FRAME.size  # 628


@dataclass(frozen=True)
class RawMessage:
    """One decoded title-change frame."""

    magic: int
    title_id: int
    name: str


def decode(buffer: bytes) -> RawMessage:
    """Decode the first frame in *buffer*.

    Raises :class:`DecodeError` when the buffer is shorter than
    :data:`FRAME_SIZE`.
    """
    if len(buffer) < FRAME_SIZE:
        raise DecodeError(
            f"Frame too short: got {len(buffer)} bytes, need {FRAME_SIZE}"
        )
    magic, title_id, name_block = _FRAME.unpack_from(buffer)
    name = name_block.split(b"\x00", 1)[0].decode("utf-8", "ignore")
    return RawMessage(magic=magic, title_id=title_id, name=name)


def encode(title_id: int, name: str, magic: int = 0) -> bytes:
    """Build a frame the way the sysmodule does (used by tests and tooling)."""
    raw = name.encode("utf-8")[:NAME_BLOCK_SIZE]
    return _FRAME.pack(magic, title_id, raw)
