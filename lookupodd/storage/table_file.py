"""Binary lookup table file: a header followed by the root section.

HEADER (6 bytes fixed):
    magic: bytes[4] = b'LKOT'
    version: uint16

ROOT SECTION:
    one section record (see storage.section), usually domain_count = 0
"""

import struct
from dataclasses import dataclass
from pathlib import Path

from ..errors import FormatError
from .section import Section

MAGIC = b"LKOT"
VERSION = 1
HEADER_FORMAT = "<4sH"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)


@dataclass
class TableHeader:
    """Parsed table file header."""
    magic: bytes = MAGIC
    version: int = VERSION

    def to_bytes(self) -> bytes:
        return struct.pack(HEADER_FORMAT, self.magic, self.version)

    @classmethod
    def from_bytes(cls, data: bytes) -> "TableHeader":
        if len(data) < HEADER_SIZE:
            raise FormatError(f"table too short for header ({len(data)} bytes)")
        magic, version = struct.unpack_from(HEADER_FORMAT, data)
        if magic != MAGIC:
            raise FormatError(f"Invalid table magic: {magic!r}")
        if version != VERSION:
            raise FormatError(f"Unsupported table version: {version}")
        return cls(magic=magic, version=version)


def dumps_table(root: Section) -> bytes:
    """Serialize a root section into table file bytes."""
    return TableHeader().to_bytes() + root.pack()


def loads_table(data: bytes) -> Section:
    """Parse table file bytes back into the root section."""
    TableHeader.from_bytes(data)
    root, end = Section.unpack_from(data, HEADER_SIZE)
    if end != len(data):
        raise FormatError(f"{len(data) - end} trailing bytes after root section")
    return root


def write_table(path, root: Section) -> int:
    """Write a root section to ``path``. Returns total bytes written."""
    data = dumps_table(root)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return len(data)


def read_table(path) -> Section:
    """Read the root section from a table file."""
    return loads_table(Path(path).read_bytes())
