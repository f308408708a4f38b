"""Section records: the nodes of a persisted lookup table.

RECORD (27-byte header, little endian):
    layer: uint16              # 1 = leaf bitmap, increasing outward
    subsection_count: uint64   # children packed in content (layer > 1)
    domain_count: uint64       # values covered; 0 = whole domain (root only)
    codec_len: uint8
    content_len: uint64
    codec: bytes[codec_len]    # ASCII codec name, "raw" for leaves
    content: bytes[content_len]

A layer's children are written back to back with no index or count; the
parent's subsection_count is the only record of how many there are.
"""

import struct
from dataclasses import dataclass
from typing import List, Tuple

from ..codec.registry import get_codec
from ..errors import FormatError, UnknownCodecError

RECORD_FORMAT = "<HQQBQ"
RECORD_HEADER_SIZE = struct.calcsize(RECORD_FORMAT)  # 2+8+8+1+8 = 27

MAX_DOMAIN = 1 << 64


@dataclass(frozen=True)
class Section:
    """One node of the table tree."""
    layer: int
    subsection_count: int
    domain_count: int
    codec: str
    content: bytes

    @property
    def is_leaf(self) -> bool:
        return self.layer <= 1

    def pack(self) -> bytes:
        try:
            codec = self.codec.encode("ascii")
            header = struct.pack(
                RECORD_FORMAT,
                self.layer,
                self.subsection_count,
                self.domain_count,
                len(codec),
                len(self.content),
            )
        except (struct.error, UnicodeEncodeError) as exc:
            raise FormatError(f"cannot serialize section: {exc}", layer=self.layer) from exc
        return header + codec + bytes(self.content)

    @classmethod
    def unpack_from(cls, data, offset: int = 0, position=None) -> Tuple["Section", int]:
        """Parse one record at ``offset``; returns (section, next_offset)."""
        end = offset + RECORD_HEADER_SIZE
        if end > len(data):
            raise FormatError(
                f"truncated section header ({len(data) - offset} of "
                f"{RECORD_HEADER_SIZE} bytes)",
                position=position,
            )
        layer, sub_count, domain_count, codec_len, content_len = struct.unpack_from(
            RECORD_FORMAT, data, offset,
        )
        codec_end = end + codec_len
        content_end = codec_end + content_len
        if content_end > len(data):
            raise FormatError(
                f"truncated layer {layer} section body "
                f"({len(data) - end} of {codec_len + content_len} bytes)",
                position=position,
            )
        try:
            codec = bytes(data[end:codec_end]).decode("ascii")
        except UnicodeDecodeError as exc:
            raise FormatError(f"invalid codec name: {exc}", position=position) from exc
        section = cls(
            layer=layer,
            subsection_count=sub_count,
            domain_count=domain_count,
            codec=codec,
            content=bytes(data[codec_end:content_end]),
        )
        return section, content_end

    def decode_subsections(self) -> List["Section"]:
        """Decompress and parse exactly ``subsection_count`` children.

        Children must sit one layer below this section, cover a non-zero
        number of values each, and add up to this section's domain_count
        (or to at most the full domain when domain_count is the 0 sentinel).
        """
        if self.is_leaf:
            raise FormatError(
                "layer 1 can not be decoded, read its contents directly", layer=self.layer,
            )
        try:
            codec = get_codec(self.codec)
        except UnknownCodecError:
            raise UnknownCodecError(self.codec, layer=self.layer) from None
        try:
            raw = codec.decompress(self.content)
        except Exception as exc:
            raise FormatError(
                f"decompressing {self.codec} content: {exc}", layer=self.layer,
            ) from exc

        children = []
        offset = 0
        total = 0
        for i in range(self.subsection_count):
            try:
                child, offset = Section.unpack_from(raw, offset, position=i)
            except FormatError as exc:
                raise FormatError(
                    f"decoding subsection {i} of {self.subsection_count}: {exc}",
                    layer=self.layer,
                ) from exc
            if child.layer != self.layer - 1:
                raise FormatError(
                    f"child is on layer {child.layer}, expected {self.layer - 1}",
                    layer=self.layer, position=i,
                )
            if child.domain_count == 0:
                raise FormatError(
                    "non-root section covers zero values", layer=self.layer, position=i,
                )
            total += child.domain_count
            children.append(child)

        if self.domain_count != 0 and total != self.domain_count:
            raise FormatError(
                f"children cover {total} values, section declares {self.domain_count}",
                layer=self.layer,
            )
        if total > MAX_DOMAIN:
            raise FormatError(
                f"children cover {total} values, more than the 64-bit domain",
                layer=self.layer,
            )
        return children
