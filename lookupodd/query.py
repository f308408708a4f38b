"""Query engine: resolve one 64-bit value by descending the table tree.

Every query starts at the root, decodes the children of one section per
layer, keeps the child whose value range covers the query and finally reads
one bit from a leaf bitmap. Decoded children are discarded after each call,
and the root section is never mutated, so one LookupTable can serve any
number of threads.

Usage:
    table = LookupTable.load("lookup_table")
    table.lookup(5)      # True
    table.lookup(16)     # False
"""

import bisect
import functools
import itertools
import logging
import operator
import os
from pathlib import Path
from typing import List, Tuple, Union

from .config import TableConfig
from .errors import RangeError
from .storage.section import Section
from .storage.table_file import loads_table, read_table

logger = logging.getLogger(__name__)

MAX_VALUE = (1 << 64) - 1


def _select_child(children: List[Section], value: int, base: int) -> Tuple[int, int]:
    """Index of the child covering ``value`` and that child's first value."""
    ends = list(itertools.accumulate(c.domain_count for c in children))
    i = bisect.bisect_right(ends, value - base)
    if i == len(children):
        raise RangeError(
            f"value {value} is past the {ends[-1] if ends else 0} values "
            f"starting at {base} covered by this section"
        )
    start = base + (ends[i - 1] if i else 0)
    return i, start


def read_bit(content: bytes, offset: int) -> bool:
    """Bit ``offset`` of a leaf bitmap, least significant bit first."""
    byte_index, bit_index = divmod(offset, 8)
    if byte_index >= len(content):
        raise RangeError(
            f"byte {byte_index} is out of range for a {len(content)}-byte leaf bitmap"
        )
    return bool((content[byte_index] >> bit_index) & 1)


class LookupTable:
    """Read-only handle over a loaded root section."""

    def __init__(self, root: Section):
        self._root = root

    @classmethod
    def from_bytes(cls, data: bytes) -> "LookupTable":
        return cls(loads_table(data))

    @classmethod
    def load(cls, path) -> "LookupTable":
        return cls(read_table(Path(path)))

    @property
    def root(self) -> Section:
        return self._root

    def lookup(self, value: int) -> bool:
        """Return the stored bit for ``value``.

        Raises:
            ValueError: value is not an unsigned 64-bit integer.
            FormatError: a section on the path fails to decode.
            RangeError: the table does not cover ``value``.
        """
        value = operator.index(value)
        if not 0 <= value <= MAX_VALUE:
            raise ValueError(f"value {value} is not an unsigned 64-bit integer")

        section = self._root
        base = 0
        while section.layer > 1:
            children = section.decode_subsections()
            i, base = _select_child(children, value, base)
            section = children[i]
            logger.debug("reading node %d in layer %d", i, section.layer)

        offset = value - base
        logger.debug("reading bit %d from byte %d in layer 1", offset % 8, offset // 8)
        return read_bit(section.content, offset)

    def is_odd(self, value: int) -> bool:
        return self.lookup(value)


@functools.lru_cache(maxsize=None)
def _open_table(path: str) -> LookupTable:
    logger.debug("loading lookup table from %s", path)
    return LookupTable.load(path)


def is_odd(value: int, table: Union[LookupTable, str, os.PathLike, None] = None) -> bool:
    """Parity of ``value`` according to ``table``.

    ``table`` may be a loaded LookupTable or a path. Paths, including the
    default ``TableConfig().table_path``, are read on first use and the
    loaded table is reused by later calls naming the same file.
    """
    if not isinstance(table, LookupTable):
        if table is None:
            table = TableConfig().table_path
        table = _open_table(str(Path(table).resolve()))
    return table.lookup(value)
