"""lookupodd: parity of any 64-bit integer, answered from a compressed lookup table.

    from lookupodd import TableConfig, build_table, write_table, LookupTable, is_odd

    root = build_table(TableConfig())
    write_table("lookup_table", root)

    table = LookupTable.load("lookup_table")
    table.lookup(11111111111111112)   # False
    is_odd(7)                         # True, reads ./lookup_table once
"""

__version__ = "0.1.0"

from .builder import TableBuilder, bitmap_from_predicate, build_table, parity_bitmap
from .config import TableConfig
from .errors import (
    BuildError,
    FanoutAggregateError,
    FormatError,
    LookupTableError,
    RangeError,
    UnknownCodecError,
)
from .query import LookupTable, is_odd
from .storage import Section, dumps_table, loads_table, read_table, write_table

__all__ = [
    "TableBuilder",
    "TableConfig",
    "LookupTable",
    "Section",
    "bitmap_from_predicate",
    "build_table",
    "parity_bitmap",
    "is_odd",
    "dumps_table",
    "loads_table",
    "read_table",
    "write_table",
    "BuildError",
    "FanoutAggregateError",
    "FormatError",
    "LookupTableError",
    "RangeError",
    "UnknownCodecError",
]
