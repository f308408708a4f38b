from .section import Section, RECORD_FORMAT, RECORD_HEADER_SIZE
from .table_file import TableHeader, dumps_table, loads_table, read_table, write_table

__all__ = [
    "Section", "RECORD_FORMAT", "RECORD_HEADER_SIZE",
    "TableHeader", "dumps_table", "loads_table", "read_table", "write_table",
]
