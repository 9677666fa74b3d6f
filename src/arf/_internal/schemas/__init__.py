"""Record document parsers and naming shapes.

Parsers produce normalized in-memory views of record files. Stored bytes
are never rewritten during import.
"""

from .common import ParsedRecordDocument
from .naming import match_directory, match_filename
from .record_schema import dump_record, parse_record

__all__ = [
    "ParsedRecordDocument",
    "match_directory",
    "match_filename",
    "parse_record",
    "dump_record",
]
