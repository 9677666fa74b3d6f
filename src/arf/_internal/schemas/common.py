"""Common types for record parsing."""

from typing import Any, Dict, List

from pydantic import BaseModel


class ParsedRecordDocument(BaseModel):
    """Result of parsing one record document with the compatibility layer.

    This is a normalized in-memory view; the stored bytes are never
    rewritten.
    """
    schema_version: int  # normalized version (legacy documents report 0)
    data: Dict[str, Any]  # fields ready for ReasoningRecord
    warnings: List[str] = []
