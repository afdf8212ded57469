"""Errors raised while loading settings and ingesting export rows.

Ingestion errors name the export they came from ("campaigns", "flows" or
"subscribers") so a failed upload can be traced to the right file.
"""

from typing import Any


class IngestionError(Exception):
    """Base class for anything that stops an export from loading."""


class ConfigLoadError(IngestionError):
    """A YAML settings or schema file is missing or malformed."""


class DataValidationError(IngestionError):
    """Export rows that did not fit the record model.

    ``errors`` holds one entry per rejected row: its zero-based index and the
    pydantic error list.
    """

    def __init__(
        self,
        errors: list[dict[str, Any]],
        row_count: int,
        source: str | None = None,
    ):
        self.errors = errors
        self.row_count = row_count
        self.source = source
        label = f"{source} export" if source else "export"
        first = errors[0] if errors else None
        detail = (
            f" First bad row {first['row']}: {first['errors']}" if first else ""
        )
        super().__init__(
            f"{label}: {len(errors)} of {row_count} rows rejected.{detail}"
        )


class ColumnMappingError(IngestionError):
    """An export is missing headers the schema registry requires."""

    def __init__(
        self,
        missing_columns: list[str],
        available_columns: list[str],
        source: str | None = None,
    ):
        self.missing_columns = missing_columns
        self.available_columns = available_columns
        self.source = source
        label = f"{source} export" if source else "export"
        shown = ", ".join(available_columns[:10])
        if len(available_columns) > 10:
            shown += ", ..."
        super().__init__(
            f"{label} is missing required headers {missing_columns} "
            f"(found: {shown or 'none'})"
        )
