"""Main data ingestion pipeline."""

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import polars as pl
from pydantic import BaseModel, ValidationError

from ..exceptions import ColumnMappingError, ConfigLoadError, DataValidationError
from ..models.records import Channel, SendRecord, Subscriber
from ..settings import load_yaml
from .cleaner import apply_cleaning, apply_rate_fallbacks

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_PATH = Path(__file__).parent.parent / "config" / "schema_registry.yaml"

STRING_COLUMNS = [
    "id",
    "name",
    "subject",
    "flow_name",
    "status",
    "message_channel",
    "email",
]

RowsInput = pl.DataFrame | Sequence[dict[str, Any]]


class DataIngestionPipeline:
    """Pipeline turning already-read export rows into immutable records.

    Usage:
        pipeline = DataIngestionPipeline()
        campaigns = pipeline.ingest_campaigns(pl.read_csv("campaigns.csv"))
    """

    def __init__(self, schema_path: Path | None = None, drop_undated: bool = False):
        self.schema = load_yaml(schema_path or DEFAULT_SCHEMA_PATH)
        self.drop_undated = drop_undated
        for source in ("campaigns", "flows", "subscribers"):
            if source not in self.schema or "column_map" not in self.schema[source]:
                raise ConfigLoadError(
                    f"Schema registry has no column_map for '{source}'"
                )

    # =========================================================================
    # PUBLIC ENTRY POINTS
    # =========================================================================

    def ingest_campaigns(self, rows: RowsInput) -> tuple[SendRecord, ...]:
        """Rename -> Clean -> Validate campaign export rows."""
        df = self._prepare(rows, "campaigns")
        records = self._validate(
            df,
            SendRecord,
            "campaigns",
            defaults={"channel": Channel.CAMPAIGN},
            id_prefix="campaign",
        )
        return self._apply_date_policy(records, "campaigns")

    def ingest_flows(self, rows: RowsInput) -> tuple[SendRecord, ...]:
        """Rename -> Clean -> Rate fallbacks -> Validate flow export rows.

        Only email-channel messages are kept; a blank channel counts as email.
        """
        df = self._prepare(rows, "flows")
        if "message_channel" in df.columns:
            before = df.height
            df = df.filter(
                pl.col("message_channel").is_null()
                | (pl.col("message_channel").str.to_lowercase() == "email")
            )
            if df.height < before:
                logger.info("Dropped %d non-email flow rows", before - df.height)

        df = apply_rate_fallbacks(df, self.schema["flows"].get("rate_fallbacks", {}))
        records = self._validate(
            df,
            SendRecord,
            "flows",
            defaults={"channel": Channel.FLOW},
            id_prefix="flow",
        )
        return self._apply_date_policy(records, "flows")

    def ingest_subscribers(self, rows: RowsInput) -> tuple[Subscriber, ...]:
        """Rename -> Clean -> Derive buyer fields -> Validate profile rows."""
        df = self._prepare(rows, "subscribers")
        for col in ("total_clv", "historic_clv", "predicted_clv"):
            if col not in df.columns:
                df = df.with_columns(pl.lit(None, dtype=pl.Float64).alias(col))
        if "historic_orders" not in df.columns:
            df = df.with_columns(pl.lit(None, dtype=pl.Int64).alias("historic_orders"))

        total = pl.col("total_clv").fill_null(0.0)
        historic = (
            pl.when(pl.col("historic_clv").fill_null(0.0) > 0)
            .then(pl.col("historic_clv"))
            .otherwise(
                pl.max_horizontal(
                    total - pl.col("predicted_clv").fill_null(0.0), pl.lit(0.0)
                )
            )
        )
        df = df.with_columns(total.alias("total_clv"), historic.alias("historic_clv"))
        df = df.with_columns(
            (
                (pl.col("historic_orders").fill_null(0) > 0) | (pl.col("historic_clv") > 0)
            ).alias("is_buyer")
        )
        return self._validate(df, Subscriber, "subscribers")

    # =========================================================================
    # STEPS
    # =========================================================================

    def _prepare(self, rows: RowsInput, source: str) -> pl.DataFrame:
        schema = self.schema[source]
        if isinstance(rows, pl.DataFrame):
            df = rows
        else:
            df = pl.from_dicts(list(rows), infer_schema_length=None)
        logger.debug("Ingesting %d %s rows", df.height, source)
        df = self._rename_columns(
            df, schema["column_map"], schema.get("optional_columns", {}), source
        )
        return apply_cleaning(
            df,
            currency_cols=schema.get("currency_columns", []),
            rate_cols=schema.get("rate_columns", []),
            integer_cols=schema.get("integer_columns", []),
            string_cols=STRING_COLUMNS,
        )

    def _rename_columns(
        self,
        df: pl.DataFrame,
        column_map: dict[str, str],
        optional_map: dict[str, str],
        source: str,
    ) -> pl.DataFrame:
        """Rename columns from raw names to internal names.

        column_map: {internal_name: raw_column_name}, all required.
        optional_map: same shape, renamed only when present.
        """
        available = set(df.columns)
        missing = [raw for raw in column_map.values() if raw not in available]
        if missing:
            raise ColumnMappingError(missing, list(df.columns), source)

        raw_to_internal = {v: k for k, v in {**optional_map, **column_map}.items()}
        rename_dict = {
            raw: internal for raw, internal in raw_to_internal.items() if raw in available
        }
        return df.rename(rename_dict).select(list(rename_dict.values()))

    def _validate(
        self,
        df: pl.DataFrame,
        model: type[BaseModel],
        source: str,
        defaults: dict[str, Any] | None = None,
        id_prefix: str | None = None,
    ) -> tuple[Any, ...]:
        """Validate each row against a Pydantic model.

        Collects all errors before raising, for better debugging. Null cells
        fall back to the model defaults.
        """
        errors: list[dict[str, Any]] = []
        records = []
        rows = df.to_dicts()

        for i, row in enumerate(rows):
            present = {k: v for k, v in row.items() if v is not None}
            values = {**(defaults or {}), **present}
            if id_prefix and "id" not in values:
                values["id"] = f"{id_prefix}-{i + 1}"
            if id_prefix and "subject" not in values and "name" in values:
                values["subject"] = values["name"]
            try:
                records.append(model.model_validate(values))
            except ValidationError as e:
                errors.append({"row": i, "errors": e.errors()})

        if errors:
            raise DataValidationError(errors, len(rows), source)
        return tuple(records)

    def _apply_date_policy(
        self, records: tuple[SendRecord, ...], source: str
    ) -> tuple[SendRecord, ...]:
        undated = sum(1 for r in records if r.sent_at is None)
        if not undated:
            return records
        if self.drop_undated:
            logger.warning(
                "Skipped %d %s rows with unparseable send dates", undated, source
            )
            return tuple(r for r in records if r.sent_at is not None)
        logger.warning(
            "%d %s rows have unparseable send dates; excluded from dated queries",
            undated,
            source,
        )
        return records
