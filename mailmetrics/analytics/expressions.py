"""Reusable Polars expressions for send-record aggregation."""

from datetime import datetime

import polars as pl

from ..dates import as_naive_utc

COUNTER_COLUMNS: tuple[str, ...] = (
    "emails_sent",
    "total_orders",
    "unique_opens",
    "unique_clicks",
    "unsubscribes",
    "spam_complaints",
    "bounces",
)


# =============================================================================
# TOTALS
# =============================================================================


def totals_expr() -> list[pl.Expr]:
    """Expressions summing every counter plus the record count.

    Sums over an empty frame are 0, so an empty selection yields
    all-zero totals.
    """
    return [
        pl.col("revenue").sum().cast(pl.Float64).alias("revenue"),
        *[pl.col(c).sum().cast(pl.Int64).alias(c) for c in COUNTER_COLUMNS],
        pl.len().cast(pl.Int64).alias("email_count"),
    ]


def zero_fill_expr() -> list[pl.Expr]:
    """Replace nulls left by a left join on empty buckets with zeros."""
    return [
        pl.col("revenue").fill_null(0.0),
        *[pl.col(c).fill_null(0) for c in COUNTER_COLUMNS],
        pl.col("email_count").fill_null(0),
    ]


# =============================================================================
# TEMPORAL
# =============================================================================


def dated_expr() -> pl.Expr:
    """Rows with a usable send timestamp."""
    return pl.col("sent_at").is_not_null()


def window_expr(start: datetime, end: datetime) -> pl.Expr:
    """Rows sent within [start, end], both bounds inclusive."""
    return pl.col("sent_at").is_between(
        as_naive_utc(start), as_naive_utc(end), closed="both"
    )


def weekday_expr() -> pl.Expr:
    """Weekday index with Sunday = 0 (polars counts Monday = 1 ... Sunday = 7)."""
    return (pl.col("sent_at").dt.weekday() % 7).cast(pl.Int64).alias("day_index")


def hour_expr() -> pl.Expr:
    """UTC hour of the send."""
    return pl.col("sent_at").dt.hour().cast(pl.Int64).alias("hour")

