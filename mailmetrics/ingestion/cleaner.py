"""Data cleaning functions using Polars expressions."""

import polars as pl


def _numeric_text(col_name: str) -> pl.Expr:
    """String form with thousands separators and currency symbols removed."""
    return (
        pl.col(col_name)
        .cast(pl.Utf8)
        .str.replace_all(",", "", literal=True)
        .str.replace_all("$", "", literal=True)
        .str.strip_chars()
    )


def clean_currency_column(col_name: str) -> pl.Expr:
    """Remove commas and currency symbols, convert to float (blank -> null)."""
    return _numeric_text(col_name).cast(pl.Float64, strict=False).alias(col_name)


def clean_rate_column(col_name: str) -> pl.Expr:
    """Convert a rate to a fraction: "2%" -> 0.02, while "0.02" stays 0.02."""
    text = _numeric_text(col_name)
    return (
        pl.when(text.str.contains("%", literal=True))
        .then(
            text.str.replace_all("%", "", literal=True)
            .str.strip_chars()
            .cast(pl.Float64, strict=False)
            / 100
        )
        .otherwise(text.cast(pl.Float64, strict=False))
        .alias(col_name)
    )


def clean_integer_column(col_name: str) -> pl.Expr:
    """Convert to integer, handling commas and float strings like '3.0'."""
    return (
        _numeric_text(col_name)
        .cast(pl.Float64, strict=False)  # Handle "3.0" style strings
        .round(0)
        .cast(pl.Int64)
        .alias(col_name)
    )


def clean_string_column(col_name: str) -> pl.Expr:
    """Strip whitespace and normalize empty strings to null."""
    return (
        pl.col(col_name)
        .cast(pl.Utf8)
        .str.strip_chars()
        .replace("", None)
        .alias(col_name)
    )


def count_from_rate_expr(count_col: str, rate_col: str) -> pl.Expr:
    """Fill a missing or zero count with round(emails_sent * rate)."""
    estimate = (
        (pl.col("emails_sent").fill_null(0) * pl.col(rate_col).fill_null(0.0))
        .round(0)
        .cast(pl.Int64)
    )
    return (
        pl.when(pl.col(count_col).fill_null(0) == 0)
        .then(estimate)
        .otherwise(pl.col(count_col))
        .alias(count_col)
    )


def apply_cleaning(
    df: pl.DataFrame,
    currency_cols: list[str],
    rate_cols: list[str],
    integer_cols: list[str],
    string_cols: list[str] | None = None,
) -> pl.DataFrame:
    """Apply all cleaning transformations to DataFrame.

    Only cleans columns that exist in the DataFrame.
    """
    existing_cols = set(df.columns)
    exprs: list[pl.Expr] = []

    for col in currency_cols:
        if col in existing_cols:
            exprs.append(clean_currency_column(col))

    for col in rate_cols:
        if col in existing_cols:
            exprs.append(clean_rate_column(col))

    for col in integer_cols:
        if col in existing_cols:
            exprs.append(clean_integer_column(col))

    for col in string_cols or []:
        if col in existing_cols:
            exprs.append(clean_string_column(col))

    if exprs:
        return df.with_columns(exprs)
    return df


def apply_rate_fallbacks(df: pl.DataFrame, fallbacks: dict[str, str]) -> pl.DataFrame:
    """Derive counts from rates where only the rate column was exported."""
    exprs: list[pl.Expr] = []
    for count_col, rate_col in fallbacks.items():
        if rate_col not in df.columns:
            continue
        if count_col not in df.columns:
            df = df.with_columns(pl.lit(None, dtype=pl.Int64).alias(count_col))
        exprs.append(count_from_rate_expr(count_col, rate_col))

    if exprs:
        return df.with_columns(exprs)
    return df
