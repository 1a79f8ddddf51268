"""Shared numeric/formatting utilities for reporting."""

from __future__ import annotations

from typing import Any

from lumi_report.domain.models import safe_ratio

__all__ = [
    "to_float",
    "safe_ratio",
    "fmt_number",
    "fmt_vnd",
    "fmt_pct",
]


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    return float(value)


def fmt_number(value: float | None, digits: int = 0) -> str:
    """Vietnamese grouping: ``1234567.5`` -> ``1.234.567,5``."""
    if value is None:
        return "0"
    text = f"{value:,.{digits}f}"
    return text.replace(",", "\0").replace(".", ",").replace("\0", ".")


def fmt_vnd(value: float | None) -> str:
    return f"{fmt_number(value)} ₫"


def fmt_pct(value: float | None, digits: int = 1) -> str:
    if value is None:
        return "N/A"
    return f"{fmt_number(value * 100, digits)}%"
