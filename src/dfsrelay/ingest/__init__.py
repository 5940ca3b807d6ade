"""Input adapters that turn raw slate CSV into canonical player records."""

from .fallback import parse_csv

__all__ = ["parse_csv"]
