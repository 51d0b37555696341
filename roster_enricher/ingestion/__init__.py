"""Utilities for importing and exporting contact rosters."""

from .exporters import ROSTER_COLUMNS, export_roster, roster_to_dataframe
from .loaders import UnsupportedFileTypeError, load_roster

__all__ = [
    "ROSTER_COLUMNS",
    "UnsupportedFileTypeError",
    "export_roster",
    "load_roster",
    "roster_to_dataframe",
]
