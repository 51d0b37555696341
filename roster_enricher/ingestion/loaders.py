"""Utilities for loading existing contact rosters from spreadsheets."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..models import ContactRecord, ContactSource

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]

_FIELD_SYNONYMS: Mapping[str, Sequence[str]] = {
    "name": ("name", "full_name", "contact_name", "contact"),
    "title": ("title", "job_title", "position", "role"),
    "email": ("email", "e-mail", "email_address", "work_email", "mail"),
    "phone": ("phone", "phone_number", "work_phone", "telephone"),
    "linkedin_url": ("linkedin_url", "linkedin", "linkedin_profile"),
    "location": ("location", "country", "city"),
    "source": ("source", "provenance"),
    "confidence": ("confidence", "score_confidence"),
}


class UnsupportedFileTypeError(ValueError):
    """Raised when an unsupported file format is passed to the loader."""


def load_roster(
    path: PathLike,
    *,
    column_mapping: Optional[Mapping[str, Union[str, Sequence[str]]]] = None,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
    default_source: ContactSource = ContactSource.MANUAL,
) -> List[ContactRecord]:
    """Load an existing contact roster from a spreadsheet.

    Parameters
    ----------
    path:
        Path to the CSV/XLSX file to be loaded.
    column_mapping:
        Optional mapping of :class:`ContactRecord` field names to column names
        (or sequences of column names, the first non-empty value wins).
    sheet_name:
        Sheet selector passed to :func:`pandas.read_excel` when loading an Excel
        file. Ignored for CSV files.
    loader_kwargs:
        Extra keyword arguments forwarded to :func:`pandas.read_csv` or
        :func:`pandas.read_excel`.
    default_source:
        Provenance for rows without a ``source`` column. Rosters kept by hand
        are treated as manual entries.
    """

    dataframe = _read_dataframe(path, sheet_name=sheet_name, loader_kwargs=loader_kwargs)
    mapping = dict(column_mapping or {})
    resolved = {field: _resolve_columns(field, dataframe.columns, mapping) for field in _FIELD_SYNONYMS}
    contacts: List[ContactRecord] = []

    for index, row in dataframe.iterrows():
        if _row_is_empty(row):
            continue
        values: Dict[str, Any] = {field: _extract_scalar(row, columns) for field, columns in resolved.items()}
        try:
            contacts.append(ContactRecord.from_dict(values, default_source=default_source))
        except ValueError as exc:
            LOGGER.warning("Skipping roster row %s: %s", index, exc)

    LOGGER.debug("Loaded %s contact(s) from %s", len(contacts), path)
    return contacts


def _read_dataframe(
    path: PathLike,
    *,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> pd.DataFrame:
    loader_kwargs = dict(loader_kwargs or {})
    path_obj = Path(path)
    suffix = path_obj.suffix.lower()

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            loader_kwargs.setdefault("sep", "\t")
        return pd.read_csv(path_obj, dtype=str, keep_default_na=False, **loader_kwargs)

    if suffix in {".xls", ".xlsx", ".xlsm", ".xlsb"}:
        engine = loader_kwargs.pop("engine", None) or "openpyxl"
        return pd.read_excel(path_obj, sheet_name=sheet_name, engine=engine, **loader_kwargs)

    raise UnsupportedFileTypeError(f"Unsupported file extension: {path_obj.suffix}")


def _row_is_empty(row: pd.Series) -> bool:
    return all(pd.isna(value) or (isinstance(value, str) and not value.strip()) for value in row.values)


def _resolve_columns(
    field: str,
    available_columns: Iterable[str],
    mapping: Mapping[str, Union[str, Sequence[str]]],
) -> List[str]:
    if field in mapping:
        columns = mapping[field]
        return [columns] if isinstance(columns, str) else [str(item) for item in columns]

    synonyms = tuple(name.lower() for name in _FIELD_SYNONYMS.get(field, (field,)))
    resolved: List[str] = []
    for column in available_columns:
        column_lc = str(column).strip().lower().replace(" ", "_")
        if column_lc in synonyms:
            resolved.append(column)
    return resolved


def _extract_scalar(row: pd.Series, columns: Sequence[str]) -> Optional[str]:
    for column in columns:
        if column not in row:
            continue
        text = _clean_text(row[column])
        if text is not None:
            return text
    return None


def _clean_text(value: Any) -> Optional[str]:
    if pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


__all__ = ["load_roster", "UnsupportedFileTypeError"]
