"""Export utilities for enriched contact rosters."""
from __future__ import annotations

from pathlib import Path
from typing import List, MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..models import ContactRecord
from ..regions import FocusRegion
from ..scoring import DEFAULT_SCORER, RelevanceScorer

PathLike = Union[str, Path]

ROSTER_COLUMNS: List[str] = [
    "name",
    "title",
    "email",
    "phone",
    "linkedin_url",
    "location",
    "source",
    "confidence",
    "score",
    "actionable",
]


def roster_to_dataframe(
    contacts: Sequence[ContactRecord],
    *,
    scorer: Optional[RelevanceScorer] = None,
    focus_region: Union[FocusRegion, str, None] = None,
) -> pd.DataFrame:
    """Convert a roster into a :class:`pandas.DataFrame`, one row per contact in roster order."""

    scorer = scorer or DEFAULT_SCORER
    rows = []
    for contact in contacts:
        row = contact.to_dict()
        row["score"] = scorer.score(contact, focus_region)
        row["actionable"] = contact.is_actionable
        rows.append(row)
    return pd.DataFrame(rows, columns=ROSTER_COLUMNS)


def export_roster(
    contacts: Sequence[ContactRecord],
    path: PathLike,
    *,
    scorer: Optional[RelevanceScorer] = None,
    focus_region: Union[FocusRegion, str, None] = None,
    sheet_name: str = "Contacts",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write a roster to a CSV or Excel file."""

    dataframe = roster_to_dataframe(contacts, scorer=scorer, focus_region=focus_region)
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _write_dataframe(dataframe, output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def _write_dataframe(
    dataframe: pd.DataFrame,
    path: Path,
    *,
    sheet_name: str,
    exporter_kwargs: Optional[MutableMapping[str, object]],
) -> None:
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = path.suffix.lower()

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        dataframe.to_csv(path, index=False, **exporter_kwargs)
        return

    if suffix in {".xls", ".xlsx", ".xlsm", ".xlsb"}:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        dataframe.to_excel(path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
        return

    raise ValueError(f"Unsupported export file extension: {suffix}")


__all__ = ["ROSTER_COLUMNS", "export_roster", "roster_to_dataframe"]
