"""Data access helpers for loading reportable water points."""

from __future__ import annotations

import csv
import functools
import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import CandidatePoint, GeoPoint

_TRUE_VALUES = {"1", "true", "yes", "y"}


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        return float(str(value).replace(",", ""))
    except (OverflowError, ValueError) as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


def _is_resolved(record: Mapping[str, Any]) -> bool:
    value = record.get("is_resolved", record.get("isResolved"))
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in _TRUE_VALUES


def candidate_from_record(record: Mapping[str, Any]) -> Optional[CandidatePoint]:
    """Build a candidate from a report row; rows without id or coordinates are skipped."""
    candidate_id = str(record.get("id") or record.get("report_id") or "").strip()
    location = record.get("location")
    source = location if isinstance(location, Mapping) else record
    lat = _coerce_float(source.get("latitude", source.get("lat")))
    lon = _coerce_float(source.get("longitude", source.get("lng", source.get("lon"))))
    if not candidate_id or lat is None or lon is None:
        return None
    label = str(record.get("label") or record.get("title") or "").strip() or None
    return CandidatePoint(
        id=candidate_id,
        location=GeoPoint(latitude=lat, longitude=lon),
        address=str(record.get("address") or "").strip(),
        label=label,
    )


def candidates_from_records(records: Iterable[Mapping[str, Any]]) -> list[CandidatePoint]:
    candidates: list[CandidatePoint] = []
    for record in records:
        if _is_resolved(record):
            continue
        candidate = candidate_from_record(record)
        if candidate is not None:
            candidates.append(candidate)
    return candidates


@functools.lru_cache(maxsize=4)
def load_candidates(source: Path) -> tuple[CandidatePoint, ...]:
    """Load unresolved reports from a JSON list or a CSV file."""
    if not source.exists():
        raise FileNotFoundError(f"Candidate file not found: {source}")

    if source.suffix.lower() == ".json":
        with source.open(mode="r", encoding="utf-8") as handle:
            records = json.load(handle)
        if not isinstance(records, list):
            raise ValueError(f"Candidate file '{source}' must contain a JSON list.")
        return tuple(candidates_from_records(r for r in records if isinstance(r, Mapping)))

    with source.open(mode="r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise ValueError(f"Candidate file '{source}' is missing a header row.")
        return tuple(candidates_from_records(reader))


class FileCandidateSource:
    def __init__(self, source: Path | None = None) -> None:
        path = source or settings.candidate_file
        if path is None:
            raise ValueError("No candidate file configured (set AQUAROUTE_CANDIDATE_FILE).")
        self.source = path

    def list_candidates(self) -> Sequence[CandidatePoint]:
        return load_candidates(self.source)


class SupabaseCandidateSource:
    """Unresolved reports from the Supabase ``reports`` table."""

    def __init__(self, table: str | None = None) -> None:
        self.table = table or settings.reports_table

    def list_candidates(self) -> Sequence[CandidatePoint]:
        supabase = get_supabase_client()
        if not supabase:
            logging.warning("Supabase not configured - no candidates available")
            return []
        response = supabase.table(self.table).select("*").eq("is_resolved", False).execute()
        return candidates_from_records(response.data or [])


class StaticCandidateSource:
    def __init__(self, candidates: Iterable[CandidatePoint] = ()) -> None:
        self.candidates = tuple(candidates)

    def list_candidates(self) -> Sequence[CandidatePoint]:
        return self.candidates


def default_candidate_source():
    if settings.supabase_url and settings.supabase_key:
        return SupabaseCandidateSource()
    if settings.candidate_file is not None:
        return FileCandidateSource()
    logging.warning("No candidate source configured; sessions will start without candidates")
    return StaticCandidateSource()
