import json
from pathlib import Path

import pytest

from aquaroute.data import candidates_repository
from aquaroute.data.candidates_repository import (
    FileCandidateSource,
    SupabaseCandidateSource,
    candidate_from_record,
    load_candidates,
)
from aquaroute.models.domain import GeoPoint


@pytest.fixture(autouse=True)
def clear_candidate_cache():
    load_candidates.cache_clear()
    yield
    load_candidates.cache_clear()


def test_candidate_from_nested_location() -> None:
    candidate = candidate_from_record(
        {"id": "r1", "location": {"latitude": "21.5", "longitude": 39.2}, "address": " Well 1 ", "title": "Cloudy"}
    )

    assert candidate.id == "r1"
    assert candidate.location == GeoPoint(21.5, 39.2)
    assert candidate.address == "Well 1"
    assert candidate.label == "Cloudy"


def test_candidate_without_coordinates_is_skipped() -> None:
    assert candidate_from_record({"id": "r1", "address": "nowhere"}) is None


def test_load_json_skips_resolved_reports(tmp_path: Path) -> None:
    source = tmp_path / "reports.json"
    source.write_text(
        json.dumps(
            [
                {"id": "r1", "lat": 21.5, "lng": 39.2},
                {"id": "r2", "lat": 21.6, "lng": 39.3, "is_resolved": True},
                {"id": "r3", "latitude": 21.7, "longitude": 39.4},
            ]
        ),
        encoding="utf-8",
    )

    candidates = FileCandidateSource(source).list_candidates()

    assert [c.id for c in candidates] == ["r1", "r3"]


def test_load_csv(tmp_path: Path) -> None:
    source = tmp_path / "reports.csv"
    source.write_text("id,latitude,longitude,address,is_resolved\nr1,21.5,39.2,Tap,false\nr2,21.6,39.3,Well,yes\n", encoding="utf-8")

    candidates = load_candidates(source)

    assert [c.id for c in candidates] == ["r1"]
    assert candidates[0].address == "Tap"


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_candidates(tmp_path / "missing.json")


def test_supabase_source_without_client_is_empty(monkeypatch) -> None:
    monkeypatch.setattr(candidates_repository, "get_supabase_client", lambda: None)

    assert list(SupabaseCandidateSource().list_candidates()) == []
