import pytest
from pydantic import ValidationError

from dfsrelay.models import PipelineOptions, PlayerRecord, Slate, base_payload


def test_player_record_is_frozen():
    record = PlayerRecord(
        player_id="p1",
        name="Test Player",
        team="BOS",
        positions=["PG"],
        salary=9000,
    )

    assert record.player_id == "p1"
    assert record.positions == ["PG"]
    assert record.salary == 9000.0

    with pytest.raises((TypeError, ValidationError)):
        record.player_id = "p2"  # type: ignore[attr-defined]


def test_player_record_requires_positions_and_non_negative_salary():
    with pytest.raises(ValidationError):
        PlayerRecord(player_id="p1", name="Test", positions=[], salary=100)
    with pytest.raises(ValidationError):
        PlayerRecord(player_id="p1", name="Test", positions=["C"], salary=-1)


def test_base_payload_carries_slate_and_options():
    slate = Slate(sport="NBA", site="DK", date="2024-01-15", csv_text="name,salary\n")

    payload = base_payload(slate, PipelineOptions())

    assert payload["slate"] == {
        "sport": "NBA",
        "site": "DK",
        "date": "2024-01-15",
        "csv_text": "name,salary\n",
    }
    assert payload["options"]["n_lineups"] == 20
    assert payload["options"]["salary_cap"] == 50_000
    assert payload["options"]["min_players"] == 8
    assert payload["options"]["include_injuries"] is True
    assert payload["options"]["format"] == "classic"
    assert payload["options"]["version"] == "v1"


def test_slate_date_defaults_to_iso_day():
    slate = Slate(csv_text="x")

    assert len(slate.date) == 10
    assert slate.date[4] == "-" and slate.date[7] == "-"
