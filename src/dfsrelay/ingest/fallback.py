"""Local CSV parser used when the remote ingestion agent is unavailable."""

from __future__ import annotations

import csv
import math
from typing import List, Optional, Sequence

from dfsrelay.models import PlayerRecord


NAME_COLUMNS = ("name",)
SALARY_COLUMNS = ("salary",)
POSITION_COLUMNS = ("position", "positions")
TEAM_COLUMNS = ("team", "teamabbrev", "team_abbrev", "tm")
ID_COLUMNS = ("id", "player_id", "playerid")

DEFAULT_POSITIONS = ("UTIL",)
_CURRENCY_SYMBOLS = "$€£"


def _find_column(header: Sequence[str], aliases: Sequence[str]) -> Optional[int]:
    for alias in aliases:
        if alias in header:
            return header.index(alias)
    return None


def _split_row(line: str) -> Optional[List[str]]:
    try:
        return next(csv.reader([line]), None)
    except csv.Error:
        return None


def _cell(row: Sequence[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def _parse_positions(raw: str) -> List[str]:
    tokens = [token.strip().upper() for token in raw.replace("/", ",").split(",")]
    positions = [token for token in tokens if token]
    return positions or list(DEFAULT_POSITIONS)


def _parse_salary(raw: str) -> float:
    text = raw.strip()
    if text[:1] in _CURRENCY_SYMBOLS:
        text = text[1:].strip()
    try:
        value = float(text)
    except ValueError:
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def parse_csv(text: str, min_salary: float, max_players: int) -> List[PlayerRecord]:
    """Extract a salary-ordered player list from raw slate CSV text.

    Returns an empty list when the header lacks ``name`` or ``salary`` columns;
    malformed rows are skipped rather than raised.
    """

    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []

    header_row = _split_row(lines[0])
    if header_row is None:
        return []
    header = [column.strip().lower() for column in header_row]
    name_idx = _find_column(header, NAME_COLUMNS)
    salary_idx = _find_column(header, SALARY_COLUMNS)
    if name_idx is None or salary_idx is None:
        return []
    position_idx = _find_column(header, POSITION_COLUMNS)
    team_idx = _find_column(header, TEAM_COLUMNS)
    id_idx = _find_column(header, ID_COLUMNS)

    players: List[PlayerRecord] = []
    for line in lines[1:]:
        row = _split_row(line)
        if row is None:
            continue
        name = _cell(row, name_idx)
        if not name:
            continue
        salary = _parse_salary(_cell(row, salary_idx))
        if salary < min_salary:
            continue
        players.append(
            PlayerRecord(
                player_id=_cell(row, id_idx) or name,
                name=name,
                team=_cell(row, team_idx).upper(),
                positions=_parse_positions(_cell(row, position_idx)),
                salary=salary,
            )
        )

    players.sort(key=lambda player: (-player.salary, player.name))
    return players[: max(0, max_players)]
