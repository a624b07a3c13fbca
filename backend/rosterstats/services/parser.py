"""
Normalize raw origin pages into Player records.

Two layouts are understood: the stats JSON served by the API
(``stats[0].splits``) and the rendered HTML stats table. Row problems are
degraded to placeholders plus a warning; they never fail the page.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from rosterstats.models import Player, RawPage, STAT_FIELDS
from rosterstats.utils import (
    UNKNOWN_TEAM,
    TEAMS,
    coerce_stat,
    make_player_slug,
    normalize_position,
    team_code_from_source,
)

logger = logging.getLogger(__name__)

UNKNOWN_PLAYER = "Unknown Player"

NAME_HEADERS = {"PLAYER", "NAME", "PLAYERS"}
TEAM_HEADERS = {"TEAM", "TM"}
POSITION_HEADERS = {"POS", "POSITION"}

_PLAYER_ID_RE = re.compile(r"(\d{3,})/?(?:[?#].*)?$")


@dataclass(frozen=True)
class ParseWarning:
    row: int
    field: str
    message: str


@dataclass
class ParseResult:
    players: List[Player] = field(default_factory=list)
    warnings: List[ParseWarning] = field(default_factory=list)


class PlayerParser:
    """Stateless page normalizer; safe to share between requests."""

    def parse(self, page: RawPage) -> List[Player]:
        return self.parse_page(page).players

    def parse_page(self, page: RawPage) -> ParseResult:
        if page.content_type == "json":
            rows, warnings = self._json_rows(page)
        else:
            rows, warnings = self._html_rows(page)

        result = ParseResult(warnings=warnings)
        seen_ids = set()
        for index, raw in rows:
            player = self._build_player(page, index, raw, result.warnings)
            if player is None:
                continue
            if player.id in seen_ids:
                result.warnings.append(ParseWarning(index, "id", f"Duplicate player id {player.id}, row dropped"))
                continue
            seen_ids.add(player.id)
            result.players.append(player)

        for w in result.warnings:
            logger.debug(f"{page.query.cache_key} row {w.row} [{w.field}]: {w.message}")
        if result.warnings:
            logger.warning(
                f"Parsed {len(result.players)} players from {page.query.cache_key} "
                f"with {len(result.warnings)} warnings"
            )
        else:
            logger.info(f"Parsed {len(result.players)} players from {page.query.cache_key}")
        return result

    # ------------------------------------------------------------------
    # Row extraction
    # ------------------------------------------------------------------

    def _json_rows(self, page: RawPage) -> Tuple[List[Tuple[int, Dict[str, Any]]], List[ParseWarning]]:
        warnings: List[ParseWarning] = []
        try:
            data = json.loads(page.body)
        except (json.JSONDecodeError, TypeError) as e:
            warnings.append(ParseWarning(-1, "page", f"Invalid JSON: {e}"))
            return [], warnings

        try:
            splits = data["stats"][0]["splits"]
        except (KeyError, IndexError, TypeError):
            warnings.append(ParseWarning(-1, "page", "No stats splits in response"))
            return [], warnings

        rows = []
        for index, split in enumerate(splits or []):
            if not isinstance(split, dict):
                warnings.append(ParseWarning(index, "row", "Unreadable row skipped"))
                continue
            player = self._json_object(split, "player", index, warnings)
            team = self._json_object(split, "team", index, warnings)
            stats = self._json_object(split, "stat", index, warnings)
            position = split.get("position") or player.get("primaryPosition") or {}
            rows.append((index, {
                "id": player.get("id"),
                "name": player.get("fullName") or player.get("name"),
                "team": team.get("abbreviation") or team.get("id") or team.get("name"),
                "team_name": team.get("name"),
                "position": position.get("abbreviation") if isinstance(position, dict) else position,
                "jersey_number": player.get("primaryNumber"),
                "stats": stats,
            }))
        return rows, warnings

    @staticmethod
    def _json_object(split: Dict[str, Any], name: str, index: int, warnings: List[ParseWarning]) -> Dict[str, Any]:
        """Nested object of a split, or {} with a warning when it is not a mapping."""
        value = split.get(name)
        if value is None:
            return {}
        if not isinstance(value, dict):
            warnings.append(ParseWarning(index, name, f"Expected an object, got {type(value).__name__}"))
            return {}
        return value

    def _html_rows(self, page: RawPage) -> Tuple[List[Tuple[int, Dict[str, Any]]], List[ParseWarning]]:
        warnings: List[ParseWarning] = []
        soup = BeautifulSoup(page.body or "", "html.parser")

        for table in soup.find_all("table"):
            headers, body_rows = self._table_layout(table)
            name_idx = next((i for i, h in enumerate(headers) if h in NAME_HEADERS), None)
            if name_idx is None:
                continue
            team_idx = next((i for i, h in enumerate(headers) if h in TEAM_HEADERS), None)
            pos_idx = next((i for i, h in enumerate(headers) if h in POSITION_HEADERS), None)

            rows = []
            for index, row in enumerate(body_rows):
                cells = row.find_all(["td", "th"])
                if not cells:
                    warnings.append(ParseWarning(index, "row", "Row has no cells, skipped"))
                    continue
                rows.append((index, self._html_row(row, cells, headers, name_idx, team_idx, pos_idx)))
            return rows, warnings

        warnings.append(ParseWarning(-1, "page", "No player stats table found"))
        return [], warnings

    def _table_layout(self, table) -> Tuple[List[str], list]:
        thead = table.find("thead")
        if thead is not None:
            header_cells = thead.find_all("th")
            tbody = table.find("tbody")
            body_rows = tbody.find_all("tr") if tbody is not None else []
        else:
            all_rows = table.find_all("tr")
            if not all_rows:
                return [], []
            header_cells = all_rows[0].find_all(["th", "td"])
            body_rows = all_rows[1:]
        headers = [self._header_label(th) for th in header_cells]
        return headers, body_rows

    @staticmethod
    def _header_label(cell) -> str:
        # Sortable headers repeat the label in a tooltip; prefer the abbr attribute
        label = cell.get("abbr") or cell.get("data-col") or cell.get_text(" ", strip=True)
        label = str(label).split()[0] if str(label).split() else ""
        return label.upper().strip("▲▼↑↓")

    def _html_row(self, row, cells, headers, name_idx, team_idx, pos_idx) -> Dict[str, Any]:
        raw: Dict[str, Any] = {"stats": {}}

        if name_idx < len(cells):
            name_cell = cells[name_idx]
            link = name_cell.find("a")
            raw["name"] = (link.get_text(" ", strip=True) if link else name_cell.get_text(" ", strip=True)) or None
            if link is not None and link.get("href"):
                match = _PLAYER_ID_RE.search(link["href"])
                if match:
                    raw["id"] = match.group(1)
            pos_span = name_cell.find(class_=re.compile("position"))
            if pos_span is not None:
                raw["position"] = pos_span.get_text(strip=True)
                if link is None and raw["name"]:
                    raw["name"] = raw["name"].replace(raw["position"], "").strip() or None
        raw.setdefault("id", row.get("data-player-id"))

        if team_idx is not None and team_idx < len(cells):
            raw["team"] = cells[team_idx].get_text(" ", strip=True) or None
        if pos_idx is not None and pos_idx < len(cells):
            raw["position"] = cells[pos_idx].get_text(strip=True) or raw.get("position")

        for i, cell in enumerate(cells):
            if i in (name_idx, team_idx, pos_idx) or i >= len(headers):
                continue
            raw["stats"][headers[i]] = cell.get_text(strip=True)
        return raw

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def _build_player(
        self,
        page: RawPage,
        index: int,
        raw: Dict[str, Any],
        warnings: List[ParseWarning],
    ) -> Optional[Player]:
        query = page.query

        name = str(raw.get("name") or "").strip()
        if not name:
            warnings.append(ParseWarning(index, "name", "Missing player name, placeholder used"))
            name = UNKNOWN_PLAYER

        team = team_code_from_source(raw.get("team"))
        if team is None:
            if query.team:
                team = query.team
            else:
                warnings.append(ParseWarning(index, "team", f"Unrecognized team {raw.get('team')!r}"))
                team = UNKNOWN_TEAM

        position = normalize_position(raw.get("position"))
        if position == "UNKNOWN":
            warnings.append(ParseWarning(index, "position", f"Unparseable position {raw.get('position')!r}"))

        player_id = raw.get("id")
        if player_id is None or not str(player_id).strip():
            player_id = make_player_slug(team, name)
            warnings.append(ParseWarning(index, "id", f"Missing player id, derived {player_id}"))

        team_name = raw.get("team_name") or (TEAMS[team].name if team in TEAMS else None)
        jersey = raw.get("jersey_number")

        return Player(
            id=str(player_id).strip(),
            name=name,
            team=team,
            position=position,
            stat_type=query.stat_type,
            stats=self.normalize_stats(raw.get("stats") or {}, query.stat_type),
            fetched_at=page.fetched_at,
            team_name=team_name,
            jersey_number=str(jersey) if jersey is not None else None,
        )

    @staticmethod
    def normalize_stats(source: Dict[str, Any], stat_type: str) -> Dict[str, Any]:
        """Map source stat keys onto the canonical fields for stat_type."""
        by_alias = {str(k).upper(): v for k, v in source.items()}
        stats = {}
        for name, aliases in STAT_FIELDS[stat_type].items():
            value = None
            for alias in aliases:
                if alias in by_alias:
                    value = by_alias[alias]
                    break
            stats[name] = coerce_stat(value)
        return stats
