"""Shared utility functions for the roster stats backend."""

import re
import unicodedata
from typing import Optional, Dict, Any, NamedTuple, Union


class TeamInfo(NamedTuple):
    code: str
    team_id: int
    name: str
    nickname: str
    slug: str


# MLB Stats API team ids; slug is the team's path segment on mlb.com
TEAMS: Dict[str, TeamInfo] = {
    t.code: t
    for t in (
        TeamInfo("NYY", 147, "New York Yankees", "Yankees", "yankees"),
        TeamInfo("BOS", 111, "Boston Red Sox", "Red Sox", "redsox"),
        TeamInfo("TOR", 141, "Toronto Blue Jays", "Blue Jays", "bluejays"),
        TeamInfo("TB", 139, "Tampa Bay Rays", "Rays", "rays"),
        TeamInfo("BAL", 110, "Baltimore Orioles", "Orioles", "orioles"),
        TeamInfo("CLE", 114, "Cleveland Guardians", "Guardians", "guardians"),
        TeamInfo("MIN", 142, "Minnesota Twins", "Twins", "twins"),
        TeamInfo("CWS", 145, "Chicago White Sox", "White Sox", "whitesox"),
        TeamInfo("DET", 116, "Detroit Tigers", "Tigers", "tigers"),
        TeamInfo("KC", 118, "Kansas City Royals", "Royals", "royals"),
        TeamInfo("HOU", 117, "Houston Astros", "Astros", "astros"),
        TeamInfo("SEA", 136, "Seattle Mariners", "Mariners", "mariners"),
        TeamInfo("TEX", 140, "Texas Rangers", "Rangers", "rangers"),
        TeamInfo("LAA", 108, "Los Angeles Angels", "Angels", "angels"),
        TeamInfo("OAK", 133, "Athletics", "Athletics", "athletics"),
        TeamInfo("ATL", 144, "Atlanta Braves", "Braves", "braves"),
        TeamInfo("NYM", 121, "New York Mets", "Mets", "mets"),
        TeamInfo("PHI", 143, "Philadelphia Phillies", "Phillies", "phillies"),
        TeamInfo("MIA", 146, "Miami Marlins", "Marlins", "marlins"),
        TeamInfo("WSH", 120, "Washington Nationals", "Nationals", "nationals"),
        TeamInfo("STL", 138, "St. Louis Cardinals", "Cardinals", "cardinals"),
        TeamInfo("CHC", 112, "Chicago Cubs", "Cubs", "cubs"),
        TeamInfo("MIL", 158, "Milwaukee Brewers", "Brewers", "brewers"),
        TeamInfo("CIN", 113, "Cincinnati Reds", "Reds", "reds"),
        TeamInfo("PIT", 134, "Pittsburgh Pirates", "Pirates", "pirates"),
        TeamInfo("LAD", 119, "Los Angeles Dodgers", "Dodgers", "dodgers"),
        TeamInfo("SD", 135, "San Diego Padres", "Padres", "padres"),
        TeamInfo("SF", 137, "San Francisco Giants", "Giants", "giants"),
        TeamInfo("ARI", 109, "Arizona Diamondbacks", "Diamondbacks", "dbacks"),
        TeamInfo("COL", 115, "Colorado Rockies", "Rockies", "rockies"),
    )
}

# Codes used by other sources for the same clubs
TEAM_CODE_ALIASES = {
    "AZ": "ARI",
    "ATH": "OAK",
    "CHW": "CWS",
    "WAS": "WSH",
    "KCR": "KC",
    "SDP": "SD",
    "SFG": "SF",
    "TBR": "TB",
}

TEAM_ID_TO_CODE = {t.team_id: t.code for t in TEAMS.values()}

UNKNOWN_TEAM = "UNK"

POSITIONS = frozenset({
    "C", "1B", "2B", "3B", "SS", "LF", "CF", "RF", "OF", "DH",
    "P", "SP", "RP", "TWP", "UNKNOWN",
})

POSITION_ALIASES = {
    "CATCHER": "C",
    "FIRST BASE": "1B",
    "FIRST BASEMAN": "1B",
    "SECOND BASE": "2B",
    "SECOND BASEMAN": "2B",
    "THIRD BASE": "3B",
    "THIRD BASEMAN": "3B",
    "SHORTSTOP": "SS",
    "LEFT FIELD": "LF",
    "LEFT FIELDER": "LF",
    "CENTER FIELD": "CF",
    "CENTER FIELDER": "CF",
    "RIGHT FIELD": "RF",
    "RIGHT FIELDER": "RF",
    "OUTFIELD": "OF",
    "OUTFIELDER": "OF",
    "DESIGNATED HITTER": "DH",
    "PITCHER": "P",
    "STARTING PITCHER": "SP",
    "RELIEF PITCHER": "RP",
    "RELIEVER": "RP",
    "TWO-WAY PLAYER": "TWP",
    "TWO WAY PLAYER": "TWP",
    "Y": "TWP",  # MLB Stats API abbreviation for two-way players
}

# Placeholder tokens sites render for "no value"
_EMPTY_STAT_TOKENS = {"", "-", "--", "---", "-.--", ".---", "—", "N/A", "NA", "*"}

_TEAM_CODE_RE = re.compile(r"^[A-Za-z]{2,3}$")


def normalize_name(name: str) -> str:
    """
    Normalize a player name for matching across different data sources.

    - Removes accents (é → e, ñ → n)
    - Converts to lowercase
    - Strips whitespace
    - Removes suffixes like Jr., Sr., II, III

    Args:
        name: The player name to normalize

    Returns:
        Normalized name string for comparison
    """
    if not name:
        return ""
    result = fold_text(name).strip()
    # Remove common suffixes for better matching
    result = re.sub(r'\s+(jr\.?|sr\.?|ii|iii|iv)$', '', result, flags=re.IGNORECASE)
    return result


def fold_text(text: str) -> str:
    """Strip accents, lowercase, hyphens → spaces. Used for substring search."""
    if not text:
        return ""
    nfd = unicodedata.normalize('NFD', text)
    without_accents = ''.join(c for c in nfd if unicodedata.category(c) != 'Mn')
    return re.sub(r'\s+', ' ', without_accents.lower().replace('-', ' '))


def sanitize_error_message(error: Union[Exception, str]) -> str:
    """
    Sanitize an error message for safe display to clients.

    Removes file paths, line numbers and query strings that could leak
    internals of the origin request.

    Args:
        error: The exception (or message) to sanitize

    Returns:
        A safe error message string
    """
    error_str = str(error)
    # Remove file paths
    error_str = re.sub(r'/[^\s]+\.py', '[file]', error_str)
    # Remove line numbers
    error_str = re.sub(r'line \d+', 'line [num]', error_str)
    # Drop query strings from URLs
    error_str = re.sub(r'(https?://[^\s?]+)\?[^\s\'"]*', r'\1', error_str)
    # Truncate long messages
    if len(error_str) > 200:
        error_str = error_str[:200] + '...'
    return error_str


def validate_search_query(query: str, max_length: int = 100) -> str:
    """
    Validate and trim a search query string.

    Args:
        query: The search query to validate
        max_length: Maximum allowed length

    Returns:
        Trimmed query string

    Raises:
        ValueError: If query is invalid
    """
    if not query or not query.strip():
        raise ValueError("Search term cannot be empty")

    query = query.strip()

    if len(query) > max_length:
        raise ValueError(f"Search term too long (max {max_length} characters)")

    return query


def normalize_team_code(code: Optional[str]) -> str:
    """
    Resolve a user or source supplied team code to its canonical form.

    Raises:
        ValueError: If the code is empty, malformed or not an MLB club
    """
    if not code or not code.strip():
        raise ValueError("Team code cannot be empty")
    cleaned = code.strip()
    if not _TEAM_CODE_RE.match(cleaned):
        raise ValueError(f"Invalid team code '{cleaned}': expected 2-3 letters")
    upper = cleaned.upper()
    upper = TEAM_CODE_ALIASES.get(upper, upper)
    if upper not in TEAMS:
        raise ValueError(f"Unknown team code '{cleaned}'")
    return upper


def team_code_from_source(value: Any) -> Optional[str]:
    """Best-effort team code from an origin team id, code or display name."""
    if value is None:
        return None
    if isinstance(value, int) or (isinstance(value, str) and value.isdigit()):
        return TEAM_ID_TO_CODE.get(int(value))
    text = str(value).strip()
    if not text:
        return None
    try:
        return normalize_team_code(text)
    except ValueError:
        pass
    # Whole-word nickname match, so "Red Sox" never resolves to the White Sox
    padded = f" {fold_text(text)} "
    for team in TEAMS.values():
        if f" {fold_text(team.nickname)} " in padded:
            return team.code
    return None


def normalize_position(value: Optional[str]) -> str:
    """Map a source position label to the canonical set, or 'UNKNOWN'."""
    if not value:
        return "UNKNOWN"
    label = str(value).strip().upper()
    if label in POSITIONS:
        return label
    if label in POSITION_ALIASES:
        return POSITION_ALIASES[label]
    # Multi-position strings ("SS/OF", "1B, DH") take the first listed
    for token in re.split(r'[/,]', label):
        token = token.strip()
        if token in POSITIONS:
            return token
        if token in POSITION_ALIASES:
            return POSITION_ALIASES[token]
    return "UNKNOWN"


def clean_numeric_string(value: str) -> float:
    """
    Clean a numeric string by removing commas and converting to float.

    Args:
        value: The numeric string to clean (e.g., '1,001.50')

    Returns:
        Float representation of the cleaned numeric string

    Raises:
        ValueError: If the string cannot be converted to float
    """
    if value is None:
        return None

    if isinstance(value, (int, float)):
        return float(value)

    # Remove commas and any whitespace
    cleaned = str(value).replace(',', '').strip()

    # Handle empty strings
    if not cleaned:
        return None

    return float(cleaned)


def coerce_stat(value: Any) -> Optional[Union[int, float]]:
    """
    Tolerant numeric coercion for scraped stat cells.

    Whole numbers come back as int, rates (".310", "2.78") as float, and
    anything unreadable as None. Never raises.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() and abs(value) < 1e15 else value
    text = str(value).strip().rstrip('%')
    if text.upper() in _EMPTY_STAT_TOKENS:
        return None
    try:
        number = clean_numeric_string(text)
    except (ValueError, TypeError):
        return None
    if number is None or number != number or number in (float('inf'), float('-inf')):
        return None
    if number.is_integer() and '.' not in text:
        return int(number)
    return number


def make_player_slug(team: str, name: str) -> str:
    """Deterministic fallback id for rows without an origin player id."""
    base = re.sub(r'[^a-z0-9]+', '-', normalize_name(name)).strip('-') or "unknown"
    return f"{team.lower()}-{base}"
