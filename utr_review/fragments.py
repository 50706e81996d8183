from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from utr_review.score_decoder import DOUBLES, SINGLES

WALKOVER_MARKERS = ("walkover", "w/o")


@dataclass(frozen=True)
class RawMatchFragment:
    """One score card as extracted from the results page."""

    raw_text: str
    discipline: str = SINGLES
    date_text: str = ""
    opponent_id: Optional[str] = None
    opponent_name: Optional[str] = None
    player_name: str = ""
    is_walkover: bool = False
    won_hint: Optional[bool] = None
    opponent_ids: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ScoreSide:
    names: Tuple[str, ...]
    ratings: Tuple[float, ...]
    digits: str

    @property
    def rating(self) -> float:
        if not self.ratings:
            return 0.0
        return round(sum(self.ratings) / len(self.ratings), 2)


_RATING_RE = re.compile(r"\d+\.\d{2}")
_SINGLES_SIDE_RE = re.compile(
    r"(?P<name>[A-Z][\w'.-]*(?:\s+[A-Z][\w'.-]*)*)\s+(?P<rating>\d+\.\d{2})\s+(?P<digits>\d+)"
)
_TWO_WORD_NAME_RE = re.compile(r"[A-Z][a-z'-]+ [A-Z][a-z'-]+")
_LEADING_DIGITS_RE = re.compile(r"^\s*(\d+)")
_CARD_DATE_RE = re.compile(r"\|\s*([A-Za-z]{3,9}\s+\d{1,2}(?:,?\s+\d{4})?)")
_ISO_DATE_RE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")


def normalize_name(name: str) -> str:
    return re.sub(r"\s+", " ", (name or "")).strip()


def team_key(names: Sequence[str]) -> str:
    return " / ".join(sorted(normalize_name(n) for n in names if normalize_name(n)))


def first_name(full_name: str) -> str:
    parts = normalize_name(full_name).split(" ")
    return parts[0] if parts and parts[0] else ""


def mentions_name(text: str, name: str) -> bool:
    """True when `name` appears in `text` as a whole word ("Al" is not found in "Alice")."""
    if not name:
        return False
    return re.search(rf"\b{re.escape(name)}\b", text or "") is not None


def _singles_sides(text: str) -> Optional[Tuple[ScoreSide, ScoreSide]]:
    found = list(_SINGLES_SIDE_RE.finditer(text))
    if len(found) < 2:
        return None
    sides = []
    for m in found[:2]:
        sides.append(
            ScoreSide(
                names=(normalize_name(m.group("name")),),
                ratings=(float(m.group("rating")),),
                digits=m.group("digits"),
            )
        )
    return sides[0], sides[1]


def _doubles_sides(text: str) -> Optional[Tuple[ScoreSide, ScoreSide]]:
    # Layout: "A1 A2 r1 r2 <digits> B1 B2 r3 r4 <digits>"
    ratings = list(_RATING_RE.finditer(text))
    if len(ratings) < 4:
        return None
    first_digits = _LEADING_DIGITS_RE.match(text[ratings[1].end():])
    second_digits = _LEADING_DIGITS_RE.match(text[ratings[3].end():])
    if not first_digits or not second_digits:
        return None
    team_a = _TWO_WORD_NAME_RE.findall(text[: ratings[0].start()])[-2:]
    between = text[ratings[1].end() + first_digits.end(): ratings[2].start()]
    team_b = _TWO_WORD_NAME_RE.findall(between)[-2:]
    side_a = ScoreSide(
        names=tuple(normalize_name(n) for n in team_a),
        ratings=(float(ratings[0].group()), float(ratings[1].group())),
        digits=first_digits.group(1),
    )
    side_b = ScoreSide(
        names=tuple(normalize_name(n) for n in team_b),
        ratings=(float(ratings[2].group()), float(ratings[3].group())),
        digits=second_digits.group(1),
    )
    return side_a, side_b


def isolate_sides(raw_text: str, discipline: str = SINGLES) -> Optional[Tuple[ScoreSide, ScoreSide]]:
    """
    Split a score-card text into its two sides (listing order).

    Singles cards read "Name rating digits Name rating digits". Doubles cards
    carry two names and two ratings per team before each digit run.
    """
    text = re.sub(r"\s+", " ", raw_text or "").strip()
    if not text:
        return None
    if discipline == DOUBLES:
        return _doubles_sides(text)
    return _singles_sides(text)


def _side_has_player(side: ScoreSide, player_name: str) -> bool:
    fn = first_name(player_name)
    if not fn:
        return False
    return any(mentions_name(n, fn) for n in side.names)


def orient_sides(
    sides: Tuple[ScoreSide, ScoreSide], player_name: str
) -> Tuple[ScoreSide, ScoreSide]:
    """Return (mine, theirs). The first listed side is assumed when the name is absent."""
    a, b = sides
    if not _side_has_player(a, player_name) and _side_has_player(b, player_name):
        return b, a
    return a, b


def partner_of(side: ScoreSide, player_name: str) -> Optional[str]:
    full = normalize_name(player_name)
    fn = first_name(player_name)
    others = [n for n in side.names if n != full and not mentions_name(n, fn)]
    if others:
        return others[0]
    # Partner shares the player's first name.
    rest = [n for n in side.names if n != full]
    return rest[0] if len(side.names) > 1 and rest else None


def extract_date_text(raw_text: str) -> str:
    text = raw_text or ""
    m = _ISO_DATE_RE.search(text)
    if m:
        return m.group(1)
    m = _CARD_DATE_RE.search(text)
    return m.group(1).strip() if m else ""


def walkover_marker_index(raw_text: str) -> int:
    lo = (raw_text or "").lower()
    hits = [lo.find(marker) for marker in WALKOVER_MARKERS if marker in lo]
    return min(hits) if hits else -1


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _opt_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    return None


def fragment_from_dict(data: Dict[str, Any], *, player_name: str = "", discipline: str = SINGLES) -> RawMatchFragment:
    """Build a fragment from scraper JSON (camelCase or snake_case keys)."""

    def _get(*keys: str) -> Any:
        for k in keys:
            if k in data and data[k] is not None:
                return data[k]
        return None

    ids = _get("opponentIds", "opponent_ids") or []
    return RawMatchFragment(
        raw_text=str(_get("rawText", "raw_text") or ""),
        discipline=str(_get("type", "discipline") or discipline),
        date_text=str(_get("date", "date_text") or ""),
        opponent_id=_opt_str(_get("opponentId", "opponent_id")),
        opponent_name=_opt_str(_get("opponent", "opponent_name")),
        player_name=str(_get("playerName", "player_name") or player_name),
        is_walkover=bool(_get("isWalkover", "is_walkover") or False),
        won_hint=_opt_bool(_get("won", "won_hint")),
        opponent_ids=tuple(str(x) for x in ids if x is not None),
    )


def fragment_to_dict(fragment: RawMatchFragment) -> Dict[str, Any]:
    return {
        "rawText": fragment.raw_text,
        "type": fragment.discipline,
        "date": fragment.date_text,
        "opponentId": fragment.opponent_id,
        "opponent": fragment.opponent_name,
        "playerName": fragment.player_name,
        "isWalkover": fragment.is_walkover,
        "won": fragment.won_hint,
        "opponentIds": list(fragment.opponent_ids),
    }

