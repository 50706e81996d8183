from __future__ import annotations

import datetime as _dt
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from utr_review.fragments import (
    RawMatchFragment,
    ScoreSide,
    extract_date_text,
    first_name,
    mentions_name,
    isolate_sides,
    normalize_name,
    orient_sides,
    partner_of,
    team_key,
    walkover_marker_index,
)
from utr_review.logging_utils import _dbg
from utr_review.score_decoder import (
    DOUBLES,
    DecodedScore,
    SetOutcome,
    format_sets,
    outcome_from_dict,
    outcome_to_dict,
    won_from_sets,
)

AMBIGUOUS_DATE = "ambiguous_date"
UNKNOWN_OPPONENT = "Unknown"

_MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_ISO_RE = re.compile(r"^\s*(\d{4})-(\d{2})-(\d{2})\s*$")
_MONTH_DAY_RE = re.compile(r"([A-Za-z]{3,9})\.?\s*(\d{1,2})\b(?:,?\s*(\d{4}))?")


@dataclass(frozen=True)
class Match:
    date: str
    discipline: str
    opponent_id: Optional[str]
    opponent_name: str
    my_rating: float
    opponent_rating: float
    sets: Tuple[SetOutcome, ...]
    is_walkover: bool
    won: Optional[bool]
    partner_name: Optional[str] = None
    opponent_names: Tuple[str, ...] = field(default_factory=tuple)
    my_rating_delta: Optional[float] = None
    opponent_rating_delta: Optional[float] = None
    raw_text: str = ""

    @property
    def score(self) -> str:
        if self.is_walkover and not self.sets:
            return "W/O"
        return format_sets(self.sets)

    @property
    def unparseable(self) -> bool:
        return not self.sets and not self.is_walkover

    @property
    def opponent_key(self) -> Optional[str]:
        if self.discipline == DOUBLES and self.opponent_names:
            return team_key(self.opponent_names)
        if self.opponent_id:
            return self.opponent_id
        if self.opponent_name and self.opponent_name != UNKNOWN_OPPONENT:
            return self.opponent_name
        return None

    @property
    def rating_diff(self) -> float:
        return round(self.opponent_rating - self.my_rating, 2)

    @property
    def month(self) -> str:
        return self.date[:7]


def normalize_date(text: Optional[str], season_year: int) -> Optional[str]:
    """
    Return an ISO date for "YYYY-MM-DD", "Mon D" or "Mon D, YYYY".

    Bare "Mon D" takes `season_year`. Unknown months and impossible days
    give None.
    """
    raw = (text or "").strip()
    if not raw:
        return None
    m = _ISO_RE.match(raw)
    if m:
        year, month, day = int(m.group(1)), int(m.group(2)), int(m.group(3))
    else:
        m = _MONTH_DAY_RE.search(raw)
        if not m:
            return None
        month = _MONTHS.get(m.group(1)[:3].lower())
        if month is None:
            return None
        day = int(m.group(2))
        year = int(m.group(3)) if m.group(3) else int(season_year)
    try:
        return _dt.date(year, month, day).isoformat()
    except ValueError:
        return None


def reject_reason(fragment: RawMatchFragment, season_year: int) -> Optional[str]:
    date_text = fragment.date_text or extract_date_text(fragment.raw_text)
    if normalize_date(date_text, season_year) is None:
        return AMBIGUOUS_DATE
    return None


def _walkover_won(fragment: RawMatchFragment) -> Optional[bool]:
    # The side listed before the marker advanced.
    idx = walkover_marker_index(fragment.raw_text)
    fn = first_name(fragment.player_name)
    if idx >= 0 and fn:
        return mentions_name(fragment.raw_text[:idx], fn)
    if fragment.won_hint is not None:
        return fragment.won_hint
    return True


def _sides_for(fragment: RawMatchFragment) -> Optional[Tuple[ScoreSide, ScoreSide]]:
    sides = isolate_sides(fragment.raw_text, fragment.discipline)
    if sides is None:
        return None
    return orient_sides(sides, fragment.player_name)


def digit_runs(fragment: RawMatchFragment) -> Tuple[str, str]:
    """Return (my_digits, opp_digits); empty strings when the card has no score runs."""
    sides = _sides_for(fragment)
    if sides is None:
        return "", ""
    mine, theirs = sides
    return mine.digits, theirs.digits


def normalize(fragment: RawMatchFragment, decoded: DecodedScore, *, season_year: int) -> Optional[Match]:
    """
    Build a Match from one fragment and its decoded score.

    Returns None when the date cannot be resolved; never raises.
    """
    date_text = fragment.date_text or extract_date_text(fragment.raw_text)
    date = normalize_date(date_text, season_year)
    sides = _sides_for(fragment)
    mine, theirs = sides if sides is not None else (None, None)

    opponent_names: Tuple[str, ...] = ()
    partner: Optional[str] = None
    if fragment.discipline == DOUBLES and theirs is not None:
        opponent_names = tuple(n for n in theirs.names if n)
        partner = partner_of(mine, fragment.player_name) if mine is not None else None
    opponent_name = normalize_name(fragment.opponent_name or "")
    if opponent_names:
        opponent_name = team_key(opponent_names)
    elif not opponent_name and theirs is not None and theirs.names:
        opponent_name = theirs.names[0]

    if date is None:
        _dbg(f"normalize: {AMBIGUOUS_DATE} date={date_text!r} opponent={opponent_name or '-'}")
        return None

    is_walkover = bool(fragment.is_walkover) or walkover_marker_index(fragment.raw_text) >= 0
    if is_walkover:
        won = _walkover_won(fragment)
    elif decoded.sets:
        won = won_from_sets(decoded.sets)
    else:
        won = fragment.won_hint

    return Match(
        date=date,
        discipline=fragment.discipline,
        opponent_id=fragment.opponent_id,
        opponent_name=opponent_name or UNKNOWN_OPPONENT,
        my_rating=mine.rating if mine is not None else 0.0,
        opponent_rating=theirs.rating if theirs is not None else 0.0,
        sets=tuple(decoded.sets),
        is_walkover=is_walkover,
        won=won,
        partner_name=partner,
        opponent_names=opponent_names,
        raw_text=fragment.raw_text,
    )


def match_to_dict(match: Match) -> Dict[str, Any]:
    return {
        "date": match.date,
        "discipline": match.discipline,
        "opponentId": match.opponent_id,
        "opponent": match.opponent_name,
        "opponentNames": list(match.opponent_names),
        "partner": match.partner_name,
        "myRating": match.my_rating,
        "opponentRating": match.opponent_rating,
        "ratingDiff": match.rating_diff,
        "myRatingDelta": match.my_rating_delta,
        "opponentRatingDelta": match.opponent_rating_delta,
        "sets": [outcome_to_dict(s) for s in match.sets],
        "score": match.score,
        "isWalkover": match.is_walkover,
        "won": match.won,
    }


def match_from_dict(data: Dict[str, Any]) -> Match:
    def _opt_float(v: Any) -> Optional[float]:
        return float(v) if isinstance(v, (int, float)) else None

    won = data.get("won")
    return Match(
        date=str(data.get("date") or ""),
        discipline=str(data.get("discipline") or "singles"),
        opponent_id=(str(data["opponentId"]) if data.get("opponentId") is not None else None),
        opponent_name=str(data.get("opponent") or UNKNOWN_OPPONENT),
        my_rating=float(data.get("myRating") or 0.0),
        opponent_rating=float(data.get("opponentRating") or 0.0),
        sets=tuple(outcome_from_dict(s) for s in (data.get("sets") or [])),
        is_walkover=bool(data.get("isWalkover") or False),
        won=won if isinstance(won, bool) else None,
        partner_name=data.get("partner"),
        opponent_names=tuple(data.get("opponentNames") or ()),
        my_rating_delta=_opt_float(data.get("myRatingDelta")),
        opponent_rating_delta=_opt_float(data.get("opponentRatingDelta")),
    )
