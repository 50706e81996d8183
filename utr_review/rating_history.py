from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence

from utr_review.match_normalizer import Match, normalize_date


@dataclass(frozen=True)
class RatingPoint:
    date: str
    rating: float


_ISO_ROW_RE = re.compile(r"(\d{4}-\d{2}-\d{2})\s*(\d+\.\d{2})")
_LONG_ROW_RE = re.compile(r"([A-Z][a-z]{2}\s+\d{1,2},?\s+\d{4})\s+(\d+\.\d{2})")


def parse_rating_history(text: str) -> List[RatingPoint]:
    """
    Parse rating rows out of the rating-history tab text.

    Both "2025-12-29 5.73" and "Dec 29, 2025 5.73" rows are read. The first
    row seen for a date wins; the result is sorted by date.
    """
    seen: Dict[str, float] = {}
    for m in _ISO_ROW_RE.finditer(text or ""):
        if normalize_date(m.group(1), 0) is None:
            continue
        seen.setdefault(m.group(1), float(m.group(2)))
    for m in _LONG_ROW_RE.finditer(text or ""):
        iso = normalize_date(m.group(1), 0)
        if iso is None:
            continue
        seen.setdefault(iso, float(m.group(2)))
    return [RatingPoint(date=d, rating=r) for d, r in sorted(seen.items())]


def history_from_dicts(rows: Sequence[Dict[str, Any]]) -> List[RatingPoint]:
    out: Dict[str, float] = {}
    for row in rows or []:
        date = normalize_date(str(row.get("date") or ""), 0)
        rating = row.get("rating")
        if date is None or not isinstance(rating, (int, float)):
            continue
        out.setdefault(date, float(rating))
    return [RatingPoint(date=d, rating=r) for d, r in sorted(out.items())]


def history_to_dicts(history: Sequence[RatingPoint]) -> List[Dict[str, Any]]:
    return [{"date": p.date, "rating": p.rating} for p in history]


def rating_before(history: Sequence[RatingPoint], date: str) -> Optional[RatingPoint]:
    """Last point on or before `date`."""
    closest: Optional[RatingPoint] = None
    for point in history:
        if point.date <= date:
            closest = point
        else:
            break
    return closest


def rating_after(history: Sequence[RatingPoint], date: str) -> Optional[RatingPoint]:
    """First point strictly after `date`."""
    for point in history:
        if point.date > date:
            return point
    return None


def _delta(history: Sequence[RatingPoint], date: str) -> Optional[float]:
    before = rating_before(history, date)
    after = rating_after(history, date)
    if before is None or after is None:
        return None
    return round(after.rating - before.rating, 2)


def annotate_rating_deltas(
    match: Match,
    my_history: Sequence[RatingPoint],
    opponent_history: Optional[Sequence[RatingPoint]] = None,
) -> Match:
    my_delta = _delta(my_history, match.date) if my_history else None
    opp_delta = _delta(opponent_history, match.date) if opponent_history else None
    return replace(match, my_rating_delta=my_delta, opponent_rating_delta=opp_delta)


def _point_dict(point: Optional[RatingPoint]) -> Optional[Dict[str, Any]]:
    if point is None:
        return None
    return {"rating": point.rating, "date": point.date}


def season_rating_summary(history: Sequence[RatingPoint], season: int) -> Dict[str, Any]:
    prefix = f"{int(season)}-"
    in_season = [p for p in history if p.date.startswith(prefix)]
    peak = max(in_season, key=lambda p: p.rating, default=None)
    low = min(in_season, key=lambda p: p.rating, default=None)
    all_time = max(history, key=lambda p: p.rating, default=None)
    all_time_low = min(history, key=lambda p: p.rating, default=None)
    start = in_season[0].rating if in_season else None
    end = in_season[-1].rating if in_season else None
    return {
        "points": len(in_season),
        "start": start,
        "end": end,
        "change": round(end - start, 2) if start is not None and end is not None else None,
        "peak": _point_dict(peak),
        "min": _point_dict(low),
        "allTimePeak": _point_dict(all_time),
        "allTimeMin": _point_dict(all_time_low),
    }
