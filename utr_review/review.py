"""Entry points tying decoding, normalization, aggregation and ranking together."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from utr_review.callouts import rank_callouts
from utr_review.config import ReviewConfig, current_season
from utr_review.fragments import RawMatchFragment, fragment_from_dict
from utr_review.logging_utils import _dbg, _log_step
from utr_review.match_normalizer import AMBIGUOUS_DATE, Match, digit_runs, normalize, reject_reason
from utr_review.rating_history import RatingPoint, annotate_rating_deltas, history_from_dicts, season_rating_summary
from utr_review.score_decoder import DOUBLES, SINGLES, UNPARSEABLE_SCORE, decode
from utr_review.season_stats import SeasonStats, aggregate, season_to_dict

OTHER_SEASON = "other_season"


def _season_year(season_year: Optional[int], config: Optional[ReviewConfig]) -> int:
    if season_year is not None:
        return int(season_year)
    if config is not None:
        return config.season
    return current_season()


def decode_and_normalize(
    fragment: RawMatchFragment,
    *,
    season_year: Optional[int] = None,
    config: Optional[ReviewConfig] = None,
) -> Optional[Match]:
    """Decode one fragment's score and normalize it. None means the fragment was excluded."""
    my_digits, opp_digits = digit_runs(fragment)
    decoded = decode(my_digits, opp_digits, fragment.discipline)
    return normalize(fragment, decoded, season_year=_season_year(season_year, config))


def normalize_fragments(
    fragments: Iterable[RawMatchFragment],
    *,
    season_year: Optional[int] = None,
    config: Optional[ReviewConfig] = None,
    my_history: Sequence[RatingPoint] = (),
    opponent_histories: Optional[Mapping[str, Sequence[RatingPoint]]] = None,
) -> Tuple[List[Match], Dict[str, int]]:
    """
    Normalize a batch of fragments for one season.

    Returns the kept matches sorted by date (stable, so same-day matches keep
    their input order) and a count of skipped or flagged fragments per reason.
    Matches with an unparseable score are kept and only counted.
    """
    year = _season_year(season_year, config)
    prefix = f"{year}-"
    kept: List[Match] = []
    skip_reasons: Dict[str, int] = {}
    for fragment in fragments:
        reason = reject_reason(fragment, year)
        if reason is not None:
            skip_reasons[reason] = skip_reasons.get(reason, 0) + 1
            _dbg(f"skip fragment: {reason} text={fragment.raw_text[:60]!r}")
            continue
        match = decode_and_normalize(fragment, season_year=year)
        if match is None:
            skip_reasons[AMBIGUOUS_DATE] = skip_reasons.get(AMBIGUOUS_DATE, 0) + 1
            continue
        if not match.date.startswith(prefix):
            skip_reasons[OTHER_SEASON] = skip_reasons.get(OTHER_SEASON, 0) + 1
            continue
        if match.unparseable:
            skip_reasons[UNPARSEABLE_SCORE] = skip_reasons.get(UNPARSEABLE_SCORE, 0) + 1
            _dbg(f"{UNPARSEABLE_SCORE}: {match.date} vs {match.opponent_name}")
        if my_history or opponent_histories:
            opp_history = (opponent_histories or {}).get(match.opponent_id or "")
            match = annotate_rating_deltas(match, my_history, opp_history)
        kept.append(match)
    kept.sort(key=lambda m: m.date)
    return kept, skip_reasons


def compute_season_stats(
    player_id: str,
    season: int,
    matches: Sequence[Match],
    *,
    rating_history: Optional[Sequence[RatingPoint]] = None,
    config: Optional[ReviewConfig] = None,
) -> SeasonStats:
    """Aggregate date-sorted matches and rank the callouts. Never raises for odd input."""
    exclude_zero = config.exclude_zero_ratings if config is not None else False
    _log_step(f"season stats: player={player_id} season={season} matches={len(matches)}")
    stats = aggregate(matches, exclude_zero_ratings=exclude_zero)
    stats = rank_callouts(stats, config)
    summary = season_rating_summary(rating_history, season) if rating_history else None
    return replace(stats, player_id=str(player_id), season=int(season), rating_summary=summary)


def _fragments_from_payload(payload: Mapping[str, Any], player_name: str) -> List[RawMatchFragment]:
    out: List[RawMatchFragment] = []
    for row in payload.get("fragments") or []:
        if isinstance(row, dict):
            out.append(fragment_from_dict(row, player_name=player_name))
    for key, discipline in (("singlesMatches", SINGLES), ("doublesMatches", DOUBLES)):
        for row in payload.get(key) or []:
            if isinstance(row, dict):
                out.append(fragment_from_dict(row, player_name=player_name, discipline=discipline))
    return out


def _opponent_histories(payload: Mapping[str, Any]) -> Dict[str, List[RatingPoint]]:
    out: Dict[str, List[RatingPoint]] = {}
    raw = payload.get("opponentHistories") or {}
    if not isinstance(raw, dict):
        return out
    for opp_id, entry in raw.items():
        rows = entry.get("history") if isinstance(entry, dict) else entry
        if isinstance(rows, list):
            out[str(opp_id)] = history_from_dicts(rows)
    return out


@dataclass(frozen=True)
class ReviewResult:
    player_id: str
    season: int
    player_name: str
    singles_rating: Optional[float]
    singles: SeasonStats
    doubles: SeasonStats
    skip_reasons: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profileId": self.player_id,
            "year": self.season,
            "player": {"name": self.player_name, "singlesUtr": self.singles_rating},
            "skipReasons": dict(self.skip_reasons),
            SINGLES: season_to_dict(self.singles),
            DOUBLES: season_to_dict(self.doubles),
        }


def review_payload(
    player_id: str,
    season: int,
    payload: Mapping[str, Any],
    *,
    config: Optional[ReviewConfig] = None,
) -> ReviewResult:
    """
    Review a scraped payload.

    `payload` holds either a flat "fragments" list (each row tagged with its
    "type") or the scraper's "singlesMatches" / "doublesMatches" lists, plus
    optional "playerName", "singlesUtr", "singlesHistory" and
    "opponentHistories". Singles and doubles are reviewed separately.
    """
    player_name = str(payload.get("playerName") or "")
    history = history_from_dicts(payload.get("singlesHistory") or [])
    fragments = _fragments_from_payload(payload, player_name)
    matches, skip_reasons = normalize_fragments(
        fragments,
        season_year=season,
        config=config,
        my_history=history,
        opponent_histories=_opponent_histories(payload),
    )
    by_discipline: Dict[str, SeasonStats] = {}
    for discipline in (SINGLES, DOUBLES):
        by_discipline[discipline] = compute_season_stats(
            player_id,
            season,
            [m for m in matches if m.discipline == discipline],
            rating_history=history if discipline == SINGLES else None,
            config=config,
        )
    rating = payload.get("singlesUtr")
    if not isinstance(rating, (int, float)):
        rating = history[-1].rating if history else None
    return ReviewResult(
        player_id=str(player_id),
        season=int(season),
        player_name=player_name,
        singles_rating=rating,
        singles=by_discipline[SINGLES],
        doubles=by_discipline[DOUBLES],
        skip_reasons=skip_reasons,
    )


def build_review(
    player_id: str,
    season: int,
    payload: Mapping[str, Any],
    *,
    config: Optional[ReviewConfig] = None,
) -> Dict[str, Any]:
    """The stored review document for `payload`."""
    return review_payload(player_id, season, payload, config=config).to_dict()
