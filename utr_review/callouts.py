from __future__ import annotations

from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from utr_review.config import DEFAULT_MIN_HEAD_TO_HEAD, ReviewConfig
from utr_review.match_normalizer import Match
from utr_review.season_stats import HeadToHead, OpponentAggregate, SeasonStats

TOP_FREQUENT = 5
TOP_QUALITY_WINS = 3
TOP_SPLITS = 5


def _pick(
    entries: Iterable[OpponentAggregate],
    keep: Callable[[OpponentAggregate], bool],
    rank: Callable[[OpponentAggregate], tuple],
) -> Optional[OpponentAggregate]:
    pool = [e for e in entries if keep(e)]
    if not pool:
        return None
    return min(pool, key=lambda e: rank(e) + (e.name, e.key))


def nemesis(entries: Iterable[OpponentAggregate], *, min_played: int = DEFAULT_MIN_HEAD_TO_HEAD) -> Optional[OpponentAggregate]:
    """Worst net record; then most negative game differential; then most played."""
    return _pick(
        entries,
        lambda e: e.losses >= 1 and e.played >= min_played,
        lambda e: (e.wins - e.losses, e.game_diff, -e.played),
    )


def dominated_opponent(
    entries: Iterable[OpponentAggregate], *, min_played: int = DEFAULT_MIN_HEAD_TO_HEAD
) -> Optional[OpponentAggregate]:
    """Best net record; then most positive game differential; then most played."""
    return _pick(
        entries,
        lambda e: e.wins >= 1 and e.played >= min_played,
        lambda e: (e.losses - e.wins, -e.game_diff, -e.played),
    )


def game_diff_pct(entry: OpponentAggregate) -> float:
    total = entry.total_games
    if total <= 0:
        return 0.0
    return abs(entry.game_diff / total * 100)


def closest_rival(
    entries: Iterable[OpponentAggregate], *, min_played: int = DEFAULT_MIN_HEAD_TO_HEAD
) -> Optional[OpponentAggregate]:
    """Smallest game differential as a share of games; then most even record; then most played."""
    return _pick(
        entries,
        lambda e: e.played >= max(2, min_played),
        lambda e: (game_diff_pct(e), abs(e.wins - e.losses), -e.played),
    )


def _rated(match: Match, exclude_zero_ratings: bool) -> bool:
    return not exclude_zero_ratings or (match.my_rating > 0 and match.opponent_rating > 0)


def best_win(matches: Sequence[Match], *, exclude_zero_ratings: bool = False) -> Optional[Match]:
    best: Optional[Match] = None
    for m in matches:
        if m.is_walkover or m.won is not True or not _rated(m, exclude_zero_ratings):
            continue
        if best is None or m.rating_diff > best.rating_diff:
            best = m
    return best


def worst_loss(matches: Sequence[Match], *, exclude_zero_ratings: bool = False) -> Optional[Match]:
    worst: Optional[Match] = None
    for m in matches:
        if m.is_walkover or m.won is not False or not _rated(m, exclude_zero_ratings):
            continue
        if worst is None or m.rating_diff < worst.rating_diff:
            worst = m
    return worst


def most_played(entries: Iterable[OpponentAggregate], limit: int) -> Tuple[OpponentAggregate, ...]:
    ordered = sorted(entries, key=lambda e: (-e.played, e.name, e.key))
    return tuple(ordered[:limit])


def quality_wins(matches: Sequence[Match], *, exclude_zero_ratings: bool = False) -> Tuple[Match, ...]:
    """Wins over higher-rated opponents, biggest rating gap first (earliest first on ties)."""
    wins: List[Match] = [
        m
        for m in matches
        if m.won is True
        and not m.is_walkover
        and m.opponent_key is not None
        and m.opponent_rating > m.my_rating
        and _rated(m, exclude_zero_ratings)
    ]
    wins.sort(key=lambda m: -m.rating_diff)
    return tuple(wins[:TOP_QUALITY_WINS])


def split_records(entries: Iterable[OpponentAggregate]) -> Tuple[OpponentAggregate, ...]:
    splits = [e for e in entries if e.wins >= 1 and e.losses >= 1]
    return most_played(splits, TOP_SPLITS)


def rank_callouts(stats: SeasonStats, config: Optional[ReviewConfig] = None) -> SeasonStats:
    """
    Return a copy of `stats` with the callouts filled in.

    A callout with no qualifying entry stays None.
    """
    min_played = config.min_head_to_head if config is not None else DEFAULT_MIN_HEAD_TO_HEAD
    exclude_zero = config.exclude_zero_ratings if config is not None else False
    opponents = list(stats.opponents.values())
    partners = most_played(stats.partners.values(), TOP_FREQUENT)
    return replace(
        stats,
        nemesis=nemesis(opponents, min_played=min_played),
        dominated_opponent=dominated_opponent(opponents, min_played=min_played),
        closest_rival=closest_rival(opponents, min_played=min_played),
        best_win=best_win(stats.matches, exclude_zero_ratings=exclude_zero),
        worst_loss=worst_loss(stats.matches, exclude_zero_ratings=exclude_zero),
        most_frequent_partner=partners[0] if partners else None,
        frequent_opponents=most_played(opponents, TOP_FREQUENT),
        partner_records=partners,
        head_to_head=HeadToHead(
            quality_wins=quality_wins(stats.matches, exclude_zero_ratings=exclude_zero),
            splits=split_records(opponents),
        ),
    )
