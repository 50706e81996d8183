import unittest

from utr_review.callouts import (
    best_win,
    closest_rival,
    dominated_opponent,
    most_played,
    nemesis,
    quality_wins,
    rank_callouts,
    worst_loss,
)
from utr_review.config import ReviewConfig
from utr_review.match_normalizer import Match
from utr_review.score_decoder import RegularSet
from utr_review.season_stats import OpponentAggregate, aggregate


def _opp(name, played, wins, losses, games_won, games_lost):
    return OpponentAggregate(
        key=name,
        name=name,
        played=played,
        wins=wins,
        losses=losses,
        games_won=games_won,
        games_lost=games_lost,
    )


def _match(date, opponent, won, my, opp, *, walkover=False):
    sets = () if walkover else ((RegularSet(6, 2), RegularSet(6, 3)) if won else (RegularSet(2, 6), RegularSet(3, 6)))
    return Match(
        date=date,
        discipline="singles",
        opponent_id=None,
        opponent_name=opponent,
        my_rating=my,
        opponent_rating=opp,
        sets=sets,
        is_walkover=walkover,
        won=won,
    )


class OpponentCalloutTests(unittest.TestCase):
    def test_nemesis_tie_goes_to_most_played(self) -> None:
        entries = [
            _opp("Xena", 4, 1, 3, 20, 30),
            _opp("Yuri", 2, 0, 2, 2, 12),
        ]
        self.assertEqual(nemesis(entries).name, "Xena")

    def test_nemesis_prefers_worse_game_differential(self) -> None:
        entries = [
            _opp("Xena", 2, 0, 2, 8, 12),
            _opp("Yuri", 2, 0, 2, 2, 12),
        ]
        self.assertEqual(nemesis(entries).name, "Yuri")

    def test_nemesis_needs_a_loss_and_enough_matches(self) -> None:
        self.assertIsNone(nemesis([_opp("Xena", 3, 3, 0, 36, 10)]))
        self.assertIsNone(nemesis([_opp("Yuri", 1, 0, 1, 0, 12)]))
        self.assertIsNone(nemesis([]))

    def test_dominated_opponent(self) -> None:
        entries = [
            _opp("Ann", 3, 3, 0, 36, 12),
            _opp("Bea", 3, 3, 0, 36, 20),
            _opp("Cat", 5, 1, 4, 30, 40),
        ]
        self.assertEqual(dominated_opponent(entries).name, "Ann")

    def test_closest_rival_skips_single_meetings(self) -> None:
        entries = [
            _opp("Solo", 1, 1, 0, 7, 6),
            _opp("Even", 2, 1, 1, 20, 20),
            _opp("Wide", 3, 2, 1, 30, 20),
        ]
        self.assertEqual(closest_rival(entries).name, "Even")
        self.assertIsNone(closest_rival([_opp("Solo", 1, 1, 0, 7, 6)]))

    def test_closest_rival_uses_share_of_games(self) -> None:
        entries = [
            _opp("Long", 4, 2, 2, 50, 46),
            _opp("Short", 2, 1, 1, 12, 10),
        ]
        self.assertEqual(closest_rival(entries).name, "Long")

    def test_name_breaks_remaining_ties(self) -> None:
        entries = [
            _opp("Zed", 2, 0, 2, 6, 12),
            _opp("Amy", 2, 0, 2, 6, 12),
        ]
        self.assertEqual(nemesis(entries).name, "Amy")
        self.assertEqual([e.name for e in most_played(entries, 5)], ["Amy", "Zed"])


class MatchCalloutTests(unittest.TestCase):
    def test_best_win_and_worst_loss(self) -> None:
        matches = [
            _match("2025-01-01", "Ann", True, 5.0, 6.0),
            _match("2025-01-02", "Bea", True, 5.0, 6.0),
            _match("2025-01-03", "Cat", True, 5.0, 9.0, walkover=True),
            _match("2025-01-04", "Dee", False, 5.0, 3.0),
            _match("2025-01-05", "Eve", False, 5.0, 4.0),
        ]
        self.assertEqual(best_win(matches).opponent_name, "Ann")
        self.assertEqual(worst_loss(matches).opponent_name, "Dee")
        self.assertIsNone(best_win([]))
        self.assertIsNone(worst_loss(matches[:2]))

    def test_zero_ratings_can_be_excluded(self) -> None:
        matches = [
            _match("2025-01-01", "Ann", True, 5.0, 6.0),
            _match("2025-01-02", "Unrated", False, 5.0, 0.0),
        ]
        self.assertEqual(worst_loss(matches).opponent_name, "Unrated")
        self.assertIsNone(worst_loss(matches, exclude_zero_ratings=True))

    def test_quality_wins_ranked_by_gap(self) -> None:
        matches = [
            _match("2025-01-01", "Ann", True, 5.0, 5.5),
            _match("2025-01-02", "Bea", True, 5.0, 6.5),
            _match("2025-01-03", "Cat", True, 5.0, 4.0),
            _match("2025-01-04", "Dee", True, 5.0, 6.0),
            _match("2025-01-05", "Eve", True, 5.0, 5.1),
        ]
        self.assertEqual([m.opponent_name for m in quality_wins(matches)], ["Bea", "Dee", "Ann"])


class RankCalloutsTests(unittest.TestCase):
    def test_empty_season_has_null_callouts(self) -> None:
        stats = rank_callouts(aggregate([]))
        self.assertIsNone(stats.nemesis)
        self.assertIsNone(stats.dominated_opponent)
        self.assertIsNone(stats.closest_rival)
        self.assertIsNone(stats.best_win)
        self.assertIsNone(stats.worst_loss)
        self.assertIsNone(stats.most_frequent_partner)
        self.assertEqual(stats.frequent_opponents, ())
        self.assertEqual(stats.head_to_head.quality_wins, ())

    def test_min_head_to_head_from_config(self) -> None:
        matches = [
            _match("2025-01-01", "Ann", False, 5.0, 5.0),
            _match("2025-01-08", "Ann", False, 5.0, 5.0),
            _match("2025-01-15", "Bea", True, 5.0, 5.0),
            _match("2025-01-22", "Bea", False, 5.0, 5.0),
            _match("2025-01-29", "Bea", False, 5.0, 5.0),
        ]
        stats = aggregate(matches)
        self.assertEqual(rank_callouts(stats).nemesis.name, "Ann")
        strict = rank_callouts(stats, ReviewConfig(season=2025, min_head_to_head=3))
        self.assertEqual(strict.nemesis.name, "Bea")
        self.assertEqual([o.name for o in strict.frequent_opponents], ["Bea", "Ann"])
        self.assertEqual([o.name for o in strict.head_to_head.splits], ["Bea"])


if __name__ == "__main__":
    unittest.main()
