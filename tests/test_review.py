import json
import unittest

from utr_review.config import ReviewConfig
from utr_review.fragments import RawMatchFragment
from utr_review.match_normalizer import AMBIGUOUS_DATE
from utr_review.rating_history import RatingPoint
from utr_review.review import (
    OTHER_SEASON,
    build_review,
    compute_season_stats,
    decode_and_normalize,
    normalize_fragments,
    review_payload,
)
from utr_review.score_decoder import UNPARSEABLE_SCORE

PLAYER = "Harper Chalat"


def _frag(text, **kw):
    return RawMatchFragment(raw_text=text, player_name=PLAYER, **kw)


class ReviewEntryPointTests(unittest.TestCase):
    def test_decode_and_normalize_uses_config_season(self) -> None:
        cfg = ReviewConfig(season=2024)
        m = decode_and_normalize(_frag("Open | Mar 2 Harper Chalat 5.74 66 John Smith 4.50 40"), config=cfg)
        self.assertEqual(m.date, "2024-03-02")
        self.assertEqual(m.score, "6-4 6-0")
        self.assertTrue(m.won)

    def test_normalize_fragments_sorts_and_counts_skips(self) -> None:
        fragments = [
            _frag("Open | Jun 14 Harper Chalat 5.74 66 John Smith 4.50 40", opponent_id="1"),
            _frag("Harper Chalat 5.74 66 John Smith 4.50 40", date_text="2024-05-01"),
            _frag("Harper Chalat 5.74 66 John Smith 4.50 40"),
            _frag("Harper Chalat 5.74 5 John Smith 4.50 5", date_text="2025-02-01"),
            _frag("Open | Jan 3 Harper Chalat 5.74 23 Ann Lee 5.10 66", opponent_id="2"),
        ]
        matches, skips = normalize_fragments(fragments, season_year=2025)
        self.assertEqual([m.date for m in matches], ["2025-01-03", "2025-02-01", "2025-06-14"])
        self.assertEqual(skips, {OTHER_SEASON: 1, AMBIGUOUS_DATE: 1, UNPARSEABLE_SCORE: 1})
        self.assertTrue(matches[1].unparseable)

    def test_normalize_fragments_fills_rating_deltas(self) -> None:
        history = [RatingPoint("2025-06-01", 5.70), RatingPoint("2025-06-20", 5.80)]
        matches, _ = normalize_fragments(
            [_frag("Open | Jun 14 Harper Chalat 5.74 66 John Smith 4.50 40", opponent_id="1")],
            season_year=2025,
            my_history=history,
        )
        self.assertEqual(matches[0].my_rating_delta, 0.1)
        self.assertIsNone(matches[0].opponent_rating_delta)

    def test_compute_season_stats(self) -> None:
        matches, _ = normalize_fragments(
            [
                _frag("Open | Jan 3 Harper Chalat 5.74 23 Ann Lee 5.10 66", opponent_id="2"),
                _frag("Open | Jan 9 Harper Chalat 5.74 66 Ann Lee 5.10 43", opponent_id="2"),
            ],
            season_year=2025,
        )
        history = [RatingPoint("2025-01-01", 5.6), RatingPoint("2025-02-01", 5.8)]
        stats = compute_season_stats("1234", 2025, matches, rating_history=history)
        self.assertEqual((stats.player_id, stats.season), ("1234", 2025))
        self.assertEqual(stats.record.won, 1)
        self.assertEqual(stats.record.lost, 1)
        self.assertEqual(stats.closest_rival.name, "Ann Lee")
        self.assertEqual(stats.rating_summary["end"], 5.8)
        self.assertIsNone(compute_season_stats("1234", 2025, []).rating_summary)

    def test_review_payload_splits_disciplines(self) -> None:
        payload = {
            "playerName": PLAYER,
            "singlesMatches": [
                {"rawText": "Open | Jun 14 Harper Chalat 5.74 66 John Smith 4.50 40", "opponentId": "1"},
            ],
            "doublesMatches": [
                {
                    "rawText": (
                        "Club | May 3 Harper Chalat Caleb Richard 6.19 6.28 460 "
                        "Austen Blass Davis Ryan 4.71 5.94 631"
                    )
                },
            ],
            "singlesHistory": [{"date": "2025-06-01", "rating": 5.7}],
            "opponentHistories": {"1": {"history": [{"date": "2025-06-01", "rating": 4.4}]}},
        }
        result = review_payload("1234", 2025, payload)
        self.assertEqual(result.singles.record.won, 1)
        self.assertEqual(result.doubles.record.lost, 1)
        self.assertEqual(result.doubles.partners["Caleb Richard"].played, 1)
        self.assertEqual(result.singles_rating, 5.7)

        doc = build_review("1234", 2025, payload)
        self.assertEqual(doc["profileId"], "1234")
        self.assertEqual(doc["singles"]["record"]["wins"], 1)
        self.assertEqual(doc["doubles"]["mostFrequentPartner"]["name"], "Caleb Richard")
        json.dumps(doc)

    def test_flat_fragment_list(self) -> None:
        payload = {
            "playerName": PLAYER,
            "fragments": [
                {"type": "singles", "rawText": "Open | Jun 14 Harper Chalat 5.74 66 John Smith 4.50 40"},
                "not a fragment",
            ],
        }
        doc = build_review("1234", 2025, payload)
        self.assertEqual(doc["singles"]["record"]["wins"], 1)
        self.assertEqual(doc["doubles"]["record"]["wins"], 0)


if __name__ == "__main__":
    unittest.main()
