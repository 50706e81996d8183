import asyncio
import unittest

from utr_review.store import TTLCache
from utr_review.utr_client import (
    RESULTS_TAB,
    UtrClientError,
    _opponent_history,
    card_to_fragment,
    error_code_from,
    opponent_id_from_href,
    parse_profile_ratings,
    profile_url,
)


class UrlHelpersTests(unittest.TestCase):
    def test_profile_url(self) -> None:
        self.assertEqual(profile_url("1234"), "https://app.utrsports.net/profiles/1234")
        self.assertEqual(profile_url("1234", tab=RESULTS_TAB), "https://app.utrsports.net/profiles/1234?t=2")

    def test_opponent_id_from_href(self) -> None:
        self.assertEqual(opponent_id_from_href("/profiles/98765?t=2"), "98765")
        self.assertIsNone(opponent_id_from_href("/events/12"))
        self.assertIsNone(opponent_id_from_href(""))

    def test_error_code_from(self) -> None:
        self.assertEqual(error_code_from(UtrClientError("code=login_failed url=x")), "login_failed")
        self.assertIsNone(error_code_from(RuntimeError("plain failure")))

    def test_parse_profile_ratings(self) -> None:
        out = parse_profile_ratings("Harper Chalat UTR (Singles) 5.74 UTR (Doubles) 6.19")
        self.assertEqual(out, {"singlesUtr": 5.74, "doublesUtr": 6.19})
        self.assertEqual(parse_profile_ratings(""), {"singlesUtr": None, "doublesUtr": None})


class CardToFragmentTests(unittest.TestCase):
    def test_singles_card(self) -> None:
        card = {
            "text": "Spring Open | Jun 14 Harper Chalat 5.74 646 John Smith 4.50 263",
            "links": [
                {"href": "/profiles/111", "text": "Harper Chalat"},
                {"href": "/profiles/222", "text": "John Smith"},
            ],
        }
        row = card_to_fragment(card, player_name="Harper Chalat")
        self.assertEqual(row["opponentId"], "222")
        self.assertEqual(row["opponent"], "John Smith")
        self.assertEqual(row["date"], "Jun 14")
        self.assertFalse(row["isWalkover"])
        self.assertEqual(row["type"], "singles")

    def test_walkover_card(self) -> None:
        card = {"text": "Summer | Jul 2 Harper Chalat 5.74 W/O John Smith 4.50", "links": []}
        row = card_to_fragment(card, player_name="Harper Chalat")
        self.assertTrue(row["isWalkover"])
        self.assertIsNone(row["opponentId"])

    def test_doubles_card_keeps_other_team(self) -> None:
        card = {
            "text": "Club | May 3 Harper Chalat Caleb Richard 6.19 6.28 460 Austen Blass Davis Ryan 4.71 5.94 631",
            "links": [
                {"href": "/profiles/1", "text": "Harper Chalat"},
                {"href": "/profiles/2", "text": "Caleb Richard"},
                {"href": "/profiles/3", "text": "Austen Blass"},
                {"href": "/profiles/4", "text": "Davis Ryan"},
            ],
        }
        row = card_to_fragment(card, player_name="Harper Chalat", discipline="doubles")
        self.assertEqual(row["opponentIds"], ["3", "4"])
        self.assertNotIn("opponentId", row)


class OpponentHistoryCacheTests(unittest.TestCase):
    def test_cached_history_skips_the_page(self) -> None:
        cache = TTLCache(3600)
        cache.set("history:42", [{"date": "2025-01-06", "rating": 5.5}])
        history = asyncio.run(_opponent_history(None, "42", cache))
        self.assertEqual([(p.date, p.rating) for p in history], [("2025-01-06", 5.5)])


if __name__ == "__main__":
    unittest.main()
