import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from utr_review.config import ReviewConfig
from utr_review.http_handler import handler
from utr_review.store import ReviewStore

CARD = "Open | Jun 14 Harper Chalat 5.74 66 John Smith 4.50 40"


def _post(body):
    return {"httpMethod": "POST", "body": body if isinstance(body, str) else json.dumps(body)}


def _get(**query):
    return {"httpMethod": "GET", "queryStringParameters": query}


class HandlerTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.store = ReviewStore(Path(self._tmp.name))
        self.cfg = ReviewConfig(season=2025)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _call(self, event):
        resp = handler(event, store=self.store, config=self.cfg)
        body = json.loads(resp["body"]) if resp["body"] else None
        return resp["statusCode"], body

    def test_options_preflight(self) -> None:
        resp = handler({"httpMethod": "OPTIONS"}, store=self.store, config=self.cfg)
        self.assertEqual(resp["statusCode"], 200)
        self.assertEqual(resp["body"], "")
        self.assertEqual(resp["headers"]["Access-Control-Allow-Methods"], "GET, POST, OPTIONS")

    def test_get_validation(self) -> None:
        self.assertEqual(self._call(_get())[0], 400)
        self.assertEqual(self._call(_get(profileId="12"))[0], 400)
        self.assertEqual(self._call(_get(profileId="1234", year="soon"))[0], 400)
        status, body = self._call(_get(profileId="1234"))
        self.assertEqual(status, 404)
        self.assertFalse(body["success"])

    def test_post_validation(self) -> None:
        self.assertEqual(self._call(_post("{oops"))[0], 400)
        self.assertEqual(self._call(_post({"profileId": "1234"}))[0], 400)
        self.assertEqual(self._call(_post({"profileId": "abc", "fragments": []}))[0], 400)

    def test_unsupported_method(self) -> None:
        self.assertEqual(self._call({"httpMethod": "DELETE"})[0], 405)

    def test_post_then_get(self) -> None:
        status, body = self._call(
            _post({"profileId": "1234", "playerName": "Harper Chalat", "fragments": [{"rawText": CARD}]})
        )
        self.assertEqual(status, 200)
        self.assertEqual(body["status"], "completed")
        self.assertEqual(body["data"]["singles"]["record"]["wins"], 1)

        status, body = self._call({"requestContext": {"http": {"method": "GET"}}, "queryStringParameters": {"profileId": "1234", "year": "2025"}})
        self.assertEqual(status, 200)
        self.assertTrue(body["success"])
        self.assertEqual(body["data"]["year"], 2025)

    def test_review_failure_is_recorded(self) -> None:
        with patch("utr_review.http_handler.build_review", side_effect=RuntimeError("code=boom broken")):
            status, body = self._call(_post({"profileId": "1234", "fragments": []}))
        self.assertEqual(status, 500)
        self.assertEqual(body["code"], "boom")
        self.assertEqual(self.store.get("1234", 2025)["status"], "failed")


if __name__ == "__main__":
    unittest.main()
