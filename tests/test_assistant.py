# tests/test_assistant.py
import io
import unittest
import urllib.error
from datetime import datetime, timedelta
from unittest import mock

from supermarket_ai.extensions import db
from supermarket_ai.models import Recommendation
from supermarket_ai.services import assistant

from tests.base import AppTestCase

POST_JSON = "supermarket_ai.services.assistant._post_json"


def _gemini(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class TestClassification(unittest.TestCase):
    def test_classify_query(self):
        self.assertEqual(assistant.classify_query("What is expiring this week?"), "expiry")
        self.assertEqual(assistant.classify_query("Show inventory levels"), "stock")
        self.assertEqual(assistant.classify_query("How much revenue did we make?"), "sales")
        self.assertEqual(assistant.classify_query("Any suggestions?"), "recommendations")
        self.assertIsNone(assistant.classify_query("hello there"))

    def test_expiry_wins_over_stock(self):
        self.assertEqual(assistant.classify_query("expired stock"), "expiry")

    def test_agent_for(self):
        self.assertEqual(assistant.agent_for("low stock?"), "stock")
        self.assertEqual(assistant.agent_for("what expires"), "expiry")
        self.assertEqual(assistant.agent_for("sales today"), "sales")
        self.assertEqual(assistant.agent_for("any advice"), "master")


class TestChatHistory(unittest.TestCase):
    def test_least_recently_used_transcript_is_evicted(self):
        history = assistant.ChatHistory(max_chats=2)
        history.append("a", {"sender": "user", "content": "1"})
        history.append("b", {"sender": "user", "content": "2"})
        history.messages("a")
        history.append("c", {"sender": "user", "content": "3"})

        self.assertEqual(len(history), 2)
        self.assertEqual(len(history.messages("a")), 2)
        self.assertEqual(len(history.messages("b")), 1)

    def test_transcript_length_is_capped(self):
        history = assistant.ChatHistory(limit=3)
        for i in range(5):
            history.append("a", {"sender": "user", "content": str(i)})
        self.assertEqual([m["content"] for m in history.messages("a")], ["2", "3", "4"])


class TestAssistantQuery(AppTestCase):

    def setUp(self):
        super().setUp()
        self.make_product(name="Butter", quantity=4)
        self.make_product(name="Milk 2L", quantity=80)

    def test_query_sends_context_to_model(self):
        with mock.patch(POST_JSON, return_value=_gemini("Butter needs restocking.")) as post:
            r = self.client.post("/api/assistant/query", json={"prompt": "Which products are low in stock?"})

        self.assertEqual(r.status_code, 200)
        body = r.get_json()
        self.assertEqual(body["response"], "Butter needs restocking.")
        self.assertEqual(body["query_type"], "stock")
        self.assertEqual([row["name"] for row in body["data"]], ["Butter"])

        url, payload, _timeout = post.call_args[0]
        self.assertIn("gemini-1.5-flash:generateContent", url)
        self.assertIn("key=test-key", url)
        prompt_text = payload["contents"][0]["parts"][0]["text"]
        self.assertIn("Butter", prompt_text)
        self.assertIn("Which products are low in stock?", prompt_text)

    def test_empty_and_unknown_prompts(self):
        r = self.client.post("/api/assistant/query", json={"prompt": "  "})
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.get_json()["error"], "Please provide a question or query.")

        with mock.patch(POST_JSON) as post:
            r = self.client.post("/api/assistant/query", json={"prompt": "hello there"})
        self.assertEqual(r.status_code, 400)
        self.assertIn("I'm not sure what you're asking about", r.get_json()["error"])
        post.assert_not_called()

    def test_missing_api_key(self):
        self.app.config["GEMINI_API_KEY"] = None
        r = self.client.post("/api/assistant/query", json={"prompt": "stock levels"})
        self.assertEqual(r.status_code, 503)

    def test_model_http_error(self):
        err = urllib.error.HTTPError("http://x", 500, "boom", None, io.BytesIO(b"quota"))
        with mock.patch(POST_JSON, side_effect=err):
            r = self.client.post("/api/assistant/query", json={"prompt": "stock levels"})
        self.assertEqual(r.status_code, 502)
        self.assertIn("HTTP 500", r.get_json()["error"])

    def test_empty_model_answer(self):
        with mock.patch(POST_JSON, return_value={"candidates": []}):
            r = self.client.post("/api/assistant/query", json={"prompt": "stock levels"})
        self.assertEqual(r.status_code, 502)


class TestFetchContext(AppTestCase):

    def _sell(self, product, quantity, when):
        r = self.client.post("/api/sales", json={
            "product_id": product.id, "quantity": quantity, "created_at": when.isoformat(),
        })
        self.assertEqual(r.status_code, 201)

    def test_expiry_rows(self):
        self.make_product(name="Cream", expires_in=3, quantity=8)
        self.make_product(name="Old Bread", expires_in=-2, quantity=10, cost_price="12.50")
        self.make_product(name="Rice", expires_in=30)

        rows = assistant.fetch_context("expiry", self.today)
        self.assertEqual([r["name"] for r in rows], ["Old Bread", "Cream"])
        self.assertEqual(rows[0]["days_until_expiry"], -2)
        self.assertEqual(rows[0]["total_loss"], 125.0)
        self.assertEqual(rows[1]["days_until_expiry"], 3)

    def test_sales_rows_grouped_by_day(self):
        milk = self.make_product(name="Milk 2L", price="30.00", quantity=500)
        midnight = datetime.combine(self.today, datetime.min.time())
        two_days_ago = midnight - timedelta(days=2, hours=-9)
        yesterday = midnight - timedelta(days=1, hours=-10)
        self._sell(milk, 1, two_days_ago)
        self._sell(milk, 2, two_days_ago + timedelta(hours=3))
        self._sell(milk, 4, yesterday)
        self._sell(milk, 5, midnight - timedelta(days=40))

        rows = assistant.fetch_context("sales", self.today)
        self.assertEqual(len(rows), 2)
        newest, older = rows
        self.assertEqual(newest["sale_date"], yesterday.date().isoformat())
        self.assertEqual(newest["total_revenue"], 120.0)
        self.assertEqual(newest["num_transactions"], 1)
        self.assertEqual(newest["prev_day_revenue"], 90.0)
        self.assertEqual(older["num_transactions"], 2)
        self.assertEqual(older["total_items"], 3)
        self.assertIsNone(older["prev_day_revenue"])

    def test_sales_rows_keep_newest_seven_days(self):
        milk = self.make_product(name="Milk 2L", quantity=500)
        midnight = datetime.combine(self.today, datetime.min.time())
        for days_back in range(1, 11):
            self._sell(milk, 1, midnight - timedelta(days=days_back, hours=-12))

        rows = assistant.fetch_context("sales", self.today)
        self.assertEqual(len(rows), 7)
        self.assertEqual(rows[0]["sale_date"], (self.today - timedelta(days=1)).isoformat())
        self.assertEqual(rows[-1]["sale_date"], (self.today - timedelta(days=7)).isoformat())

    def test_recommendation_rows_unread_by_priority_then_newest(self):
        p = self.make_product(name="Butter")
        base = datetime.combine(self.today, datetime.min.time())
        for message, priority, hours, is_read in (
            ("low newest", "low", 5, False),
            ("high older", "high", 1, False),
            ("high newer", "high", 3, False),
            ("medium", "medium", 2, False),
            ("high read", "high", 4, True),
        ):
            db.session.add(Recommendation(
                type="restock", product=p, message=message, suggested_action="Order more",
                priority=priority, is_read=is_read, created_at=base + timedelta(hours=hours),
            ))
        db.session.commit()

        rows = assistant.fetch_context("recommendations", self.today)
        self.assertEqual(
            [r["message"] for r in rows],
            ["high newer", "high older", "medium", "low newest"],
        )
        self.assertEqual(rows[0]["product_name"], "Butter")


class TestAssistantChat(AppTestCase):

    def test_chat_round_trip(self):
        body = self.client.get("/api/assistant/messages").get_json()
        self.assertEqual(len(body["messages"]), 1)
        self.assertEqual(body["messages"][0]["content"], assistant.WELCOME_MESSAGE)

        with mock.patch(POST_JSON, return_value=_gemini("No sales yet today.")):
            r = self.client.post("/api/assistant/messages", json={"content": "How are sales?"})
        self.assertEqual(r.status_code, 201)
        body = r.get_json()
        self.assertEqual(body["sent"]["sender"], "user")
        self.assertEqual(body["reply"]["sender"], "sales")
        self.assertEqual(body["reply"]["content"], "No sales yet today.")

        messages = self.client.get("/api/assistant/messages").get_json()["messages"]
        self.assertEqual([m["sender"] for m in messages], ["system", "user", "sales"])

        r = self.client.delete("/api/assistant/messages")
        self.assertEqual(len(r.get_json()["messages"]), 1)

    def test_model_failure_becomes_system_reply(self):
        with mock.patch(POST_JSON, side_effect=urllib.error.URLError("offline")):
            r = self.client.post("/api/assistant/messages", json={"content": "stock please"})
        self.assertEqual(r.status_code, 201)
        reply = r.get_json()["reply"]
        self.assertEqual(reply["sender"], "system")
        self.assertTrue(reply["content"].startswith("I apologize, but I encountered an error"))

    def test_dropped_connection_becomes_system_reply(self):
        with mock.patch(POST_JSON, side_effect=ConnectionResetError("peer reset")):
            r = self.client.post("/api/assistant/messages", json={"content": "stock please"})
        self.assertEqual(r.status_code, 201)
        self.assertEqual(r.get_json()["reply"]["sender"], "system")
        self.assertIn("peer reset", r.get_json()["reply"]["content"])

        messages = self.client.get("/api/assistant/messages").get_json()["messages"]
        self.assertEqual([m["sender"] for m in messages], ["system", "user", "system"])

    def test_unexpected_failure_becomes_system_reply(self):
        with mock.patch.object(assistant, "fetch_context", side_effect=RuntimeError("db gone")):
            r = self.client.post("/api/assistant/messages", json={"content": "stock please"})
        self.assertEqual(r.status_code, 201)
        self.assertTrue(r.get_json()["reply"]["content"].startswith("I apologize"))

    def test_reading_does_not_store_transcripts(self):
        history = self.app.extensions["assistant_chats"]
        for _ in range(5):
            body = self.app.test_client().get("/api/assistant/messages").get_json()
            self.assertEqual(len(body["messages"]), 1)
        self.assertEqual(len(history), 0)

    def test_empty_message(self):
        r = self.client.post("/api/assistant/messages", json={"content": ""})
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.get_json()["error"], "Message must not be empty")

    def test_chats_are_per_user(self):
        self.make_user()
        with mock.patch(POST_JSON, return_value=_gemini("ok")):
            self.client.post("/api/assistant/messages", json={"content": "stock please"})

        self.login()
        messages = self.client.get("/api/assistant/messages").get_json()["messages"]
        self.assertEqual(len(messages), 1)

        self.client.post("/api/auth/logout")
        messages = self.client.get("/api/assistant/messages").get_json()["messages"]
        self.assertEqual(len(messages), 3)


if __name__ == "__main__":
    unittest.main()
