# tests/test_recommendations.py
import unittest
from datetime import timedelta

from supermarket_ai.models import Recommendation
from supermarket_ai.services import recommendations as recs

from tests.base import AppTestCase


class TestBuildRecommendations(AppTestCase):

    def test_discount_scales_with_days_left(self):
        self.assertEqual(recs.discount_percent(2), 50)
        self.assertEqual(recs.discount_percent(5), 30)
        self.assertEqual(recs.discount_percent(9), 15)

    def test_expiring_product_gets_discount(self):
        p = self.make_product(name="Yoghurt", expires_in=2, quantity=40)
        out = recs.build_recommendations(p, self.today)
        discount = [r for r in out if r["type"] == "discount"][0]
        self.assertEqual(discount["priority"], "high")
        self.assertEqual(discount["message"], "Yoghurt expires in 2 days")
        self.assertIn("50%", discount["suggested_action"])

    def test_low_stock_gets_restock(self):
        p = self.make_product(name="Butter", quantity=9)
        out = recs.build_recommendations(p, self.today)
        self.assertEqual([r["type"] for r in out], ["restock"])
        self.assertEqual(out[0]["priority"], "medium")

    def test_pricing_rules(self):
        thin = self.make_product(name="Sugar", price="20.00", cost_price="19.00")
        out = recs.build_recommendations(thin, self.today)
        self.assertEqual(out[0]["suggested_action"], recs.RAISE_PRICE_ACTION)

        fat = self.make_product(name="Spices", price="50.00", cost_price="10.00")
        out = recs.build_recommendations(fat, self.today)
        self.assertEqual(out[0]["suggested_action"], recs.PROMO_PRICE_ACTION)

        sold = recs.build_recommendations(fat, self.today, last_sale=self.today - timedelta(days=2))
        self.assertEqual(sold, [])

    def test_healthy_product_needs_nothing(self):
        p = self.make_product(price="30.00", cost_price="20.00", quantity=50, expires_in=30)
        self.assertEqual(recs.build_recommendations(p, self.today), [])


class TestRecommendationApi(AppTestCase):

    def setUp(self):
        super().setUp()
        self.make_product(name="Yoghurt", expires_in=2, quantity=40)
        self.make_product(name="Butter", quantity=3)
        self.make_product(name="Milk 2L")

    def test_generate_skips_open_duplicates(self):
        r = self.client.post("/api/recommendations/generate")
        self.assertEqual(r.status_code, 201)
        created = r.get_json()["created"]
        self.assertEqual(
            sorted((c["product_name"], c["type"]) for c in created),
            [("Butter", "restock"), ("Yoghurt", "discount")],
        )

        r = self.client.post("/api/recommendations/generate")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.get_json()["created"], [])

    def test_filters_and_read_flags(self):
        self.client.post("/api/recommendations/generate")

        body = self.client.get("/api/recommendations?type=restock").get_json()
        self.assertEqual(len(body["recommendations"]), 1)
        rec_id = body["recommendations"][0]["id"]

        body = self.client.get("/api/recommendations?priority=high").get_json()
        self.assertEqual(len(body["recommendations"]), 2)

        r = self.client.post(f"/api/recommendations/{rec_id}/read")
        self.assertTrue(r.get_json()["recommendation"]["is_read"])

        body = self.client.get("/api/recommendations?show_read=false").get_json()
        self.assertEqual([r["type"] for r in body["recommendations"]], ["discount"])
        self.assertEqual(body["unread"], 1)

        r = self.client.post("/api/recommendations/read-all")
        self.assertEqual(r.get_json()["updated"], 1)
        self.assertEqual(Recommendation.query.filter_by(is_read=False).count(), 0)

    def test_unknown_filter_and_id(self):
        r = self.client.get("/api/recommendations?type=bogus")
        self.assertEqual(r.status_code, 400)
        r = self.client.post("/api/recommendations/nope/read")
        self.assertEqual(r.status_code, 404)
        self.assertIn("Recommendation not found", r.get_json()["error"])


if __name__ == "__main__":
    unittest.main()
