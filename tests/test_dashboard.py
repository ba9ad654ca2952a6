# tests/test_dashboard.py
import unittest
from datetime import date, datetime, timedelta
from types import SimpleNamespace

from supermarket_ai.services.dashboard import compute_metrics, critical_products

from tests.base import AppTestCase


def _product(pid, quantity=50, expiry=date(2026, 12, 1), cost_price=10):
    return SimpleNamespace(id=pid, name=pid, quantity=quantity, expiry_date=expiry, cost_price=cost_price)


class TestComputeMetrics(unittest.TestCase):
    now = datetime(2026, 10, 18, 15, 0)

    def test_sales_windows_and_changes(self):
        sales = [
            {"created_at": datetime(2026, 10, 18, 10), "total_amount": 100},
            {"created_at": datetime(2026, 10, 17, 12), "total_amount": 50},
            {"created_at": datetime(2026, 10, 12, 9), "total_amount": 30},
            {"created_at": datetime(2026, 10, 5, 9), "total_amount": 60},
            {"created_at": datetime(2026, 9, 20, 9), "total_amount": 10},
        ]
        m = compute_metrics([], sales, [], self.now)
        self.assertEqual(m["today_sales"], 100)
        self.assertEqual(m["week_sales"], 180)
        self.assertEqual(m["month_sales"], 250)
        self.assertEqual(m["daily_change"], 100)
        self.assertEqual(m["weekly_change"], 200)
        self.assertEqual(m["today_sales_formatted"], "R\u00a0100,00")

    def test_midnight_sale_counts_once(self):
        sales = [
            {"created_at": datetime(2026, 10, 18, 0, 0), "total_amount": 40},
            {"created_at": datetime(2026, 10, 11, 0, 0), "total_amount": 10},
        ]
        m = compute_metrics([], sales, [], self.now)
        self.assertEqual(m["today_sales"], 40)
        self.assertEqual(m["daily_change"], 100)
        self.assertEqual(m["week_sales"], 50)
        self.assertEqual(m["weekly_change"], 100)

    def test_product_counts_and_loss(self):
        products = [
            _product("expired", quantity=20, expiry=date(2026, 10, 16), cost_price=12.5),
            _product("expiring", expiry=date(2026, 10, 23)),
            _product("low", quantity=4),
            _product("fine"),
        ]
        recs = [
            SimpleNamespace(created_at=datetime(2026, 10, 18, 8)),
            SimpleNamespace(created_at=datetime(2026, 10, 17, 8)),
        ]
        m = compute_metrics(products, [], recs, self.now)
        self.assertEqual(m["total_products"], 4)
        self.assertEqual(m["low_stock_products"], 1)
        self.assertEqual(m["expiring_products"], 1)
        self.assertEqual(m["expired_products"], 1)
        self.assertEqual(m["total_loss"], 250)
        self.assertEqual(m["today_recommendations"], 1)
        self.assertEqual(m["daily_change"], 100)

        crit = critical_products(products, self.now.date())
        self.assertEqual([p.id for p in crit], ["low", "expiring"])


class TestDashboardApi(AppTestCase):

    def test_dashboard_payload(self):
        self.make_product(name="Old Bread", quantity=20, expires_in=-2)
        self.make_product(name="Cream", expires_in=5)
        self.make_product(name="Butter", quantity=4)
        milk = self.make_product(name="Milk 2L", quantity=50)

        yesterday_noon = datetime.combine(self.today, datetime.min.time()) - timedelta(hours=12)
        self.client.post("/api/sales", json={
            "product_id": milk.id, "quantity": 1, "created_at": yesterday_noon.isoformat(),
        })
        self.client.post("/api/sales", json={"product_id": milk.id, "quantity": 2})

        r = self.client.get("/api/dashboard")
        self.assertEqual(r.status_code, 200)
        body = r.get_json()
        m = body["metrics"]
        self.assertEqual(m["total_products"], 4)
        self.assertEqual(m["expired_products"], 1)
        self.assertEqual(m["total_loss"], 400)
        self.assertEqual(m["today_sales"], 60)
        self.assertEqual(m["daily_change"], 100)
        self.assertEqual([p["name"] for p in body["expired_products"]], ["Old Bread"])
        self.assertEqual([p["name"] for p in body["critical_products"]], ["Butter", "Cream"])
        self.assertEqual(body["top_products"][0]["name"], "Milk 2L")
        self.assertEqual(body["top_products"][0]["units"], 3)


if __name__ == "__main__":
    unittest.main()
