# tests/base.py
import shutil
import tempfile
import unittest
from datetime import timedelta
from decimal import Decimal

from supermarket_ai.app import create_app
from supermarket_ai.config import TestConfig
from supermarket_ai.extensions import db
from supermarket_ai.helpers import utcnow
from supermarket_ai.models import Product, Profile


class AppTestCase(unittest.TestCase):
    """Fresh app + SQLite file database per test."""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

        class _Config(TestConfig):
            SQLALCHEMY_DATABASE_URI = f"sqlite:///{self.tmpdir}/test.db"
            UPLOAD_FOLDER = f"{self.tmpdir}/uploads"

        self.app = create_app(_Config)
        self.ctx = self.app.app_context()
        self.ctx.push()
        db.create_all()
        self.client = self.app.test_client()
        self.today = utcnow().date()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        db.engine.dispose()
        self.ctx.pop()
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    # ------------------------------------------------------------ fixtures

    @property
    def notifications(self):
        return self.app.extensions["notifications"]

    def make_product(self, name="Milk 2L", category="Dairy", price="30.00", cost_price="20.00",
                     quantity=50, expires_in=30, **extra) -> Product:
        p = Product(
            name=name,
            category=category,
            price=Decimal(price),
            cost_price=Decimal(cost_price),
            quantity=quantity,
            expiry_date=self.today + timedelta(days=expires_in),
            **extra,
        )
        db.session.add(p)
        db.session.commit()
        return p

    def make_user(self, email="cashier@example.com", password="secret-pass", **extra) -> Profile:
        user = Profile(email=email, full_name="Test Cashier", **extra)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    def login(self, email="cashier@example.com", password="secret-pass"):
        return self.client.post("/api/auth/login", json={"email": email, "password": password})

    def reload(self, obj):
        """Fresh copy of a row after the request's session changed it."""
        db.session.expire_all()
        return db.session.get(type(obj), obj.id)
