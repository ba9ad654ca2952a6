# supermarket_ai/models/product.py
import uuid

from supermarket_ai.extensions import db
from supermarket_ai import helpers
from supermarket_ai.helpers import utcnow


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(150), nullable=False)
    category = db.Column(db.String(100), nullable=False, index=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    cost_price = db.Column(db.Numeric(10, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    expiry_date = db.Column(db.Date, nullable=False)
    image_url = db.Column(db.String(500), nullable=True)
    description = db.Column(db.Text, nullable=True)
    last_sale_date = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    recommendations = db.relationship(
        "Recommendation",
        back_populates="product",
        lazy=True,
        cascade="all, delete-orphan",
    )
    # Sale history outlives the product; the ORM nulls product_id on delete
    sale_items = db.relationship("SaleItem", back_populates="product", lazy=True)

    @property
    def is_low_stock(self) -> bool:
        return (self.quantity or 0) <= helpers.LOW_STOCK_THRESHOLD

    def to_dict(self, today=None) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price": float(self.price) if self.price is not None else None,
            "cost_price": float(self.cost_price) if self.cost_price is not None else None,
            "quantity": self.quantity,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "image_url": self.image_url,
            "description": self.description,
            "last_sale_date": self.last_sale_date.isoformat() if self.last_sale_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "days_until_expiry": helpers.days_until_expiry(self.expiry_date, today),
            "stock_status": helpers.stock_status(self.quantity),
            "expiry_status": helpers.expiry_status(self.expiry_date, today),
            "profit_margin": round(helpers.profit_margin(self.price, self.cost_price), 2),
        }

    def __repr__(self) -> str:
        return f"<Product {self.name} qty={self.quantity}>"
