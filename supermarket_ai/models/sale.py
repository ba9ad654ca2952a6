# supermarket_ai/models/sale.py
import uuid

from supermarket_ai.extensions import db
from supermarket_ai.helpers import utcnow


class Sale(db.Model):
    __tablename__ = "sales"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=True, index=True)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    user = db.relationship("Profile", back_populates="sales")
    items = db.relationship("SaleItem", back_populates="sale", lazy=True, cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "total_amount": float(self.total_amount) if self.total_amount is not None else 0.0,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "items": [it.to_dict() for it in self.items],
        }

    def __repr__(self):
        return f"<Sale {self.id} total={self.total_amount}>"


class SaleItem(db.Model):
    __tablename__ = "sale_items"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sale_id = db.Column(db.String(36), db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=True, index=True)
    product_name = db.Column(db.String(150), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    sale_price = db.Column(db.Numeric(10, 2), nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product", back_populates="sale_items")

    @property
    def created_at(self):
        return self.sale.created_at if self.sale else None

    @property
    def subtotal(self) -> float:
        return float(self.sale_price) * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "sale_price": float(self.sale_price),
            "subtotal": round(self.subtotal, 2),
        }
