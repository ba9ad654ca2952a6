# supermarket_ai/models/recommendation.py
import uuid

from supermarket_ai.extensions import db
from supermarket_ai.helpers import utcnow

RECOMMENDATION_TYPES = ("discount", "restock", "pricing")
PRIORITIES = ("low", "medium", "high")
PRIORITY_RANK = {"high": 1, "medium": 2, "low": 3}


class Recommendation(db.Model):
    __tablename__ = "recommendations"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type = db.Column(db.String(20), nullable=False)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)
    message = db.Column(db.Text, nullable=False)
    suggested_action = db.Column(db.Text, nullable=False)
    priority = db.Column(db.String(10), nullable=False, default="medium")
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    product = db.relationship("Product", back_populates="recommendations")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "product_category": self.product.category if self.product else None,
            "message": self.message,
            "suggested_action": self.suggested_action,
            "priority": self.priority,
            "is_read": bool(self.is_read),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Recommendation {self.type} {self.priority} product={self.product_id}>"
