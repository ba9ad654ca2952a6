# supermarket_ai/services/checkout.py
"""
Point-of-sale cart and checkout.

The cart only holds product ids and quantities; prices are read from the
products table when the cart is shown or checked out.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation

from flask import current_app

from supermarket_ai import helpers
from supermarket_ai.extensions import db
from supermarket_ai.models import Product, Sale, SaleItem
from supermarket_ai.services import ServiceError
from supermarket_ai.services.recommendations import add_restock_recommendation


class Cart:
    def __init__(self, lines: list[dict] | None = None):
        self.lines: list[dict] = [
            {"product_id": str(line["product_id"]), "quantity": int(line["quantity"])}
            for line in (lines or [])
            if int(line.get("quantity") or 0) > 0
        ]

    def _find(self, product_id: str):
        for line in self.lines:
            if line["product_id"] == product_id:
                return line
        return None

    def add(self, product_id: str, quantity: int = 1) -> None:
        if quantity <= 0:
            raise ServiceError("Quantity must be greater than zero")
        line = self._find(product_id)
        if line:
            line["quantity"] += quantity
        else:
            self.lines.append({"product_id": product_id, "quantity": quantity})

    def update_quantity(self, product_id: str, change: int) -> None:
        line = self._find(product_id)
        if line is None:
            raise ServiceError("Product is not in the cart", 404)
        line["quantity"] = max(0, line["quantity"] + change)
        self.lines = [l for l in self.lines if l["quantity"] > 0]

    def remove(self, product_id: str) -> None:
        self.lines = [l for l in self.lines if l["product_id"] != product_id]

    def clear(self) -> None:
        self.lines = []

    def is_empty(self) -> bool:
        return not self.lines

    def to_list(self) -> list[dict]:
        return [dict(l) for l in self.lines]

    def priced_lines(self) -> list[dict]:
        """Cart lines joined with current product data."""
        ids = [l["product_id"] for l in self.lines]
        products = {p.id: p for p in Product.query.filter(Product.id.in_(ids)).all()} if ids else {}
        rows = []
        for line in self.lines:
            product = products.get(line["product_id"])
            if product is None:
                continue
            price = float(product.price)
            rows.append({
                "product_id": product.id,
                "name": product.name,
                "price": price,
                "quantity": line["quantity"],
                "in_stock": product.quantity,
                "subtotal": round(price * line["quantity"], 2),
            })
        return rows

    def total(self) -> float:
        return round(sum(r["subtotal"] for r in self.priced_lines()), 2)


def _to_decimal(val, field: str) -> Decimal:
    try:
        d = Decimal(str(val))
    except (InvalidOperation, TypeError):
        raise ServiceError(f"Invalid {field}")
    if not d.is_finite() or d < 0:
        raise ServiceError(f"Invalid {field}")
    return d.quantize(Decimal("0.01"))


def _take_stock(product: Product, quantity: int) -> int:
    if quantity <= 0:
        raise ServiceError("Quantity must be greater than zero")
    on_hand = int(product.quantity or 0)
    if on_hand < quantity:
        raise ServiceError(f"Only {on_hand} units of {product.name} left in stock")
    product.quantity = on_hand - quantity
    product.last_sale_date = helpers.utcnow()
    return product.quantity


def _lock_products(ids: list[str]) -> dict[str, Product]:
    rows = Product.query.filter(Product.id.in_(ids)).with_for_update().all()
    return {p.id: p for p in rows}


def write_sale(lines: list[tuple[Product, int, Decimal]], user_id=None, created_at=None) -> Sale:
    """lines: (product, quantity, unit price). Caller handles commit/rollback."""
    total = sum((price * qty for _, qty, price in lines), Decimal("0.00"))
    sale = Sale(user_id=user_id, total_amount=total.quantize(Decimal("0.01")))
    if created_at is not None:
        sale.created_at = created_at
    db.session.add(sale)

    low_stock = []
    for product, qty, price in lines:
        remaining = _take_stock(product, qty)
        sale.items.append(SaleItem(
            product_id=product.id,
            product_name=product.name,
            quantity=qty,
            sale_price=price,
        ))
        if remaining <= helpers.LOW_STOCK_THRESHOLD:
            low_stock.append((product, remaining))

    for product, remaining in low_stock:
        add_restock_recommendation(product, remaining)
    return sale


def checkout(cart: Cart, user) -> Sale:
    if user is None or not getattr(user, "is_authenticated", False):
        raise ServiceError("User not authenticated", 401)
    if cart.is_empty():
        raise ServiceError("Cart is empty")

    products = _lock_products([l["product_id"] for l in cart.lines])
    lines = []
    for line in cart.lines:
        product = products.get(line["product_id"])
        if product is None:
            raise ServiceError(f"Product {line['product_id']} does not exist", 404)
        lines.append((product, line["quantity"], Decimal(str(product.price)).quantize(Decimal("0.01"))))

    sale = write_sale(lines, user_id=user.id)
    db.session.commit()
    cart.clear()
    current_app.logger.info("Checkout %s: %d items, total %s", sale.id, len(lines), sale.total_amount)
    return sale


def record_sale(data: dict, user=None) -> Sale:
    """Single-product sale at an explicit price."""
    product_id = str(data.get("product_id") or "").strip()
    if not product_id:
        raise ServiceError("Missing required fields: product_id")
    try:
        quantity = int(data.get("quantity"))
    except (TypeError, ValueError):
        raise ServiceError("Invalid quantity")

    product = _lock_products([product_id]).get(product_id)
    if product is None:
        raise ServiceError(f"Product {product_id} does not exist", 404)

    raw_price = data.get("sale_price")
    price = _to_decimal(raw_price if raw_price not in (None, "") else product.price, "sale_price")

    created_at = None
    if data.get("created_at"):
        try:
            created_at = helpers.to_datetime(data["created_at"])
        except ValueError:
            raise ServiceError("Invalid created_at")

    user_id = user.id if user is not None and getattr(user, "is_authenticated", False) else None
    sale = write_sale([(product, quantity, price)], user_id=user_id, created_at=created_at)
    db.session.commit()
    return sale
