# supermarket_ai/services/inventory.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation

from flask import current_app

from supermarket_ai import helpers
from supermarket_ai.extensions import db
from supermarket_ai.models import Product
from supermarket_ai.services import ServiceError
from supermarket_ai.services import storage
from supermarket_ai.services.recommendations import add_restock_recommendation

REQUIRED_FIELDS = ("name", "category", "price", "cost_price", "quantity", "expiry_date")

SORT_MAP = {
    "date_desc": Product.created_at.desc(),
    "date_asc": Product.created_at.asc(),
    "name_asc": Product.name.asc(),
    "name_desc": Product.name.desc(),
    "price_asc": Product.price.asc(),
    "price_desc": Product.price.desc(),
    "quantity_asc": Product.quantity.asc(),
    "quantity_desc": Product.quantity.desc(),
    "expiry_asc": Product.expiry_date.asc(),
    "expiry_desc": Product.expiry_date.desc(),
}


def _to_price(val, field: str) -> Decimal:
    try:
        price = Decimal(str(val).strip().replace(",", "."))
    except (InvalidOperation, AttributeError):
        raise ServiceError(f"Invalid {field}")
    if not price.is_finite() or price < 0:
        raise ServiceError(f"Invalid {field}")
    return price.quantize(Decimal("0.01"))


def _to_quantity(val) -> int:
    try:
        qty = int(str(val).strip())
    except (TypeError, ValueError):
        raise ServiceError("Invalid quantity")
    if qty < 0:
        raise ServiceError("Invalid quantity")
    return qty


def _to_expiry(val):
    try:
        expiry = helpers.to_date(str(val).strip()) if val is not None else None
    except ValueError:
        expiry = None
    if expiry is None:
        raise ServiceError("Invalid expiry_date (expected YYYY-MM-DD)")
    return expiry


def _clean_text(val) -> str | None:
    s = (str(val) if val is not None else "").strip()
    return s or None


def _apply_fields(product: Product, data: dict) -> None:
    if "name" in data:
        name = _clean_text(data.get("name"))
        if not name:
            raise ServiceError("Product name is required")
        product.name = name
    if "category" in data:
        category = _clean_text(data.get("category"))
        if not category:
            raise ServiceError("Category is required")
        product.category = category
    if "price" in data:
        product.price = _to_price(data.get("price"), "price")
    if "cost_price" in data:
        product.cost_price = _to_price(data.get("cost_price"), "cost_price")
    if "quantity" in data:
        product.quantity = _to_quantity(data.get("quantity"))
    if "expiry_date" in data:
        product.expiry_date = _to_expiry(data.get("expiry_date"))
    if "image_url" in data:
        product.image_url = _clean_text(data.get("image_url"))
    if "description" in data:
        product.description = _clean_text(data.get("description"))


def list_products(q: str | None = None, category: str | None = None, sort: str | None = None):
    query = Product.query
    if q:
        query = query.filter(Product.name.ilike(f"%{q.strip()}%"))
    if category:
        query = query.filter(Product.category == category)
    query = query.order_by(SORT_MAP.get(sort or "date_desc", Product.created_at.desc()), Product.name.asc())
    return query.all()


def list_categories() -> list[str]:
    rows = db.session.query(Product.category).distinct().all()
    return sorted(r[0] for r in rows if r[0])


def get_product(product_id: str) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ServiceError("Product not found", 404)
    return product


def add_product(data: dict) -> Product:
    missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, "")]
    if missing:
        raise ServiceError(f"Missing required fields: {', '.join(missing)}")

    product = Product()
    _apply_fields(product, data)
    db.session.add(product)
    db.session.flush()

    if product.quantity <= helpers.LOW_STOCK_THRESHOLD:
        add_restock_recommendation(product, product.quantity, initial=True)

    db.session.commit()
    current_app.logger.info("Product added: %s (%s)", product.name, product.id)
    return product


def update_product(product_id: str, data: dict) -> Product:
    product = get_product(product_id)
    old_image = product.image_url
    _apply_fields(product, data)
    db.session.commit()

    if old_image and old_image != product.image_url:
        storage.delete_image(old_image)
    return product


def delete_product(product_id: str) -> None:
    product = get_product(product_id)
    image_url = product.image_url
    db.session.delete(product)
    db.session.commit()
    storage.delete_image(image_url)
    current_app.logger.info("Product deleted: %s", product_id)
