# supermarket_ai/api/routes/product_routes.py
from flask import Blueprint, request

from supermarket_ai.api.utils.responses import handle_error, ok, request_data
from supermarket_ai.services import inventory, storage

api_products = Blueprint("api_products", __name__, url_prefix="/api/products")


def _with_uploaded_image(data: dict) -> tuple[dict, str | None]:
    """Multipart posts may carry the image file itself instead of an image_url.

    Returns the data and the URL stored by this request, if any.
    """
    image_file = request.files.get("image")
    if image_file and image_file.filename:
        data = dict(data)
        data["image_url"] = storage.save_image(image_file)
        return data, data["image_url"]
    return data, None


@api_products.get("")
def get_products():
    items = inventory.list_products(
        q=request.args.get("q"),
        category=request.args.get("category") or None,
        sort=request.args.get("sort"),
    )
    return ok(products=[p.to_dict() for p in items])


@api_products.get("/categories")
def get_categories():
    return ok(categories=inventory.list_categories())


@api_products.get("/<product_id>")
def get_product(product_id: str):
    try:
        p = inventory.get_product(product_id)
    except Exception as e:
        return handle_error(e)
    return ok(product=p.to_dict())


@api_products.post("")
def add_product():
    stored = None
    try:
        data, stored = _with_uploaded_image(request_data(request))
        p = inventory.add_product(data)
    except Exception as e:
        storage.delete_image(stored)
        return handle_error(e, "Error adding product")
    return ok(201, message="Product added successfully!", product=p.to_dict())


@api_products.route("/<product_id>", methods=["PUT", "PATCH"])
def update_product(product_id: str):
    stored = None
    try:
        data, stored = _with_uploaded_image(request_data(request))
        p = inventory.update_product(product_id, data)
    except Exception as e:
        storage.delete_image(stored)
        return handle_error(e, "Error updating product")
    return ok(message="Product updated successfully!", product=p.to_dict())


@api_products.delete("/<product_id>")
def delete_product(product_id: str):
    try:
        inventory.delete_product(product_id)
    except Exception as e:
        return handle_error(e, "Error deleting product")
    return ok(message="Product deleted successfully!")
