# supermarket_ai/api/routes/sale_routes.py
from flask import Blueprint, request, send_file, session
from flask_login import current_user, login_required

from supermarket_ai.api.utils.responses import fail, handle_error, ok, request_data
from supermarket_ai.services import checkout as pos
from supermarket_ai.services import inventory
from supermarket_ai.services import sales as history

api_sales = Blueprint("api_sales", __name__, url_prefix="/api/sales")


def _filters() -> dict:
    return {
        "from": request.args.get("from", "").strip(),
        "to": request.args.get("to", "").strip(),
    }


def _load_cart() -> pos.Cart:
    return pos.Cart(session.get("cart") or [])


def _save_cart(cart: pos.Cart) -> None:
    session["cart"] = cart.to_list()


def _cart_payload(cart: pos.Cart) -> dict:
    lines = cart.priced_lines()
    return {
        "items": lines,
        "total": round(sum(l["subtotal"] for l in lines), 2),
    }


# ---------------------------------------------------------------- history

@api_sales.get("")
def list_sales():
    try:
        items, summary = history.list_sales(_filters())
    except Exception as e:
        return handle_error(e, "Error fetching sales")
    return ok(sales=[s.to_dict() for s in items], summary=summary)


@api_sales.get("/export.xlsx")
def export_sales():
    try:
        bio, filename = history.export_xlsx(_filters())
    except Exception as e:
        return handle_error(e, "Error exporting sales")
    return send_file(
        bio,
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        as_attachment=True,
        download_name=filename,
    )


@api_sales.post("")
def record_sale():
    try:
        sale = pos.record_sale(request_data(request), current_user)
    except Exception as e:
        return handle_error(e, "Error recording sale")
    return ok(201, message="Sale recorded successfully!", sale=sale.to_dict())


# ---------------------------------------------------------------- cart

@api_sales.get("/cart")
def get_cart():
    return ok(cart=_cart_payload(_load_cart()))


@api_sales.post("/cart/items")
def add_to_cart():
    data = request.get_json(silent=True) or {}
    product_id = str(data.get("product_id") or "").strip()
    if not product_id:
        return fail("Missing required fields: product_id")
    try:
        quantity = int(data.get("quantity", 1))
        # Unknown products never make it into the cart
        inventory.get_product(product_id)
        cart = _load_cart()
        cart.add(product_id, quantity)
    except ValueError:
        return fail("Invalid quantity")
    except Exception as e:
        return handle_error(e)
    _save_cart(cart)
    return ok(cart=_cart_payload(cart))


@api_sales.patch("/cart/items/<product_id>")
def update_cart_item(product_id: str):
    data = request.get_json(silent=True) or {}
    try:
        change = int(data.get("change", 0))
        cart = _load_cart()
        cart.update_quantity(product_id, change)
    except ValueError:
        return fail("Invalid change")
    except Exception as e:
        return handle_error(e)
    _save_cart(cart)
    return ok(cart=_cart_payload(cart))


@api_sales.delete("/cart/items/<product_id>")
def remove_from_cart(product_id: str):
    cart = _load_cart()
    cart.remove(product_id)
    _save_cart(cart)
    return ok(cart=_cart_payload(cart))


@api_sales.delete("/cart")
def clear_cart():
    session.pop("cart", None)
    return ok(cart=_cart_payload(pos.Cart()))


@api_sales.post("/checkout")
@login_required
def checkout():
    cart = _load_cart()
    try:
        sale = pos.checkout(cart, current_user)
    except Exception as e:
        return handle_error(e, "Error processing sale")
    _save_cart(cart)
    return ok(201, message="Sale recorded successfully!", sale=sale.to_dict())
