# supermarket_ai/cli.py
import os
import random
from datetime import timedelta
from decimal import Decimal

import click
from flask import current_app
from flask.cli import with_appcontext

from supermarket_ai import helpers
from supermarket_ai.extensions import db


def register_cli(app):
    app.cli.add_command(create_user)
    app.cli.add_command(seed_demo)
    app.cli.add_command(generate_recommendations_cmd)
    app.cli.add_command(send_sales_report)


@click.command("create-user")
@with_appcontext
@click.option("--email", default=lambda: os.environ.get("ADMIN_EMAIL", "admin@example.com"),
              show_default=True, help="Login e-mail")
@click.option("--password", default=lambda: os.environ.get("ADMIN_PASSWORD"),
              help="Password (prompted when not given)")
@click.option("--full-name", default=None, help="Display name")
@click.option("--role", default="admin", show_default=True)
@click.option("--force", is_flag=True, default=False,
              help="Reset password and role when the user already exists")
def create_user(email: str, password: str | None, full_name: str | None, role: str, force: bool):
    """Create (or reset) a dashboard login."""
    from supermarket_ai.models import Profile

    db.create_all()
    email = email.strip().lower()
    if not password:
        password = click.prompt("Password", hide_input=True, confirmation_prompt=True)

    user = Profile.query.filter_by(email=email).first()
    if user and not force:
        click.echo(f"User '{email}' already exists. Use --force to reset the password.")
        return
    if not user:
        user = Profile(email=email)
        db.session.add(user)

    user.role = role
    if full_name:
        user.full_name = full_name
    user.set_password(password)
    db.session.commit()
    click.echo(f"User ready: {email} ({role})")


DEMO_PRODUCTS = [
    # name, category, price, cost, quantity, days until expiry
    ("Full Cream Milk 2L", "Dairy", "32.99", "24.50", 40, 6),
    ("Plain Yoghurt 1kg", "Dairy", "45.99", "31.00", 12, 3),
    ("White Bread 700g", "Bakery", "18.99", "13.20", 25, 2),
    ("Brown Eggs 18", "Dairy", "64.99", "49.00", 4, 14),
    ("Bananas 1kg", "Produce", "24.99", "15.00", 60, 5),
    ("Organic Red Apples 1kg", "Produce", "39.99", "22.00", 18, 12),
    ("Chicken Breasts 1kg", "Meat", "99.99", "78.00", 9, 1),
    ("Basmati Rice 2kg", "Pantry", "59.99", "41.00", 80, 365),
    ("Instant Coffee 200g", "Pantry", "109.99", "59.00", 22, 400),
    ("Cheddar Cheese 400g", "Dairy", "79.99", "75.00", 30, -2),
]


@click.command("seed-demo")
@with_appcontext
@click.option("--sales", default=25, show_default=True, help="Random sales to create")
def seed_demo(sales: int):
    """Fill an empty database with demo products and sales."""
    from supermarket_ai.models import Product
    from supermarket_ai.services.checkout import write_sale

    db.create_all()
    if Product.query.count():
        click.echo("Products already present, skipping seed.")
        return

    today = helpers.utcnow().date()
    products = []
    for name, category, price, cost, qty, days in DEMO_PRODUCTS:
        p = Product(
            name=name,
            category=category,
            price=Decimal(price),
            cost_price=Decimal(cost),
            quantity=qty,
            expiry_date=today + timedelta(days=days),
        )
        db.session.add(p)
        products.append(p)
    db.session.flush()

    rng = random.Random(42)
    now = helpers.utcnow()
    for _ in range(sales):
        product = rng.choice([p for p in products if p.quantity > 1] or products)
        qty = rng.randint(1, max(1, min(3, product.quantity - 1)))
        if product.quantity < qty:
            continue
        when = now - timedelta(days=rng.randint(0, 20), hours=rng.randint(0, 10))
        write_sale([(product, qty, Decimal(str(product.price)))], created_at=when)
    db.session.commit()
    click.echo(f"Seeded {len(products)} products and up to {sales} sales.")


@click.command("generate-recommendations")
@with_appcontext
def generate_recommendations_cmd():
    """Scan products and insert discount/restock/pricing recommendations."""
    from supermarket_ai.services.recommendations import generate_recommendations

    created = generate_recommendations()
    for rec in created:
        click.echo(f"[{rec.priority}] {rec.type}: {rec.message}")
    click.echo(f"{len(created)} recommendation(s) created.")


@click.command("send-sales-report")
@with_appcontext
@click.option("--to", "recipient", default=None, help="Recipient (defaults to SALES_REPORT_EMAIL)")
def send_sales_report(recipient: str | None):
    """E-mail today's sales summary."""
    from supermarket_ai.api.utils.email import send_email
    from supermarket_ai.services.dashboard import build_dashboard

    recipient = recipient or current_app.config.get("SALES_REPORT_EMAIL")
    if not recipient:
        raise click.UsageError("No recipient: pass --to or set SALES_REPORT_EMAIL.")

    data = build_dashboard()
    m = data["metrics"]
    lines = [
        f"Daily sales report – {helpers.format_date(helpers.utcnow())}",
        "",
        f"Today's sales: {m['today_sales_formatted']} ({m['daily_change']:+d}% vs yesterday)",
        f"This week: {m['week_sales_formatted']} ({m['weekly_change']:+d}% vs last week)",
        f"This month: {m['month_sales_formatted']}",
        "",
        f"Products: {m['total_products']}",
        f"Low stock: {m['low_stock_products']}",
        f"Expiring within 10 days: {m['expiring_products']}",
        f"Expired: {m['expired_products']} (loss {m['total_loss_formatted']})",
    ]
    if data["top_products"]:
        lines += ["", "Top sellers:"]
        for row in data["top_products"]:
            lines.append(f"• {row['name']} × {row['units']} – {helpers.format_currency(row['revenue'])}")

    try:
        send_email(subject="Daily sales report", recipients=[recipient], body="\n".join(lines))
    except Exception:
        current_app.logger.exception("Sales report e-mail failed")
        raise click.ClickException("Sending the sales report failed, see the log.")
    click.echo(f"Sales report sent to {recipient}")
