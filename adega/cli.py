# adega/cli.py
import click
import pandas as pd
from werkzeug.security import generate_password_hash
from .extensions import db
from .model import User, UserRole, Order
from .services.points_service import LoyaltyLedger

@click.command("create-admin")
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--name", required=True)
def create_admin(email, password, name):
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo("Email already exists"); return
    u = User(email=email, full_name=name, password_hash=generate_password_hash(password))
    u.roles.append(UserRole(role="user"))
    u.roles.append(UserRole(role="admin"))
    db.session.add(u); db.session.commit()
    click.echo(f"Admin created: {u.id} {u.email}")

@click.command("grant-points")
@click.option("--email", required=True)
@click.option("--points", required=True, type=int)
@click.option("--description", default=None)
def grant_points(email, points, description):
    """Bonus points granted by staff (same atomic path as purchases)."""
    u = User.query.filter_by(email=email.strip().lower()).first()
    if not u:
        raise click.ClickException("user not found")
    ledger = LoyaltyLedger(u.id)
    if not ledger.add_points(points, "bônus", description=description):
        raise click.ClickException("could not add points")
    click.echo(f"{u.email}: {ledger.points} pontos ({ledger.tier.name})")

def orders_dataframe(start=None, end=None) -> pd.DataFrame:
    q = Order.query
    if start:
        q = q.filter(Order.created_at >= start)
    if end:
        q = q.filter(Order.created_at < end)
    rows = [
        {
            "ID": o.id,
            "Created At": o.created_at,
            "Status": o.status,
            "Payment Method": o.payment_method,
            "Items": sum(i.quantity for i in o.items),
            "Subtotal": float(o.subtotal or 0),
            "Delivery Fee": float(o.delivery_fee or 0),
            "Discount": float(o.discount_amount or 0),
            "Total": float(o.total or 0),
            "Coupon ID": o.coupon_id,
        }
        for o in q.order_by(Order.created_at.asc()).all()
    ]
    return pd.DataFrame(rows, columns=[
        "ID", "Created At", "Status", "Payment Method", "Items",
        "Subtotal", "Delivery Fee", "Discount", "Total", "Coupon ID",
    ])

@click.command("export-orders")
@click.option("--out", "out_path", required=True, help="Destination .csv or .xlsx file")
@click.option("--start", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.option("--end", type=click.DateTime(formats=["%Y-%m-%d"]), default=None, help="exclusive")
def export_orders(out_path, start, end):
    df = orders_dataframe(start, end)
    if out_path.lower().endswith(".xlsx"):
        df.to_excel(out_path, index=False)
    else:
        df.to_csv(out_path, index=False)
    delivered = df[df["Status"] == "delivered"]["Total"].sum() if len(df) else 0.0
    click.echo(f"{len(df)} orders exported to {out_path} (delivered revenue: {delivered:.2f})")

def register_cli(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(grant_points)
    app.cli.add_command(export_orders)
