# Overview: Flask CLI command groups for setup, inventory, reports and backups.

# backend/stockswift/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system init
#   Idempotent: create the local store if it does not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Products:
# - python -m flask products list
# - python -m flask products search "widget"
# - python -m flask products add --sku A1 --name Widget --quantity 10 --cost-price 5.00 --sale-price 9.90 --expiry-date 2025-12-31
# - python -m flask products delete prod_... --yes
# - python -m flask products expiring [--days 30]
#
# Sales and reports:
# - python -m flask sales list [--year 2025 --month 3]
# - python -m flask reports monthly --year 2025 --month 3 --format csv --output report.csv
#   --month is 1-12 here.
#
# Backups:
# - python -m flask data export --output backup.json
# - python -m flask data import backup.json --yes
#   Replaces ALL products and sales with the backup's content.
# - python -m flask data wipe --yes

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .serialization import dumps, loads
from .services import inventory_service, reporting_service
from .services.reporting_service import ReportError, ReportPeriod
from .storage import StorageError
from .time_utils import from_ms, now_ms, resolve_timezone, to_utc_z
from .validation import NotFoundError, ValidationError
from .wiring import get_services

HANDLED_ERRORS = (ValidationError, NotFoundError, StorageError, ReportError)


def _fail(exc: Exception):
    raise click.ClickException(str(exc))


def _write_output(text: str, output: str | None) -> None:
    if output:
        with open(output, "w", encoding="utf-8", newline="") as fh:
            fh.write(text)
        click.echo(f"PASS Wrote {output}")
    else:
        click.echo(text, nl=not text.endswith("\n"))


def _product_line(p: dict) -> str:
    return (
        f"{p['id']}  sku={p['sku']}  code={p['internalCode']}  "
        f"{p['name']}  qty={p['quantity']}  price={p['salePrice']}  expires={p['expiryDate']}"
    )


@click.group('system')
def system_group():
    """Local store setup commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create the products and sales collections if they do not exist."""
    services = get_services()
    try:
        services.storage.init()
    except StorageError as exc:
        _fail(exc)
    click.echo(
        f"PASS Store ready: {services.storage.count('products')} products, "
        f"{services.storage.count('sales')} sales"
    )


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('products')
def products_group():
    """Product inventory commands."""


@products_group.command('list')
@with_appcontext
def list_products_cli():
    """List products, newest first."""
    products = get_services().products.list()
    if not products:
        click.echo("No products.")
        return
    for p in products:
        click.echo(_product_line(p))


@products_group.command('search')
@click.argument('query', required=False, default="")
@with_appcontext
def search_products_cli(query):
    """Search by name, SKU or internal code (case-insensitive)."""
    results = get_services().products.search(query)
    if not results:
        click.echo("No matching products.")
        return
    for p in results:
        click.echo(_product_line(p))


@products_group.command('add')
@click.option('--sku', required=True)
@click.option('--name', required=True)
@click.option('--quantity', type=int, default=0, show_default=True)
@click.option('--cost-price', required=True)
@click.option('--sale-price', required=True)
@click.option('--expiry-date', required=True, help='YYYY-MM-DD')
@click.option('--description', default=None)
@with_appcontext
def add_product_cli(sku, name, quantity, cost_price, sale_price, expiry_date, description):
    """Add a product."""
    fields = {
        "sku": sku,
        "name": name,
        "quantity": quantity,
        "costPrice": cost_price,
        "salePrice": sale_price,
        "expiryDate": expiry_date,
    }
    if description is not None:
        fields["description"] = description
    try:
        product = get_services().products.add(fields)
    except HANDLED_ERRORS as exc:
        _fail(exc)
    click.echo(f"PASS Created product {product['id']} (internal code {product['internalCode']})")


@products_group.command('delete')
@click.argument('product_id')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def delete_product_cli(product_id, yes):
    """Permanently delete a product. Past sales are kept."""
    if not yes:
        click.confirm(f"WARN Delete product {product_id}?", abort=True)
    try:
        get_services().products.delete(product_id)
    except HANDLED_ERRORS as exc:
        _fail(exc)
    click.echo(f"PASS Deleted product {product_id}")


@products_group.command('expiring')
@click.option('--days', type=int, default=None, help='Warning window (defaults to EXPIRY_WARNING_DAYS)')
@with_appcontext
def expiring_products_cli(days):
    """Stock overview and products expiring soon."""
    window = days if days is not None else current_app.config["EXPIRY_WARNING_DAYS"]
    tz = resolve_timezone(current_app.config["REPORT_TIMEZONE"])
    today = from_ms(now_ms(), tz).date()

    overview = inventory_service.stock_overview(
        get_services().products.list(), today=today, window_days=window
    )
    click.echo(f"Products: {overview['productCount']}")
    click.echo(f"Stock value (cost): {overview['stockValue']}")
    if not overview["expiringSoon"]:
        click.echo(f"Nothing expires in the next {window} days.")
        return
    click.echo(f"Expiring in the next {window} days:")
    for p in overview["expiringSoon"]:
        click.echo(f"  {p['expiryDate']}  {p['sku']}  {p['name']}  qty={p['quantity']}")


@click.group('sales')
def sales_group():
    """Sales history commands."""


@sales_group.command('list')
@click.option('--year', type=int, default=None)
@click.option('--month', type=click.IntRange(1, 12), default=None, help='1-12')
@with_appcontext
def list_sales_cli(year, month):
    """List sales, optionally for one calendar month."""
    sales_repo = get_services().sales
    if (year is None) != (month is None):
        raise click.UsageError("--year and --month must be given together")
    try:
        sales = sales_repo.list() if year is None else sales_repo.list_by_period(year, month - 1)
    except HANDLED_ERRORS as exc:
        _fail(exc)
    if not sales:
        click.echo("No sales.")
        return
    for s in sales:
        units = sum(item["quantity"] for item in s["items"])
        click.echo(
            f"{s['id']}  {to_utc_z(s['createdAt'])}  units={units}  "
            f"subtotal={s['subtotal']}  discount={s['discount']}  total={s['total']}"
        )


@click.group('reports')
def reports_group():
    """Financial report commands."""


@reports_group.command('monthly')
@click.option('--year', type=int, required=True)
@click.option('--month', type=click.IntRange(1, 12), required=True, help='1-12')
@click.option('--format', 'fmt', type=click.Choice(['csv', 'json']), default='csv', show_default=True)
@click.option('--output', type=click.Path(dir_okay=False), default=None)
@with_appcontext
def monthly_report_cli(year, month, fmt, output):
    """Monthly revenue, discount, COGS and profit report."""
    try:
        period = ReportPeriod(year=year, month=month - 1)
        sales = get_services().sales.list_by_period(period.year, period.month)
        metrics = reporting_service.summarize(sales)
        if fmt == 'csv':
            text = reporting_service.to_tabular_export(
                sales, metrics, timezone=current_app.config["REPORT_TIMEZONE"]
            )
        else:
            text = dumps(reporting_service.to_document_export(sales, metrics, period)) + "\n"
    except HANDLED_ERRORS as exc:
        _fail(exc)
    _write_output(text, output)


@click.group('data')
def data_group():
    """Backup, restore and reset commands."""


@data_group.command('export')
@click.option('--output', type=click.Path(dir_okay=False), default=None)
@with_appcontext
def export_data_cli(output):
    """Export every product and sale as a JSON backup."""
    try:
        backup = get_services().backup.export()
    except HANDLED_ERRORS as exc:
        _fail(exc)
    _write_output(dumps(backup) + "\n", output)


@data_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def import_data_cli(path, yes):
    """Restore a JSON backup, replacing ALL current data."""
    if not yes:
        click.confirm("WARN This will REPLACE all products and sales. Are you sure?", abort=True)
    try:
        with open(path, encoding="utf-8") as fh:
            data = loads(fh.read())
    except ValueError as exc:
        _fail(ValidationError(f"Invalid backup file: {exc}"))
    try:
        counts = get_services().backup.import_data(data)
    except HANDLED_ERRORS as exc:
        _fail(exc)
    click.echo(f"PASS Restored {counts['products']} products and {counts['sales']} sales")


@data_group.command('wipe')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def wipe_data_cli(yes):
    """Delete every product and sale. Cannot be undone."""
    if not yes:
        click.confirm("WARN This will DELETE all products and sales. Are you sure?", abort=True)
    try:
        counts = get_services().backup.clear_all_data()
    except HANDLED_ERRORS as exc:
        _fail(exc)
    click.echo(f"WIPE  Removed {counts['products']} products and {counts['sales']} sales")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(products_group)
    app.cli.add_command(sales_group)
    app.cli.add_command(reports_group)
    app.cli.add_command(data_group)
