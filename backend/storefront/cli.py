# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "storefront" (PowerShell: $env:FLASK_APP="storefront").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables, then load the durable record (or seed owner + catalog).
# - python -m flask system reset --yes
#   Discard all state, reseed, and overwrite the durable record.
#
# Catalog:
# - python -m flask catalog list
# - python -m flask catalog create --name "Ruby Brainrot" --desc "Red." --stock 3 --price 300
# - python -m flask catalog restock b1 5
# - python -m flask catalog set-price b1 120
#
# Chats (seller side):
# - python -m flask chats list [--status OPEN]
# - python -m flask chats claim c1
# - python -m flask chats confirm c1
#
# Durable record:
# - python -m flask state export [PATH]
# - python -m flask state import PATH

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import StorefrontError
from .models import Chat
from .models.orders import VALID_CHAT_STATUSES
from .services import catalog_service, chat_service, state_service


def _fail(exc: StorefrontError):
    db.session.rollback()
    raise click.ClickException(str(exc))


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables and load (or seed) storefront state."""
    click.echo("START Initializing storefront...")
    db.create_all()
    outcome = state_service.load_state()
    items = catalog_service.list_items()
    click.echo(f"PASS State {outcome}: {len(items)} item(s) in catalog")


@system_group.command('reset')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_system(yes):
    """
    DANGER: Discard all accounts, items, chats and orders, then reseed.

    The durable record is overwritten.
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    state_service.reset_state()
    click.echo("PASS State reset to seed data.")


@click.group('catalog')
def catalog_group():
    """Catalog inspection and stock/price management."""


@catalog_group.command('list')
@with_appcontext
def list_catalog():
    items = catalog_service.list_items()
    if not items:
        click.echo("No items.")
        return
    for item in items:
        data = item.to_dict()
        click.echo(f"{data['id']:<8} {data['name']:<24} stock={data['stock']:<4} price={data['price']}")


@catalog_group.command('create')
@click.option('--name', required=True, help='Item name')
@click.option('--desc', default='', help='Description')
@click.option('--stock', type=int, default=0, show_default=True)
@click.option('--price', type=float, default=0, show_default=True)
@with_appcontext
def create_catalog_item(name, desc, stock, price):
    try:
        item = catalog_service.create_item(name, desc, stock, price)
    except StorefrontError as e:
        _fail(e)
    state_service.save_state()
    click.echo(f"PASS Created {item.id}: {item.name}")


@catalog_group.command('restock')
@click.argument('item_id')
@click.argument('delta', type=int)
@with_appcontext
def restock_item(item_id, delta):
    try:
        item = catalog_service.restock(item_id, delta)
    except StorefrontError as e:
        _fail(e)
    if item is None:
        raise click.ClickException(f"Item not found: {item_id}")
    state_service.save_state()
    click.echo(f"PASS {item.id} stock={item.stock}")


@catalog_group.command('set-price')
@click.argument('item_id')
@click.argument('price', type=float)
@with_appcontext
def set_item_price(item_id, price):
    try:
        item = catalog_service.set_price(item_id, price)
    except StorefrontError as e:
        _fail(e)
    if item is None:
        raise click.ClickException(f"Item not found: {item_id}")
    state_service.save_state()
    click.echo(f"PASS {item.id} price={item.to_dict()['price']}")


@click.group('chats')
def chats_group():
    """Seller-side chat inspection and fulfilment."""


@chats_group.command('list')
@click.option('--status', type=click.Choice(sorted(VALID_CHAT_STATUSES)), help='Filter by status')
@with_appcontext
def list_chats(status):
    chats = chat_service.list_chats()
    if status:
        chats = [c for c in chats if c.status == status]
    if not chats:
        click.echo("No chats.")
        return
    for chat in chats:
        click.echo(
            f"{chat.id:<8} {chat.status:<10} {chat.item_name:<24} "
            f"buyer={chat.buyer_username} pay={chat.payment_method} msgs={len(chat.messages)}"
        )


@chats_group.command('claim')
@click.argument('chat_id')
@with_appcontext
def claim_chat(chat_id):
    chat = chat_service.mark_claimed(chat_id)
    if chat is None:
        raise click.ClickException(f"Chat not found: {chat_id}")
    state_service.save_state()
    click.echo(f"PASS {chat.id} {chat.status}")


@chats_group.command('confirm')
@click.argument('chat_id')
@with_appcontext
def confirm_chat(chat_id):
    try:
        chat: Chat = chat_service.confirm_sale(chat_id)
    except StorefrontError as e:
        _fail(e)
    state_service.save_state()
    item = catalog_service.get_item(chat.item_id)
    stock = item.stock if item is not None else "n/a"
    click.echo(f"PASS {chat.id} {chat.status} ({chat.item_id} stock={stock})")


@click.group('state')
def state_group():
    """Durable record export and import."""


@state_group.command('export')
@click.argument('path', required=False, type=click.Path(dir_okay=False, writable=True))
@with_appcontext
def export_state(path):
    """Write the current state document as JSON (stdout if no PATH)."""
    document = json.dumps(state_service.export_state(), indent=2, sort_keys=True)
    if path:
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(document + "\n")
        click.echo(f"PASS Exported state to {path}")
    else:
        click.echo(document)


@state_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_state(path):
    """Replace all state with a JSON document and rewrite the durable record."""
    with open(path, "r", encoding="utf-8") as fh:
        try:
            document = json.load(fh)
        except json.JSONDecodeError as e:
            raise click.ClickException(f"Invalid JSON: {e}")
    try:
        state_service.import_state(document)
    except StorefrontError as e:
        _fail(e)
    state_service.save_state()
    click.echo(f"PASS Imported {len(document.get('items', []))} item(s), {len(document.get('chats', []))} chat(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(chats_group)
    app.cli.add_command(state_group)
