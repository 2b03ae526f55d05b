# Overview: Flask CLI command groups for demo data, donor admin and inventory checks.

# backend/bookstall/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Load the demo catalogue (lookups, two donors, three titles, four copies, one sale).
#
# Donors:
# - python -m flask donors list [--all]
# - python -m flask donors create --name "Alice Johnson" --email alice@example.com
#
# Inventory:
# - python -m flask inventory lookup 10005010001
#   Print one copy by its book code.
# - python -m flask inventory verify
#   Check codes, serials and sales for integrity problems; exits 1 if any are found.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import BookCondition, Donor
from .services import donor_service, intake_service, inventory_service, lookup_service, sales_service
from .services.intake_service import IntakeRequest
from .services.sales_service import CartItem, SaleParty
from .validation import BookstallError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' to load demo data.")


# (title, author, language, category, donor index, condition, shelf, buying, selling)
DEMO_COPIES = [
    ("Do Androids Dream of Electric Sheep?", "Philip K. Dick", "English", "Science Fiction", 0, BookCondition.GOOD, "A1-01", 1129, 1299),
    ("Do Androids Dream of Electric Sheep?", "Philip K. Dick", "English", "Science Fiction", 1, BookCondition.MEDIUM, "A1-02", 739, 850),
    ("The Hobbit", "J.R.R. Tolkien", "English", "Fantasy", 0, BookCondition.NEW, "B2-05", 1304, 1500),
    ("Sapiens: A Brief History of Humankind", "Yuval Noah Harari", "English", "History", 1, BookCondition.GOOD, "C1-10", 1565, 1800),
]


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Load the demo catalogue through the normal intake and sale workflows.

    Refuses to run when donors already exist.
    """
    if db.session.query(Donor).count():
        click.echo("SKIP Donors already exist; run 'system reset-db --yes' first to reseed.")
        return

    try:
        lookup_ids = {}
        for lookup_type, names in (
            ("language", ["English", "Spanish"]),
            ("category", ["Science Fiction", "Fantasy", "History"]),
            ("author", ["Philip K. Dick", "J.R.R. Tolkien", "Yuval Noah Harari"]),
        ):
            for name in names:
                lookup_ids[(lookup_type, name)] = lookup_service.create_lookup(lookup_type, name).id
        click.echo(f"PASS Created {len(lookup_ids)} lookups")

        donors = [
            donor_service.create_donor({"name": "Alice Johnson", "email": "alice@example.com", "phone": "555-1234"}),
            donor_service.create_donor({"name": "Bob Williams", "email": "bob@example.com", "phone": "555-5678"}),
        ]
        for donor in donors:
            click.echo(f"PASS Donor {donor.donor_code}: {donor.name}")

        copies = []
        for title, author, language, category, donor_index, condition, shelf, buying, selling in DEMO_COPIES:
            copy = intake_service.assign_identity(IntakeRequest(
                title=title,
                author_id=lookup_ids[("author", author)],
                language_id=lookup_ids[("language", language)],
                category_id=lookup_ids[("category", category)],
                donor_id=donors[donor_index].id,
                condition=condition,
                shelf_location=shelf,
                buying_price_cents=buying,
                selling_price_cents=selling,
            ))
            copies.append(copy)
            click.echo(f"PASS Copy {copy.book_code}: {title}")

        hobbit = copies[2]
        sale = sales_service.finalize_sale(
            [CartItem(book_copy_id=hobbit.id, price_cents=hobbit.selling_price_cents)],
            SaleParty(name="Walk-in customer"),
        )
        click.echo(f"PASS Sale {sale.id}: total {sale.total_cents} cents")
    except BookstallError as e:
        click.echo(f"FAIL Error: {e}")
        raise click.exceptions.Exit(1)


@click.group('donors')
def donors_group():
    """Donor inspection and bootstrap commands."""


@donors_group.command('list')
@click.option('--all', 'show_all', is_flag=True, help='Show inactive donors too')
@with_appcontext
def list_donors_cli(show_all):
    """List donors with their codes."""
    donors = donor_service.list_donors(active=None if show_all else True)
    if not donors:
        click.echo("No donors found.")
        return

    click.echo(f"{'Code':<8} {'Name':<30} {'Active':<7} Email")
    click.echo("-" * 70)
    for donor in donors:
        active = "yes" if donor.is_active else "no"
        click.echo(f"{donor.donor_code:<8} {donor.name:<30} {active:<7} {donor.email or ''}")


@donors_group.command('create')
@click.option('--name', required=True, help='Donor name')
@click.option('--email', help='Email address')
@click.option('--phone', help='Phone number')
@with_appcontext
def create_donor_cli(name, email, phone):
    """
    Create a donor and print the assigned donor code.

    Example:
        flask donors create --name "Alice Johnson" --email alice@example.com
    """
    try:
        donor = donor_service.create_donor({"name": name, "email": email, "phone": phone})
    except BookstallError as e:
        click.echo(f"FAIL Error: {e}")
        raise click.exceptions.Exit(1)

    click.echo(f"PASS Created donor {donor.donor_code}: {donor.name} (ID: {donor.id})")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('lookup')
@click.argument('code')
@with_appcontext
def lookup_copy_cli(code):
    """Print one copy by book code."""
    try:
        copy = inventory_service.get_copy_by_code(code)
    except BookstallError as e:
        click.echo(f"FAIL {e}")
        raise click.exceptions.Exit(1)

    data = copy.to_dict(include_details=True)
    click.echo(f"{data['book_code']}  {data['title']} ({data['author']})")
    click.echo(f"   Donor: {data['donor_code']} {data['donor']}")
    click.echo(f"   Serial: {data['serial_number']}  Condition: {data['condition']}  Shelf: {data['shelf_location'] or '-'}")
    click.echo(f"   Buying: {data['buying_price_cents']}  Selling: {data['selling_price_cents']}  Sold: {'yes' if data['is_sold'] else 'no'}")


@inventory_group.command('verify')
@with_appcontext
def verify_inventory_cli():
    """Check book codes, serial numbering and sale consistency."""
    problems = inventory_service.verify_integrity()
    if not problems:
        click.echo("PASS No integrity problems found")
        return

    for problem in problems:
        click.echo(f"FAIL {problem}")
    raise click.exceptions.Exit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(donors_group)
    app.cli.add_command(inventory_group)
