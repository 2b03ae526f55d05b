from datetime import timedelta

from bookstall.models import BookCopy, Donor, Sale
from bookstall.time_utils import utcnow


def test_seed_demo_builds_demo_catalogue(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "seed-demo"])

    assert result.exit_code == 0, result.output
    codes = sorted(code for (code,) in db_session.query(BookCopy.book_code).all())
    assert codes == ["10005010001", "10005020002", "10015010001", "10025020001"]
    sale = db_session.query(Sale).one()
    assert sale.total_cents == 1500
    assert utcnow() - sale.sold_at < timedelta(minutes=5)

    again = runner.invoke(args=["system", "seed-demo"])
    assert "SKIP" in again.output
    assert db_session.query(Donor).count() == 2


def test_inventory_lookup_and_verify(app, db_session):
    runner = app.test_cli_runner()
    runner.invoke(args=["system", "seed-demo"])

    found = runner.invoke(args=["inventory", "lookup", "10015010001"])
    assert found.exit_code == 0
    assert "The Hobbit" in found.output
    assert "Sold: yes" in found.output

    missing = runner.invoke(args=["inventory", "lookup", "999"])
    assert missing.exit_code == 1

    verified = runner.invoke(args=["inventory", "verify"])
    assert verified.exit_code == 0
    assert "No integrity problems" in verified.output


def test_verify_reports_sold_copy_without_sale(app, db_session):
    runner = app.test_cli_runner()
    runner.invoke(args=["system", "seed-demo"])
    copy = db_session.query(BookCopy).filter_by(book_code="10005010001").one()
    copy.is_sold = True
    db_session.commit()

    result = runner.invoke(args=["inventory", "verify"])

    assert result.exit_code == 1
    assert "10005010001 is sold but has no sale item" in result.output


def test_donor_commands(app, db_session):
    runner = app.test_cli_runner()

    created = runner.invoke(args=["donors", "create", "--name", "Alice Johnson", "--email", "alice@example.com"])
    assert created.exit_code == 0
    assert "501" in created.output

    listed = runner.invoke(args=["donors", "list"])
    assert "Alice Johnson" in listed.output
