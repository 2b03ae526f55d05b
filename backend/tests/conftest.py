"""
Pytest fixtures for bookstall backend tests.

Provides test database setup, the demo catalog lookups and donors, and test client.
"""

import pytest

from bookstall import create_app
from bookstall.extensions import db
from bookstall.models import Author, BookCondition, Category, Language
from bookstall.services import donor_service, intake_service
from bookstall.services.intake_service import IntakeRequest


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BOOK_ID_SEED': 1000,
        'DONOR_CODE_SEED': 501,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def lookups(db_session):
    """Languages, categories and authors from the demo catalogue, keyed by name."""
    rows = {
        "English": Language(name="English"),
        "Spanish": Language(name="Spanish"),
        "Science Fiction": Category(name="Science Fiction"),
        "Fantasy": Category(name="Fantasy"),
        "History": Category(name="History"),
        "Philip K. Dick": Author(name="Philip K. Dick"),
        "J.R.R. Tolkien": Author(name="J.R.R. Tolkien"),
        "Yuval Noah Harari": Author(name="Yuval Noah Harari"),
    }
    db_session.add_all(rows.values())
    db_session.commit()
    return {name: row.id for name, row in rows.items()}


@pytest.fixture(scope='function')
def alice(db_session):
    """First donor: gets donor code 501."""
    return donor_service.create_donor({"name": "Alice Johnson", "email": "alice@example.com"})


@pytest.fixture(scope='function')
def bob(db_session, alice):
    """Second donor: gets donor code 502."""
    return donor_service.create_donor({"name": "Bob Williams", "email": "bob@example.com"})


@pytest.fixture(scope='function')
def make_intake(lookups):
    """Build an IntakeRequest with demo defaults (The Hobbit, Tolkien, English, Fantasy)."""
    def _make(donor, **overrides):
        fields = {
            "title": "The Hobbit",
            "author_id": lookups["J.R.R. Tolkien"],
            "language_id": lookups["English"],
            "category_id": lookups["Fantasy"],
            "donor_id": donor.id,
            "condition": BookCondition.GOOD,
            "buying_price_cents": 1000,
            "selling_price_cents": 1299,
        }
        fields.update(overrides)
        return IntakeRequest(**fields)

    return _make


@pytest.fixture(scope='function')
def intake(make_intake):
    """Run assign_identity with demo defaults; returns the created BookCopy."""
    def _intake(donor, **overrides):
        return intake_service.assign_identity(make_intake(donor, **overrides))

    return _intake


@pytest.fixture(scope='function')
def intake_payload(lookups):
    """Build a JSON body for POST /api/inventory/intake."""
    def _payload(donor, **overrides) -> dict:
        payload = {
            "donor_id": donor.id,
            "title": "The Hobbit",
            "author_id": lookups["J.R.R. Tolkien"],
            "language_id": lookups["English"],
            "category_id": lookups["Fantasy"],
            "condition": "Good",
            "shelf_location": "B2-05",
            "buying_price_cents": 1304,
            "selling_price_cents": 1500,
            "is_free_donation": False,
        }
        payload.update(overrides)
        return payload

    return _payload
