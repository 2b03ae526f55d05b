import logging

import pytest
from sqlalchemy import false

from bookstall.models import Author, BookCondition, BookCopy, BookTitle
from bookstall.services import intake_service
from bookstall.services.donor_service import DonorNotFound, toggle_donor_status
from bookstall.services.intake_service import (
    DuplicateBookCode,
    DuplicateTitle,
    IntakeRequest,
    format_book_code,
    suggest_selling_price_cents,
)
from bookstall.validation import ValidationError


def test_format_book_code_concatenates_without_delimiter():
    assert format_book_code("1000", "501", 1) == "10005010001"
    assert format_book_code("1002", "502", 12) == "10025020012"


def test_suggest_selling_price_adds_fifteen_percent_half_up():
    assert suggest_selling_price_cents(1000) == 1150
    assert suggest_selling_price_cents(1129) == 1298
    assert suggest_selling_price_cents(10) == 12
    assert suggest_selling_price_cents(0) == 0


def test_first_title_gets_seed_book_id(db_session, alice, intake):
    copy = intake(alice)

    assert copy.book_title.book_id == "1000"
    assert copy.serial_number == 1
    assert copy.book_code == "10005010001"
    assert copy.is_sold is False


def test_existing_title_is_reused_with_next_serial(db_session, lookups, alice, bob, intake):
    hobbit = BookTitle(
        book_id="1001",
        title="The Hobbit",
        author_id=lookups["J.R.R. Tolkien"],
        language_id=lookups["English"],
        category_id=lookups["Fantasy"],
    )
    db_session.add(hobbit)
    db_session.commit()

    first = intake(alice)
    second = intake(bob)

    assert first.book_title_id == hobbit.id
    assert first.serial_number == 1
    assert first.book_code == "10015010001"

    assert second.book_title_id == hobbit.id
    assert second.serial_number == 2
    assert second.book_code == "10015020002"
    assert db_session.query(BookTitle).count() == 1


def test_new_title_after_existing_rows_starts_above_highest_book_id(db_session, lookups, alice, intake):
    db_session.add(BookTitle(
        book_id="1001",
        title="The Hobbit",
        author_id=lookups["J.R.R. Tolkien"],
        language_id=lookups["English"],
        category_id=lookups["Fantasy"],
    ))
    db_session.commit()

    copy = intake(alice, title="Sapiens: A Brief History of Humankind",
                  author_id=lookups["Yuval Noah Harari"], category_id=lookups["History"])

    assert copy.book_title.book_id == "1002"


def test_title_match_is_case_insensitive(db_session, alice, intake):
    first = intake(alice, title="The Hobbit")
    second = intake(alice, title="  the HOBBIT ")

    assert second.book_title_id == first.book_title_id
    assert second.serial_number == 2
    assert first.book_title.title == "The Hobbit"


def test_same_title_different_language_is_a_new_title(db_session, lookups, alice, intake):
    english = intake(alice)
    spanish = intake(alice, language_id=lookups["Spanish"])

    assert spanish.book_title_id != english.book_title_id
    assert english.book_title.book_id == "1000"
    assert spanish.book_title.book_id == "1001"
    assert spanish.serial_number == 1
    assert spanish.book_code == "10015010001"


def test_serials_are_contiguous_and_codes_distinct(db_session, alice, bob, intake):
    copies = [intake(donor) for donor in (alice, bob, alice, bob, alice)]

    assert [c.serial_number for c in copies] == [1, 2, 3, 4, 5]
    codes = [c.book_code for c in copies]
    assert len(set(codes)) == len(codes)
    assert codes[1] == "10005020002"


def test_free_donation_stores_zero_buying_price(db_session, alice, intake):
    copy = intake(alice, is_free_donation=True, buying_price_cents=900, selling_price_cents=700)

    assert copy.is_free_donation is True
    assert copy.buying_price_cents == 0
    assert copy.selling_price_cents == 700


def test_free_donation_requires_selling_price(db_session, alice, intake):
    with pytest.raises(ValidationError):
        intake(alice, is_free_donation=True, selling_price_cents=None)


def test_selling_price_defaults_to_suggestion(db_session, alice, intake):
    copy = intake(alice, buying_price_cents=1129, selling_price_cents=None)

    assert copy.selling_price_cents == 1298


def test_selling_below_buying_is_rejected(db_session, alice, intake):
    with pytest.raises(ValidationError):
        intake(alice, buying_price_cents=1500, selling_price_cents=1000)

    assert db_session.query(BookCopy).count() == 0


def test_new_author_is_created_once(db_session, alice, intake):
    copy = intake(alice, title="A Wizard of Earthsea", author_id=None, new_author_name="Ursula K. Le Guin")
    again = intake(alice, title="The Dispossessed", author_id=None, new_author_name="ursula k. le guin")

    authors = db_session.query(Author).filter(Author.name == "Ursula K. Le Guin").all()
    assert len(authors) == 1
    assert copy.book_title.author_id == authors[0].id
    assert again.book_title.author_id == authors[0].id


def test_new_author_matching_existing_name_reuses_it(db_session, lookups, alice, intake):
    copy = intake(alice, author_id=None, new_author_name="j.r.r. tolkien")

    assert copy.book_title.author_id == lookups["J.R.R. Tolkien"]
    assert db_session.query(Author).count() == 3


def test_unknown_donor_raises_donor_not_found(db_session, lookups, make_intake, alice):
    request = make_intake(alice, donor_id=9999)

    with pytest.raises(DonorNotFound):
        intake_service.assign_identity(request)

    assert db_session.query(BookTitle).count() == 0


def test_inactive_donor_is_rejected(db_session, alice, intake):
    toggle_donor_status(alice.id)

    with pytest.raises(ValidationError):
        intake(alice)


def test_unknown_lookup_id_is_rejected(db_session, alice, intake):
    with pytest.raises(ValidationError):
        intake(alice, category_id=9999)

    assert db_session.query(BookTitle).count() == 0


def test_book_code_collision_is_reported_and_nothing_written(db_session, lookups, alice, intake, caplog):
    other = BookTitle(
        book_id="999",
        title="Dune",
        author_id=lookups["Philip K. Dick"],
        language_id=lookups["English"],
        category_id=lookups["Science Fiction"],
    )
    db_session.add(other)
    db_session.flush()
    # Occupies the code the first copy of title 1000 from donor 501 would get
    db_session.add(BookCopy(
        book_title_id=other.id,
        donor_id=alice.id,
        condition=BookCondition.GOOD,
        buying_price_cents=0,
        selling_price_cents=100,
        serial_number=1,
        book_code="10005010001",
    ))
    db_session.commit()

    with caplog.at_level(logging.CRITICAL):
        with pytest.raises(DuplicateBookCode) as exc_info:
            intake(alice, title="Brand New Title")

    assert exc_info.value.details["book_code"] == "10005010001"
    assert "collision" in caplog.text
    assert db_session.query(BookCopy).count() == 1
    assert db_session.query(BookTitle).count() == 1


def test_losing_a_title_creation_race_raises_duplicate_title(db_session, alice, intake, monkeypatch):
    intake(alice)
    # Simulate a concurrent intake that created the title after our lookup
    monkeypatch.setattr(intake_service, "lock_for_update", lambda query: query.filter(false()))

    with pytest.raises(DuplicateTitle):
        intake(alice)

    assert db_session.query(BookTitle).count() == 1
    assert db_session.query(BookCopy).count() == 1


class TestIntakeRequestFromPayload:
    def _payload(self, **overrides):
        payload = {
            "donor_id": 1,
            "title": "The Hobbit",
            "author_id": 2,
            "language_id": 1,
            "category_id": 2,
            "condition": "Good",
            "buying_price_cents": 1304,
            "selling_price_cents": 1500,
        }
        payload.update(overrides)
        return payload

    def test_parses_valid_payload(self):
        request = IntakeRequest.from_payload(self._payload(condition="medium", shelf_location=" A1-02 "))

        assert request.condition is BookCondition.MEDIUM
        assert request.shelf_location == "A1-02"
        assert request.author_id == 2
        assert request.is_free_donation is False

    def test_new_author_sentinel(self):
        request = IntakeRequest.from_payload(self._payload(author_id="new", new_author_name="Octavia E. Butler"))

        assert request.author_id is None
        assert request.new_author_name == "Octavia E. Butler"

    def test_new_author_sentinel_requires_name(self):
        with pytest.raises(ValidationError):
            IntakeRequest.from_payload(self._payload(author_id="new"))

    def test_free_donation_ignores_buying_price(self):
        request = IntakeRequest.from_payload(self._payload(is_free_donation=True, buying_price_cents=999))

        assert request.buying_price_cents == 0

    @pytest.mark.parametrize("overrides", [
        {"title": "   "},
        {"condition": "Mint"},
        {"buying_price_cents": -1},
        {"buying_price_cents": 12.99},
        {"selling_price_cents": "abc"},
        {"donor_id": None},
        {"book_code": "123"},
    ])
    def test_rejects_invalid_payload(self, overrides):
        with pytest.raises(ValidationError):
            IntakeRequest.from_payload(self._payload(**overrides))
