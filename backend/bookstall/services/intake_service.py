"""
Intake Service - catalog identity for donated copies

Turns an intake submission into a persisted BookCopy:

1. resolve (or create) the author, then find-or-create the BookTitle for
   (case-insensitive title, author, language, category);
2. number the copy within its title (count of existing copies + 1);
3. derive the book code: book_id + donor_code + serial zero-padded to 4.

Everything happens in one serialized write transaction. The unique
constraints on book_titles' logical key, (book_title_id, serial_number) and
book_code are the backstop; hitting one is reported, never retried.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Author, BookCondition, BookCopy, BookTitle, Category, Language
from ..validation import (
    ConflictError,
    ValidationError,
    coerce_bool,
    coerce_int,
    coerce_price_cents,
    coerce_text,
)
from .concurrency import begin_serialized_write, lock_for_update, run_in_transaction
from .donor_service import get_donor
from .lookup_service import find_or_create_author
from .sequence_service import BOOK_ID_SEQUENCE, next_value

NEW_AUTHOR = "new"
SERIAL_PAD_WIDTH = 4
SELLING_MARKUP_PERCENT = 115

INTAKE_FIELDS = {
    "donor_id", "title", "author_id", "new_author_name", "language_id", "category_id",
    "condition", "shelf_location", "buying_price_cents", "selling_price_cents",
    "is_free_donation", "note",
}


class DuplicateTitle(ConflictError):
    """A concurrent intake created the same catalog title first."""


class DuplicateBookCode(ConflictError):
    """
    A book code (or title/serial pair) already exists.

    Serial assignment is serialized, so this means the catalog is in an
    unexpected state. Treated as an integrity alarm.
    """


@dataclass(frozen=True)
class IntakeRequest:
    title: str
    author_id: int | None
    language_id: int
    category_id: int
    donor_id: int
    condition: BookCondition
    buying_price_cents: int = 0
    selling_price_cents: int | None = None
    is_free_donation: bool = False
    new_author_name: str | None = None
    shelf_location: str | None = None
    note: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "IntakeRequest":
        """Coerce a JSON body; author_id "new" means create new_author_name."""
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")

        unknown = sorted(set(payload) - INTAKE_FIELDS)
        if unknown:
            raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

        missing = sorted(
            f for f in ("donor_id", "title", "author_id", "language_id", "category_id", "condition")
            if payload.get(f) in (None, "")
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        raw_author = payload["author_id"]
        new_author_name = None
        if isinstance(raw_author, str) and raw_author.strip().lower() == NEW_AUTHOR:
            author_id = None
            new_author_name = coerce_text("new_author_name", payload.get("new_author_name"), required=True, max_length=120)
        else:
            author_id = coerce_int("author_id", raw_author)

        try:
            condition = BookCondition.parse(payload["condition"])
        except ValueError as exc:
            raise ValidationError(str(exc))

        is_free = coerce_bool("is_free_donation", payload.get("is_free_donation", False))

        buying = 0
        if not is_free:
            buying = coerce_price_cents("buying_price_cents", payload.get("buying_price_cents"))

        selling = None
        if payload.get("selling_price_cents") is not None:
            selling = coerce_price_cents("selling_price_cents", payload["selling_price_cents"])

        return cls(
            title=coerce_text("title", payload["title"], required=True, max_length=255),
            author_id=author_id,
            language_id=coerce_int("language_id", payload["language_id"]),
            category_id=coerce_int("category_id", payload["category_id"]),
            donor_id=coerce_int("donor_id", payload["donor_id"]),
            condition=condition,
            buying_price_cents=buying,
            selling_price_cents=selling,
            is_free_donation=is_free,
            new_author_name=new_author_name,
            shelf_location=coerce_text("shelf_location", payload.get("shelf_location"), max_length=64),
            note=coerce_text("note", payload.get("note")),
        )


def format_book_code(book_id: str, donor_code: str, serial_number: int) -> str:
    """'1000' + '501' + 0001 -> '10005010001'. No delimiter, no checksum."""
    return f"{book_id}{donor_code}{serial_number:0{SERIAL_PAD_WIDTH}d}"


def suggest_selling_price_cents(buying_price_cents: int) -> int:
    """Buying price plus 15%, rounded half-up to the cent."""
    return (buying_price_cents * SELLING_MARKUP_PERCENT + 50) // 100


def _resolve_prices(request: IntakeRequest) -> tuple[int, int]:
    """Return (buying, selling) in cents after the intake pricing rules."""
    if request.is_free_donation:
        if request.selling_price_cents is None:
            raise ValidationError("selling_price_cents is required for a free donation")
        return 0, coerce_price_cents("selling_price_cents", request.selling_price_cents)

    buying = coerce_price_cents("buying_price_cents", request.buying_price_cents)
    if request.selling_price_cents is None:
        selling = suggest_selling_price_cents(buying)
    else:
        selling = coerce_price_cents("selling_price_cents", request.selling_price_cents)

    if selling < buying:
        raise ValidationError(
            "Selling price cannot be less than buying cost",
            details={"buying_price_cents": buying, "selling_price_cents": selling},
        )
    return buying, coerce_price_cents("selling_price_cents", selling)


def _require_lookup(model, row_id: int | None, field: str):
    row = db.session.get(model, row_id) if row_id is not None else None
    if row is None:
        raise ValidationError(f"{field} {row_id} does not reference an existing row", details={field: row_id})
    return row


def _find_or_create_title(title: str, author_id: int, language_id: int, category_id: int) -> BookTitle:
    existing = lock_for_update(
        db.session.query(BookTitle).filter_by(
            title_key=BookTitle.normalize_title(title),
            author_id=author_id,
            language_id=language_id,
            category_id=category_id,
        )
    ).first()
    if existing:
        return existing

    book_id = next_value(
        BOOK_ID_SEQUENCE,
        seed=current_app.config["BOOK_ID_SEED"],
        floor_column=BookTitle.book_id,
    )
    book_title = BookTitle(
        book_id=str(book_id),
        title=title,
        author_id=author_id,
        language_id=language_id,
        category_id=category_id,
    )
    db.session.add(book_title)
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise DuplicateTitle(
            f"Title '{title}' was created by another intake; retry the intake",
            details={"title": title, "author_id": author_id,
                     "language_id": language_id, "category_id": category_id},
        ) from exc
    return book_title


def _next_serial_number(book_title: BookTitle) -> int:
    copies = (
        db.session.query(func.count(BookCopy.id))
        .filter(BookCopy.book_title_id == book_title.id)
        .scalar()
    )
    return (copies or 0) + 1


def assign_identity(request: IntakeRequest) -> BookCopy:
    """
    Register one donated copy and give it its catalog identity.

    Raises:
        ValidationError: bad input, unknown lookup ids, inactive donor,
            selling price below buying price
        DonorNotFound: donor_id does not exist
        DuplicateTitle: lost a race creating the same new title
        DuplicateBookCode: code or serial already taken (integrity alarm)
        TransactionFailed: the store failed mid-transaction
    """
    buying, selling = _resolve_prices(request)

    def _op() -> BookCopy:
        begin_serialized_write()

        donor = get_donor(request.donor_id)
        if not donor.is_active:
            raise ValidationError(
                f"Donor {donor.donor_code} is inactive",
                details={"donor_id": donor.id},
            )

        language = _require_lookup(Language, request.language_id, "language_id")
        category = _require_lookup(Category, request.category_id, "category_id")
        if request.author_id is None:
            author = find_or_create_author(request.new_author_name)
        else:
            author = _require_lookup(Author, request.author_id, "author_id")

        book_title = _find_or_create_title(request.title, author.id, language.id, category.id)

        serial_number = _next_serial_number(book_title)
        book_code = format_book_code(book_title.book_id, donor.donor_code, serial_number)

        copy = BookCopy(
            book_title_id=book_title.id,
            donor_id=donor.id,
            shelf_location=request.shelf_location,
            condition=request.condition,
            buying_price_cents=buying,
            selling_price_cents=selling,
            is_free_donation=request.is_free_donation,
            note=request.note,
            serial_number=serial_number,
            book_code=book_code,
            is_sold=False,
        )
        db.session.add(copy)
        try:
            db.session.flush()
        except IntegrityError as exc:
            current_app.logger.critical(
                "Book code collision for %s (title %s, serial %s); serial assignment is inconsistent",
                book_code, book_title.book_id, serial_number,
            )
            raise DuplicateBookCode(
                f"Book code {book_code} already exists",
                details={"book_code": book_code, "book_id": book_title.book_id,
                         "serial_number": serial_number},
            ) from exc
        return copy

    copy = run_in_transaction(_op, action="Intake")
    current_app.logger.info(
        "Intake: copy %s assigned code %s (serial %s)", copy.id, copy.book_code, copy.serial_number,
    )
    return copy
