from __future__ import annotations

import enum

from sqlalchemy.orm import validates

from ..extensions import db
from bookstall.time_utils import to_utc_z


class BookCondition(enum.Enum):
    """Physical condition recorded at intake."""
    NEW = "New"
    GOOD = "Good"
    MEDIUM = "Medium"
    POOR = "Poor"

    @classmethod
    def parse(cls, value: "BookCondition | str") -> "BookCondition":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in cls:
                if member.value.lower() == wanted or member.name.lower() == wanted:
                    return member
        allowed = ", ".join(m.value for m in cls)
        raise ValueError(f"condition must be one of: {allowed}")


class _LookupMixin:
    """Shared shape for the author / language / category lookup tables."""
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class Author(_LookupMixin, db.Model):
    __tablename__ = "authors"


class Language(_LookupMixin, db.Model):
    __tablename__ = "languages"


class Category(_LookupMixin, db.Model):
    __tablename__ = "categories"


class Donor(db.Model):
    """
    Person or organisation that donated books.

    donor_code is handed out by the "donor_code" catalog sequence and never
    changes; it is embedded in every book code for the donor's copies.
    """
    __tablename__ = "donors"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    donor_code = db.Column(db.String(16), nullable=False, unique=True, index=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "donor_code": self.donor_code,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at) if self.updated_at else None,
        }


class BookTitle(db.Model):
    """
    Catalog title: one row per (title, author, language, category).

    title_key is the case-folded title; the unique constraint on the logical
    key backs up the find-or-create done at intake.
    """
    __tablename__ = "book_titles"
    __table_args__ = (
        db.UniqueConstraint(
            "title_key", "author_id", "language_id", "category_id",
            name="uq_book_titles_logical_key",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    book_id = db.Column(db.String(16), nullable=False, unique=True, index=True)
    title = db.Column(db.String(255), nullable=False)
    title_key = db.Column(db.String(255), nullable=False, index=True)

    author_id = db.Column(db.Integer, db.ForeignKey("authors.id"), nullable=False, index=True)
    language_id = db.Column(db.Integer, db.ForeignKey("languages.id"), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    author = db.relationship("Author")
    language = db.relationship("Language")
    category = db.relationship("Category")

    @staticmethod
    def normalize_title(title: str) -> str:
        return title.strip().lower()

    @validates("title")
    def _sync_title_key(self, key, value):
        self.title_key = self.normalize_title(value)
        return value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "title": self.title,
            "author_id": self.author_id,
            "language_id": self.language_id,
            "category_id": self.category_id,
            "created_at": to_utc_z(self.created_at),
        }


class BookCopy(db.Model):
    """
    One physical book on the shelf.

    serial_number and book_code are assigned once at intake. is_sold only
    flips to True inside sale finalization.
    """
    __tablename__ = "book_copies"
    __table_args__ = (
        db.UniqueConstraint("book_title_id", "serial_number", name="uq_book_copies_title_serial"),
        db.CheckConstraint("buying_price_cents >= 0", name="ck_book_copies_buying_price_nonneg"),
        db.CheckConstraint("selling_price_cents >= 0", name="ck_book_copies_selling_price_nonneg"),
        db.CheckConstraint("serial_number >= 1", name="ck_book_copies_serial_positive"),
        db.Index("ix_book_copies_sold_created", "is_sold", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    book_title_id = db.Column(db.Integer, db.ForeignKey("book_titles.id"), nullable=False, index=True)
    donor_id = db.Column(db.Integer, db.ForeignKey("donors.id"), nullable=False, index=True)

    shelf_location = db.Column(db.String(64), nullable=True)
    condition = db.Column(
        db.Enum(
            BookCondition,
            name="book_condition",
            native_enum=False,
            length=16,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
    )

    buying_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False)
    is_free_donation = db.Column(db.Boolean, nullable=False, default=False)
    note = db.Column(db.Text, nullable=True)

    serial_number = db.Column(db.Integer, nullable=False)
    book_code = db.Column(db.String(32), nullable=False, unique=True, index=True)
    is_sold = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    book_title = db.relationship("BookTitle", backref=db.backref("copies", lazy=True))
    donor = db.relationship("Donor", backref=db.backref("copies", lazy=True))

    def to_dict(self, *, include_details: bool = False) -> dict:
        data = {
            "id": self.id,
            "book_title_id": self.book_title_id,
            "donor_id": self.donor_id,
            "shelf_location": self.shelf_location,
            "condition": self.condition.value if self.condition else None,
            "buying_price_cents": self.buying_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "is_free_donation": self.is_free_donation,
            "note": self.note,
            "serial_number": self.serial_number,
            "book_code": self.book_code,
            "is_sold": self.is_sold,
            "created_at": to_utc_z(self.created_at),
        }
        if include_details:
            title = self.book_title
            data.update({
                "title": title.title,
                "book_id": title.book_id,
                "author": title.author.name,
                "language": title.language.name,
                "category": title.category.name,
                "donor": self.donor.name,
                "donor_code": self.donor.donor_code,
            })
        return data


class CatalogSequence(db.Model):
    """
    Store-side counters for catalog identifiers (book_id, donor_code).

    Incremented with a single UPDATE inside the caller's transaction.
    """
    __tablename__ = "catalog_sequences"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_catalog_sequences_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(32), nullable=False)
    next_value = db.Column(db.Integer, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "next_value": self.next_value,
            "updated_at": to_utc_z(self.updated_at),
        }
