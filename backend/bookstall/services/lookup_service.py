# Overview: Author / language / category lookup tables used by intake.

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Author, Language, Category
from ..validation import ValidationError, ConflictError, coerce_text
from .concurrency import begin_serialized_write, run_in_transaction

LOOKUP_MODELS = {
    "author": Author,
    "language": Language,
    "category": Category,
}


def _model_for(lookup_type: str):
    model = LOOKUP_MODELS.get((lookup_type or "").strip().lower())
    if model is None:
        allowed = ", ".join(sorted(LOOKUP_MODELS))
        raise ValidationError(f"Invalid lookup type: {lookup_type!r} (expected one of: {allowed})")
    return model


def find_by_name(model, name: str):
    """Case-insensitive exact match on name."""
    return (
        db.session.query(model)
        .filter(func.lower(model.name) == name.strip().lower())
        .first()
    )


def list_lookups() -> dict:
    return {
        "authors": [a.to_dict() for a in db.session.query(Author).order_by(Author.name.asc()).all()],
        "languages": [l.to_dict() for l in db.session.query(Language).order_by(Language.name.asc()).all()],
        "categories": [c.to_dict() for c in db.session.query(Category).order_by(Category.name.asc()).all()],
    }


def create_lookup(lookup_type: str, name) -> Author | Language | Category:
    model = _model_for(lookup_type)
    clean = coerce_text("name", name, required=True, max_length=120)

    conflict = ConflictError(
        f"{lookup_type.capitalize()} '{clean}' already exists",
        details={"type": lookup_type, "name": clean},
    )

    def _op():
        begin_serialized_write()
        if find_by_name(model, clean):
            raise conflict
        row = model(name=clean)
        db.session.add(row)
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise conflict from exc
        return row

    return run_in_transaction(_op, action=f"Create {lookup_type}")


def find_or_create_author(name: str) -> Author:
    """
    Resolve a free-text author name typed at intake.

    Reuses an existing author with the same name (case-insensitive); otherwise
    adds one to the current transaction.
    """
    existing = find_by_name(Author, name)
    if existing:
        return existing
    author = Author(name=name.strip())
    db.session.add(author)
    db.session.flush()
    return author
