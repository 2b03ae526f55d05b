# Overview: Store-side sequences for catalog identifiers (book ids, donor codes).

from __future__ import annotations

from sqlalchemy import Integer, cast, func, update

from ..extensions import db
from ..models import CatalogSequence

BOOK_ID_SEQUENCE = "book_id"
DONOR_CODE_SEQUENCE = "donor_code"


def _highest_existing(column) -> int:
    """Largest numeric value already stored in a numeric-string column, or 0."""
    value = db.session.query(func.max(cast(column, Integer))).scalar()
    return int(value) if value is not None else 0


def next_value(name: str, *, seed: int, floor_column=None) -> int:
    """
    Allocate the next value of a named sequence.

    Runs inside the caller's transaction, so the allocation commits or rolls
    back together with the row that uses it. The first allocation starts at
    max(seed, highest existing value + 1) so rows created before the sequence
    existed are never reissued.
    """
    stmt = (
        update(CatalogSequence)
        .where(CatalogSequence.name == name)
        .values(next_value=CatalogSequence.next_value + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(CatalogSequence.next_value)
            .filter_by(name=name)
            .scalar()
        )
        return current - 1

    start = seed
    if floor_column is not None:
        start = max(seed, _highest_existing(floor_column) + 1)

    db.session.add(CatalogSequence(name=name, next_value=start + 1))
    db.session.flush()
    return start

