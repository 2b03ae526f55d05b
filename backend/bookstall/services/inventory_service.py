# Overview: Read-side inventory queries and the catalog integrity check.

from __future__ import annotations

from sqlalchemy import case, func
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import BookCopy, BookTitle, Sale, SaleItem
from ..validation import NotFoundError, ValidationError

COPY_STATUSES = {"available", "sold"}


class BookCodeNotFound(NotFoundError):
    pass


def _copy_query():
    return db.session.query(BookCopy).options(
        joinedload(BookCopy.book_title).joinedload(BookTitle.author),
        joinedload(BookCopy.book_title).joinedload(BookTitle.language),
        joinedload(BookCopy.book_title).joinedload(BookTitle.category),
        joinedload(BookCopy.donor),
    )


def list_copies(
    *,
    status: str | None = None,
    donor_id: int | None = None,
    text: str | None = None,
) -> list[BookCopy]:
    """Newest copies first, optionally filtered by sold status, donor or title text."""
    q = _copy_query()

    if status:
        status = status.strip().lower()
        if status not in COPY_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(COPY_STATUSES))}")
        q = q.filter(BookCopy.is_sold == (status == "sold"))

    if donor_id is not None:
        q = q.filter(BookCopy.donor_id == donor_id)

    if text and text.strip():
        escaped = text.strip().lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        q = q.join(BookCopy.book_title).filter(BookTitle.title_key.like(f"%{escaped}%", escape="\\"))

    return q.order_by(BookCopy.created_at.desc(), BookCopy.id.desc()).all()


def get_copy_by_code(book_code: str) -> BookCopy:
    """Scan lookup. Codes are digits only; surrounding whitespace is ignored."""
    code = (book_code or "").strip()
    copy = _copy_query().filter(BookCopy.book_code == code).first()
    if copy is None:
        raise BookCodeNotFound(f"Book copy {code!r} not found", details={"book_code": code})
    return copy


def list_titles() -> list[dict]:
    counts = (
        db.session.query(
            BookCopy.book_title_id,
            func.count(BookCopy.id),
            func.sum(case((BookCopy.is_sold == False, 1), else_=0)),  # noqa: E712
        )
        .group_by(BookCopy.book_title_id)
        .all()
    )
    by_title = {title_id: (total, available or 0) for title_id, total, available in counts}

    titles = db.session.query(BookTitle).order_by(BookTitle.title.asc(), BookTitle.id.asc()).all()
    rows = []
    for title in titles:
        total, available = by_title.get(title.id, (0, 0))
        rows.append({**title.to_dict(), "copy_count": total, "available_count": available})
    return rows


def verify_integrity() -> list[str]:
    """
    Scan the catalog for violations of the identity and sale invariants.

    Returns human-readable problems; empty means clean.
    """
    problems: list[str] = []

    dup_codes = (
        db.session.query(BookCopy.book_code)
        .group_by(BookCopy.book_code)
        .having(func.count(BookCopy.id) > 1)
        .all()
    )
    for (code,) in dup_codes:
        problems.append(f"duplicate book code {code}")

    serials: dict[int, list[int]] = {}
    for title_id, serial in (
        db.session.query(BookCopy.book_title_id, BookCopy.serial_number)
        .order_by(BookCopy.book_title_id, BookCopy.id)
        .all()
    ):
        serials.setdefault(title_id, []).append(serial)
    for title_id, numbers in serials.items():
        if numbers != list(range(1, len(numbers) + 1)):
            problems.append(f"title {title_id}: serial numbers {numbers} are not 1..{len(numbers)} in creation order")

    orphans = (
        db.session.query(BookCopy.book_code)
        .outerjoin(SaleItem, SaleItem.book_copy_id == BookCopy.id)
        .filter(BookCopy.is_sold == True, SaleItem.id.is_(None))  # noqa: E712
        .all()
    )
    for (code,) in orphans:
        problems.append(f"copy {code} is sold but has no sale item")

    unsold_items = (
        db.session.query(BookCopy.book_code)
        .join(SaleItem, SaleItem.book_copy_id == BookCopy.id)
        .filter(BookCopy.is_sold == False)  # noqa: E712
        .all()
    )
    for (code,) in unsold_items:
        problems.append(f"copy {code} has a sale item but is not marked sold")

    item_sums = dict(
        db.session.query(SaleItem.sale_id, func.sum(SaleItem.price_at_sale_cents))
        .group_by(SaleItem.sale_id)
        .all()
    )
    for sale in db.session.query(Sale).order_by(Sale.id).all():
        if sale.total_cents != sale.subtotal_cents + sale.tax_cents:
            problems.append(f"sale {sale.id}: total != subtotal + tax")
        if sale.subtotal_cents != (item_sums.get(sale.id) or 0):
            problems.append(f"sale {sale.id}: subtotal != sum of item prices")

    return problems
