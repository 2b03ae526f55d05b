"""
Sales Service - checkout finalization

A sale is written once: the availability check, the Sale + SaleItem inserts
and the is_sold flip on every copy share one transaction. Any failure leaves
every copy available and no sale rows behind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import BookCopy, Sale, SaleItem
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_int,
    coerce_price_cents,
    coerce_text,
)
from .concurrency import begin_serialized_write, lock_for_update, run_in_transaction

SALE_FIELDS = {"items", "sold_party_name", "sold_party_contact"}
ITEM_FIELDS = {"book_copy_id", "price_cents"}

TaxPolicy = Callable[[int], int]


class BookNotFound(NotFoundError):
    """One or more cart entries reference a copy that does not exist."""


class AlreadySold(ConflictError):
    """One or more cart entries reference a copy that is already sold."""


class SaleNotFound(NotFoundError):
    pass


@dataclass(frozen=True)
class CartItem:
    book_copy_id: int
    price_cents: int


@dataclass(frozen=True)
class SaleParty:
    name: str | None = None
    contact: str | None = None


@dataclass(frozen=True)
class SaleRequest:
    items: list[CartItem] = field(default_factory=list)
    party: SaleParty = field(default_factory=SaleParty)

    @classmethod
    def from_payload(cls, payload: dict) -> "SaleRequest":
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")

        unknown = sorted(set(payload) - SALE_FIELDS)
        if unknown:
            raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

        raw_items = payload.get("items")
        if not isinstance(raw_items, list):
            raise ValidationError("items must be a list")

        items = []
        for index, raw in enumerate(raw_items):
            if not isinstance(raw, dict):
                raise ValidationError(f"items[{index}] must be an object")
            extra = sorted(set(raw) - ITEM_FIELDS)
            if extra:
                raise ValidationError(f"items[{index}]: field not allowed: {', '.join(extra)}")
            items.append(CartItem(
                book_copy_id=coerce_int(f"items[{index}].book_copy_id", raw.get("book_copy_id")),
                price_cents=coerce_price_cents(f"items[{index}].price_cents", raw.get("price_cents")),
            ))

        party = SaleParty(
            name=coerce_text("sold_party_name", payload.get("sold_party_name"), max_length=120),
            contact=coerce_text("sold_party_contact", payload.get("sold_party_contact"), max_length=120),
        )
        return cls(items=items, party=party)


def no_tax(subtotal_cents: int) -> int:
    """Current tax policy: nothing is taxed."""
    return 0


def _validate_cart(items: list[CartItem]) -> None:
    if not items:
        raise ValidationError("Cart is empty")

    seen: set[int] = set()
    duplicates: list[int] = []
    for index, item in enumerate(items):
        coerce_price_cents(f"items[{index}].price_cents", item.price_cents)
        if item.book_copy_id in seen and item.book_copy_id not in duplicates:
            duplicates.append(item.book_copy_id)
        seen.add(item.book_copy_id)

    if duplicates:
        raise ValidationError(
            "The same book copy appears more than once in the cart",
            details={"book_copy_ids": duplicates},
        )


def finalize_sale(
    items: Iterable[CartItem],
    party: SaleParty | None = None,
    *,
    tax_policy: TaxPolicy = no_tax,
) -> Sale:
    """
    Sell every copy in the cart, or none of them.

    subtotal = sum of the per-item override prices, tax = tax_policy(subtotal),
    total = subtotal + tax.

    Raises:
        ValidationError: empty cart, negative price, duplicate copy id
        BookNotFound: a copy id does not exist
        AlreadySold: a copy is already sold (including by a racing checkout)
        TransactionFailed: the store failed mid-transaction
    """
    items = list(items)
    _validate_cart(items)
    party = party or SaleParty()
    copy_ids = [item.book_copy_id for item in items]

    def _op() -> Sale:
        begin_serialized_write()

        copies = lock_for_update(
            db.session.query(BookCopy).filter(BookCopy.id.in_(copy_ids))
        ).all()
        by_id = {c.id: c for c in copies}

        missing = [cid for cid in copy_ids if cid not in by_id]
        if missing:
            raise BookNotFound(
                f"Book copy not found: {', '.join(str(m) for m in missing)}",
                details={"book_copy_ids": missing},
            )

        sold = [by_id[cid] for cid in copy_ids if by_id[cid].is_sold]
        if sold:
            codes = [c.book_code for c in sold]
            raise AlreadySold(
                f"Book {', '.join(codes)} is already sold",
                details={"book_codes": codes, "book_copy_ids": [c.id for c in sold]},
            )

        # Conditional flip: a copy sold since the read above makes rowcount short
        flipped = db.session.execute(
            update(BookCopy)
            .where(BookCopy.id.in_(copy_ids), BookCopy.is_sold == False)  # noqa: E712
            .values(is_sold=True)
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount != len(copy_ids):
            raise AlreadySold(
                "One or more books were sold by another checkout",
                details={"book_copy_ids": copy_ids},
            )

        subtotal = sum(item.price_cents for item in items)
        tax = tax_policy(subtotal)
        if tax < 0:
            raise ValidationError("Tax policy produced a negative tax", details={"tax_cents": tax})

        sale = Sale(
            sold_at=utcnow(),
            subtotal_cents=subtotal,
            tax_cents=tax,
            total_cents=subtotal + tax,
            sold_party_name=party.name,
            sold_party_contact=party.contact,
        )
        for item in items:
            sale.items.append(SaleItem(book_copy_id=item.book_copy_id, price_at_sale_cents=item.price_cents))
        db.session.add(sale)

        try:
            db.session.flush()
        except IntegrityError as exc:
            # uq_sale_items_book_copy: another sale already references one of the copies
            raise AlreadySold(
                "One or more books already belong to another sale",
                details={"book_copy_ids": copy_ids},
            ) from exc
        return sale

    sale = run_in_transaction(_op, action="Sale")
    current_app.logger.info(
        "Sale %s finalized: %d item(s), total %d cents", sale.id, len(items), sale.total_cents,
    )
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise SaleNotFound(f"Sale {sale_id} not found", details={"sale_id": sale_id})
    return sale


def list_sales(
    *,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    limit: int = 100,
) -> list[Sale]:
    """Most recent sales first."""
    limit = max(1, min(limit, 500))
    q = db.session.query(Sale)
    if from_date:
        q = q.filter(Sale.sold_at >= from_date)
    if to_date:
        q = q.filter(Sale.sold_at <= to_date)
    return q.order_by(Sale.sold_at.desc(), Sale.id.desc()).limit(limit).all()
