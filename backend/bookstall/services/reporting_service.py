# Overview: Read-only revenue and donor payout aggregation.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import BookCopy, Donor, Sale


def _sum_buying(*criteria) -> int:
    value = (
        db.session.query(func.coalesce(func.sum(BookCopy.buying_price_cents), 0))
        .filter(*criteria)
        .scalar()
    )
    return int(value or 0)


def get_summary() -> dict:
    """
    Headline numbers for managers.

    Profit is revenue minus the buying price of sold copies (what is owed
    to donors); free donations contribute zero cost.
    """
    total_books = db.session.query(func.count(BookCopy.id)).filter(BookCopy.is_sold == False).scalar()  # noqa: E712
    sold_books = db.session.query(func.count(BookCopy.id)).filter(BookCopy.is_sold == True).scalar()  # noqa: E712
    revenue = int(db.session.query(func.coalesce(func.sum(Sale.total_cents), 0)).scalar() or 0)

    inventory_value = _sum_buying(BookCopy.is_sold == False)  # noqa: E712
    cogs = _sum_buying(BookCopy.is_sold == True)  # noqa: E712

    return {
        "total_books": total_books or 0,
        "sold_books": sold_books or 0,
        "total_revenue_cents": revenue,
        "inventory_value_cents": inventory_value,
        "cost_of_goods_sold_cents": cogs,
        "total_profit_cents": revenue - cogs,
    }


def get_donor_payouts() -> list[dict]:
    """Amount owed per donor for sold, non-free copies; largest first."""
    rows = (
        db.session.query(
            Donor,
            func.sum(BookCopy.buying_price_cents),
            func.count(BookCopy.id),
        )
        .join(BookCopy, BookCopy.donor_id == Donor.id)
        .filter(BookCopy.is_sold == True, BookCopy.buying_price_cents > 0)  # noqa: E712
        .group_by(Donor.id)
        .all()
    )
    payouts = [
        {
            "donor": donor.to_dict(),
            "total_owed_cents": int(owed or 0),
            "sold_books_count": count,
        }
        for donor, owed, count in rows
    ]
    payouts.sort(key=lambda p: (-p["total_owed_cents"], p["donor"]["id"]))
    return payouts
