from __future__ import annotations

from ..extensions import db
from bookstall.time_utils import to_utc_z


class Sale(db.Model):
    """
    Completed checkout. Written once by sale finalization and never mutated.

    All amounts in cents; total_cents = subtotal_cents + tax_cents.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("subtotal_cents >= 0", name="ck_sales_subtotal_nonneg"),
        db.CheckConstraint("tax_cents >= 0", name="ck_sales_tax_nonneg"),
        db.CheckConstraint("total_cents = subtotal_cents + tax_cents", name="ck_sales_total_consistent"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    # Free-text buyer details, purely descriptive
    sold_party_name = db.Column(db.String(120), nullable=True)
    sold_party_contact = db.Column(db.String(120), nullable=True)

    items = db.relationship(
        "SaleItem",
        backref=db.backref("sale", lazy=True),
        lazy=True,
        order_by="SaleItem.id",
    )

    def to_dict(self, *, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "sold_at": to_utc_z(self.sold_at),
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "sold_party_name": self.sold_party_name,
            "sold_party_contact": self.sold_party_contact,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """One sold copy on a sale. A copy can appear on at most one sale item."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.UniqueConstraint("book_copy_id", name="uq_sale_items_book_copy"),
        db.CheckConstraint("price_at_sale_cents >= 0", name="ck_sale_items_price_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    book_copy_id = db.Column(db.Integer, db.ForeignKey("book_copies.id"), nullable=False)
    price_at_sale_cents = db.Column(db.Integer, nullable=False)

    book_copy = db.relationship("BookCopy", backref=db.backref("sale_item", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "book_copy_id": self.book_copy_id,
            "book_code": self.book_copy.book_code if self.book_copy else None,
            "price_at_sale_cents": self.price_at_sale_cents,
        }
