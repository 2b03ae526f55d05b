from bookstall.services import reporting_service
from bookstall.services.sales_service import CartItem, finalize_sale


def test_summary_on_empty_catalog(db_session):
    assert reporting_service.get_summary() == {
        "total_books": 0,
        "sold_books": 0,
        "total_revenue_cents": 0,
        "inventory_value_cents": 0,
        "cost_of_goods_sold_cents": 0,
        "total_profit_cents": 0,
    }


def test_summary_and_payouts(db_session, client, alice, bob, intake):
    a1 = intake(alice, buying_price_cents=1000, selling_price_cents=1500)
    intake(alice, buying_price_cents=400, selling_price_cents=600)
    b1 = intake(bob, buying_price_cents=2000, selling_price_cents=2500)
    free = intake(bob, is_free_donation=True, selling_price_cents=300)

    finalize_sale([CartItem(a1.id, 1500), CartItem(b1.id, 2400), CartItem(free.id, 300)])

    summary = reporting_service.get_summary()
    assert summary["total_books"] == 1
    assert summary["sold_books"] == 3
    assert summary["total_revenue_cents"] == 4200
    assert summary["inventory_value_cents"] == 400
    assert summary["cost_of_goods_sold_cents"] == 3000
    assert summary["total_profit_cents"] == 1200

    payouts = reporting_service.get_donor_payouts()
    assert [(p["donor"]["donor_code"], p["total_owed_cents"], p["sold_books_count"]) for p in payouts] == [
        ("502", 2000, 1),
        ("501", 1000, 1),
    ]

    response = client.get("/api/reports/payouts")
    assert response.status_code == 200
    assert response.json["count"] == 2
    assert client.get("/api/reports/summary").json == summary
