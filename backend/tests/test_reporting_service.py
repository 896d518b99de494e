# Overview: Pytest coverage for sales, inventory, low-stock and profit reports.

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from marketpos.cart import Cart
from marketpos.extensions import db
from marketpos.models import Sale
from marketpos.services import catalog_service, reporting_service, sale_service
from marketpos.services.reporting_service import ReportError


def _sell(*scans, payment=100, tax_percent=5):
    cart = Cart()
    for barcode in scans:
        cart.add_by_barcode(barcode)
    return sale_service.complete_sale(cart.lines, payment, tax_percent=tax_percent)


def _backdate(sale_id, when):
    db.session.query(Sale).filter_by(id=sale_id).update({"sale_date": when})
    db.session.commit()


class TestProfitReport:

    def test_two_units_at_ten_cost_six(self, milk):
        _sell("111", "111")

        report = reporting_service.profit_report()

        assert report["summary"] == {
            "total_revenue": Decimal("20.00"),
            "total_cost": Decimal("12.00"),
            "total_profit": Decimal("8.00"),
            "profit_margin": Decimal("40.00"),
        }
        row = report["data"][0]
        assert row["barcode"] == "111"
        assert row["total_sold"] == 2
        assert row["avg_selling_price"] == Decimal("10.00")

    def test_uses_sale_time_cost_snapshot(self, milk):
        _sell("111")
        catalog_service.update("111", {"cost_price": "9.00"})

        report = reporting_service.profit_report()

        assert report["summary"]["total_cost"] == Decimal("6.00")

    def test_ordered_by_profit(self, milk, bread):
        _sell("222", "111")

        report = reporting_service.profit_report()

        assert [r["barcode"] for r in report["data"]] == ["111", "222"]

    def test_no_sales(self, db_session):
        report = reporting_service.profit_report()
        assert report["data"] == []
        assert report["summary"]["profit_margin"] == Decimal("0")


class TestSalesReport:

    def test_summary_and_rows(self, milk, bread):
        _sell("111", "111")
        _sell("222")

        report = reporting_service.sales_report()

        assert report["summary"]["total_transactions"] == 2
        assert report["summary"]["total_sales"] == Decimal("23.63")
        # (21.00 + 2.63) / 2 = 11.815
        assert report["summary"]["average_transaction"] == Decimal("11.82")

        newest = report["data"][0]
        assert newest["items_count"] == 1
        assert newest["total_items"] == 1

    def test_date_range_is_inclusive(self, milk):
        old = _sell("111")
        recent = _sell("111")
        _backdate(old.id, datetime(2026, 3, 1, 23, 59, 59))
        _backdate(recent.id, datetime(2026, 3, 5, 8, 0, 0))

        march_first = reporting_service.sales_report(
            from_date=date(2026, 3, 1), to_date=date(2026, 3, 1),
        )
        assert [r["id"] for r in march_first["data"]] == [old.id]

        since_second = reporting_service.sales_report(from_date=date(2026, 3, 2))
        assert [r["id"] for r in since_second["data"]] == [recent.id]

    def test_empty_period(self, db_session):
        report = reporting_service.sales_report()
        assert report["summary"]["total_sales"] == Decimal("0.00")
        assert report["summary"]["average_transaction"] == Decimal("0.00")


class TestInventoryReports:

    def test_inventory_valuation(self, milk, bread):
        report = reporting_service.inventory_report()

        # milk 5 x (6.00 / 10.00), bread 1 x (1.00 / 2.50)
        assert report["summary"]["total_products"] == 2
        assert report["summary"]["total_items"] == 6
        assert report["summary"]["total_cost"] == Decimal("31.00")
        assert report["summary"]["total_value"] == Decimal("52.50")
        assert report["summary"]["potential_profit"] == Decimal("21.50")
        # ordered by category then name
        assert [r["barcode"] for r in report["data"]] == ["222", "111"]

    def test_low_stock(self, milk, bread):
        _sell("222")

        report = reporting_service.low_stock_report(threshold=3)

        assert report["summary"] == {"low_stock_items": 1, "out_of_stock": 1}
        assert report["data"][0]["barcode"] == "222"

    def test_removed_products_are_excluded(self, milk, bread):
        catalog_service.delete("222")

        assert reporting_service.inventory_report()["summary"]["total_products"] == 1
        assert reporting_service.low_stock_report()["summary"]["out_of_stock"] == 0


class TestBuildReport:

    def test_dispatch(self, milk):
        report = reporting_service.build_report("low-stock", low_stock_threshold=10)
        assert report["summary"]["low_stock_items"] == 1

    @pytest.mark.parametrize("kind, from_date, to_date", [
        ("weekly", None, None),
        ("sales", "2026-13-01", None),
        ("sales", "2026-03-05", "2026-03-01"),
    ])
    def test_bad_parameters(self, db_session, kind, from_date, to_date):
        with pytest.raises(ReportError):
            reporting_service.build_report(kind, from_date=from_date, to_date=to_date)

    def test_whole_end_day_included(self, milk):
        sale = _sell("111")
        _backdate(sale.id, datetime(2026, 3, 1) + timedelta(hours=23, minutes=30))

        report = reporting_service.build_report("sales", from_date="2026-03-01", to_date="2026-03-01")

        assert report["summary"]["total_transactions"] == 1
