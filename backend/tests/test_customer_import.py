"""
Customer bulk import tests.

Verifies:
- Imported rows receive sequential CLI codes after the highest existing one
- Spreadsheet cells are normalized (numeric cells, aliases, blank counters)
- One invalid row rejects the whole batch and nothing is written
- The import endpoint requires MANAGE_CUSTOMERS
"""

from decimal import Decimal

import pytest

from aquadist.models import Customer
from aquadist.services import customer_import
from aquadist.services.customer_import import CustomerImportError
from aquadist.validation import ValidationError


def _row(name="Ana Pérez", **overrides):
    row = {
        "full_name": name,
        "street": "Irarrázaval",
        "number": "2401",
        "district": "Ñuñoa",
        "city": "Santiago",
    }
    row.update(overrides)
    return row


class TestCustomerCodes:

    def test_first_code_on_empty_table(self, db_session):
        assert customer_import.next_customer_code() == "CLI001"

    def test_next_code_follows_highest_number(self, db_session, make_customer):
        make_customer("CLI007")
        make_customer("CLI012")
        make_customer("C001")
        make_customer("CLIENTE")
        assert customer_import.next_customer_code() == "CLI013"

    def test_code_grows_past_three_digits(self, db_session, make_customer):
        make_customer("CLI999")
        assert customer_import.next_customer_code() == "CLI1000"


class TestImportCustomers:

    def test_rows_get_sequential_codes_in_order(self, db_session, make_customer):
        make_customer("CLI004")
        customers = customer_import.import_customers([_row("First"), _row("Second"), _row("Third")])

        assert [c.code for c in customers] == ["CLI005", "CLI006", "CLI007"]
        assert [c.full_name for c in customers] == ["First", "Second", "Third"]
        assert db_session.query(Customer).count() == 4

    def test_spreadsheet_cells_are_normalized(self, db_session):
        [customer] = customer_import.import_customers([
            _row(
                number=2401.0,
                phone=56912345678.0,
                rut="76.123.456-K",
                type="business",
                bottles_owned="2",
                bottles_lent="",
                credit_limit="$150,000",
                email="  compras@andes.cl ",
            ),
        ])

        assert customer.number == "2401"
        assert customer.phone == "56912345678"
        assert customer.tax_id == "76.123.456-K"
        assert customer.category == "business"
        assert customer.bottles_owned == 2
        assert customer.bottles_lent == 0
        assert customer.credit_limit == Decimal("150000")
        assert customer.email == "compras@andes.cl"

    def test_unknown_type_imports_as_personal(self, db_session):
        [customer] = customer_import.import_customers([_row(type="Hogar", rut="")])
        assert customer.category == "personal"
        assert customer.tax_id is None

    def test_one_bad_row_rejects_the_batch(self, db_session):
        rows = [
            _row("Good"),
            _row("No Street", street="  "),
            _row("Good Too"),
            _row("Company", type="business"),
        ]
        with pytest.raises(CustomerImportError) as exc:
            customer_import.import_customers(rows)

        failures = exc.value.details["rows"]
        assert [f["row"] for f in failures] == [2, 4]
        assert failures[0]["errors"] == ["street is required"]
        assert failures[1]["errors"] == ["Business customers require a tax id"]
        assert db_session.query(Customer).count() == 0

    @pytest.mark.parametrize("overrides, message", [
        ({"bottles_owned": "many"}, "bottles_owned must be an integer"),
        ({"bottles_lent": -1}, "bottles_lent must be >= 0"),
        ({"credit_limit": "abc"}, "credit_limit must be a number"),
        ({"credit_limit": "-5"}, "credit_limit must be >= 0"),
        ({"rut": "12-3"}, "Invalid tax id. Expected format: 12.345.678-9 or 12345678-9"),
        ({"number": "9" * 40}, "number exceeds max length 32"),
    ])
    def test_invalid_cells_are_reported(self, db_session, overrides, message):
        with pytest.raises(CustomerImportError) as exc:
            customer_import.import_customers([_row(**overrides)])
        assert message in exc.value.details["rows"][0]["errors"]

    def test_non_object_row_is_reported(self, db_session):
        with pytest.raises(CustomerImportError) as exc:
            customer_import.import_customers([_row(), "not a row"])
        assert exc.value.details["rows"] == [{"row": 2, "errors": ["row must be an object"]}]

    @pytest.mark.parametrize("rows", [None, [], {"full_name": "x"}])
    def test_rows_must_be_a_non_empty_list(self, db_session, rows):
        with pytest.raises(ValidationError):
            customer_import.import_customers(rows)


class TestImportApi:

    def test_import_endpoint(self, client, seller_headers):
        resp = client.post(
            "/api/customers/import",
            json={"rows": [_row("Uno"), _row("Dos", credit_limit=25000)]},
            headers=seller_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["count"] == 2
        assert [c["code"] for c in body["items"]] == ["CLI001", "CLI002"]
        assert body["items"][1]["credit_limit"] == "25000"

        resp = client.get("/api/customers/next-code", headers=seller_headers)
        assert resp.get_json() == {"code": "CLI003"}

    def test_invalid_batch_returns_row_errors(self, client, seller_headers):
        resp = client.post(
            "/api/customers/import",
            json={"rows": [_row("Uno"), _row("Sin ciudad", city=None)]},
            headers=seller_headers,
        )
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["details"]["rows"] == [{"row": 2, "errors": ["city is required"]}]
        assert client.get("/api/customers", headers=seller_headers).get_json()["count"] == 0

    def test_collector_cannot_import(self, client, collector_headers):
        resp = client.post("/api/customers/import", json={"rows": [_row()]}, headers=collector_headers)
        assert resp.status_code == 403
