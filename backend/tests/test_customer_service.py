"""
Customer directory tests: email uniqueness, soft delete, search.
"""

import pytest

from backoffice.errors import AlreadyExists, NotFound
from backoffice.services import customer_service, invoice_service, order_service


def _create(name, email=None, **extra):
    return customer_service.create_customer(patch={"name": name, "email": email, **extra})


class TestCreateCustomer:

    def test_create_and_get(self, db_session):
        customer = _create("Bob Builder", "bob@build.example", company="Build Ltd")
        fetched = customer_service.get_customer(customer.id)
        assert fetched.name == "Bob Builder"
        assert fetched.company == "Build Ltd"

    def test_duplicate_email_rejected(self, db_session):
        _create("First", "dup@example.com")
        with pytest.raises(AlreadyExists):
            _create("Second", "dup@example.com")

    def test_customers_without_email_do_not_collide(self, db_session):
        _create("No Email One")
        _create("No Email Two")
        rows, meta = customer_service.list_customers()
        assert meta["total"] == 2


class TestUpdateCustomer:

    def test_update_fields(self, customer):
        updated = customer_service.update_customer(customer.id, patch={"phone": "555-0100"})
        assert updated.phone == "555-0100"
        assert updated.email == "jane@acme.example"

    def test_cannot_take_another_customers_email(self, customer):
        other = _create("Other", "other@example.com")
        with pytest.raises(AlreadyExists):
            customer_service.update_customer(other.id, patch={"email": customer.email})

    def test_keeping_own_email_is_fine(self, customer):
        updated = customer_service.update_customer(customer.id, patch={"email": customer.email, "notes": "VIP"})
        assert updated.notes == "VIP"


class TestDeleteAndList:

    def test_soft_deleted_customer_is_hidden(self, customer):
        customer_service.delete_customer(customer.id)
        with pytest.raises(NotFound):
            customer_service.get_customer(customer.id)
        rows, _ = customer_service.list_customers()
        assert customer.id not in [c.id for c in rows]

    def test_search_matches_name_email_and_company(self, db_session):
        _create("Alice", "alice@one.example", company="Globex")
        _create("Zed", "zed@two.example", company="Initech")

        assert [c.name for c in customer_service.list_customers(search="glob")[0]] == ["Alice"]
        assert [c.name for c in customer_service.list_customers(search="two.example")[0]] == ["Zed"]
        assert len(customer_service.list_customers(search="nobody")[0]) == 0

    def test_pagination_meta(self, db_session):
        for i in range(5):
            _create(f"Customer {i}")
        rows, meta = customer_service.list_customers(page=2, limit=2)
        assert len(rows) == 2
        assert meta == {"total": 5, "page": 2, "limit": 2, "totalPages": 3}


class TestCustomerHistory:

    def test_orders_and_invoices_newest_first(self, customer, make_product):
        product = make_product()
        other = _create("Someone Else", "else@example.com")
        first = order_service.create_order(customer_id=customer.id, items=[{"product_id": product.id, "quantity": 1}])
        second = order_service.create_order(customer_id=customer.id, items=[{"product_id": product.id, "quantity": 2}])
        order_service.create_order(customer_id=other.id, items=[{"product_id": product.id, "quantity": 1}])

        order_service.transition_order(first.id, "confirmed")
        invoice = invoice_service.generate_from_order(first.id)

        orders = customer_service.list_customer_orders(customer.id)
        assert [o.id for o in orders] == [second.id, first.id]

        invoices = customer_service.list_customer_invoices(customer.id)
        assert [i.id for i in invoices] == [invoice.id]
        assert customer_service.list_customer_invoices(other.id) == []

    def test_deleted_customer_history_is_not_found(self, customer):
        customer_service.delete_customer(customer.id)
        with pytest.raises(NotFound):
            customer_service.list_customer_orders(customer.id)
        with pytest.raises(NotFound):
            customer_service.list_customer_invoices(customer.id)
