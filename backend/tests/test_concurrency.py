"""
Concurrency tests against a file-backed SQLite database.

Each worker thread pushes its own app context (and so its own DB session),
then all workers start together on a barrier.
"""

import threading

import pytest
from sqlalchemy.exc import OperationalError

from retailstock import create_app
from retailstock.extensions import db
from retailstock.models import Purchase, Sale
from retailstock.services import category_service, department_service, products_service
from retailstock.services import purchase_service, sales_service
from retailstock.services.concurrency import run_with_retry
from retailstock.services.stock_ledger_service import InsufficientStockError, reconcile_product


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'concurrency.db'}",
        "BCRYPT_ROUNDS": 4,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.session.remove()
        db.engine.dispose()


def _seed_product(app, stock):
    with app.app_context():
        dept = department_service.create_department(patch={"name": "Concurrency"})
        cat = category_service.create_category(
            patch={"name": "Race", "code": "RACE", "department_id": dept["id"]}
        )
        product = products_service.create_product(patch={
            "name": "Contended",
            "code": "CONCUR-1",
            "price_cents": 100,
            "stock_quantity": stock,
            "department_id": dept["id"],
            "category_id": cat["id"],
        })
        return product["id"]


def _run_together(app, count, work):
    barrier = threading.Barrier(count)
    results = []
    lock = threading.Lock()

    def worker():
        with app.app_context():
            barrier.wait()
            try:
                work()
                outcome = "ok"
            except InsufficientStockError:
                outcome = "insufficient"
            except Exception as exc:  # surfaced through the assertion below
                outcome = repr(exc)
            finally:
                db.session.remove()
            with lock:
                results.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return results


def test_two_sales_against_short_stock(file_app):
    """Stock 5, two concurrent sales of 3: exactly one succeeds."""
    product_id = _seed_product(file_app, stock=5)

    results = _run_together(
        file_app, 2,
        lambda: sales_service.create_sale(patch={"product_id": product_id, "quantity": 3}, user_id=None),
    )

    assert sorted(results) == ["insufficient", "ok"]
    with file_app.app_context():
        assert db.session.query(Sale).count() == 1
        check = reconcile_product(product_id)
        assert check["stockQuantity"] == 2
        assert check["consistent"] is True


def test_concurrent_purchases_lose_no_update(file_app):
    product_id = _seed_product(file_app, stock=0)

    results = _run_together(
        file_app, 4,
        lambda: purchase_service.create_purchase(
            patch={"product_id": product_id, "quantity": 2, "unit_cost_cents": 100}, user_id=None
        ),
    )

    assert results == ["ok"] * 4
    with file_app.app_context():
        assert db.session.query(Purchase).count() == 4
        check = reconcile_product(product_id)
        assert check["stockQuantity"] == 8
        assert check["consistent"] is True


def test_run_with_retry_retries_lock_errors(app):
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise OperationalError("UPDATE products", {}, Exception("database is locked"))
        return "done"

    with app.app_context():
        assert run_with_retry(flaky, backoff_base=0) == "done"
    assert len(calls) == 3


def test_run_with_retry_gives_up(app):
    def always_locked():
        raise OperationalError("UPDATE products", {}, Exception("database is locked"))

    with app.app_context():
        with pytest.raises(OperationalError):
            run_with_retry(always_locked, attempts=2, backoff_base=0)


def test_business_errors_not_retried(app):
    calls = []

    def short():
        calls.append(1)
        raise InsufficientStockError(product_id=1, requested=3, available=1)

    with app.app_context():
        with pytest.raises(InsufficientStockError):
            run_with_retry(short)
    assert len(calls) == 1
