from datetime import date, timedelta

import pytest
from sqlalchemy import func

from posledger.errors import InvalidDelta, NotFound, ValidationError
from posledger.models.product import Product
from posledger.models.stock_movement import StockMovement
from posledger.schemas.product import ProductUpdate, StockAdjust
from posledger.services import product_service, report_service, stock_service


def _ledger_sum(db, product_id):
    return db.query(func.coalesce(func.sum(StockMovement.delta), 0)).filter(
        StockMovement.product_id == product_id
    ).scalar()


def test_initial_stock_is_the_first_ledger_entry(db, make_product):
    product = make_product("Cola", "10", stock=12)

    entries = stock_service.list_stock_movements(db, product.id)

    assert [(e.delta, e.kind, e.balance_after) for e in entries] == [(12, "inicial", 12)]


def test_delta_updates_running_total_and_ledger(db, make_product):
    product = make_product("Cola", "10", stock=5)

    movement = stock_service.apply_stock_delta(db, product.id, StockAdjust(cantidad=-2, motivo=" rotura "), username="cajero")

    assert movement.delta == -2
    assert movement.reason == "rotura"
    assert movement.balance_after == 3
    assert movement.created_by == "cajero"
    db.expire_all()
    assert db.get(Product, product.id).stock == 3 == _ledger_sum(db, product.id)


def test_stock_may_go_negative(db, make_product):
    product = make_product("Cola", "10", stock=3)

    stock_service.apply_stock_delta(db, product.id, StockAdjust(cantidad=-5))

    db.expire_all()
    assert db.get(Product, product.id).stock == -2
    latest = stock_service.list_stock_movements(db, product.id)[0]
    assert latest.delta == -5
    assert latest.balance_after == -2


def test_zero_delta_is_rejected_without_side_effects(db, make_product):
    product = make_product("Cola", "10", stock=3)

    with pytest.raises(InvalidDelta):
        stock_service.apply_stock_delta(db, product.id, StockAdjust(cantidad=0))

    assert isinstance(InvalidDelta("x"), ValidationError)
    assert len(stock_service.list_stock_movements(db, product.id)) == 1


def test_unknown_product_is_not_found(db):
    with pytest.raises(NotFound):
        stock_service.apply_stock_delta(db, 404, StockAdjust(cantidad=1))
    with pytest.raises(NotFound):
        stock_service.list_stock_movements(db, 404)


def test_history_is_newest_first(db, make_product):
    product = make_product("Cola", "10")
    for delta in (4, -1, 7):
        stock_service.apply_stock_delta(db, product.id, StockAdjust(cantidad=delta))

    assert [m.delta for m in stock_service.list_stock_movements(db, product.id)] == [7, -1, 4]


def test_manual_product_edit_never_touches_stock(db, make_product):
    product = make_product("Cola", "10", stock=8)

    product_service.update_product(db, product.id, ProductUpdate(nombre="Cola Zero"))

    db.expire_all()
    assert db.get(Product, product.id).stock == 8 == _ledger_sum(db, product.id)


def test_report_lists_manual_adjustments_only(db, make_product):
    cola = make_product("Cola", "10", stock=10)
    pan = make_product("Pan", "5", stock=4)
    stock_service.apply_stock_delta(db, cola.id, StockAdjust(cantidad=-3, motivo="vencido"), username="cajero")
    stock_service.apply_stock_delta(db, pan.id, StockAdjust(cantidad=2))

    rows = report_service.stock_adjustments(db)
    assert [(r["producto"], r["cantidad"]) for r in rows] == [("Pan", 2), ("Cola", -3)]
    assert {r["tipo"] for r in rows} == {"ajuste"}

    only_cola = report_service.stock_adjustments(db, product_id=cola.id)
    assert len(only_cola) == 1
    assert only_cola[0]["motivo"] == "vencido"
    assert (only_cola[0]["stock_prev"], only_cola[0]["stock_nuevo"]) == (10, 7)
    assert only_cola[0]["usuario"] == "cajero"


def test_report_date_bounds_are_inclusive(db, make_product):
    cola = make_product("Cola", "10")
    stock_service.apply_stock_delta(db, cola.id, StockAdjust(cantidad=1))
    today = date.today()

    assert len(report_service.stock_adjustments(db, start_date=today - timedelta(days=1), end_date=today + timedelta(days=1))) == 1
    assert report_service.stock_adjustments(db, start_date=today + timedelta(days=2)) == []
    assert report_service.stock_adjustments(db, end_date=today - timedelta(days=2)) == []
