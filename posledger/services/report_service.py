from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from posledger.models.product import Product
from posledger.models.stock_movement import StockMovement


def stock_adjustments(
    db: Session,
    product_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[dict]:
    """Manual stock adjustments, newest first. Both date bounds are inclusive."""
    q = (
        db.query(StockMovement, Product.name)
        .join(Product, Product.id == StockMovement.product_id)
        .filter(StockMovement.kind == "ajuste")
    )
    if product_id is not None:
        q = q.filter(StockMovement.product_id == product_id)
    if start_date:
        q = q.filter(StockMovement.created_at >= datetime.combine(start_date, time.min))
    if end_date:
        q = q.filter(StockMovement.created_at < datetime.combine(end_date + timedelta(days=1), time.min))

    rows = q.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).all()
    return [
        {
            "id": m.id,
            "fecha": m.created_at,
            "producto_id": m.product_id,
            "producto": name,
            "stock_prev": m.balance_after - m.delta,
            "cantidad": m.delta,
            "stock_nuevo": m.balance_after,
            "tipo": m.kind,
            "motivo": m.reason,
            "usuario": m.created_by,
        }
        for m, name in rows
    ]
