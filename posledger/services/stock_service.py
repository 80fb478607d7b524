import logging

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from posledger.errors import ConflictError, InvalidDelta, NotFound
from posledger.models.product import Product
from posledger.models.stock_movement import StockMovement
from posledger.schemas.product import StockAdjust
from posledger.services.locks import ledger_locks, product_keys
from posledger.services.product_service import lock_products

logger = logging.getLogger(__name__)


def apply_stock_delta(db: Session, product_id: int, data: StockAdjust, username: str = "") -> StockMovement:
    """Append a ledger entry and move the product's running stock by the same delta.

    Negative results are allowed (backorder, shrinkage). Callers that must not
    sell below zero enforce that themselves.
    """
    if data.cantidad == 0:
        raise InvalidDelta("La cantidad debe ser distinta de cero")

    try:
        with ledger_locks.hold(product_keys([product_id])):
            products = lock_products(db, [product_id])
            if not products:
                raise NotFound(f"Producto {product_id} no encontrado")
            product = products[0]
            product.stock += data.cantidad
            movement = StockMovement(
                product_id=product.id,
                delta=data.cantidad,
                kind="ajuste",
                reason=(data.motivo or "").strip(),
                balance_after=product.stock,
                created_by=username,
            )
            db.add(movement)
            db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning("Stock delta on product %s lost a concurrent write race: %s", product_id, e)
        raise ConflictError("El stock fue modificado por otra operación, reintente") from e
    except Exception:
        db.rollback()
        raise

    db.refresh(movement)
    logger.info("Stock of product %s moved by %+d to %d", product_id, movement.delta, movement.balance_after)
    return movement


def list_stock_movements(db: Session, product_id: int) -> list[StockMovement]:
    if not db.get(Product, product_id):
        raise NotFound(f"Producto {product_id} no encontrado")
    return (
        db.query(StockMovement)
        .filter(StockMovement.product_id == product_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .all()
    )
