"""Bulk price adjustments: apply a rule to a scope, list the history, revert.

Apply and revert each run as one unit of work. The snapshot rows and the new
prices are committed together or not at all, and a revert restores exactly
the prices recorded in the snapshot, whatever the prices are at that moment.
"""
import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from posledger.errors import AlreadyReverted, ConflictError, NotFound
from posledger.models.price_adjustment import AdjustmentKind, PriceAdjustment, PriceAdjustmentItem
from posledger.models.product import Category, Product, product_categories
from posledger.schemas.price_adjustment import PriceAdjustmentCreate
from posledger.services import pricing
from posledger.services.locks import adjustment_key, ledger_locks, product_keys
from posledger.services.product_service import lock_products

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "Los precios fueron modificados por otra operación, reintente"


def resolve_scope(db: Session, category_id: int | None) -> tuple[list[int], Category | None]:
    """Freeze the set of product ids a rule applies to, as of now."""
    if category_id is None:
        ids = db.scalars(select(Product.id).order_by(Product.id)).all()
        return list(ids), None

    category = db.get(Category, category_id)
    if not category:
        raise NotFound(f"Categoría {category_id} no encontrada")
    ids = db.scalars(
        select(Product.id)
        .join(product_categories, product_categories.c.product_id == Product.id)
        .where(product_categories.c.category_id == category_id)
        .order_by(Product.id)
    ).all()
    return list(ids), category


def apply_adjustment(db: Session, data: PriceAdjustmentCreate, username: str = "") -> PriceAdjustment:
    kind = AdjustmentKind(data.tipo_ajuste)
    value = pricing.rule_value(data.valor)
    product_ids, category = resolve_scope(db, data.categoria_id)

    try:
        with ledger_locks.hold(product_keys(product_ids)):
            products = lock_products(db, product_ids)
            if len(products) != len(product_ids):
                raise ConflictError(CONFLICT_MESSAGE)

            adjustment = PriceAdjustment(
                kind=kind,
                value=value,
                category_id=category.id if category else None,
                category_name=category.name if category else None,
                note=data.observacion or "",
                created_by=username,
            )
            # Stage every new price before touching any product
            for position, product in enumerate(products):
                adjustment.items.append(PriceAdjustmentItem(
                    position=position,
                    product_id=product.id,
                    old_price=product.price,
                    new_price=pricing.compute_new_price(product.price, kind, value),
                ))
            db.add(adjustment)
            db.flush()

            for product, item in zip(products, adjustment.items):
                product.price = item.new_price
            db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning("Price adjustment lost a concurrent write race: %s", e)
        raise ConflictError(CONFLICT_MESSAGE) from e
    except Exception:
        db.rollback()
        raise

    db.refresh(adjustment)
    logger.info(
        "Applied price adjustment %s (%s %s, category=%s) to %d products",
        adjustment.id, kind.value, value, adjustment.category_id, len(product_ids),
    )
    return adjustment


def get_adjustment(db: Session, adjustment_id: int) -> PriceAdjustment:
    adjustment = db.get(PriceAdjustment, adjustment_id)
    if not adjustment:
        raise NotFound(f"Ajuste {adjustment_id} no encontrado")
    return adjustment


def list_adjustments(db: Session) -> list[PriceAdjustment]:
    return (
        db.query(PriceAdjustment)
        .order_by(PriceAdjustment.created_at.desc(), PriceAdjustment.id.desc())
        .all()
    )


def revert_adjustment(db: Session, adjustment_id: int) -> PriceAdjustment:
    adjustment = get_adjustment(db, adjustment_id)
    if adjustment.reverted:
        raise AlreadyReverted(f"El ajuste {adjustment_id} ya fue revertido")
    snapshot = [(item.product_id, item.old_price) for item in adjustment.items]
    product_ids = [pid for pid, _ in snapshot]

    try:
        with ledger_locks.hold([adjustment_key(adjustment_id), *product_keys(product_ids)]):
            # Check-and-set: only one caller can flip the flag
            result = db.execute(
                update(PriceAdjustment)
                .where(PriceAdjustment.id == adjustment_id, PriceAdjustment.reverted.is_(False))
                .values(reverted=True, reverted_at=func.now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise AlreadyReverted(f"El ajuste {adjustment_id} ya fue revertido")

            products = {p.id: p for p in lock_products(db, product_ids)}
            for product_id, old_price in snapshot:
                product = products.get(product_id)
                if product is None:
                    raise ConflictError(f"El producto {product_id} ya no existe")
                product.price = old_price
            db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning("Revert of adjustment %s lost a concurrent write race: %s", adjustment_id, e)
        raise ConflictError(CONFLICT_MESSAGE) from e
    except Exception:
        db.rollback()
        raise

    db.refresh(adjustment)
    logger.info("Reverted price adjustment %s (%d products restored)", adjustment_id, len(snapshot))
    return adjustment
