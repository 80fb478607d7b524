import logging

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from posledger.errors import ConflictError, NotFound, ValidationError
from posledger.models.product import Category, Product, product_categories
from posledger.models.stock_movement import StockMovement
from posledger.schemas.product import CategoryCreate, ProductCreate, ProductUpdate
from posledger.services.locks import ledger_locks, product_keys
from posledger.services.pricing import round_price

logger = logging.getLogger(__name__)

INITIAL_STOCK_REASON = "Stock inicial"


# --- Categories ---

def create_category(db: Session, data: CategoryCreate) -> Category:
    existing = db.query(Category).filter(Category.name == data.nombre).first()
    if existing:
        raise ValidationError(f"La categoría '{data.nombre}' ya existe")
    category = Category(name=data.nombre)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def get_category(db: Session, category_id: int) -> Category | None:
    return db.get(Category, category_id)


def list_categories(db: Session) -> list[Category]:
    return db.query(Category).order_by(Category.name).all()


def _load_categories(db: Session, category_ids: list[int]) -> list[Category]:
    wanted = set(category_ids)
    categories = db.query(Category).filter(Category.id.in_(wanted)).all() if wanted else []
    missing = wanted - {c.id for c in categories}
    if missing:
        raise NotFound(f"Categoría no encontrada: {', '.join(str(i) for i in sorted(missing))}")
    return categories


# --- Products ---

def create_product(db: Session, data: ProductCreate, username: str = "") -> Product:
    if data.sku and get_product_by_sku(db, data.sku):
        raise ValidationError(f"Ya existe un producto con SKU {data.sku}")
    product = Product(
        sku=data.sku or None,
        name=data.nombre,
        price=round_price(data.precio),
        stock=data.stock_inicial,
        categories=_load_categories(db, data.categorias),
    )
    db.add(product)
    db.flush()

    # The opening balance is the first ledger entry so stock always equals the ledger sum
    if data.stock_inicial:
        db.add(StockMovement(
            product_id=product.id,
            delta=data.stock_inicial,
            kind="inicial",
            reason=INITIAL_STOCK_REASON,
            balance_after=data.stock_inicial,
            created_by=username,
        ))

    db.commit()
    db.refresh(product)
    return product


def get_product(db: Session, product_id: int) -> Product | None:
    return db.get(Product, product_id)


def get_product_by_sku(db: Session, sku: str) -> Product | None:
    return db.query(Product).filter(Product.sku == sku).first()


def list_products(db: Session, category_id: int | None = None) -> list[Product]:
    q = db.query(Product)
    if category_id is not None:
        q = q.join(product_categories).filter(product_categories.c.category_id == category_id)
    return q.order_by(Product.name, Product.id).all()


def lock_products(db: Session, product_ids: list[int]) -> list[Product]:
    """Load products for writing, in the given order, bypassing stale identity-map state.

    FOR UPDATE takes row locks on databases that support it; SQLite ignores it.
    """
    if not product_ids:
        return []
    rows = db.scalars(
        select(Product)
        .where(Product.id.in_(product_ids))
        .with_for_update()
        .execution_options(populate_existing=True)
    ).all()
    by_id = {p.id: p for p in rows}
    return [by_id[pid] for pid in product_ids if pid in by_id]


def update_product(db: Session, product_id: int, data: ProductUpdate) -> Product | None:
    """Edit catalog fields. A price set here is a manual edit: it is not journaled
    and a later revert of an older bulk adjustment overwrites it."""
    update_data = data.model_dump(exclude_unset=True)
    try:
        with ledger_locks.hold(product_keys([product_id])):
            products = lock_products(db, [product_id])
            if not products:
                return None
            product = products[0]
            if update_data.get("nombre") is not None:
                product.name = update_data["nombre"]
            if "sku" in update_data:
                sku = update_data["sku"] or None
                if sku and sku != product.sku and get_product_by_sku(db, sku):
                    raise ValidationError(f"Ya existe un producto con SKU {sku}")
                product.sku = sku
            if update_data.get("precio") is not None:
                product.price = round_price(update_data["precio"])
            if update_data.get("categorias") is not None:
                product.categories = _load_categories(db, update_data["categorias"])
            db.commit()
    except StaleDataError as e:
        db.rollback()
        raise ConflictError("El producto fue modificado por otra operación, reintente") from e
    except Exception:
        db.rollback()
        raise
    db.refresh(product)
    return product
