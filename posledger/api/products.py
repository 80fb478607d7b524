from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from posledger.api.auth import get_current_user
from posledger.database import get_db
from posledger.models.product import Product
from posledger.models.stock_movement import StockMovement
from posledger.models.user import User
from posledger.schemas.product import (
    ProductCreate,
    ProductOut,
    ProductUpdate,
    StockAdjust,
    StockMovementOut,
)
from posledger.services import auth_service, product_service, stock_service

router = APIRouter(prefix="/productos", tags=["Products"])


def _product_out(product: Product) -> ProductOut:
    return ProductOut(
        id=product.id,
        sku=product.sku,
        nombre=product.name,
        precio=product.price,
        stock_total=product.stock,
        categorias=product.category_ids,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def _movement_out(movement: StockMovement) -> StockMovementOut:
    return StockMovementOut(
        id=movement.id,
        producto_id=movement.product_id,
        cantidad=movement.delta,
        motivo=movement.reason,
        stock_resultante=movement.balance_after,
        usuario=movement.created_by,
        fecha=movement.created_at,
    )


@router.get("", response_model=list[ProductOut])
def list_products(categoria_id: int | None = None, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [_product_out(p) for p in product_service.list_products(db, category_id=categoria_id)]


@router.post("", response_model=ProductOut, status_code=201)
def create_product(data: ProductCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _product_out(product_service.create_product(db, data, username=user.username))


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    product = product_service.get_product(db, product_id)
    if not product:
        raise HTTPException(404, "Producto no encontrado")
    return _product_out(product)


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    data: ProductUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    product = product_service.update_product(db, product_id, data)
    if not product:
        raise HTTPException(404, "Producto no encontrado")
    return _product_out(product)


@router.post("/{product_id}/ajuste", response_model=StockMovementOut, status_code=201)
def adjust_stock(
    product_id: int,
    data: StockAdjust,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    movement = stock_service.apply_stock_delta(db, product_id, data, username=user.username)
    out = _movement_out(movement)
    auth_service.log_activity(
        db, user, "stock_adjust",
        reference=f"producto:{product_id}",
        detail=f"Producto {product_id}: {out.cantidad:+d} ({out.motivo})",
        ip=request.client.host if request.client else "",
    )
    return out


@router.get("/{product_id}/ajustes", response_model=list[StockMovementOut])
def stock_history(product_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [_movement_out(m) for m in stock_service.list_stock_movements(db, product_id)]
