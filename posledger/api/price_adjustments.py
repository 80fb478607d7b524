from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from posledger.api.auth import get_current_user
from posledger.database import get_db
from posledger.models.price_adjustment import PriceAdjustment
from posledger.models.user import User
from posledger.schemas.price_adjustment import (
    PriceAdjustmentCreate,
    PriceAdjustmentDetail,
    PriceAdjustmentItemOut,
    PriceAdjustmentOut,
    PriceAdjustmentResult,
)
from posledger.services import auth_service, price_adjustment_service

router = APIRouter(prefix="/productos/ajuste-masivo", tags=["Price adjustments"])


def _adjustment_out(adjustment: PriceAdjustment) -> PriceAdjustmentOut:
    return PriceAdjustmentOut(
        id=adjustment.id,
        fecha=adjustment.created_at,
        tipo_ajuste=adjustment.kind.value,
        valor=adjustment.value,
        categoria_id=adjustment.category_id,
        categoria_nombre=adjustment.category_name,
        observacion=adjustment.note or "",
        revertido=adjustment.reverted,
        fecha_reversion=adjustment.reverted_at,
        productos_afectados=len(adjustment.items),
        usuario=adjustment.created_by or "",
    )


@router.post("", response_model=PriceAdjustmentResult, status_code=201)
def apply_adjustment(
    data: PriceAdjustmentCreate,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    adjustment = price_adjustment_service.apply_adjustment(db, data, username=user.username)
    result = PriceAdjustmentResult(id=adjustment.id, productos_afectados=len(adjustment.items))
    auth_service.log_activity(
        db, user, "price_adjust",
        reference=f"ajuste:{result.id}",
        detail=f"Ajuste {result.id}: {data.tipo_ajuste} {data.valor} ({result.productos_afectados} productos)",
        ip=request.client.host if request.client else "",
    )
    return result


@router.get("/historial", response_model=list[PriceAdjustmentOut])
def adjustment_history(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [_adjustment_out(a) for a in price_adjustment_service.list_adjustments(db)]


@router.get("/{adjustment_id}", response_model=PriceAdjustmentDetail)
def get_adjustment(adjustment_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    adjustment = price_adjustment_service.get_adjustment(db, adjustment_id)
    return PriceAdjustmentDetail(
        **_adjustment_out(adjustment).model_dump(),
        items=[
            PriceAdjustmentItemOut(
                producto_id=item.product_id,
                precio_anterior=item.old_price,
                precio_nuevo=item.new_price,
            )
            for item in adjustment.items
        ],
    )


@router.post("/{adjustment_id}/revertir", response_model=PriceAdjustmentOut)
def revert_adjustment(
    adjustment_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    adjustment = price_adjustment_service.revert_adjustment(db, adjustment_id)
    out = _adjustment_out(adjustment)
    auth_service.log_activity(
        db, user, "price_revert",
        reference=f"ajuste:{adjustment_id}",
        detail=f"Ajuste {adjustment_id} revertido ({out.productos_afectados} productos)",
        ip=request.client.host if request.client else "",
    )
    return out
