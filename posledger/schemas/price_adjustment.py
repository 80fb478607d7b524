from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel


class PriceAdjustmentCreate(BaseModel):
    tipo_ajuste: Literal["porcentaje", "valor"]
    valor: Decimal
    categoria_id: int | None = None
    observacion: str | None = ""


class PriceAdjustmentResult(BaseModel):
    id: int
    productos_afectados: int


class PriceAdjustmentItemOut(BaseModel):
    producto_id: int
    precio_anterior: float
    precio_nuevo: float


class PriceAdjustmentOut(BaseModel):
    id: int
    fecha: datetime | None = None
    tipo_ajuste: str
    valor: float
    categoria_id: int | None = None
    categoria_nombre: str | None = None
    observacion: str = ""
    revertido: bool
    fecha_reversion: datetime | None = None
    productos_afectados: int
    usuario: str = ""


class PriceAdjustmentDetail(PriceAdjustmentOut):
    items: list[PriceAdjustmentItemOut] = []
