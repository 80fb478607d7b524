from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


# --- Category schemas ---

class CategoryCreate(BaseModel):
    nombre: str

    @field_validator("nombre")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("El nombre es obligatorio")
        return v


class CategoryOut(BaseModel):
    id: int
    nombre: str


# --- Product schemas ---

class ProductCreate(BaseModel):
    nombre: str
    sku: str | None = None
    precio: Decimal = Field(default=Decimal("0"), ge=0)
    stock_inicial: int = 0
    categorias: list[int] = []


class ProductUpdate(BaseModel):
    nombre: str | None = None
    sku: str | None = None
    precio: Decimal | None = Field(default=None, ge=0)
    categorias: list[int] | None = None


class ProductOut(BaseModel):
    id: int
    sku: str | None = None
    nombre: str
    precio: float
    stock_total: int
    categorias: list[int] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


# --- Stock ledger schemas ---

class StockAdjust(BaseModel):
    cantidad: int  # positive to add, negative to remove; never zero
    motivo: str | None = ""


class StockMovementOut(BaseModel):
    id: int
    producto_id: int
    cantidad: int
    motivo: str
    stock_resultante: int
    usuario: str = ""
    fecha: datetime | None = None


class StockReportRow(BaseModel):
    id: int
    fecha: datetime | None = None
    producto_id: int
    producto: str
    stock_prev: int
    cantidad: int
    stock_nuevo: int
    tipo: str
    motivo: str
    usuario: str = ""
