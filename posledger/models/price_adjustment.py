import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from posledger.database import Base


class AdjustmentKind(str, enum.Enum):
    PERCENTAGE = "porcentaje"
    FIXED = "valor"


class PriceAdjustment(Base):
    """One bulk price adjustment batch.

    The items are the snapshot of prices taken right before the batch was
    applied. They are written once, together with the new prices, and are the
    only input used when the batch is reverted.
    """

    __tablename__ = "price_adjustments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[AdjustmentKind] = mapped_column(
        Enum(AdjustmentKind, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
    )
    value: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    # NULL = all products
    category_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("categories.id"), nullable=True)
    category_name: Mapped[str | None] = mapped_column(String, nullable=True)
    note: Mapped[str] = mapped_column(Text, default="")
    reverted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reverted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_by: Mapped[str] = mapped_column(String, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    items: Mapped[list["PriceAdjustmentItem"]] = relationship(
        "PriceAdjustmentItem",
        back_populates="adjustment",
        cascade="all, delete-orphan",
        order_by="PriceAdjustmentItem.position",
    )


class PriceAdjustmentItem(Base):
    __tablename__ = "price_adjustment_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    adjustment_id: Mapped[int] = mapped_column(Integer, ForeignKey("price_adjustments.id"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("products.id"), nullable=False)
    old_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    new_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    adjustment: Mapped["PriceAdjustment"] = relationship("PriceAdjustment", back_populates="items")
