from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from posledger.database import Base


class StockMovement(Base):
    """Append-only stock ledger entry. Rows are never updated or deleted."""

    __tablename__ = "stock_movements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    delta: Mapped[int] = mapped_column(Integer, nullable=False)  # positive=in, negative=out
    kind: Mapped[str] = mapped_column(String, nullable=False, default="ajuste")  # inicial, ajuste
    reason: Mapped[str] = mapped_column(Text, default="")
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by: Mapped[str] = mapped_column(String, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
