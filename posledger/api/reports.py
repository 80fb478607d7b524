import csv
import io
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from sqlalchemy.orm import Session

from posledger.api.auth import get_current_user
from posledger.database import get_db
from posledger.models.user import User
from posledger.schemas.product import StockReportRow
from posledger.services import report_service

router = APIRouter(prefix="/reportes", tags=["Reports"])

REPORT_COLUMNS = [
    "id", "fecha", "producto_id", "producto", "stock_prev", "cantidad", "stock_nuevo", "tipo", "motivo", "usuario",
]
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _csv_response(rows: list[dict], filename: str) -> StreamingResponse:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=REPORT_COLUMNS)
    writer.writeheader()
    for row in rows:
        writer.writerow({**row, "fecha": row["fecha"].isoformat() if row["fecha"] else ""})
    return StreamingResponse(
        iter([buf.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}.csv"},
    )


def _excel_response(rows: list[dict], filename: str) -> StreamingResponse:
    wb = Workbook()
    ws = wb.active
    ws.title = "Ajustes de stock"
    ws.append(REPORT_COLUMNS)
    for row in rows:
        ws.append([row[col] for col in REPORT_COLUMNS])
    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return StreamingResponse(
        buf,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}.xlsx"},
    )


@router.get("/stock-ajustes")
def stock_adjustments_report(
    producto_id: int | None = None,
    desde: date | None = Query(None),
    hasta: date | None = Query(None),
    formato: Literal["json", "csv", "excel"] = "json",
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows = report_service.stock_adjustments(db, product_id=producto_id, start_date=desde, end_date=hasta)
    if formato == "json":
        return [StockReportRow(**row) for row in rows]

    filename = f"ajustes_stock_{date.today().isoformat()}"
    if formato == "excel":
        return _excel_response(rows, filename)
    return _csv_response(rows, filename)
