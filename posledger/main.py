import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from posledger.api import auth, categories, price_adjustments, products, reports
from posledger.config import settings
from posledger.database import SessionLocal, init_db
from posledger.errors import LedgerError
from posledger.services.auth_service import ensure_default_admin

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    db = SessionLocal()
    try:
        ensure_default_admin(db)
    finally:
        db.close()
    yield


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Product catalog, bulk price adjustments with revert, and stock ledger",
    version="1.0.0",
    lifespan=lifespan,
)


# Error bodies are plain text so the client can show them verbatim

@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    logger.warning("%s %s rejected: %s (%s)", request.method, request.url.path, exc, type(exc).__name__)
    return PlainTextResponse(str(exc), status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return PlainTextResponse("; ".join(messages) or "Solicitud inválida", status_code=400)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error: %s\n%s", exc, traceback.format_exc())
    return PlainTextResponse("Error interno del servidor", status_code=500)


app.include_router(auth.router, prefix="/api")
app.include_router(categories.router, prefix="/api")
# Registered before products so /productos/ajuste-masivo/... never reaches /productos/{id}
app.include_router(price_adjustments.router, prefix="/api")
app.include_router(products.router, prefix="/api")
app.include_router(reports.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok"}
