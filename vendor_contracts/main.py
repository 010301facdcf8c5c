import asyncio
import contextlib
from fastapi import FastAPI, Depends, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import structlog

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from vendor_contracts.config import settings
from vendor_contracts.database import init_db, close_db, get_db, get_session_factory
from vendor_contracts.exceptions import ContractError
from vendor_contracts.logging_config import setup_logging
from vendor_contracts.middleware.correlation import CorrelationIdMiddleware
from vendor_contracts.services.contract_service import ContractEngine
from vendor_contracts.services.contract_store import SqlContractStore
from vendor_contracts.services.notification_service import ContractNotifier
from vendor_contracts.services.storage import DocumentStorage, r2_client
from vendor_contracts.services.vendor_directory import VendorDirectory

# Import models so they are registered with Base.metadata
import vendor_contracts.models  # noqa: F401

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("starting_vendor_contracts", env=settings.ENVIRONMENT)
    await init_db()

    session_factory = get_session_factory()
    engine = ContractEngine(
        store=SqlContractStore(session_factory),
        documents=DocumentStorage(r2_client),
        notifier=ContractNotifier(),
    )
    await engine.reload()
    app.state.contract_engine = engine
    app.state.vendor_directory = VendorDirectory(session_factory)
    watcher = asyncio.create_task(engine.watch_changes())

    yield

    watcher.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await watcher
    await engine.wait_for_notifications()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Global exception handlers. Normalize all errors to structured format:
# {"error": {"code": "...", "title": "...", "message": "..."}}
# ---------------------------------------------------------------------------

@app.exception_handler(ContractError)
async def contract_error_handler(request: Request, exc: ContractError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("contract_request_failed", code=exc.code, message=exc.message, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, str):
        detail = {"error": {"code": "HTTP_ERROR", "title": "Request failed", "message": detail}}
    elif isinstance(detail, dict) and "error" not in detail:
        detail = {"error": detail}
    return JSONResponse(status_code=exc.status_code, content=detail, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "title": "Invalid contract data",
                "message": "Request validation failed",
                "details": jsonable_errors(exc),
            }
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With", "X-Request-ID"],
)


@app.get("/health", tags=["System"])
async def health(response: Response, db: AsyncSession = Depends(get_db)):
    health_status = {"status": "healthy", "version": settings.APP_VERSION, "checks": {}}

    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["db"] = "ok"
    except Exception as e:
        logger.error("health_check_db_failed", error=str(e))
        health_status["checks"]["db"] = "error"
        health_status["status"] = "unhealthy"

    if settings.R2_ENDPOINT_URL:
        try:
            await asyncio.to_thread(r2_client.s3.head_bucket, Bucket=r2_client.bucket)
            health_status["checks"]["r2"] = "ok"
        except Exception as e:
            # Documents degrade to local references, so R2 is not fatal
            logger.error("health_check_r2_failed", error=str(e))
            health_status["checks"]["r2"] = "degraded"

    if health_status["status"] == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return health_status


# --- Routers ---
from vendor_contracts.routes.contracts import router as contracts_router  # noqa: E402
from vendor_contracts.routes.vendors import router as vendors_router  # noqa: E402
from vendor_contracts.jobs.scheduled import router as jobs_router  # noqa: E402

app.include_router(contracts_router, prefix="/api/v1/contracts", tags=["Contracts"])
app.include_router(vendors_router, prefix="/api/v1/vendors", tags=["Vendors"])
app.include_router(jobs_router, prefix="/internal/jobs", tags=["Internal Jobs"])
