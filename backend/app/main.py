import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.database import create_tables
from app.core.exceptions import AccountingError
from app.core.logging_config import configure_logging
from app.api.v1.auth import router as auth_router
from app.api.v1.users import router as users_router
from app.api.v1.time import router as time_router
from app.api.v1.leave import router as leave_router
from app.api.v1.admin import router as admin_router
from app.api.v1.terminal import router as terminal_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    # Tabellen beim Start anlegen (SQLite / lokale Entwicklung)
    await create_tables()
    logger.info("Stempel API gestartet (%s)", settings.APP_ENV)
    yield


app = FastAPI(
    title="Stempel API",
    description="Zeiterfassung, Zeitkonto & Urlaubsverwaltung",
    version="1.0.0",
    lifespan=lifespan,
    # Swagger UI nur in Entwicklung – in Produktion DEBUG=false setzen
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AccountingError)
async def accounting_error_handler(request: Request, exc: AccountingError):
    if exc.status_code >= 403:
        logger.info("%s %s abgewiesen: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


API_PREFIX = "/api/v1"

app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(users_router, prefix=API_PREFIX)
app.include_router(time_router, prefix=API_PREFIX)
app.include_router(leave_router, prefix=API_PREFIX)
app.include_router(admin_router, prefix=API_PREFIX)
app.include_router(terminal_router, prefix=API_PREFIX)


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "Stempel API", "version": "1.0.0"}
