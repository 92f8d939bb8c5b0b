from fastapi import FastAPI, Request, status
from dotenv import load_dotenv

load_dotenv()
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from database import Base, engine
from datetime import datetime
import os
import auth
import routers.users as users
import routers.tenants as tenants
import routers.accounts as accounts
import routers.categories as categories
import routers.transactions as transactions
import routers.budgets as budgets
import routers.goals as goals
import routers.investments as investments
import routers.bill_reminders as bill_reminders
import routers.reports as reports
import routers.audit_log as audit_log
import routers.health as health
from utils.cache import report_cache, tenant_tag
import logging
from fastapi.openapi.utils import get_openapi


LOG_DIR = os.getenv("LOG_DIR", "logs")
os.makedirs(LOG_DIR, exist_ok=True)

current_time_str = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
LOG_FILE = os.path.join(LOG_DIR, f"app_{current_time_str}.log")

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    filename=LOG_FILE,
    filemode='a'
)

console_handler = logging.StreamHandler()
console_handler.setLevel(logging.INFO)
console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
logging.getLogger().addHandler(console_handler)

logger = logging.getLogger(__name__)
logger.info("Application starting up...")


APP_ENV = os.getenv("APP_ENV", "development")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")

# Writes under these prefixes change report figures
CACHE_INVALIDATING_PREFIXES = (
    "/accounts",
    "/transactions",
    "/categories",
    "/budgets",
    "/goals",
    "/investments",
    "/bill-reminders",
)
CACHE_INVALIDATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


Base.metadata.create_all(bind=engine)


app = FastAPI()


allowed_origins_str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173"
)

allowed_origins = [origin.strip() for origin in allowed_origins_str.split(',')]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def invalidate_report_cache(request: Request, call_next):
    response = await call_next(request)
    tenant_id = request.headers.get("x-tenant-id")
    if (
        tenant_id
        and request.method in CACHE_INVALIDATING_METHODS
        and 200 <= response.status_code < 300
        and request.url.path.startswith(CACHE_INVALIDATING_PREFIXES)
    ):
        report_cache.invalidate_by_tags([tenant_tag(tenant_id)])
    return response


@app.exception_handler(StarletteHTTPException)
async def log_http_exception(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    else:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return await http_exception_handler(request, exc)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "A record with these values already exists."}
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        f"Unhandled error on {request.method} {request.url.path} "
        f"(tenant {request.headers.get('x-tenant-id')})"
    )
    detail = "Internal server error" if APP_ENV == "production" else str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": detail})


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="SuaGrana API",
        version=APP_VERSION,
        description="Personal finance API: accounts, double-entry transactions, budgets, goals, investments and reports",
        routes=app.routes,
    )
    openapi_schema["components"]["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
    }
    openapi_schema["security"] = [{"BearerAuth": []}]
    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(tenants.router)
app.include_router(accounts.router)
app.include_router(categories.router)
app.include_router(transactions.router)
app.include_router(budgets.router)
app.include_router(goals.router)
app.include_router(investments.router)
app.include_router(bill_reminders.router)
app.include_router(reports.router)
app.include_router(audit_log.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {
        "message": "Welcome to the SuaGrana API!",
        "version": APP_VERSION,
        "endpoints": [
            "/auth", "/users", "/tenants", "/accounts", "/categories", "/transactions",
            "/budgets", "/goals", "/investments", "/bill-reminders", "/reports",
            "/audit-logs", "/health",
        ],
    }


if os.getenv("ENABLE_SCHEDULER", "false").lower() == "true":
    from scheduler import start_scheduler

    @app.on_event("startup")
    def start_background_jobs():
        start_scheduler()
