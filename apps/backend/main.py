from fastapi import FastAPI, HTTPException, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import find_dotenv, load_dotenv
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
from slowapi import _rate_limit_exceeded_handler
import os
import logging
import traceback

# Before the app imports: db_config and rate_limit read the environment at import time
load_dotenv(find_dotenv(usecwd=True))

from app.config import Capabilities, get_env_presence  # noqa: E402
from app.admin_auth_routes import router as admin_auth_router  # noqa: E402
from app.scraping_routes import router as scraping_router  # noqa: E402
from app.rate_limit import limiter  # noqa: E402
from security.admin_auth import admin_required  # noqa: E402
from scraping.background import pending_tasks  # noqa: E402
import metrics  # noqa: E402

logging.basicConfig(level=logging.INFO)
# httpx logs full request URLs, which carry the Apify token
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def is_dev_env() -> bool:
    return os.getenv("RECRUIT_ENV", "").lower() == "dev"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application lifecycle events."""
    recruit_env = os.getenv("RECRUIT_ENV", "production").lower()
    logger.info(f"[recruit] env: RECRUIT_ENV={recruit_env}")

    if not Capabilities.is_apify_enabled():
        logger.warning("[recruit] APIFY_API_TOKEN not set; scrape requests will fail")
    if not Capabilities.is_db_enabled():
        logger.warning("[recruit] No PostgreSQL database URL configured (need SUPABASE_DB_URL or DATABASE_URL)")

    yield

    # Shutdown
    tasks = pending_tasks()
    if tasks:
        logger.info(f"[recruit] Cancelling {len(tasks)} background task(s)")
        for task in tasks:
            task.cancel()


app = FastAPI(title="Recruit Ingestion API", version="0.1.0", lifespan=lifespan)

# Add rate limiter state
app.state.limiter = limiter

# Rate limit exceeded handler
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Error masking middleware
@app.middleware("http")
async def error_masking_middleware(request: Request, call_next):
    """Mask detailed errors in production; show full errors in dev."""
    try:
        return await call_next(request)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unhandled error: {str(e)}")
        if is_dev_env():
            logger.error(traceback.format_exc())
            return JSONResponse(
                status_code=500,
                content={
                    "status": "error",
                    "error": str(e),
                    "traceback": traceback.format_exc()
                }
            )
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "error": "An internal error occurred. Please try again later."
            }
        )


app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5000").split(",")
        if origin.strip()
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(admin_auth_router)
app.include_router(scraping_router)

app.mount("/metrics", metrics.metrics_app())


@app.get("/api/healthz")
async def healthz():
    return {"status": "ok"}


@app.get("/api/capabilities")
async def capabilities():
    return Capabilities.get_status()


@app.get("/admin/config/env")
async def config_env(admin=Depends(admin_required)):
    return get_env_presence()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
