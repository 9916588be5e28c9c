from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from skinscan.config import settings
from skinscan.dependencies.services import get_supabase_service
from skinscan.routers.admin import router as admin_router
from skinscan.routers.auth import router as auth_router
from skinscan.routers.scans import router as scans_router
from skinscan.services.supabase_service import SupabaseService
from skinscan.utils.logging import get_logger

API_VERSION = "1.0.0"

app = FastAPI(title="SkinScan API", version=API_VERSION)
logger = get_logger("app")


app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"{request.method} {request.url.path}")
    return await call_next(request)


@app.on_event("startup")
async def on_startup():
    logger.info("API starting up")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; /api/scans/analyze will fail")
    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("SUPABASE_URL / SUPABASE_KEY are not set; auth and storage will fail")


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("API shutting down")


@app.get("/api/health")
async def health():
    return {
        "status": "ok",
        "message": "Server is running!",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/api/test")
async def test():
    return {"message": "Hello from SkinScan API!", "version": API_VERSION}


@app.get("/api/db-test")
async def db_test(supabase: SupabaseService = Depends(get_supabase_service)):
    try:
        data = await supabase.ping()
    except Exception as e:
        logger.error(f"Database check failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return {"status": "ok", "message": "Database connection successful!", "data": data}


app.include_router(auth_router)
app.include_router(scans_router)
app.include_router(admin_router)
