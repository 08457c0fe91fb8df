import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from abfi.api.routes import ai, rating, reports, stress_tests
from abfi.config import get_settings
from abfi.services.exceptions import EngineError

load_dotenv()

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

# ================== FASTAPI APP ==================
app = FastAPI(title=settings.app_name, version=settings.methodology_version)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rating.router)
app.include_router(stress_tests.router)
app.include_router(reports.router)
app.include_router(ai.router)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=422, content={"error": exc.code, "detail": str(exc)})


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": settings.app_name,
        "version": settings.methodology_version,
    }


@app.get("/api/v1/health", tags=["Root"])
async def health():
    return {"status": "healthy"}
