import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes.auth import router as auth_router
from src.api.routes.summarize import router as summarize_router
from src.api.routes.transcribe import router as transcribe_router
from src.config import DEFAULT_SECRET_KEY, settings
from src.errors import ConfigurationError

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if settings.secret_key == DEFAULT_SECRET_KEY:
        if settings.is_production:
            raise ConfigurationError("SECRET_KEY must be set in production.")
        logger.warning("SECRET_KEY is not set; auth tokens are signed with a public default")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; /api/transcribe will return 500")
    if not settings.summary_api_key:
        logger.warning("SUMMARY_API_KEY is not set; /api/summarize will return 500")
    if not settings.supabase_url:
        logger.warning("SUPABASE_URL is not set; quota and accounts are unavailable")
    yield


app = FastAPI(
    title="Video Transcriber API",
    description="Video transcription and summarization with a free-upload quota",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:8501",
    ],
    allow_origin_regex=r"http://localhost:\d+",
    # Cookies carry the visitor and auth identity.
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(transcribe_router)
app.include_router(summarize_router)
app.include_router(auth_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
