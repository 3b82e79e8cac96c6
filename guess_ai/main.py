import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from guess_ai import __version__
from guess_ai.api.routes import router

DEFAULT_CORS_ORIGINS = "https://guess-ai.app,http://localhost:3000"

app = FastAPI(title="guess-ai", version=__version__)
app.include_router(router)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.environ.get("GUESS_AI_CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",") if o.strip()],
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Accept", "Content-Type"],
    max_age=3600,
)
# Configure logging
logging.basicConfig(level=os.environ.get("GUESS_AI_LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "guess-ai", "version": __version__}
