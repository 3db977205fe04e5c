# bizenglish/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configuration and DB
from bizenglish.config import settings
from bizenglish.core.db import init_db, close_db
from bizenglish.core.errors import BizEnglishError, bizenglish_error_handler

from bizenglish.api.v1.routers import auth, agent, conversations, tts, video_avatar

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(BizEnglishError, bizenglish_error_handler)

@app.on_event("startup")
async def on_startup():
    if not settings.eleven_api_key:
        logger.warning("[config] ELEVENLABS_API_KEY is not set; voice sessions and TTS will fail")
    if not settings.openai_api_key:
        logger.warning("[config] OPENAI_API_KEY is not set; text chat and provider flashcards are disabled")
    if not settings.beyondpresence_api_key:
        logger.info("[config] BEYONDPRESENCE_API_KEY is not set; video avatar transcripts are disabled")
    if settings.session_store == "memory":
        logger.info("[config] voice sessions are kept in process memory (single worker only)")
    await init_db()

@app.on_event("shutdown")
async def on_shutdown():
    await close_db()

# REST
app.include_router(auth.router, prefix="/api/v1")
app.include_router(agent.router, prefix="/api/v1")
app.include_router(conversations.router, prefix="/api/v1")
app.include_router(video_avatar.router, prefix="/api/v1")
app.include_router(tts.router, prefix="/api/v1/tts", tags=["TTS"])

@app.get("/healthz")
def healthz():
    return {"ok": True}
