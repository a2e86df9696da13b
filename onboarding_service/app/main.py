# app/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.core.config import settings
from shared.core.database import Base, engine
from shared.helpers.exception_handler import setup_exception_handlers
from .models import organizations, attachments
from .routers import files_router, onboarding_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

# Create tables
Base.metadata.create_all(bind=engine)

# This MUST exist for uvicorn
app = FastAPI(title=settings.APP_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
setup_exception_handlers(app)

# Routers
app.include_router(onboarding_router.router)
app.include_router(files_router.router)


@app.get("/api/health")
def health():
    return {"status": "ok", "service": settings.APP_NAME}
