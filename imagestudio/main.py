"""
Main FastAPI application for Image Studio API.
Serves health, generation catalog, image generation, prompt enhancement and metrics.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from imagestudio.core.config import settings
from imagestudio.core.logging import configure_logging
from imagestudio.api.routes import generation, health
from imagestudio.utils.metrics import router as metrics_router


configure_logging()

app = FastAPI(
    title="Image Studio API",
    description="Text/reference/style-transfer image generation on Gemini",
    version="1.0.0",
)

# CORS
origins = settings.cors_origins_list
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(health.router, tags=["health"])
app.include_router(generation.router)
app.include_router(metrics_router)
