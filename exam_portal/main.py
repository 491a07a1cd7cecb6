"""
Main FastAPI application for the exam portal API.
Serves health, student auth, catalog, materials, attempts, admin and metrics.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from exam_portal.core.config import settings
from exam_portal.core.logging import configure_logging, request_logging_middleware
from exam_portal.api.routes import admin, admin_auth, attempts, auth, catalog, health, materials, me
from exam_portal.services.otp.service import build_otp_store
from exam_portal.utils.metrics import router as metrics_router


configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.otp_store = build_otp_store()
    try:
        yield
    finally:
        app.state.otp_store.close()


app = FastAPI(
    title=f"{settings.brand_name} API",
    description="Test-taking and admin API",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request logging
app.middleware("http")(request_logging_middleware)

# Routers
app.include_router(health.router, tags=["health"])
app.include_router(auth.router)
app.include_router(catalog.router)
app.include_router(materials.router)
app.include_router(attempts.router)
app.include_router(me.router)
app.include_router(admin_auth.router)
app.include_router(admin.router)
app.include_router(metrics_router)
