import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from djrank.config import settings
from djrank.core.dependencies import get_performer_gateway
from djrank.core.exceptions import AdminRequiredException, EntityNotFoundException, GatewayError
from djrank.core.logging_config import configure_logging

# IMPORT ROUTERS
from djrank.routers.health import router as health_router
from djrank.routers.performers import router as performers_router
from djrank.routers.performers import (
    admin_required_exception_handler,
    gateway_exception_handler,
    not_found_exception_handler,
    validation_exception_handler,
)
from djrank.routers.placements import router as placements_router
from djrank.routers.scoring import router as scoring_router

configure_logging()
logger = logging.getLogger(__name__)


# SWAGGER UI: tag display order
_OPENAPI_TAGS = [
    {"name": "Root"},
    {"name": "Health"},
    {"name": "Performers"},
    {"name": "Placements"},
    {"name": "Scoring"},
]

# FASTAPI APPLICATION CONFIGURATION
app = FastAPI(
    title=f"{settings.APP_NAME} API",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=_OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# REGISTER EXCEPTION HANDLERS
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(GatewayError, gateway_exception_handler)
app.add_exception_handler(EntityNotFoundException, not_found_exception_handler)
app.add_exception_handler(AdminRequiredException, admin_required_exception_handler)

# REGISTER ROUTERS (order matches _OPENAPI_TAGS / Swagger UI display order)
app.include_router(health_router)       # Health
app.include_router(performers_router)   # Performers
app.include_router(placements_router)   # Placements
app.include_router(scoring_router)      # Scoring


# ROOT ENDPOINT
@app.get("/", tags=["Root"], summary="Root endpoint")
async def root():
    return {
        "service": f"{settings.APP_NAME} API",
        "version": settings.APP_VERSION,
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc"
        },
        "status": "running"
    }


# STARTUP EVENT
@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting {settings.APP_NAME} API ({settings.APP_ENV})")
    logger.info(f"Storage backend: {settings.STORAGE_BACKEND}, scoring scheme: {settings.SCORING_SCHEME}")
    if settings.admin_secret is None:
        logger.warning("ADMIN_SECRET is not set: all mutations will be refused")


# SHUTDOWN EVENT
@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.APP_NAME} API...")
    await get_performer_gateway().close()


# RUN WITH UVICORN
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "djrank.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
