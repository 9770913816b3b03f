import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.custom_student_fees.router import router as custom_student_fees_router
from app.api.v1.fee_analysis.router import router as fee_analysis_router
from app.api.v1.fee_collections.router import router as fee_collections_router
from app.api.v1.fee_reports.router import router as fee_reports_router
from app.api.v1.fee_settings.router import router as fee_settings_router
from app.core.config import settings
from app.db.session import init_models


def _configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_tables_on_startup:
        await init_models()
    yield


def create_app() -> FastAPI:
    _configure_logging()
    app = FastAPI(title="Fee Engine", lifespan=lifespan)

    # CORS: allow the admin frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    # Routers
    app.include_router(fee_settings_router)
    app.include_router(custom_student_fees_router)
    app.include_router(fee_analysis_router)
    app.include_router(fee_collections_router)
    app.include_router(fee_reports_router)

    return app


app = create_app()
