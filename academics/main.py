import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from academics.api.v1.grading_scales.router import router as grading_scales_router
from academics.api.v1.promotions.router import router as promotions_router
from academics.api.v1.report_cards.router import router as report_cards_router
from academics.core.config import settings


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Academic Performance & Promotion Engine")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Promotion-Policy-Version"],
    )

    # Routers
    app.include_router(grading_scales_router)
    app.include_router(report_cards_router)
    app.include_router(promotions_router)

    return app


app = create_app()
