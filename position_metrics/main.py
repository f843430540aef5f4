from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from position_metrics.api.routes_editor import router as editor_router
from position_metrics.api.routes_metrics import router as metrics_router
from position_metrics.core.config import get_settings
from position_metrics.core.logging import init_logging


def create_app() -> FastAPI:
    settings = get_settings()
    init_logging(settings.log_level)

    app = FastAPI(
        title="Position Metrics Editor",
        version="0.1.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(metrics_router)
    app.include_router(editor_router)
    return app


app = create_app()
