"""FastAPI application factory."""
from __future__ import annotations
import logging

from fastapi import FastAPI

from roundflow.api.routes import router
from roundflow.api.websocket import ws_router
from roundflow.config import get_settings


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Poker Round Transitions",
        description="Readiness countdowns and round resets for persistent poker tables",
        version="1.0.0",
    )

    app.include_router(router)
    app.include_router(ws_router)

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
