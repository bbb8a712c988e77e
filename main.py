from fastapi import FastAPI
from contextlib import asynccontextmanager
from app.core.config import settings
from app.core.db.base import init_models
from app.core.logging import setup_logging
from app.apis.study.main import router as study_router
from app.apis.games.main import router as games_router

import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from app.modules.games.state import game_manager


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    game_manager.start()
    try:
        yield
    finally:
        await game_manager.stop()


def create_app(*, with_lifespan: bool = True) -> FastAPI:
    setup_logging()
    app = FastAPI(
        title=settings.app.name,
        version=settings.app.version,
        lifespan=lifespan if with_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(study_router)
    app.include_router(games_router)

    @app.get("/")
    async def root():
        return {
            "status": "ok",
            "app": settings.app.name,
            "version": settings.app.version,
        }

    return app


app = create_app()


if __name__ == "__main__":
    try:
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.app.port,
            reload=not settings.app.is_production,
        )
    except Exception as e:
        print(f"An error occurred when starting the server: {e}.")
