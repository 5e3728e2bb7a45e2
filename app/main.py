# app/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.v1 import (
    routes_health,
    routes_navigation,
    routes_obstacles,
    routes_ramps,
    routes_routing,
)
from app.api.v1.dependencies import session_store
from app.core.config import settings
from app.core.errors import InputInvalid, NoConnectingPath, SessionExpired, SessionNotFound
from app.core.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    session_store.start_sweeper()
    yield
    await session_store.stop_sweeper()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Wheelchair-aware walking routes and turn-by-turn navigation for Hualien.",
        lifespan=lifespan,
    )

    # Routers
    app.include_router(routes_health.router, prefix="", tags=["health"])
    app.include_router(routes_routing.router, prefix="", tags=["routing"])
    app.include_router(routes_navigation.router, prefix="", tags=["navigation"])
    app.include_router(routes_obstacles.router, prefix="", tags=["obstacles"])
    app.include_router(routes_ramps.router, prefix="", tags=["ramps"])

    @app.exception_handler(InputInvalid)
    async def bad_coords_handler(request: Request, exc: InputInvalid) -> JSONResponse:
        logger.warning("Rejected {} {}: {}", request.method, request.url.path, exc)
        return JSONResponse(status_code=400, content={"error": "bad_coords", "message": str(exc)})

    @app.exception_handler(SessionNotFound)
    async def session_not_found_handler(request: Request, exc: SessionNotFound) -> JSONResponse:
        logger.info("Navigation session {} not found", exc.session_id)
        return JSONResponse(
            status_code=404,
            content={
                "error": "session_not_found",
                "navigation_id": exc.session_id,
                "expired": isinstance(exc, SessionExpired),
            },
        )

    @app.exception_handler(NoConnectingPath)
    async def no_path_handler(request: Request, exc: NoConnectingPath) -> JSONResponse:
        logger.warning("No connecting path: {}", exc)
        return JSONResponse(
            status_code=422,
            content={"error": "no_connecting_path", "message": str(exc)},
        )

    return app


app = create_app()
