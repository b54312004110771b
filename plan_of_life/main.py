from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from plan_of_life.db import dispose_engine
from plan_of_life.db_init import init_db
from plan_of_life.errors import PlanOfLifeError, ServiceError
from plan_of_life.routes import bootstrap, completions, day, insights, norms, week

logger = logging.getLogger("plan_of_life")


def create_app() -> FastAPI:
    logging.basicConfig(
        level=os.getenv("BACKEND_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    app = FastAPI(title="Plan of Life API", version="0.1.0")

    app.include_router(bootstrap.router)
    app.include_router(norms.router)
    app.include_router(completions.router)
    app.include_router(day.router)
    app.include_router(week.router)
    app.include_router(insights.router)

    @app.on_event("startup")
    async def _startup():
        await init_db()

    @app.on_event("shutdown")
    async def _shutdown():
        await dispose_engine()

    @app.exception_handler(PlanOfLifeError)
    async def _plan_error_handler(request: Request, exc: PlanOfLifeError):
        content = {"detail": exc.message}
        if isinstance(exc, ServiceError):
            content["kind"] = exc.kind
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "Internal error"})

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app


app = create_app()
