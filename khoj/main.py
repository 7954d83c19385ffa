# khoj/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import RedirectResponse

from khoj.config import API_PREFIX, CORS_ORIGINS, LOG_LEVEL, PORT
from khoj.routes.alerts import router as alerts_router
from khoj.routes.notifications import router as notifications_router
from khoj.routes.realtime import router as realtime_router
from khoj.routes.reports import router as reports_router
from khoj.routes.statistics import router as statistics_router
from khoj.services.connections import ConnectionRegistry

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
log = logging.getLogger("uvicorn.error")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Khoj API",
        version="1.0.0",
        description="Backend for Khoj (alerts, reports, area danger statistics, notifications).",
    )
    app.state.connections = ConnectionRegistry()

    # ---------------- CORS ----------------
    cors_kwargs = dict(allow_methods=["*"], allow_headers=["*"], allow_credentials=True)
    if CORS_ORIGINS:
        cors_kwargs.update(allow_origins=CORS_ORIGINS)
    else:
        # Dev default: allow localhost on any port
        cors_kwargs.update(allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$")
    app.add_middleware(CORSMiddleware, **cors_kwargs)
    log.info("CORS configured: %s", cors_kwargs)

    # ---------------- Errors -> {success: false, error} ----------------
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        return _error(400, f"{where}: {first.get('msg', 'invalid request')}" if where else "Invalid request")

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, str(exc))

    # ---------------- Routers ----------------
    for router in (statistics_router, alerts_router, reports_router, notifications_router):
        app.include_router(router, prefix=API_PREFIX)
    app.include_router(realtime_router)

    @app.get("/", include_in_schema=False)
    def root() -> RedirectResponse:
        return RedirectResponse(url="/docs")

    @app.get(f"{API_PREFIX or ''}/health", tags=["meta"])
    def health():
        return {"status": "ok", "prefix": API_PREFIX or ""}

    return app


app = create_app()


# ---------------- Local dev entrypoint ----------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("khoj.main:app", host="0.0.0.0", port=PORT, reload=True)
