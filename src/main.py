"""Entry point for the call script webhook service."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.twilio_routes import build_router
from calls.errors import CallScriptError
from config.settings import Settings, get_settings


async def call_script_error_handler(request: Request, exc: CallScriptError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def create_app(settings: Settings) -> FastAPI:
    app = FastAPI(
        title="Twilio Call Scripts",
        description="Drives Twilio voice calls through declarative call scripts.",
    )
    app.include_router(build_router(settings))
    app.add_exception_handler(CallScriptError, call_script_error_handler)
    return app


settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = create_app(settings)
