"""Twilio Voice webhooks.

This module provides:
- Voice webhook returning the next TwiML document of the caller's call script.
- Status callback forgetting calls once Twilio reports them completed.

Both are mounted at the paths and HTTP methods named in the settings, so the
URLs rendered into <Gather> and <Redirect> always reach the voice webhook.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.dependencies import get_registry
from api.schemas import StatusCallbackResponse
from calls.errors import CallScriptError
from calls.registry import CallRegistry
from calls.schemas import CallRequest
from config.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)


def _twiml_response(xml: str) -> Response:
    # Twilio expects application/xml
    return Response(content=xml, media_type="application/xml")


def _is_secure(request: Request) -> bool:
    forwarded = request.headers.get("x-forwarded-proto", "")
    scheme = forwarded.split(",")[0].strip() or request.url.scheme
    return scheme == "https"


async def _read_params(request: Request) -> dict[str, str]:
    params = {key: value for key, value in request.query_params.items()}
    if request.method == "POST":
        form = await request.form()
        params.update({key: str(value) for key, value in form.items()})
    return params


async def verify_twilio_request(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> CallRequest:
    """Parse the webhook fields and reject requests not meant for this account."""

    call_request = CallRequest.from_params(await _read_params(request))

    if not settings.allow_insecure:
        if call_request.account_sid != settings.twilio_account_sid:
            LOGGER.warning("Rejecting webhook for account %s", call_request.account_sid)
            raise HTTPException(status_code=400, detail="Invalid request")

        if settings.environment == "prod":
            if not _is_secure(request):
                LOGGER.warning("Rejecting webhook received over plain HTTP")
                raise HTTPException(status_code=400, detail="Invalid request")
            if call_request.application_sid != settings.twilio_application_sid:
                LOGGER.warning("Rejecting webhook for application %s", call_request.application_sid)
                raise HTTPException(status_code=400, detail="Invalid request")

    if not call_request.call_sid:
        raise HTTPException(status_code=400, detail="Missing CallSid")

    return call_request


async def twilio_voice_webhook(
    call_request: CallRequest = Depends(verify_twilio_request),
    registry: CallRegistry = Depends(get_registry),
) -> Response:
    try:
        executor = await registry.get_or_create(call_request)
        xml = await executor.advance(call_request)
    except CallScriptError as exc:
        LOGGER.exception("Twilio voice handling failed for %s: %s", call_request.call_sid, exc)
        raise

    return _twiml_response(xml)


async def twilio_status_callback(
    call_request: CallRequest = Depends(verify_twilio_request),
    registry: CallRegistry = Depends(get_registry),
) -> StatusCallbackResponse:
    removed = registry.remove(call_request)
    return StatusCallbackResponse(call_sid=call_request.call_sid, removed=removed)


def build_router(settings: Settings) -> APIRouter:
    """Mount the webhooks at the configured voice and status URLs."""

    router = APIRouter(tags=["twilio"])
    router.add_api_route(
        settings.voice_url,
        twilio_voice_webhook,
        methods=[settings.voice_method],
        name="twilio_voice_webhook",
    )
    router.add_api_route(
        settings.status_url,
        twilio_status_callback,
        methods=[settings.status_method],
        response_model=StatusCallbackResponse,
        name="twilio_status_callback",
    )
    LOGGER.debug(
        "Twilio webhooks: %s %s, %s %s",
        settings.voice_method,
        settings.voice_url,
        settings.status_method,
        settings.status_url,
    )
    return router
