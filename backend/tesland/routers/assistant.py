"""
# `tesland/routers/assistant.py` — Chat assistant proxy

### POST /functions/appointment-assistant
Body: `{"messages": [{"role": "user|assistant|system", "content": "..."}], "language": "hu|en"}`

1. The body is validated (≤ 50 messages, content ≤ 10 000 chars); a violation is a 400
   and nothing is sent upstream.
2. The conversation is forwarded to the AI gateway with the fixed system instruction in front.
3. The upstream event stream is relayed verbatim as `text/event-stream`.

| Upstream status | Response |
|-----------------|----------|
| 429             | 429 + localized "too many requests" |
| 402             | 402 + localized "temporarily unavailable" |
| other non-2xx   | 500 + localized generic failure |

### OPTIONS /functions/appointment-assistant
Empty 200 with CORS headers.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.background import BackgroundTask

from tesland.core.errors import CORS_HEADERS, InternalError, UpstreamError, ValidationError
from tesland.core.http import preflight_response, read_json
from tesland.i18n.translations import get_translations
from tesland.integrations.ai_gateway import AIGatewayClient
from tesland.schemas.functions import ChatRequest

logger = logging.getLogger("tesland.assistant")

router = APIRouter(prefix="/functions", tags=["Functions"])


def get_ai_gateway() -> AIGatewayClient:
    return AIGatewayClient()


@router.options("/appointment-assistant")
def assistant_preflight():
    return preflight_response()


@router.post("/appointment-assistant")
async def appointment_assistant(request: Request, gateway: AIGatewayClient = Depends(get_ai_gateway)):
    raw = await read_json(request)
    try:
        body = ChatRequest.model_validate(raw)
    except PydanticValidationError as exc:
        logger.error("Validation error: %s", exc.errors())
        raise ValidationError("Invalid request data")

    t = get_translations(body.language or request.headers.get("Accept-Language"))
    try:
        stream = await gateway.stream_chat([m.model_dump() for m in body.messages])
    except Exception as exc:
        logger.exception("Appointment assistant error")
        raise InternalError(t["assistantFailed"]) from exc

    if not stream.ok:
        status = stream.status_code
        error_text = await stream.read_text()
        await stream.aclose()
        if status == 429:
            raise UpstreamError(t["assistantRateLimited"], 429)
        if status == 402:
            raise UpstreamError(t["assistantUnavailable"], 402)
        logger.error("AI gateway error: %s %s", status, error_text)
        raise UpstreamError(t["assistantFailed"], 500)

    return StreamingResponse(
        stream.iter_bytes(),
        media_type="text/event-stream",
        headers=CORS_HEADERS,
        background=BackgroundTask(stream.aclose),
    )
