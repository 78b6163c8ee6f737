"""Mock Service Routes — stand-ins for Google Maps, GROQ, Sphinx, and QR Server.

Invariants:
    - Every route is gated by require_mocks (403 when USE_MOCKS is off)
    - Responses mirror the shape of the real upstream API, so callers only
      swap the base URL
    - Mock stores are process-wide singletons; DELETE on the QR route resets one
"""

import logging
import re
import time

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from ganamos.api.dependencies import require_mocks
from ganamos.core.errors import InvalidRequestError
from ganamos.infrastructure.google_maps import parse_coordinates
from ganamos.mocks.groq import mock_groq_store
from ganamos.mocks.maps import mock_maps_store
from ganamos.mocks.qr import DEFAULT_SIZE, SIZE_PATTERN, mock_qr_store
from ganamos.mocks.sphinx import SPHINX_ACTIONS, mock_sphinx_store
from ganamos.schemas.mocks import GroqChatRequest, SphinxActionRequest

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/mock", tags=["mocks"], dependencies=[Depends(require_mocks)],
)

GROQ_MODEL = "meta-llama/llama-4-scout-17b-16e-instruct"
_ISSUE_TITLE = re.compile(r"ISSUE TITLE:\s*(.+)")
_ISSUE_DESCRIPTION = re.compile(r"ISSUE DESCRIPTION:\s*(.+)")


def _dimensions(size: str) -> tuple[int, int]:
    if not SIZE_PATTERN.match(size):
        return 640, 400
    width, height = size.split("x")
    return int(width), int(height)


# ─── Google Maps ────────────────────────────────────────────────

@router.get("/maps/staticmap")
async def static_map(
    latitude: str = Query("0"),
    longitude: str = Query("0"),
    size: str = Query("640x400"),
    zoom: int = Query(15),
):
    lat, lng = parse_coordinates(latitude, longitude)
    width, height = _dimensions(size)
    logger.info(f"Mock static map for {lat},{lng} ({size})")
    return Response(
        mock_maps_store.static_map_svg(lat, lng, width, height, zoom),
        media_type="image/svg+xml",
        headers={"Cache-Control": "no-cache"},
    )


@router.get("/maps/distancematrix")
async def distance_matrix(
    origins: str | None = Query(None),
    destinations: str | None = Query(None),
    mode: str = Query("driving"),
):
    if not origins or not destinations:
        return JSONResponse(
            status_code=400,
            content={"status": "INVALID_REQUEST", "rows": []},
        )
    try:
        return mock_maps_store.distance_matrix(origins, destinations, mode)
    except ValueError:
        return JSONResponse(
            status_code=400,
            content={"status": "INVALID_REQUEST", "rows": []},
        )


@router.get("/maps/geocode")
async def geocode(latlng: str | None = Query(None)):
    if not latlng:
        return JSONResponse(
            status_code=400, content={"status": "INVALID_REQUEST", "results": []},
        )
    try:
        lat, lng = (float(part) for part in latlng.split(",")[:2])
    except ValueError:
        return JSONResponse(
            status_code=400, content={"status": "INVALID_REQUEST", "results": []},
        )
    return mock_maps_store.geocode(lat, lng)


# ─── GROQ ───────────────────────────────────────────────────────

def _split_user_content(content) -> tuple[str, list[str]]:
    if isinstance(content, str):
        return content, []
    text, images = "", []
    for part in content or []:
        if part.get("type") == "text" and not text:
            text = part.get("text", "")
        elif part.get("type") == "image_url":
            images.append((part.get("image_url") or {}).get("url", ""))
    return text, images


@router.post("/groq/chat/completions")
async def groq_chat_completion(body: GroqChatRequest):
    user_message = next((m for m in body.messages if m.get("role") == "user"), None)
    if user_message is None:
        raise InvalidRequestError("No user message found")

    prompt, images = _split_user_content(user_message.get("content"))
    before_image = images[0] if images else ""
    after_image = images[1] if len(images) > 1 else ""
    title_match = _ISSUE_TITLE.search(prompt)
    description_match = _ISSUE_DESCRIPTION.search(prompt)
    title = title_match.group(1).strip() if title_match else "Unknown Issue"
    description = description_match.group(1).strip() if description_match else ""

    result = mock_groq_store.verify_fix(before_image, after_image, description, title)
    logger.info(
        f"Mock GROQ verification {result.verification_id}: "
        f"confidence {result.confidence}",
    )
    now = time.time()
    return {
        "id": f"chatcmpl-mock-{int(now * 1000)}",
        "object": "chat.completion",
        "created": int(now),
        "model": GROQ_MODEL,
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": (
                        f"CONFIDENCE: {result.confidence}\n"
                        f"REASONING: {result.reasoning}"
                    ),
                },
                "finish_reason": "stop",
            },
        ],
        "usage": {"prompt_tokens": 100, "completion_tokens": 50, "total_tokens": 150},
    }


# ─── Sphinx ─────────────────────────────────────────────────────

@router.post("/sphinx/action")
async def sphinx_action(body: SphinxActionRequest):
    if not (body.chat_pubkey and body.bot_id and body.bot_secret and body.content):
        raise InvalidRequestError(
            "Missing required fields: chat_pubkey, bot_id, bot_secret, content",
        )
    action = body.action or "broadcast"
    if action not in SPHINX_ACTIONS:
        raise InvalidRequestError('Invalid action. Must be "broadcast" or "message"')

    message = mock_sphinx_store.broadcast(
        body.chat_pubkey, body.bot_id, body.content, action,
    )
    logger.info(f"Mock Sphinx {action} {message.message_id} to {message.chat_id}")
    return {
        "success": True,
        "message_id": message.message_id,
        "chat_id": message.chat_id,
        "timestamp": message.timestamp.isoformat(),
    }


@router.get("/sphinx/action")
async def sphinx_action_get():
    return JSONResponse(
        status_code=405,
        content={
            "success": False,
            "error": "Method not allowed. Use POST to broadcast messages.",
        },
    )


# ─── QR Server ──────────────────────────────────────────────────

@router.get("/qr-server/create-qr-code")
async def create_qr_code(
    data: str | None = Query(None),
    size: str = Query(DEFAULT_SIZE),
):
    if not data:
        raise InvalidRequestError("Missing required parameter: data")
    if not SIZE_PATTERN.match(size):
        raise InvalidRequestError(
            "Invalid size format. Expected format: WIDTHxHEIGHT (e.g., 200x200)",
        )
    return Response(
        mock_qr_store.generate(data, size),
        media_type="image/svg+xml",
        headers={"Cache-Control": "public, max-age=31536000"},
    )


@router.post("/qr-server/create-qr-code")
async def qr_stats():
    return {
        "success": True,
        "stats": mock_qr_store.stats(),
        "qrCodes": [
            {
                "id": record.id,
                "size": record.size,
                "dataPreview": record.data,
                "generatedAt": record.generated_at.isoformat(),
            }
            for record in mock_qr_store.records()
        ],
    }


@router.delete("/qr-server/create-qr-code")
async def reset_qr_store():
    mock_qr_store.reset()
    return {"success": True, "message": "Mock QR Server store reset successfully"}
