"""Shot timer endpoints.

The browser drives the timer with explicit events and either polls
``GET /api/timer`` or listens on ``ws://host/api/ws/timer``, which pushes a
snapshot whenever the displayed seconds change.
"""

import asyncio
from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect

from config import TIMER_TICK_INTERVAL
from services.shot_timer import get_shot_timer
from logging_config import get_logger

router = APIRouter()
logger = get_logger()

TIMER_EVENTS = ("start", "first-drop", "stop", "reset")


@router.get("/api/timer")
async def get_timer(request: Request):
    """Current phase and elapsed seconds, recomputed from the clock."""
    return get_shot_timer().tick().to_dict()


@router.post("/api/timer/{event}")
async def timer_event(request: Request, event: str):
    """Apply a timer event.

    ``stop`` hands the extraction seconds to the draft and returns them.
    Events that do not fit the current phase are rejected with 409.
    """
    if event not in TIMER_EVENTS:
        raise HTTPException(
            status_code=404,
            detail={"status": "error", "error": "unknown_event", "message": f"Unknown timer event '{event}'"}
        )

    timer = get_shot_timer()
    if event == "stop":
        seconds = timer.stop()
        if seconds is None:
            raise HTTPException(
                status_code=409,
                detail={"status": "error", "error": "invalid_transition",
                        "message": "Stop is only valid while extracting",
                        "timer": timer.tick().to_dict()}
            )
        return {**timer.tick().to_dict(), "extraction_seconds": seconds}

    if not timer.apply(event):
        raise HTTPException(
            status_code=409,
            detail={"status": "error", "error": "invalid_transition",
                    "message": f"Cannot {event} while {timer.phase.value}",
                    "timer": timer.tick().to_dict()}
        )
    return timer.tick().to_dict()


@router.websocket("/api/ws/timer")
async def timer_stream(ws: WebSocket):
    """Stream timer snapshots over WebSocket.

    Protocol:
      server → client: snapshot JSON whenever it changes (checked every tick);
        a completed stop also carries ``extraction_seconds``.
      client → server: an event name as text (start, first-drop, stop, reset).
    """
    await ws.accept()
    timer = get_shot_timer()
    ws_id = id(ws)
    logger.info("Timer WebSocket connected (id=%d)", ws_id)

    last_sent = None
    try:
        while True:
            snapshot = timer.tick().to_dict()
            if snapshot != last_sent:
                await ws.send_json(snapshot)
                last_sent = snapshot

            # Waiting for a command doubles as the tick interval
            try:
                message = await asyncio.wait_for(ws.receive(), timeout=TIMER_TICK_INTERVAL)
            except asyncio.TimeoutError:
                continue

            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            text = message.get("text")
            if text is None:
                # Binary frames carry no command
                await ws.send_json({"error": "unknown_event", "event": None})
                continue

            event = text.strip().lower()
            if event not in TIMER_EVENTS:
                await ws.send_json({"error": "unknown_event", "event": event})
                continue

            if event == "stop":
                seconds = timer.stop()
                if seconds is not None:
                    last_sent = timer.tick().to_dict()
                    await ws.send_json({**last_sent, "extraction_seconds": seconds})
                    continue
                accepted = False
            else:
                accepted = timer.apply(event)
            if not accepted:
                await ws.send_json({"error": "invalid_transition", "event": event, **timer.tick().to_dict()})

    except WebSocketDisconnect:
        pass
    finally:
        logger.info("Timer WebSocket disconnected (id=%d)", ws_id)
