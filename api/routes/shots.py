"""Shot journal endpoints: list, log, delete and advise."""
from fastapi import APIRouter, Request, HTTPException, Body
from pydantic import ValidationError
from typing import Optional

from models import ShotRecord
from services.advice_service import request_advice
from services.brew_session import ADVICE, get_brew_session
from services.gemini_service import MissingApiKeyError
from services.journal_service import get_journal
from logging_config import get_logger

router = APIRouter()
logger = get_logger()


def shot_view(shot: ShotRecord) -> dict:
    """Shot JSON plus the derived brew ratio."""
    return {**shot.to_json(), "ratio": shot.ratio}


@router.get("/api/shots")
async def list_shots(request: Request):
    """Get all logged shots, newest first."""
    shots = get_journal().all()
    return {"shots": [shot_view(shot) for shot in shots], "total": len(shots)}


@router.get("/api/shots/trend")
async def get_shot_trend(request: Request):
    """Extraction time and overall rating per shot, oldest first (for charts)."""
    return {"points": get_journal().trend()}


@router.post("/api/shots", status_code=201)
async def log_shot(request: Request, fields: Optional[dict] = Body(None)):
    """Log the session draft as a new shot, then ask for dial-in advice.

    Optional body fields are merged into the draft first. The shot is
    persisted before advice is requested; advice problems never undo it.
    """
    request_id = request.state.request_id
    session = get_brew_session()

    if fields:
        try:
            session.update_draft(fields)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    try:
        shot = session.submit()
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    get_journal().append(shot)

    token = session.begin(ADVICE)
    try:
        advice = await request_advice(shot)
    except MissingApiKeyError:
        session.report_missing_key()
        logger.warning(
            "Shot logged without advice: no API key",
            extra={"request_id": request_id, "shot_id": shot.id}
        )
        return {"status": "success", "shot": shot_view(shot), "advice": None, "notice": session.notice}

    session.accept_advice(token, advice)
    logger.info("Shot logged with advice", extra={"request_id": request_id, "shot_id": shot.id})
    return {
        "status": "success",
        "shot": shot_view(shot),
        "advice": advice.model_dump(),
        "notice": session.notice,
    }


@router.delete("/api/shots/{shot_id}")
async def delete_shot(request: Request, shot_id: str):
    """Delete a shot from the journal."""
    if not get_journal().remove(shot_id):
        raise HTTPException(
            status_code=404,
            detail={"status": "error", "error": "not_found", "message": f"Shot '{shot_id}' not found"}
        )
    return {"status": "success", "deleted": shot_id}


@router.post("/api/shots/{shot_id}/advice")
async def advise_shot(request: Request, shot_id: str):
    """Request fresh advice for an already logged shot."""
    shot = get_journal().get(shot_id)
    if shot is None:
        raise HTTPException(
            status_code=404,
            detail={"status": "error", "error": "not_found", "message": f"Shot '{shot_id}' not found"}
        )

    session = get_brew_session()
    token = session.begin(ADVICE)
    try:
        advice = await request_advice(shot)
    except MissingApiKeyError:
        session.report_missing_key()
        raise
    session.accept_advice(token, advice)
    return {"status": "success", "shot_id": shot_id, "advice": advice.model_dump()}
