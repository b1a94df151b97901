"""Draft form and brew session endpoints."""
from fastapi import APIRouter, Request, HTTPException, Body
from pydantic import ValidationError

from services.brew_session import get_brew_session

router = APIRouter()


@router.get("/api/session")
async def get_session(request: Request):
    """Current draft, search result, advice and notice."""
    return get_brew_session().to_dict()


@router.patch("/api/session/draft")
async def update_draft(request: Request, fields: dict = Body(...)):
    """Apply a partial update to the draft shot."""
    session = get_brew_session()
    try:
        session.update_draft(fields)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    return session.to_dict()


@router.post("/api/session/apply-recommendation")
async def apply_recommendation(request: Request):
    """Pre-fill the draft from the last search and move on to brewing."""
    session = get_brew_session()
    session.apply_recommendation()
    return session.to_dict()


@router.post("/api/session/new-coffee")
async def new_coffee(request: Request):
    """Reset the draft for a different coffee."""
    session = get_brew_session()
    session.new_coffee()
    return session.to_dict()


@router.post("/api/session/repeat")
async def repeat_shot(request: Request):
    """Keep the draft and clear the previous advice."""
    session = get_brew_session()
    session.repeat_shot()
    return session.to_dict()


@router.delete("/api/session/notice")
async def dismiss_notice(request: Request):
    session = get_brew_session()
    session.dismiss_notice()
    return session.to_dict()
