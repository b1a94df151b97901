"""Coffee recipe search endpoint."""
from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from services.brew_session import SEARCH, get_brew_session
from services.gemini_service import MissingApiKeyError
from services.search_service import request_search
from logging_config import get_logger

router = APIRouter()
logger = get_logger()


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1, pattern=r'\S', description="Bean or roaster name")


@router.post("/api/coffee/search")
async def search_coffee(request: Request, body: SearchRequest):
    """Search the web for brew parameters of a coffee.

    Always answers with a recommendation (``found`` may be false). The
    session only keeps the result if no newer search or new coffee was
    started while this one was in flight.
    """
    request_id = request.state.request_id
    query = body.query.strip()
    session = get_brew_session()

    logger.info("Starting coffee search", extra={"request_id": request_id, "query": query})

    token = session.begin(SEARCH)
    try:
        recommendation = await request_search(query)
    except MissingApiKeyError:
        session.report_missing_key()
        raise

    accepted = session.accept_search(token, query, recommendation)
    return {
        **recommendation.model_dump(mode="json", by_alias=True),
        "accepted": accepted,
        "notice": session.notice,
    }
