"""
Read dispatch endpoint.

POST /api/v1/action with a JSON body {"page": <name>, ...}. Every answer is
HTTP 200 JSON: the page data, or {"error": ...}.

Pages:
- vehicles, vehicle, orders, transactions, order, dashboard, profile, wishlist
"""

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from easybuy.core.logging import get_logger
from easybuy.db.session import get_db
from easybuy.services.action_service import ActionService

logger = get_logger(__name__)

router = APIRouter()


async def read_json_body(request: Request) -> dict[str, Any]:
    """JSON object of the request body; anything else reads as {}."""
    body = await request.body()
    if not body:
        return {}
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Ignoring malformed JSON body", extra={"path": request.url.path})
        return {}
    return payload if isinstance(payload, dict) else {}


@router.post("/action")
async def dispatch_action(request: Request, db: AsyncSession = Depends(get_db)) -> Any:
    """
    Serve one read page.

    Missing page answers {"error": "Missing page parameter"}, an unknown one
    {"error": "Invalid page request: <page>"}.
    """
    payload = await read_json_body(request)
    return await ActionService(db).dispatch(payload)
