"""
Write dispatch endpoint.

POST /api/v1/controller with a JSON or multipart body carrying one action
flag. Multipart bodies may include files: `receipt` for placeOrder and
addPayment, `images[]` for addVehicle.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import FormData, UploadFile

from easybuy.api.v1.endpoints.action import read_json_body
from easybuy.core.logging import get_logger
from easybuy.db.session import get_db
from easybuy.services.command_service import CommandService

logger = get_logger(__name__)

router = APIRouter()

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def split_form(form: FormData) -> tuple[dict[str, Any], dict[str, list[UploadFile]]]:
    """Separate text fields from file parts. A repeated text field keeps its last value."""
    payload: dict[str, Any] = {}
    files: dict[str, list[UploadFile]] = {}
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            files.setdefault(key, []).append(value)
        else:
            payload[key] = value
    return payload, files


@router.post("/controller")
async def dispatch_controller(request: Request, db: AsyncSession = Depends(get_db)) -> Any:
    """
    Run one write action and commit it.

    No action flag answers {"error": "Missing controller action"}.
    """
    content_type = request.headers.get("content-type", "").lower()
    service = CommandService(db)

    if content_type.startswith(FORM_CONTENT_TYPES):
        async with request.form() as form:
            payload, files = split_form(form)
            result = await service.dispatch(payload, files)
    else:
        result = await service.dispatch(await read_json_body(request))

    await db.commit()
    return result
