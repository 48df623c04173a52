"""Media upload endpoints (admin only)."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from masmaa.models.media import (
    DeleteMediaRequest,
    UploadRequest,
    UploadResult,
    UploadTarget,
    UploadType,
)
from masmaa.services.identity import Actor, require_admin
from masmaa.services.media_storage import (
    MediaError,
    UploadValidationError,
    create_upload_target,
    delete_media,
    upload_media,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])


def _http_error(exc: MediaError) -> HTTPException:
    if isinstance(exc, UploadValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))


@router.post("", response_model=UploadTarget)
async def request_upload_target(
    data: UploadRequest, _admin: Actor = Depends(require_admin)
):
    """Issue a short-lived upload URL; the client PUTs the file to it directly."""
    try:
        return await create_upload_target(data.filename, data.content_type, data.upload_type)
    except MediaError as e:
        raise _http_error(e) from e


@router.post("/content", response_model=UploadResult, status_code=201)
async def upload_content(
    request: Request,
    filename: str = Query(..., min_length=1, max_length=255),
    upload_type: UploadType = Query(default="content_image"),
    _admin: Actor = Depends(require_admin),
):
    """Upload the raw request body through the server in both phases."""
    content_type = request.headers.get("content-type", "").split(";")[0].strip()
    try:
        target = await create_upload_target(filename, content_type, upload_type)
        data = await request.body()
        return await upload_media(target, data)
    except MediaError as e:
        raise _http_error(e) from e


@router.delete("")
async def remove_upload(data: DeleteMediaRequest, _admin: Actor = Depends(require_admin)):
    """Delete an uploaded file by its public URL. Failures are not reported."""
    deleted = await delete_media(data.file_url)
    return {"deleted": deleted}
