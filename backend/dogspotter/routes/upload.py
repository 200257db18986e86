"""
Dog Spotter Backend — Upload Route Handlers
============================================

What:  Image upload (multipart and base64), deletion, and serving of stored
       files.
Who:   The mobile app uploads a photo first, then sends the returned
       image_url with POST /api/dogs.

Caching:
    GET /api/files/{path}: files are never rewritten (UUID names), so they are
    served with a long private cache.
"""

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse

from dogspotter.dependencies import get_current_user, get_upload_service
from dogspotter.exceptions import NotFoundError
from dogspotter.models.user import User
from dogspotter.schemas.common import ErrorResponse, MessageResponse
from dogspotter.schemas.upload import Base64UploadRequest, DeleteImageRequest, UploadResponse
from dogspotter.services.upload_service import UploadService

router = APIRouter(tags=["Upload"])

_UPLOAD_ERRORS = {
    400: {"description": "Not an image, empty, or too large", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
}


@router.post(
    "/api/upload",
    response_model=UploadResponse,
    responses=_UPLOAD_ERRORS,
    summary="Upload an image (multipart field `image`)",
)
async def upload_image(
    image: UploadFile = File(..., description="Image file (image/*)"),
    current_user: User = Depends(get_current_user),
    upload_service: UploadService = Depends(get_upload_service),
) -> UploadResponse:
    content = await image.read()
    image_url = await upload_service.upload_file(image.filename, image.content_type, content)
    return UploadResponse(image_url=image_url)


@router.post(
    "/api/upload/base64",
    response_model=UploadResponse,
    responses=_UPLOAD_ERRORS,
    summary="Upload a base64 image",
)
async def upload_image_base64(
    body: Base64UploadRequest,
    current_user: User = Depends(get_current_user),
    upload_service: UploadService = Depends(get_upload_service),
) -> UploadResponse:
    image_url = await upload_service.upload_base64(body.image, body.mime_type)
    return UploadResponse(image_url=image_url)


@router.delete(
    "/api/upload",
    response_model=MessageResponse,
    responses={404: {"description": "Image not found", "model": ErrorResponse}},
    summary="Delete an uploaded image",
)
async def delete_image(
    body: DeleteImageRequest,
    current_user: User = Depends(get_current_user),
    upload_service: UploadService = Depends(get_upload_service),
) -> MessageResponse:
    if not await upload_service.delete_file(body.image_url):
        raise NotFoundError(resource="Image")
    return MessageResponse(message="Image deleted successfully")


@router.get(
    "/api/files/{file_path:path}",
    responses={
        200: {"description": "Image file", "content": {"image/*": {}}},
        404: {"description": "File not found", "model": ErrorResponse},
    },
    summary="Serve a stored image",
)
async def serve_file(
    file_path: str,
    upload_service: UploadService = Depends(get_upload_service),
) -> FileResponse:
    path = upload_service.resolve_path(file_path)
    if path is None:
        raise NotFoundError(resource="File")
    return FileResponse(path, headers={"Cache-Control": "private, max-age=86400"})
