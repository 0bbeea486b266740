import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_db
from app.models import Thumbnail
from app.schemas import (
    GenerateThumbnailRequest,
    GenerateThumbnailResponse,
    GenerationErrorResponse,
    MessageResponse,
    ThumbnailInfo,
)
from app.services.auth import require_user_id
from app.services.imagen import ImageAcquisition, dimensions_for, get_image_acquisition
from app.services.prompt import compose_prompt, resolve_options
from app.services.records import ThumbnailStore
from app.services.storage import AssetStorage, get_storage

logger = logging.getLogger(__name__)

settings = get_settings()
router = APIRouter(prefix="/thumbnails", tags=["thumbnails"])


def _snapshot(thumbnail: Thumbnail | None, persisted: bool) -> ThumbnailInfo | None:
    """Serialize the failed record; after an unrecorded failure its state is not loaded."""
    if thumbnail is None or not persisted:
        return None
    return ThumbnailInfo.model_validate(thumbnail)


@router.post(
    "",
    response_model=GenerateThumbnailResponse,
    responses={500: {"model": GenerationErrorResponse}},
)
async def generate_thumbnail(
    request: GenerateThumbnailRequest,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
    acquisition: ImageAcquisition = Depends(get_image_acquisition),
    storage: AssetStorage = Depends(get_storage),
):
    """
    Generate a thumbnail for the logged-in user.

    The system will:
    1. Compose a text-to-image prompt from the title, style and color scheme
    2. Create a pending record (isGenerating=true)
    3. Fetch an image from the provider chain, with backoff between attempts
    4. Upload the image to asset storage
    5. Mark the record finished with its image URL

    Any failure after step 2 marks the record failed and returns 500 with the
    error message and the record as far as it got.
    """
    options = resolve_options(request.style, request.aspect_ratio, request.color_scheme)
    prompt = compose_prompt(
        title=request.title,
        prompt=request.prompt,
        style=options.style,
        aspect_ratio=options.aspect_ratio,
        color_scheme=options.color_scheme,
    )

    store = ThumbnailStore(db)
    thumbnail = None

    try:
        thumbnail = await store.create(
            user_id=user_id,
            title=request.title or "",
            prompt_used=request.prompt or "",
            style=options.style,
            aspect_ratio=options.aspect_ratio,
            color_scheme=options.color_scheme,
            text_overlay=True if request.text_overlay is None else request.text_overlay,
            is_generating=True,
        )

        width, height = dimensions_for(options.aspect_ratio)
        image_bytes = await acquisition.acquire(prompt, width, height)

        image_url = await storage.upload_image(image_bytes, folder=settings.upload_folder)

        thumbnail.image_url = image_url
        thumbnail.is_generating = False
        await store.save(thumbnail)

    except Exception as e:
        logger.exception("Thumbnail generation failed for user %s", user_id)
        message = str(e)
        persisted = False
        if thumbnail is not None:
            persisted = await store.mark_failed(thumbnail, message)

        body = GenerationErrorResponse(
            message=message,
            thumbnail=_snapshot(thumbnail, persisted),
            error=message,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(mode="json", by_alias=True),
        )

    return GenerateThumbnailResponse(thumbnail=ThumbnailInfo.model_validate(thumbnail))


@router.get("", response_model=list[ThumbnailInfo])
async def list_thumbnails(
    limit: int = 20,
    offset: int = 0,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get the logged-in user's thumbnails, newest first."""
    thumbnails = await ThumbnailStore(db).list_for_owner(user_id, limit=limit, offset=offset)
    return [ThumbnailInfo.model_validate(t) for t in thumbnails]


@router.get("/{thumbnail_id}", response_model=ThumbnailInfo)
async def get_thumbnail(
    thumbnail_id: str,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get one of the logged-in user's thumbnails."""
    thumbnail = await ThumbnailStore(db).get_for_owner(thumbnail_id, user_id)

    if thumbnail is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Thumbnail with ID {thumbnail_id} not found."
        )

    return ThumbnailInfo.model_validate(thumbnail)


@router.delete("/{thumbnail_id}", response_model=MessageResponse)
async def delete_thumbnail(
    thumbnail_id: str,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete a thumbnail owned by the logged-in user."""
    try:
        deleted = await ThumbnailStore(db).delete_for_owner(thumbnail_id, user_id)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to delete thumbnail %s", thumbnail_id)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": str(e)},
        )

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Thumbnail with ID {thumbnail_id} not found."
        )

    return MessageResponse(message="Thumbnail deleted successfully")
