import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import PersistenceFailure
from app.models import Thumbnail

logger = logging.getLogger(__name__)


class ThumbnailStore:
    """Owner-scoped persistence for thumbnail records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, **fields) -> Thumbnail:
        thumbnail = Thumbnail(**fields)
        self.db.add(thumbnail)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceFailure(f"Could not create thumbnail record: {e}") from e
        return thumbnail

    async def save(self, thumbnail: Thumbnail) -> Thumbnail:
        # Read before commit; a rollback expires the instance
        thumbnail_id = thumbnail.id
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceFailure(f"Could not save thumbnail {thumbnail_id}: {e}") from e
        return thumbnail

    async def mark_failed(self, thumbnail: Thumbnail, message: str) -> bool:
        """
        Best-effort write of the failed state.

        Never raises: a failing write here would hide the error that caused
        it, so it is rolled back and logged instead. Returns whether the
        failure was persisted; only then are the record's columns loaded.
        """
        thumbnail.is_generating = False
        thumbnail.error = message
        try:
            await self.db.commit()
            # An earlier rollback may have expired the columns
            await self.db.refresh(thumbnail)
        except SQLAlchemyError as e:
            logger.warning("Could not record failure for thumbnail: %s", e)
            try:
                await self.db.rollback()
            except SQLAlchemyError as rollback_error:
                logger.warning("Rollback after failed write also failed: %s", rollback_error)
            return False
        return True

    async def list_for_owner(self, user_id: str, limit: int = 20, offset: int = 0) -> list[Thumbnail]:
        result = await self.db.execute(
            select(Thumbnail)
            .where(Thumbnail.user_id == user_id)
            .order_by(Thumbnail.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_for_owner(self, thumbnail_id: str, user_id: str) -> Thumbnail | None:
        result = await self.db.execute(
            select(Thumbnail).where(
                Thumbnail.id == thumbnail_id,
                Thumbnail.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def delete_for_owner(self, thumbnail_id: str, user_id: str) -> bool:
        """Delete a record only if the given user owns it."""
        thumbnail = await self.get_for_owner(thumbnail_id, user_id)
        if thumbnail is None:
            return False

        await self.db.delete(thumbnail)
        await self.db.commit()
        return True
