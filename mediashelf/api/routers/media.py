"""
Metadata search, movie/TV details and bulk import of title lists.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.api.dependencies import get_current_user
from mediashelf.api.schemas import ImportIn, ImportOut
from mediashelf.core.constants import MEDIA_SONG
from mediashelf.core.exceptions import ValidationError
from mediashelf.db.models import UserProfile
from mediashelf.db.session import get_async_session
from mediashelf.services import import_service, media_details_service, search_service

router = APIRouter(prefix="/api/media", tags=["media"])


@router.get("/search/{domain}")
async def search(domain: str, q: str, entity: str = MEDIA_SONG, user: UserProfile = Depends(get_current_user)):
    """Search movies-tv / books / games / music. Upstream failures yield an empty list."""
    return {"results": await search_service.search(domain, q, entity)}


@router.get("/details/{media_type}/{external_id}")
async def details(
    media_type: str,
    external_id: str,
    force: bool = False,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    return await media_details_service.get_media_details(session, external_id, media_type, force=force)


@router.post("/import/{target}", response_model=ImportOut)
async def import_file(
    target: str,
    body: ImportIn,
    user: UserProfile = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
):
    """Import a .txt/.csv/.json list of titles into the watchlist ("movies-tv") or a library domain."""
    import_service.validate_import_file(body.filename, len(body.content.encode("utf-8")))
    parsed = import_service.parse_import_data(body.content, body.filename)
    if not parsed.titles:
        raise ValidationError("Nothing to import", user_message="; ".join(parsed.errors))
    report = await import_service.import_titles(session, user.id, target, parsed.titles, body.entity)
    return {**asdict(report), "parse_errors": parsed.errors}
