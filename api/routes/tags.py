"""Tag search endpoint"""

from fastapi import APIRouter, Depends, Query

from api.schemas import TagResponse
from app.auth import require_authenticated
from app.dependencies import get_tag_catalog
from services.tag_catalog import TagCatalog

router = APIRouter(prefix="/api/cfp/tags", tags=["Tags"])


@router.get("", response_model=list[TagResponse])
async def search_tags(
    caller: str = Depends(require_authenticated),
    catalog: TagCatalog = Depends(get_tag_catalog),
    q: str = Query("", max_length=50, description="Substring to search for"),
    limit: int = Query(10, ge=1, le=50),
):
    """Search tags; suggested tags come first."""
    return await catalog.search_tags(q, limit=limit)
