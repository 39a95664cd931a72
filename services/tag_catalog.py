"""Tag catalog: deduplicated topic tags for submissions."""

import logging
from uuid import UUID, uuid4

from sqlalchemy import case, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from thefuzz import fuzz

from core.database import dialect_insert
from core.errors import Conflict, NotFound, ValidationFailed
from core.utils import utcnow
from models.tag import Tag, normalize_tag_name, submission_tags

logger = logging.getLogger(__name__)

MAX_TAG_LENGTH = 50
DEFAULT_SEARCH_LIMIT = 10
DEFAULT_SIMILARITY_THRESHOLD = 85


def clean_tag_name(name: str) -> str:
    """Trim and collapse whitespace; raises ValidationFailed for bad lengths."""
    cleaned = " ".join((name or "").split())
    if not cleaned:
        raise ValidationFailed("Tag name is required", fields={"name": "must not be blank"})
    if len(cleaned) > MAX_TAG_LENGTH:
        raise ValidationFailed(
            "Tag name is too long",
            fields={"name": f"must be at most {MAX_TAG_LENGTH} characters"},
        )
    return cleaned


class TagCatalog:
    """Service for tag lookup and maintenance."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_tag(self, tag_id: UUID) -> Tag:
        tag = await self.session.get(Tag, tag_id)
        if tag is None:
            raise NotFound(f"Tag {tag_id} not found")
        return tag

    async def _find_by_name(self, name: str) -> Tag | None:
        result = await self.session.execute(
            select(Tag).where(Tag.name_normalized == normalize_tag_name(name))
        )
        return result.scalar_one_or_none()

    async def create_tag(self, name: str, is_suggested: bool = True) -> Tag:
        """
        Create a tag, typically a suggested one curated by an admin.

        Raises:
            Conflict: a tag with the same name (ignoring case) already exists
        """
        cleaned = clean_tag_name(name)
        if await self._find_by_name(cleaned) is not None:
            raise Conflict(f"Tag '{cleaned}' already exists", details={"name": cleaned})

        tag = Tag(
            name=cleaned,
            name_normalized=normalize_tag_name(cleaned),
            is_suggested=is_suggested,
        )
        self.session.add(tag)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise Conflict(f"Tag '{cleaned}' already exists", details={"name": cleaned}) from exc

        logger.info(f"Created tag '{cleaned}' (suggested={is_suggested})")
        return tag

    async def get_or_create_tags(self, names: list[str]) -> list[Tag]:
        """
        Resolve tag names to tags, inserting unknown names as non-suggested.

        Names are matched case-insensitively and deduplicated within the
        request. Concurrent creators of the same name converge on one row.

        Returns:
            Tags in the order their names first appeared in the request
        """
        ordered: list[str] = []
        display: dict[str, str] = {}
        for name in names:
            cleaned = clean_tag_name(name)
            key = normalize_tag_name(cleaned)
            if key not in display:
                display[key] = cleaned
                ordered.append(key)

        if not ordered:
            return []

        now = utcnow()
        rows = [
            {
                "id": uuid4(),
                "name": display[key],
                "name_normalized": key,
                "is_suggested": False,
                "created_at": now,
            }
            for key in ordered
        ]
        stmt = dialect_insert(self.session, Tag).values(rows)
        stmt = stmt.on_conflict_do_nothing(index_elements=["name_normalized"])
        await self.session.execute(stmt)

        result = await self.session.execute(select(Tag).where(Tag.name_normalized.in_(ordered)))
        by_key = {tag.name_normalized: tag for tag in result.scalars().all()}
        return [by_key[key] for key in ordered]

    async def update_tag(
        self,
        tag_id: UUID,
        name: str | None = None,
        is_suggested: bool | None = None,
    ) -> Tag:
        tag = await self.get_tag(tag_id)

        if name is not None:
            cleaned = clean_tag_name(name)
            existing = await self._find_by_name(cleaned)
            if existing is not None and existing.id != tag.id:
                raise Conflict(f"Tag '{cleaned}' already exists", details={"name": cleaned})
            tag.name = cleaned
            tag.name_normalized = normalize_tag_name(cleaned)

        if is_suggested is not None:
            tag.is_suggested = is_suggested

        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise Conflict(f"Tag '{tag.name}' already exists") from exc
        return tag

    async def delete_tag(self, tag_id: UUID) -> None:
        tag = await self.get_tag(tag_id)
        # SQLite only enforces ON DELETE CASCADE with foreign_keys enabled
        await self.session.execute(delete(submission_tags).where(submission_tags.c.tag_id == tag.id))
        await self.session.delete(tag)
        await self.session.flush()
        logger.info(f"Deleted tag '{tag.name}'")

    async def search_tags(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[Tag]:
        """Case-insensitive substring search; suggested tags first, then by name."""
        needle = normalize_tag_name(query or "")
        stmt = select(Tag)
        if needle:
            stmt = stmt.where(Tag.name_normalized.contains(needle, autoescape=True))
        stmt = stmt.order_by(
            case((Tag.is_suggested.is_(True), 0), else_=1),
            Tag.name_normalized,
        ).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_tags(self, suggested_only: bool = False) -> list[Tag]:
        stmt = select(Tag)
        if suggested_only:
            stmt = stmt.where(Tag.is_suggested.is_(True))
        result = await self.session.execute(stmt.order_by(Tag.name_normalized))
        return list(result.scalars().all())

    async def similar_tags(
        self,
        name: str,
        threshold: int = DEFAULT_SIMILARITY_THRESHOLD,
    ) -> list[tuple[Tag, int]]:
        """
        Find existing tags that look like near-duplicates of ``name``.

        Uses fuzzy partial matching so "Node" flags "Node.js". Exact
        (case-insensitive) matches are excluded; those are conflicts.

        Args:
            name: Candidate tag name
            threshold: Minimum similarity score 0-100

        Returns:
            (tag, score) pairs, best match first
        """
        key = normalize_tag_name(name)
        if not key:
            return []

        matches = []
        for tag in await self.list_tags():
            if tag.name_normalized == key:
                continue
            score = max(
                fuzz.ratio(key, tag.name_normalized),
                fuzz.partial_ratio(key, tag.name_normalized),
            )
            if score >= threshold:
                matches.append((tag, score))

        matches.sort(key=lambda item: (-item[1], item[0].name_normalized))
        return matches
