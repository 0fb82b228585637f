# repositories.py

from datetime import datetime
from typing import Iterable, List, Optional, Tuple

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from audit import utcnow
from errors import ConflictError
from models import Category, LeadMagnet, Post, User

logger = structlog.get_logger()


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class Repository:
    """Record get/insert/update/delete over one mapped class.

    Every write commits, so one service call is one unit of work. Unique
    constraint violations come back as ConflictError.
    """

    model = None
    conflict_message = "The record conflicts with an existing one."

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, entity_id):
        return await self.session.get(self.model, entity_id)

    async def add(self, entity):
        self.session.add(entity)
        await self._commit()
        await self.session.refresh(entity)
        return entity

    async def update(self, entity):
        await self._commit()
        return entity

    async def delete(self, entity) -> None:
        await self.session.delete(entity)
        await self._commit()

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.warning("Integrity error on commit", model=self.model.__name__, error=str(exc.orig))
            raise ConflictError(self.conflict_message) from exc

    async def _all(self, stmt) -> List:
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class UserRepository(Repository):
    model = User
    conflict_message = "A user with this email already exists."

    async def find_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        result = await self.session.execute(stmt)
        return result.scalars().first()


class CategoryRepository(Repository):
    model = Category
    conflict_message = "A category with this name or slug already exists."

    async def list_by_user(self, user_id: str) -> List[Category]:
        return await self._all(select(Category).where(Category.user_id == user_id).order_by(Category.name))

    async def list_active_by_user(self, user_id: str) -> List[Category]:
        stmt = (
            select(Category)
            .where(Category.user_id == user_id, Category.is_active.is_(True))
            .order_by(Category.name)
        )
        return await self._all(stmt)

    async def list_root_by_user(self, user_id: str) -> List[Category]:
        stmt = (
            select(Category)
            .where(Category.user_id == user_id, Category.parent_category_id.is_(None))
            .order_by(Category.name)
        )
        return await self._all(stmt)

    async def list_children(self, parent_category_id: int) -> List[Category]:
        stmt = (
            select(Category)
            .where(Category.parent_category_id == parent_category_id)
            .order_by(Category.name)
        )
        return await self._all(stmt)

    async def get_ancestor_ids(self, category_id: int) -> List[int]:
        """Ids on the parent chain above category_id, nearest first."""
        ancestors: List[int] = []
        seen = {category_id}
        current = await self.get_by_id(category_id)
        while current is not None and current.parent_category_id is not None:
            parent_id = current.parent_category_id
            if parent_id in seen:
                # Stored data already loops; stop rather than spin
                ancestors.append(parent_id)
                break
            ancestors.append(parent_id)
            seen.add(parent_id)
            current = await self.get_by_id(parent_id)
        return ancestors

    async def check_slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(Category.id).where(Category.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        result = await self.session.execute(stmt.limit(1))
        return result.first() is not None

    async def get_dependent_counts(self, category_id: int) -> Tuple[int, int]:
        post_count = await self.session.scalar(
            select(func.count()).select_from(Post).where(Post.category_id == category_id)
        )
        lead_magnet_count = await self.session.scalar(
            select(func.count()).select_from(LeadMagnet).where(LeadMagnet.category_id == category_id)
        )
        return post_count or 0, lead_magnet_count or 0

    async def delete(self, entity) -> None:
        await super().delete(entity)
        # The store cleared category_id on posts; drop the stale cached copies
        self.session.expire_all()


class PostRepository(Repository):
    model = Post
    conflict_message = "A post with this slug already exists."

    @staticmethod
    def _visible(now: Optional[datetime] = None):
        now = now or utcnow()
        return (
            Post.is_published.is_(True),
            Post.publication_date.is_not(None),
            Post.publication_date <= now,
        )

    async def get_by_slug(self, slug: str) -> Optional[Post]:
        result = await self.session.execute(select(Post).where(Post.slug == slug))
        return result.scalars().first()

    async def list_published(self, limit: Optional[int] = None) -> List[Post]:
        stmt = select(Post).where(*self._visible()).order_by(Post.publication_date.desc(), Post.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._all(stmt)

    async def list_published_by_category_ids(self, category_ids: Iterable[int],
                                             limit: Optional[int] = None) -> List[Post]:
        ids = list(category_ids)
        if not ids:
            return []
        stmt = (
            select(Post)
            .where(*self._visible(), Post.category_id.in_(ids))
            .order_by(Post.publication_date.desc(), Post.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._all(stmt)

    async def list_by_author(self, author_id: str) -> List[Post]:
        stmt = (
            select(Post)
            .where(Post.author_id == author_id)
            .order_by(Post.publication_date.desc(), Post.id.desc())
        )
        return await self._all(stmt)

    async def list_drafts_by_author(self, author_id: str) -> List[Post]:
        stmt = (
            select(Post)
            .where(Post.author_id == author_id, Post.is_published.is_(False))
            .order_by(Post.created_date.desc(), Post.id.desc())
        )
        return await self._all(stmt)

    async def search_published(self, term: str, max_results: int) -> List[Post]:
        term = (term or "").strip()
        if not term or max_results <= 0:
            return []
        pattern = f"%{_escape_like(term)}%"
        stmt = (
            select(Post)
            .where(
                *self._visible(),
                or_(
                    Post.title.ilike(pattern, escape="\\"),
                    Post.slug.ilike(pattern, escape="\\"),
                    Post.meta_description.ilike(pattern, escape="\\"),
                    Post.content_body.ilike(pattern, escape="\\"),
                ),
            )
            .order_by(Post.publication_date.desc(), Post.id.desc())
            .limit(max_results)
        )
        return await self._all(stmt)

    async def check_slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(Post.id).where(Post.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(Post.id != exclude_id)
        result = await self.session.execute(stmt.limit(1))
        return result.first() is not None


class LeadMagnetRepository(Repository):
    model = LeadMagnet

    async def list_by_category(self, category_id: int) -> List[LeadMagnet]:
        stmt = select(LeadMagnet).where(LeadMagnet.category_id == category_id).order_by(LeadMagnet.title)
        return await self._all(stmt)

    async def list_active_by_category(self, category_id: int) -> List[LeadMagnet]:
        stmt = (
            select(LeadMagnet)
            .where(LeadMagnet.category_id == category_id, LeadMagnet.is_active.is_(True))
            .order_by(LeadMagnet.title)
        )
        return await self._all(stmt)
