# post_service.py

from typing import List, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

import validation
from audit import stamp_created, stamp_modified, to_naive_utc, utcnow
from config import Settings, get_settings
from errors import ConflictError, NotFoundError, ValidationError
from models import Post
from ownership import authorize, is_owner
from repositories import CategoryRepository, PostRepository
from schemas import PostDTO

logger = structlog.get_logger()


def is_visible(post: Post, now=None) -> bool:
    """A post is public iff it is published and its publication date has passed."""
    now = now or utcnow()
    return bool(post.is_published) and post.publication_date is not None and post.publication_date <= now


class PostService:
    """Blog posts: drafts, scheduled and published content."""

    def __init__(self, session: AsyncSession, settings: Settings = None):
        self.settings = settings or get_settings()
        self.posts = PostRepository(session)
        self.categories = CategoryRepository(session)

    # --- Queries ---

    async def get_by_id(self, post_id: int, requester_id: Optional[str] = None) -> Optional[PostDTO]:
        """Return the post, hiding drafts from everyone but their author.

        A hidden draft looks exactly like a missing post so its existence does
        not leak.
        """
        post = await self.posts.get_by_id(post_id)
        if post is None:
            return None
        if not post.is_published and not is_owner(post.author_id, requester_id):
            return None
        return PostDTO.model_validate(post)

    async def get_by_slug(self, slug: str) -> Optional[PostDTO]:
        post = await self.posts.get_by_slug(slug)
        if post is not None and is_visible(post):
            return PostDTO.model_validate(post)
        return None

    async def list_published(self) -> List[PostDTO]:
        return self._to_dtos(await self.posts.list_published())

    async def list_recent_published(self, count: int) -> List[PostDTO]:
        validation.validate_recent_count(count, self.settings)
        return self._to_dtos(await self.posts.list_published(limit=count))

    async def list_published_by_category(self, category_id: int) -> List[PostDTO]:
        await self._get_category(category_id)
        return self._to_dtos(await self.posts.list_published_by_category_ids([category_id]))

    async def list_recent_published_by_category(self, category_id: int, count: int) -> List[PostDTO]:
        validation.validate_recent_count(count, self.settings)
        await self._get_category(category_id)
        return self._to_dtos(await self.posts.list_published_by_category_ids([category_id], limit=count))

    async def list_published_by_category_and_descendants(self, parent_category_id: int) -> List[PostDTO]:
        # Descendants are the direct children only
        await self._get_category(parent_category_id)
        children = await self.categories.list_children(parent_category_id)
        category_ids = [parent_category_id] + [child.id for child in children]
        return self._to_dtos(await self.posts.list_published_by_category_ids(category_ids))

    async def list_by_author(self, author_id: str, requester_id: Optional[str]) -> List[PostDTO]:
        authorize(author_id, requester_id, "Posts of another author cannot be listed.")
        return self._to_dtos(await self.posts.list_by_author(author_id))

    async def list_drafts_by_author(self, author_id: str, requester_id: Optional[str]) -> List[PostDTO]:
        authorize(author_id, requester_id, "Drafts of another author cannot be listed.")
        return self._to_dtos(await self.posts.list_drafts_by_author(author_id))

    async def search_published(self, term: Optional[str], max_results: int = None) -> List[PostDTO]:
        if max_results is None:
            max_results = self.settings.search_max_results
        max_results = min(max_results, self.settings.search_max_results)
        return self._to_dtos(await self.posts.search_published(term, max_results))

    # --- Mutations ---

    async def create(self, dto: PostDTO, requester_id: Optional[str]) -> PostDTO:
        validation.validate_post_title(dto.title, self.settings)
        validation.validate_slug(dto.slug, settings=self.settings)
        if await self.posts.check_slug_exists(dto.slug):
            raise ConflictError("A post with this slug already exists.")

        if not dto.author_id or not dto.author_id.strip():
            raise ValidationError("AuthorId is required.", field="author_id")
        authorize(dto.author_id, requester_id, "AuthorId must match the authenticated user.")

        fields = await self._clean_fields(dto, dto.author_id)
        post = Post(author_id=dto.author_id, **fields)
        stamp_created(post, requester_id)
        post = await self.posts.add(post)
        logger.info("Created post", post_id=post.id, slug=post.slug, author_id=post.author_id)
        return PostDTO.model_validate(post)

    async def update(self, dto: PostDTO, requester_id: Optional[str]) -> PostDTO:
        if not dto.id or dto.id <= 0:
            raise ValidationError("Post ID is required for update.", field="id")
        validation.validate_post_title(dto.title, self.settings)
        validation.validate_slug(dto.slug, settings=self.settings)

        existing = await self._get_existing(dto.id)
        authorize(existing.author_id, dto.author_id, "Post AuthorId cannot be changed.")
        authorize(existing.author_id, requester_id, "Post does not belong to the authenticated user.")

        if await self.posts.check_slug_exists(dto.slug, exclude_id=existing.id):
            raise ConflictError("A post with this slug already exists.")

        fields = await self._clean_fields(dto, existing.author_id)
        for key, value in fields.items():
            setattr(existing, key, value)
        stamp_modified(existing, requester_id)

        await self.posts.update(existing)
        logger.info("Updated post", post_id=existing.id, author_id=requester_id)
        return PostDTO.model_validate(existing)

    async def delete(self, post_id: int, requester_id: Optional[str]) -> None:
        post = await self._get_existing(post_id)
        authorize(post.author_id, requester_id, "Post does not belong to the authenticated user.")
        await self.posts.delete(post)
        logger.info("Deleted post", post_id=post_id, author_id=requester_id)

    async def publish(self, post_id: int, requester_id: Optional[str]) -> PostDTO:
        """Publish a post; an unset or past publication date becomes now, a future one is kept."""
        post = await self._get_existing(post_id)
        authorize(post.author_id, requester_id, "Post does not belong to the authenticated user.")

        now = utcnow()
        post.is_published = True
        if post.publication_date is None or post.publication_date < now:
            post.publication_date = now
        stamp_modified(post, requester_id)

        await self.posts.update(post)
        logger.info("Published post", post_id=post.id, publication_date=post.publication_date.isoformat())
        return PostDTO.model_validate(post)

    async def unpublish(self, post_id: int, requester_id: Optional[str]) -> PostDTO:
        post = await self._get_existing(post_id)
        authorize(post.author_id, requester_id, "Post does not belong to the authenticated user.")

        post.is_published = False
        stamp_modified(post, requester_id)

        await self.posts.update(post)
        logger.info("Unpublished post", post_id=post.id)
        return PostDTO.model_validate(post)

    # --- Helpers ---

    async def _clean_fields(self, dto: PostDTO, author_id: str) -> dict:
        if dto.category_id is not None:
            category = await self.categories.get_by_id(dto.category_id)
            if category is None:
                raise NotFoundError("Category not found.")
            authorize(category.user_id, author_id, "Category does not belong to the same user.")

        validation.validate_meta_description(dto.meta_description, settings=self.settings)
        validation.validate_image_url(dto.featured_image_url, self.settings)

        content_body = dto.content_body if dto.content_body and dto.content_body.strip() else None
        publication_date = to_naive_utc(dto.publication_date)
        if dto.is_published and publication_date is None:
            publication_date = utcnow()
        return {
            "title": dto.title,
            "slug": dto.slug,
            "category_id": dto.category_id,
            "content_body": validation.sanitize_content_body(content_body, self.settings),
            "featured_image_url": dto.featured_image_url or None,
            "meta_description": dto.meta_description or None,
            "publication_date": publication_date,
            "is_published": dto.is_published,
        }

    async def _get_existing(self, post_id: int) -> Post:
        post = await self.posts.get_by_id(post_id)
        if post is None:
            raise NotFoundError(f"Post with ID {post_id} not found.")
        return post

    async def _get_category(self, category_id: int):
        category = await self.categories.get_by_id(category_id)
        if category is None:
            raise NotFoundError(f"Category with ID {category_id} not found.")
        return category

    @staticmethod
    def _to_dtos(posts) -> List[PostDTO]:
        return [PostDTO.model_validate(post) for post in posts]
