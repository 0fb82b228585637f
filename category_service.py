# category_service.py

from typing import List, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

import validation
from audit import stamp_created, stamp_modified
from config import Settings, get_settings
from errors import ConflictError, NotFoundError, ValidationError
from models import Category
from ownership import authorize
from repositories import CategoryRepository
from schemas import CategoryDependents, CategoryDTO

logger = structlog.get_logger()


class CategoryService:
    """Hierarchical, per-user categories."""

    def __init__(self, session: AsyncSession, settings: Settings = None):
        self.settings = settings or get_settings()
        self.categories = CategoryRepository(session)

    # --- Queries ---

    async def get_by_id(self, category_id: int) -> Optional[CategoryDTO]:
        category = await self.categories.get_by_id(category_id)
        return CategoryDTO.model_validate(category) if category else None

    async def list_by_user(self, user_id: str) -> List[CategoryDTO]:
        return [CategoryDTO.model_validate(c) for c in await self.categories.list_by_user(user_id)]

    async def list_active_by_user(self, user_id: str) -> List[CategoryDTO]:
        return [CategoryDTO.model_validate(c) for c in await self.categories.list_active_by_user(user_id)]

    async def list_root_by_user(self, user_id: str) -> List[CategoryDTO]:
        return [CategoryDTO.model_validate(c) for c in await self.categories.list_root_by_user(user_id)]

    async def list_children(self, parent_category_id: int) -> List[CategoryDTO]:
        return [CategoryDTO.model_validate(c) for c in await self.categories.list_children(parent_category_id)]

    async def get_dependent_counts(self, category_id: int) -> CategoryDependents:
        await self._get_existing(category_id)
        post_count, lead_magnet_count = await self.categories.get_dependent_counts(category_id)
        return CategoryDependents(post_count=post_count, lead_magnet_count=lead_magnet_count)

    # --- Mutations ---

    async def create(self, dto: CategoryDTO, requester_id: Optional[str]) -> CategoryDTO:
        fields = self._clean_fields(dto)
        validation.validate_user_id(dto.user_id, self.settings)
        authorize(dto.user_id, requester_id, "UserId must match the authenticated user.")

        await self._ensure_slug_free(fields["slug"])
        if dto.parent_category_id is not None:
            await self._get_parent(dto.parent_category_id, dto.user_id)

        category = Category(
            user_id=dto.user_id,
            parent_category_id=dto.parent_category_id,
            is_active=dto.is_active,
            **fields,
        )
        stamp_created(category, requester_id)
        category = await self.categories.add(category)
        logger.info("Created category", category_id=category.id, user_id=category.user_id)
        return CategoryDTO.model_validate(category)

    async def update(self, dto: CategoryDTO, requester_id: Optional[str]) -> CategoryDTO:
        if not dto.id or dto.id <= 0:
            raise ValidationError("Category ID is required for update.", field="id")

        fields = self._clean_fields(dto)
        validation.validate_user_id(dto.user_id, self.settings)

        existing = await self._get_existing(dto.id)
        authorize(existing.user_id, dto.user_id, "Category does not belong to the specified user.")
        authorize(existing.user_id, requester_id, "Category does not belong to the authenticated user.")
        if "slug" not in dto.model_fields_set:
            # Omitted slug keeps the stored one; an explicit null clears it
            fields["slug"] = existing.slug

        if dto.parent_category_id is not None:
            validation.validate_parent_category(dto.id, dto.parent_category_id)
            await self._get_parent(dto.parent_category_id, existing.user_id)
            ancestors = await self.categories.get_ancestor_ids(dto.parent_category_id)
            if dto.id in ancestors:
                raise ValidationError(
                    "Cannot set parent category as it would create a circular reference.",
                    field="parent_category_id",
                )

        await self._ensure_slug_free(fields["slug"], exclude_id=existing.id)

        for key, value in fields.items():
            setattr(existing, key, value)
        existing.parent_category_id = dto.parent_category_id
        existing.is_active = dto.is_active
        stamp_modified(existing, requester_id)

        await self.categories.update(existing)
        logger.info("Updated category", category_id=existing.id, user_id=requester_id)
        return CategoryDTO.model_validate(existing)

    async def delete(self, category_id: int, requester_id: Optional[str]) -> None:
        category = await self._get_existing(category_id)
        authorize(category.user_id, requester_id, "Category does not belong to the authenticated user.")

        if await self.categories.list_children(category_id):
            raise ConflictError(
                "Cannot delete category that has child categories. "
                "Please delete or reassign child categories first."
            )
        _, lead_magnet_count = await self.categories.get_dependent_counts(category_id)
        if lead_magnet_count:
            raise ConflictError(
                "Cannot delete category that has lead magnets. "
                "Please delete or move its lead magnets first."
            )

        await self.categories.delete(category)
        logger.info("Deleted category", category_id=category_id, user_id=requester_id)

    async def soft_delete(self, category_id: int, requester_id: Optional[str]) -> None:
        category = await self._get_existing(category_id)
        authorize(category.user_id, requester_id, "Category does not belong to the authenticated user.")

        category.is_active = False
        stamp_modified(category, requester_id)
        await self.categories.update(category)
        logger.info("Deactivated category", category_id=category_id, user_id=requester_id)

    # --- Helpers ---

    def _clean_fields(self, dto: CategoryDTO) -> dict:
        """Validate the editable text fields and return their sanitized values."""
        validation.validate_name(dto.name, self.settings)
        validation.validate_description(dto.description, self.settings)
        validation.validate_color(dto.color, self.settings)

        slug = dto.slug if dto.slug and dto.slug.strip() else None
        if slug is not None:
            validation.validate_slug(slug, self.settings.category_slug_max_length, self.settings)

        name = validation.sanitize_name(dto.name, self.settings)
        # A name made only of stripped markup is still missing
        validation.validate_name(name, self.settings)

        description = dto.description if dto.description and dto.description.strip() else None
        return {
            "name": name,
            "description": validation.sanitize_description(description, self.settings),
            "color": dto.color if dto.color and dto.color.strip() else None,
            "slug": slug,
        }

    async def _get_existing(self, category_id: int) -> Category:
        category = await self.categories.get_by_id(category_id)
        if category is None:
            raise NotFoundError(f"Category with ID {category_id} not found.")
        return category

    async def _get_parent(self, parent_category_id: int, owner_id: str) -> Category:
        parent = await self.categories.get_by_id(parent_category_id)
        if parent is None:
            raise NotFoundError("Parent category not found.")
        authorize(parent.user_id, owner_id, "Parent category does not belong to the specified user.")
        return parent

    async def _ensure_slug_free(self, slug: Optional[str], exclude_id: Optional[int] = None) -> None:
        if slug and await self.categories.check_slug_exists(slug, exclude_id):
            raise ConflictError("A category with this slug already exists.")
