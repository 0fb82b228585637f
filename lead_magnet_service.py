# lead_magnet_service.py

from typing import List, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

import validation
from audit import stamp_created, stamp_modified
from config import Settings, get_settings
from errors import NotFoundError, ValidationError
from models import Category, LeadMagnet
from ownership import authorize
from repositories import CategoryRepository, LeadMagnetRepository
from schemas import LeadMagnetDTO

logger = structlog.get_logger()


class LeadMagnetService:
    def __init__(self, session: AsyncSession, settings: Settings = None):
        self.settings = settings or get_settings()
        self.lead_magnets = LeadMagnetRepository(session)
        self.categories = CategoryRepository(session)

    async def get_by_id(self, lead_magnet_id: int) -> Optional[LeadMagnetDTO]:
        lead_magnet = await self.lead_magnets.get_by_id(lead_magnet_id)
        return LeadMagnetDTO.model_validate(lead_magnet) if lead_magnet else None

    async def list_by_category(self, category_id: int) -> List[LeadMagnetDTO]:
        validation.validate_category_id(category_id)
        return [LeadMagnetDTO.model_validate(lm) for lm in await self.lead_magnets.list_by_category(category_id)]

    async def list_active_by_category(self, category_id: int) -> List[LeadMagnetDTO]:
        validation.validate_category_id(category_id)
        return [
            LeadMagnetDTO.model_validate(lm)
            for lm in await self.lead_magnets.list_active_by_category(category_id)
        ]

    async def create(self, dto: LeadMagnetDTO, requester_id: Optional[str]) -> LeadMagnetDTO:
        fields = self._clean_fields(dto)
        await self._get_owned_category(dto.category_id, requester_id)

        lead_magnet = LeadMagnet(**fields)
        stamp_created(lead_magnet, requester_id)
        lead_magnet = await self.lead_magnets.add(lead_magnet)
        logger.info("Created lead magnet", lead_magnet_id=lead_magnet.id, category_id=lead_magnet.category_id)
        return LeadMagnetDTO.model_validate(lead_magnet)

    async def update(self, dto: LeadMagnetDTO, requester_id: Optional[str]) -> LeadMagnetDTO:
        if not dto.id or dto.id <= 0:
            raise ValidationError("Lead magnet ID is required for update.", field="id")
        fields = self._clean_fields(dto)

        existing = await self._get_existing(dto.id)
        # The requester must own both the current and the target category
        await self._get_owned_category(existing.category_id, requester_id)
        await self._get_owned_category(dto.category_id, requester_id)

        for key, value in fields.items():
            setattr(existing, key, value)
        stamp_modified(existing, requester_id)

        await self.lead_magnets.update(existing)
        logger.info("Updated lead magnet", lead_magnet_id=existing.id, user_id=requester_id)
        return LeadMagnetDTO.model_validate(existing)

    async def delete(self, lead_magnet_id: int, requester_id: Optional[str]) -> None:
        lead_magnet = await self._get_authorized(lead_magnet_id, requester_id)
        await self.lead_magnets.delete(lead_magnet)
        logger.info("Deleted lead magnet", lead_magnet_id=lead_magnet_id, user_id=requester_id)

    async def soft_delete(self, lead_magnet_id: int, requester_id: Optional[str]) -> None:
        lead_magnet = await self._get_authorized(lead_magnet_id, requester_id)
        lead_magnet.is_active = False
        stamp_modified(lead_magnet, requester_id)
        await self.lead_magnets.update(lead_magnet)
        logger.info("Deactivated lead magnet", lead_magnet_id=lead_magnet_id, user_id=requester_id)

    def _clean_fields(self, dto: LeadMagnetDTO) -> dict:
        validation.validate_lead_magnet_title(dto.title, self.settings)
        title = validation.sanitize_lead_magnet_title(dto.title, self.settings)
        validation.validate_lead_magnet_title(title, self.settings)
        validation.validate_form_action_url(dto.form_action_url, self.settings)
        validation.validate_download_file_url(dto.download_file_url, self.settings)
        validation.validate_category_id(dto.category_id)
        return {
            "title": title,
            "form_action_url": dto.form_action_url or None,
            "download_file_url": dto.download_file_url or None,
            "category_id": dto.category_id,
            "is_active": dto.is_active,
        }

    async def _get_existing(self, lead_magnet_id: int) -> LeadMagnet:
        lead_magnet = await self.lead_magnets.get_by_id(lead_magnet_id)
        if lead_magnet is None:
            raise NotFoundError(f"Lead magnet with ID {lead_magnet_id} not found.")
        return lead_magnet

    async def _get_authorized(self, lead_magnet_id: int, requester_id: Optional[str]) -> LeadMagnet:
        if lead_magnet_id is None or lead_magnet_id <= 0:
            raise ValidationError("Lead magnet ID must be greater than zero.", field="id")
        lead_magnet = await self._get_existing(lead_magnet_id)
        category = await self.categories.get_by_id(lead_magnet.category_id)
        authorize(
            category.user_id if category else None,
            requester_id,
            "Lead magnet does not belong to the authenticated user.",
        )
        return lead_magnet

    async def _get_owned_category(self, category_id: int, requester_id: Optional[str]) -> Category:
        category = await self.categories.get_by_id(category_id)
        if category is None:
            raise NotFoundError("Category not found.")
        authorize(category.user_id, requester_id, "Category does not belong to the authenticated user.")
        return category
