# test_lead_magnet_service.py

import pytest
import pytest_asyncio

from errors import AuthorizationError, NotFoundError, ValidationError
from schemas import CategoryDTO, LeadMagnetDTO


@pytest_asyncio.fixture
async def alice_category(category_service, users):
    return await category_service.create(CategoryDTO(name="Budgeting", user_id=users.alice), users.alice)


@pytest_asyncio.fixture
async def bob_category(category_service, users):
    return await category_service.create(CategoryDTO(name="Travel", user_id=users.bob), users.bob)


def magnet(category_id, **kwargs) -> LeadMagnetDTO:
    kwargs.setdefault("title", "Free Budget Template")
    return LeadMagnetDTO(category_id=category_id, **kwargs)


@pytest.mark.asyncio
async def test_create_lead_magnet(lead_magnet_service, users, alice_category):
    created = await lead_magnet_service.create(
        magnet(
            alice_category.id,
            title="<script>steal()</script>Free Budget Template",
            form_action_url="https://forms.example.com/subscribe",
            download_file_url="https://files.example.com/template.xlsx",
        ),
        users.alice,
    )
    assert created.id > 0
    assert created.title == "Free Budget Template"
    assert created.form_action_url == "https://forms.example.com/subscribe"
    assert created.is_active
    assert created.created_by == users.alice


@pytest.mark.asyncio
async def test_create_on_other_users_category_is_forbidden(lead_magnet_service, users, bob_category):
    with pytest.raises(AuthorizationError):
        await lead_magnet_service.create(magnet(bob_category.id), users.alice)


@pytest.mark.asyncio
async def test_create_validates_input(lead_magnet_service, users, alice_category):
    with pytest.raises(ValidationError, match="title is required"):
        await lead_magnet_service.create(magnet(alice_category.id, title=""), users.alice)
    with pytest.raises(ValidationError, match="cannot exceed 255"):
        await lead_magnet_service.create(magnet(alice_category.id, title="x" * 256), users.alice)
    with pytest.raises(ValidationError, match="Form action URL"):
        await lead_magnet_service.create(magnet(alice_category.id, form_action_url="/subscribe"), users.alice)
    with pytest.raises(ValidationError, match="Download file URL"):
        await lead_magnet_service.create(
            magnet(alice_category.id, download_file_url="javascript:alert(1)"), users.alice
        )
    with pytest.raises(ValidationError, match="greater than zero"):
        await lead_magnet_service.create(magnet(0), users.alice)
    with pytest.raises(NotFoundError, match="Category not found"):
        await lead_magnet_service.create(magnet(9999), users.alice)


@pytest.mark.asyncio
async def test_listings(lead_magnet_service, users, alice_category):
    first = await lead_magnet_service.create(magnet(alice_category.id, title="A checklist"), users.alice)
    await lead_magnet_service.create(magnet(alice_category.id, title="B workbook"), users.alice)
    await lead_magnet_service.soft_delete(first.id, users.alice)

    assert [lm.title for lm in await lead_magnet_service.list_by_category(alice_category.id)] == [
        "A checklist",
        "B workbook",
    ]
    assert [lm.title for lm in await lead_magnet_service.list_active_by_category(alice_category.id)] == [
        "B workbook"
    ]
    with pytest.raises(ValidationError):
        await lead_magnet_service.list_by_category(0)
    assert await lead_magnet_service.get_by_id(9999) is None


@pytest.mark.asyncio
async def test_update_lead_magnet(lead_magnet_service, category_service, users, alice_category):
    created = await lead_magnet_service.create(magnet(alice_category.id), users.alice)
    second = await category_service.create(CategoryDTO(name="Saving", user_id=users.alice), users.alice)

    updated = await lead_magnet_service.update(
        created.model_copy(update={"title": "New title", "category_id": second.id, "is_active": False}),
        users.alice,
    )
    assert updated.title == "New title"
    assert updated.category_id == second.id
    assert not updated.is_active
    assert updated.modified_by == users.alice


@pytest.mark.asyncio
async def test_update_checks_owner_and_existence(lead_magnet_service, users, alice_category, bob_category):
    created = await lead_magnet_service.create(magnet(alice_category.id), users.alice)

    with pytest.raises(ValidationError, match="ID is required"):
        await lead_magnet_service.update(magnet(alice_category.id), users.alice)
    with pytest.raises(NotFoundError):
        await lead_magnet_service.update(created.model_copy(update={"id": 9999}), users.alice)
    with pytest.raises(AuthorizationError):
        await lead_magnet_service.update(created, users.bob)
    # Moving into someone else's category is refused too
    with pytest.raises(AuthorizationError):
        await lead_magnet_service.update(created.model_copy(update={"category_id": bob_category.id}), users.alice)


@pytest.mark.asyncio
async def test_delete_and_soft_delete(lead_magnet_service, users, alice_category):
    created = await lead_magnet_service.create(magnet(alice_category.id), users.alice)

    with pytest.raises(AuthorizationError):
        await lead_magnet_service.soft_delete(created.id, users.bob)
    with pytest.raises(AuthorizationError):
        await lead_magnet_service.delete(created.id, None)
    with pytest.raises(ValidationError):
        await lead_magnet_service.delete(0, users.alice)
    with pytest.raises(NotFoundError):
        await lead_magnet_service.delete(9999, users.alice)

    await lead_magnet_service.soft_delete(created.id, users.alice)
    assert not (await lead_magnet_service.get_by_id(created.id)).is_active

    await lead_magnet_service.delete(created.id, users.alice)
    assert await lead_magnet_service.get_by_id(created.id) is None
