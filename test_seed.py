# test_seed.py

import pytest

from category_service import CategoryService
from identity_store import UserStore
from post_service import PostService
from seed import SAMPLE_CATEGORIES, SAMPLE_POSTS, seed_database


@pytest.mark.asyncio
async def test_seed_creates_admin_once(session, settings):
    await seed_database(session, settings)
    await seed_database(session, settings)

    admin = await UserStore(session, settings=settings).find_by_email(settings.admin_email)
    assert admin is not None
    assert admin.created_by == "System"


@pytest.mark.asyncio
async def test_seed_sample_data(session, settings):
    await seed_database(session, settings, sample_data=True)
    await seed_database(session, settings, sample_data=True)

    admin = await UserStore(session, settings=settings).find_by_email(settings.admin_email)
    categories = await CategoryService(session, settings).list_by_user(admin.id)
    assert len(categories) == len(SAMPLE_CATEGORIES)

    published = await PostService(session, settings).list_published()
    assert {p.slug for p in published} == {slug for _, slug, _, _ in SAMPLE_POSTS}
