# seed.py

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from category_service import CategoryService
from config import Settings, get_settings
from identity_store import UserStore
from models import User
from post_service import PostService
from schemas import CategoryDTO, PostDTO

logger = structlog.get_logger()

SAMPLE_CATEGORIES = [
    ("Budgeting", "budgeting", "Tips and strategies for effective budgeting", "#4CAF50"),
    ("Saving Money", "saving-money", "Ways to save money on everyday expenses", "#2196F3"),
    ("Investing", "investing", "Introduction to investing and growing wealth", "#FF9800"),
]

SAMPLE_POSTS = [
    ("Getting Started with Budgeting", "getting-started-with-budgeting", "budgeting",
     "<p>A budget is a plan for every dollar you earn.</p>"),
    ("Ten Ways to Cut Grocery Costs", "ten-ways-to-cut-grocery-costs", "saving-money",
     "<p>Plan meals, buy in bulk and skip pre-cut produce.</p>"),
]


async def seed_admin_user(session: AsyncSession, settings: Settings) -> User:
    store = UserStore(session, settings=settings)
    existing = await store.find_by_email(settings.admin_email)
    if existing is not None:
        logger.debug("Admin user already exists, skipping", email=settings.admin_email)
        return existing

    user = await store.create_user(
        email=settings.admin_email,
        password=settings.admin_password,
        first_name=settings.admin_first_name,
        last_name=settings.admin_last_name,
    )
    logger.info("Created admin user", email=user.email)
    return user


async def seed_sample_data(session: AsyncSession, settings: Settings, owner: User) -> None:
    categories = CategoryService(session, settings)
    if await categories.list_by_user(owner.id):
        logger.debug("Sample categories already present, skipping", user_id=owner.id)
        return

    category_ids = {}
    for name, slug, description, color in SAMPLE_CATEGORIES:
        created = await categories.create(
            CategoryDTO(name=name, slug=slug, description=description, color=color, user_id=owner.id),
            owner.id,
        )
        category_ids[slug] = created.id

    posts = PostService(session, settings)
    for title, slug, category_slug, body in SAMPLE_POSTS:
        created = await posts.create(
            PostDTO(
                title=title,
                slug=slug,
                content_body=body,
                author_id=owner.id,
                category_id=category_ids[category_slug],
            ),
            owner.id,
        )
        await posts.publish(created.id, owner.id)
    logger.info("Seeded sample data", categories=len(category_ids), posts=len(SAMPLE_POSTS))


async def seed_database(session: AsyncSession, settings: Settings = None, sample_data: bool = False) -> None:
    settings = settings or get_settings()
    logger.info("Starting database seeding")
    try:
        admin = await seed_admin_user(session, settings)
        if sample_data:
            await seed_sample_data(session, settings, admin)
    except Exception:
        logger.exception("An error occurred while seeding the database")
        raise
    logger.info("Database seeding completed")
