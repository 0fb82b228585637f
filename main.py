# main.py

from contextlib import asynccontextmanager
from typing import List, Optional

import structlog
from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from category_service import CategoryService
from config import get_settings
from database import AsyncSessionLocal, create_tables, engine, get_db
from errors import ContentError, NotFoundError
from identity_service import IdentityService
from identity_store import SessionState, UserStore
from lead_magnet_service import LeadMagnetService
from logging_config import configure_logging
from post_service import PostService
from schemas import (
    CategoryDependents,
    CategoryDTO,
    LeadMagnetDTO,
    LoginRequest,
    LoginResult,
    PostDTO,
    UserInfo,
)
from seed import seed_database

configure_logging()
logger = structlog.get_logger()

# --- Lifespan Management (for DB setup/teardown) ---


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("Application startup: creating database tables")
    await create_tables()
    if settings.seed_on_startup:
        async with AsyncSessionLocal() as session:
            await seed_database(session, settings, sample_data=settings.seed_sample_data)
    yield
    logger.info("Application shutdown")
    await engine.dispose()


# --- FastAPI App ---

app = FastAPI(lifespan=lifespan, title="Content API", version="1.0.0")


@app.exception_handler(ContentError)
async def content_error_handler(request: Request, exc: ContentError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_public_dict())


# --- Dependencies ---

# Session cookies are handled in front of this app; it only sees the resolved user id
async def get_requester_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    return x_user_id or None


async def get_category_service(session: AsyncSession = Depends(get_db)) -> CategoryService:
    return CategoryService(session)


async def get_post_service(session: AsyncSession = Depends(get_db)) -> PostService:
    return PostService(session)


async def get_lead_magnet_service(session: AsyncSession = Depends(get_db)) -> LeadMagnetService:
    return LeadMagnetService(session)


async def get_identity_service(
    session: AsyncSession = Depends(get_db),
    requester_id: Optional[str] = Depends(get_requester_id),
) -> IdentityService:
    return IdentityService(UserStore(session, SessionState(user_id=requester_id)))


def _found(item, label: str, item_id):
    if item is None:
        raise NotFoundError(f"{label} with ID {item_id} not found.")
    return item


# --- Category Endpoints ---

@app.get("/categories/{category_id}", response_model=CategoryDTO)
async def read_category(category_id: int, service: CategoryService = Depends(get_category_service)):
    return _found(await service.get_by_id(category_id), "Category", category_id)


@app.get("/users/{user_id}/categories", response_model=List[CategoryDTO])
async def read_user_categories(
    user_id: str,
    scope: str = Query("all", pattern="^(all|active|root)$", description="all, active or root categories"),
    service: CategoryService = Depends(get_category_service),
):
    if scope == "active":
        return await service.list_active_by_user(user_id)
    if scope == "root":
        return await service.list_root_by_user(user_id)
    return await service.list_by_user(user_id)


@app.get("/categories/{category_id}/children", response_model=List[CategoryDTO])
async def read_child_categories(category_id: int, service: CategoryService = Depends(get_category_service)):
    return await service.list_children(category_id)


@app.get("/categories/{category_id}/dependents", response_model=CategoryDependents)
async def read_category_dependents(category_id: int, service: CategoryService = Depends(get_category_service)):
    return await service.get_dependent_counts(category_id)


@app.post("/categories", response_model=CategoryDTO, status_code=201)
async def create_category(
    dto: CategoryDTO,
    requester_id: Optional[str] = Depends(get_requester_id),
    service: CategoryService = Depends(get_category_service),
):
    return await service.create(dto, requester_id)


@app.put("/categories/{category_id}", response_model=CategoryDTO)
async def update_category(
    category_id: int,
    dto: CategoryDTO,
    requester_id: Optional[str] = Depends(get_requester_id),
    service: CategoryService = Depends(get_category_service),
):
    return await service.update(dto.model_copy(update={"id": category_id}), requester_id)


@app.delete("/categories/{category_id}", status_code=204)
async def delete_category(
    category_id: int,
    requester_id: Optional[str] = Depends(get_requester_id),
    service: CategoryService = Depends(get_category_service),
):
    await service.delete(category_id, requester_id)


@app.post("/categories/{category_id}/deactivate", status_code=204)
async def deactivate_category(
    category_id: int,
    requester_id: Optional[str] = Depends(get_requester_id),
    service: CategoryService = Depends(get_category_service),
):
    await service.soft_delete(category_id, requester_id)


# --- Post Endpoints ---

@app.get("/posts/", response_model=List[PostDTO])
async def read_published_posts(service: PostService = Depends(get_post_service)):
    return await service.list_published()


@app.get("/posts/recent", response_model=List[PostDTO])
async def read_recent_posts(
    count: int = Query(10, description="Number of posts"),
    service: PostService = Depends(get_post_service),
):
    return await service.list_recent_published(count)


@app.get("/posts/search", response_model=List[PostDTO])
async def search_posts(
    q: str = Query("", description="Case-insensitive search in title, slug, meta description and body"),
    max_results: Optional[int] = Query(None, ge=1, description="Result cap"),
    service: PostService = Depends(get_post_service),
):
    return await service.search_published(q, max_results)


@app.get("/posts/slug/{slug}", response_model=PostDTO)
async def read_post_by_slug(slug: str, service: PostService = Depends(get_post_service)):
    post = await service.get_by_slug(slug)
    if post is None:
        raise NotFoundError(f"Post '{slug}' not found.")
    return post


@app.get("/posts/{post_id}", response_model=PostDTO)
async def read_post(
    post_id: int,
    requester_id: Optional[str] = Depends(get_requester_id),
    service: PostService = Depends(get_post_service),
):
    return _found(await service.get_by_id(post_id, requester_id), "Post", post_id)


@app.get("/categories/{category_id}/posts", response_model=List[PostDTO])
async def read_category_posts(
    category_id: int,
    include_descendants: bool = Query(False, description="Include posts of direct child categories"),
    recent: Optional[int] = Query(None, description="Only the N most recent posts"),
    service: PostService = Depends(get_post_service),
):
    if include_descendants:
        return await service.list_published_by_category_and_descendants(category_id)
    if recent is not None:
        return await service.list_recent_published_by_category(category_id, recent)
    return await service.list_published_by_category(category_id)


@app.get("/users/{author_id}/posts", response_model=List[PostDTO])
async def read_author_posts(
    author_id: str,
    drafts: bool = Query(False, description="Only unpublished drafts"),
    requester_id: Optional[str] = Depends(get_requester_id),
    service: PostService = Depends(get_post_service),
):
    if drafts:
        return await service.list_drafts_by_author(author_id, requester_id)
    return await service.list_by_author(author_id, requester_id)


@app.post("/posts", response_model=PostDTO, status_code=201)
async def create_post(
    dto: PostDTO,
    requester_id: Optional[str] = Depends(get_requester_id),
    service: PostService = Depends(get_post_service),
):
    return await service.create(dto, requester_id)


@app.put("/posts/{post_id}", response_model=PostDTO)
async def update_post(
    post_id: int,
    dto: PostDTO,
    requester_id: Optional[str] = Depends(get_requester_id),
    service: PostService = Depends(get_post_service),
):
    return await service.update(dto.model_copy(update={"id": post_id}), requester_id)


@app.delete("/posts/{post_id}", status_code=204)
async def delete_post(
    post_id: int,
    requester_id: Optional[str] = Depends(get_requester_id),
    service: PostService = Depends(get_post_service),
):
    await service.delete(post_id, requester_id)


@app.post("/posts/{post_id}/publish", response_model=PostDTO)
async def publish_post(
    post_id: int,
    requester_id: Optional[str] = Depends(get_requester_id),
    service: PostService = Depends(get_post_service),
):
    return await service.publish(post_id, requester_id)


@app.post("/posts/{post_id}/unpublish", response_model=PostDTO)
async def unpublish_post(
    post_id: int,
    requester_id: Optional[str] = Depends(get_requester_id),
    service: PostService = Depends(get_post_service),
):
    return await service.unpublish(post_id, requester_id)


# --- Lead Magnet Endpoints ---

@app.get("/lead-magnets/{lead_magnet_id}", response_model=LeadMagnetDTO)
async def read_lead_magnet(lead_magnet_id: int, service: LeadMagnetService = Depends(get_lead_magnet_service)):
    return _found(await service.get_by_id(lead_magnet_id), "Lead magnet", lead_magnet_id)


@app.get("/categories/{category_id}/lead-magnets", response_model=List[LeadMagnetDTO])
async def read_category_lead_magnets(
    category_id: int,
    active_only: bool = Query(False, description="Only active lead magnets"),
    service: LeadMagnetService = Depends(get_lead_magnet_service),
):
    if active_only:
        return await service.list_active_by_category(category_id)
    return await service.list_by_category(category_id)


@app.post("/lead-magnets", response_model=LeadMagnetDTO, status_code=201)
async def create_lead_magnet(
    dto: LeadMagnetDTO,
    requester_id: Optional[str] = Depends(get_requester_id),
    service: LeadMagnetService = Depends(get_lead_magnet_service),
):
    return await service.create(dto, requester_id)


@app.put("/lead-magnets/{lead_magnet_id}", response_model=LeadMagnetDTO)
async def update_lead_magnet(
    lead_magnet_id: int,
    dto: LeadMagnetDTO,
    requester_id: Optional[str] = Depends(get_requester_id),
    service: LeadMagnetService = Depends(get_lead_magnet_service),
):
    return await service.update(dto.model_copy(update={"id": lead_magnet_id}), requester_id)


@app.delete("/lead-magnets/{lead_magnet_id}", status_code=204)
async def delete_lead_magnet(
    lead_magnet_id: int,
    requester_id: Optional[str] = Depends(get_requester_id),
    service: LeadMagnetService = Depends(get_lead_magnet_service),
):
    await service.delete(lead_magnet_id, requester_id)


@app.post("/lead-magnets/{lead_magnet_id}/deactivate", status_code=204)
async def deactivate_lead_magnet(
    lead_magnet_id: int,
    requester_id: Optional[str] = Depends(get_requester_id),
    service: LeadMagnetService = Depends(get_lead_magnet_service),
):
    await service.soft_delete(lead_magnet_id, requester_id)


# --- Auth Endpoints ---

@app.post("/auth/login", response_model=LoginResult)
async def login(request: LoginRequest, service: IdentityService = Depends(get_identity_service)):
    return await service.login(request.email, request.password, request.remember_me)


@app.post("/auth/logout", status_code=204)
async def logout(service: IdentityService = Depends(get_identity_service)):
    await service.logout()


@app.get("/auth/me", response_model=Optional[UserInfo])
async def read_current_user(service: IdentityService = Depends(get_identity_service)):
    return await service.get_current_user()


# --- Root Endpoint ---

@app.get("/")
async def root():
    return {"message": "Welcome to the Content API. Go to /docs for documentation."}

# --- Run with Uvicorn (for local testing) ---
# Use: uvicorn main:app --reload
