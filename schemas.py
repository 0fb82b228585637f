# schemas.py

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# --- Pydantic Models ---
# Length/format rules live in validation.py so every caller gets the same
# field-specific errors; these models only carry data between layers.


class AuditFields(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    created_by: Optional[str] = None
    created_date: Optional[datetime] = None
    modified_by: Optional[str] = None
    modified_date: Optional[datetime] = None


class CategoryDTO(AuditFields):
    id: int = 0
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    user_id: Optional[str] = None
    parent_category_id: Optional[int] = None
    is_active: bool = True


class CategoryDependents(BaseModel):
    post_count: int
    lead_magnet_count: int


class PostDTO(AuditFields):
    id: int = 0
    author_id: Optional[str] = None
    category_id: Optional[int] = None
    title: Optional[str] = None
    slug: Optional[str] = None
    content_body: Optional[str] = None
    featured_image_url: Optional[str] = None
    meta_description: Optional[str] = None
    publication_date: Optional[datetime] = None
    is_published: bool = False


class LeadMagnetDTO(AuditFields):
    id: int = 0
    category_id: int = 0
    title: Optional[str] = None
    form_action_url: Optional[str] = None
    download_file_url: Optional[str] = None
    is_active: bool = True


# --- Identity ---

class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    remember_me: bool = False


class UserInfo(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    roles: List[str] = Field(default_factory=list)


class LoginResult(BaseModel):
    success: bool
    error_message: Optional[str] = None
    user: Optional[UserInfo] = None
