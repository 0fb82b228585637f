# config.py

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Stop-gap denylist; swap for a maintained HTML sanitizer when one is adopted
DEFAULT_XSS_PATTERNS = [
    r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>",
    r"javascript:",
    r"on\w+\s*=",
    r"<iframe\b",
    r"<object\b",
    r"<embed\b",
    r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>",
]

DEFAULT_URL_INJECTION_PATTERNS = [
    r"\.\./",
    r"\.\.\\",
    r"%2e%2e%2f",
    r"%2e%2e%5c",
    r"javascript:",
    r"data:",
    r"vbscript:",
    r"on\w+\s*=",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables (prefix CONTENT_)."""

    model_config = SettingsConfigDict(
        env_prefix="CONTENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./content.db")
    database_echo: bool = Field(default=False)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_format: Literal["json", "text"] = Field(default="text")

    # Sanitization
    xss_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_XSS_PATTERNS))
    url_injection_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_URL_INJECTION_PATTERNS)
    )

    # Featured images
    allowed_image_domains: List[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1"])
    allowed_image_paths: List[str] = Field(
        default_factory=lambda: ["/images/", "/img/", "/assets/", "/wwwroot/"]
    )
    # When off, any relative path without traversal is accepted
    enforce_image_paths: bool = Field(default=False)

    # Field limits
    category_name_max_length: int = Field(default=100)
    category_description_max_length: int = Field(default=500)
    category_color_max_length: int = Field(default=50)
    category_slug_max_length: int = Field(default=120)
    user_id_max_length: int = Field(default=450)
    post_title_max_length: int = Field(default=255)
    post_slug_max_length: int = Field(default=255)
    meta_description_max_length: int = Field(default=300)
    image_url_max_length: int = Field(default=500)
    lead_magnet_title_max_length: int = Field(default=255)
    url_max_length: int = Field(default=500)
    slug_pattern: str = Field(default=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

    # Post listings
    recent_posts_min: int = Field(default=1)
    recent_posts_max: int = Field(default=100)
    search_max_results: int = Field(default=50)

    # Identity
    max_failed_login_attempts: int = Field(default=5)
    lockout_minutes: int = Field(default=15)
    admin_emails: List[str] = Field(default_factory=list)

    # Seeding
    seed_on_startup: bool = Field(default=False)
    seed_sample_data: bool = Field(default=False)
    admin_email: str = Field(default="admin@example.com")
    admin_password: str = Field(default="Admin@123456")
    admin_first_name: str = Field(default="Admin")
    admin_last_name: str = Field(default="User")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
