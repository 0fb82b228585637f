# validation.py

import re
from typing import Iterable, Optional
from urllib.parse import urlsplit

import bleach

from config import Settings, get_settings
from errors import ValidationError

# Markup a post body may keep; everything else is stripped
CONTENT_TAGS = [
    "p", "br", "strong", "em", "b", "i", "u", "code", "pre", "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "li", "blockquote", "a", "img", "hr", "table", "thead", "tbody", "tr", "th", "td",
]
CONTENT_ATTRIBUTES = {"a": ["href", "title"], "img": ["src", "alt", "title"]}
DESCRIPTION_TAGS = ["b", "strong", "em", "i", "u", "br"]
SAFE_PROTOCOLS = ["http", "https", "mailto"]

HEX_COLOR_PATTERN = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"
# Simplified CSS color name check; a full list would be needed for strict validation
CSS_COLOR_NAME_PATTERN = r"^[a-zA-Z]+$"
PATH_TRAVERSAL = ".."
HTTP_SCHEMES = ("http", "https")


def _cfg(settings: Optional[Settings]) -> Settings:
    return settings or get_settings()


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


# --- Shared helpers ---

def sanitize_text(text: Optional[str], patterns: Iterable[str]) -> Optional[str]:
    """Strip every denylisted pattern from text, case-insensitively.

    Passes repeat until the text stops changing, so a removal cannot splice
    the remains into a fresh match. This only drops the denylisted pieces;
    ``clean_html`` is what restricts the remaining markup.
    """
    if _is_blank(text):
        return text
    compiled = [re.compile(pattern, re.IGNORECASE) for pattern in patterns]
    while True:
        cleaned = text
        for regex in compiled:
            cleaned = regex.sub("", cleaned)
        if cleaned == text:
            return cleaned
        text = cleaned


def clean_html(text: Optional[str], patterns: Iterable[str], tags=(), attributes=None) -> Optional[str]:
    """Denylist pass, then bleach with an allow-list of tags.

    The denylist runs first so script and style blocks lose their contents;
    bleach on its own would strip the tags but keep the text between them.
    """
    if _is_blank(text):
        return text
    text = sanitize_text(text, patterns)
    return bleach.clean(
        text,
        tags=list(tags),
        attributes=attributes or {},
        protocols=SAFE_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )


def is_absolute_http_url(url: Optional[str]) -> bool:
    if _is_blank(url):
        return False
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in HTTP_SCHEMES and bool(parts.netloc) and bool(parts.hostname)


def _validate_required_length(value: Optional[str], max_length: int, label: str, field: str) -> None:
    if _is_blank(value):
        raise ValidationError(f"{label} is required.", field=field)
    if len(value) > max_length:
        raise ValidationError(f"{label} cannot exceed {max_length} characters.", field=field)


def _validate_optional_length(value: Optional[str], max_length: int, label: str, field: str) -> None:
    if not _is_blank(value) and len(value) > max_length:
        raise ValidationError(f"{label} cannot exceed {max_length} characters.", field=field)


def is_valid_slug(slug: Optional[str], settings: Settings = None) -> bool:
    """A slug is valid iff it is its own lowercase form and matches the slug pattern."""
    if _is_blank(slug):
        return False
    if slug != slug.lower():
        return False
    return re.fullmatch(_cfg(settings).slug_pattern, slug) is not None


def contains_url_injection_patterns(slug: Optional[str], settings: Settings = None) -> bool:
    if _is_blank(slug):
        return False
    return any(
        re.search(pattern, slug, flags=re.IGNORECASE)
        for pattern in _cfg(settings).url_injection_patterns
    )


def validate_slug(slug: Optional[str], max_length: int = None, settings: Settings = None) -> None:
    """Raise ValidationError with a message naming the exact reason a slug is rejected."""
    settings = _cfg(settings)
    max_length = max_length or settings.post_slug_max_length
    if _is_blank(slug):
        raise ValidationError("Slug is required.", field="slug")
    if len(slug) > max_length:
        raise ValidationError(f"Slug cannot exceed {max_length} characters.", field="slug")
    if not is_valid_slug(slug, settings):
        raise ValidationError(
            "Slug must be URL-friendly (lowercase, alphanumeric characters and hyphens only).",
            field="slug",
        )
    if contains_url_injection_patterns(slug, settings):
        raise ValidationError(
            "Slug contains invalid characters that could be used for URL injection.",
            field="slug",
        )


# --- Category ---

def is_valid_name(name: Optional[str], settings: Settings = None) -> bool:
    return not _is_blank(name) and len(name) <= _cfg(settings).category_name_max_length


def validate_name(name: Optional[str], settings: Settings = None) -> None:
    _validate_required_length(name, _cfg(settings).category_name_max_length, "Category name", "name")


def is_valid_description(description: Optional[str], settings: Settings = None) -> bool:
    return _is_blank(description) or len(description) <= _cfg(settings).category_description_max_length


def validate_description(description: Optional[str], settings: Settings = None) -> None:
    _validate_optional_length(
        description, _cfg(settings).category_description_max_length, "Category description", "description"
    )


def is_valid_color_length(color: Optional[str], settings: Settings = None) -> bool:
    return _is_blank(color) or len(color) <= _cfg(settings).category_color_max_length


def validate_color_length(color: Optional[str], settings: Settings = None) -> None:
    _validate_optional_length(color, _cfg(settings).category_color_max_length, "Category color", "color")


def is_valid_color_format(color: Optional[str]) -> bool:
    if _is_blank(color):
        return True
    return bool(re.match(HEX_COLOR_PATTERN, color) or re.match(CSS_COLOR_NAME_PATTERN, color))


def validate_color(color: Optional[str], settings: Settings = None) -> None:
    validate_color_length(color, settings)
    if not is_valid_color_format(color):
        raise ValidationError(
            "Category color must be a valid hex color (#FF0000, #fff) or CSS color name.",
            field="color",
        )


def is_valid_user_id(user_id: Optional[str], settings: Settings = None) -> bool:
    return not _is_blank(user_id) and len(user_id) <= _cfg(settings).user_id_max_length


def validate_user_id(user_id: Optional[str], settings: Settings = None) -> None:
    _validate_required_length(user_id, _cfg(settings).user_id_max_length, "UserId", "user_id")


def is_valid_parent_category(category_id: int, parent_category_id: Optional[int]) -> bool:
    return parent_category_id is None or parent_category_id != category_id


def validate_parent_category(category_id: int, parent_category_id: Optional[int]) -> None:
    if not is_valid_parent_category(category_id, parent_category_id):
        raise ValidationError("A category cannot be its own parent.", field="parent_category_id")


def sanitize_name(name: Optional[str], settings: Settings = None) -> Optional[str]:
    return clean_html(name, _cfg(settings).xss_patterns)


def sanitize_description(description: Optional[str], settings: Settings = None) -> Optional[str]:
    return clean_html(description, _cfg(settings).xss_patterns, DESCRIPTION_TAGS)


# --- Post ---

def validate_post_title(title: Optional[str], settings: Settings = None) -> None:
    _validate_required_length(title, _cfg(settings).post_title_max_length, "Title", "title")


def sanitize_content_body(content_body: Optional[str], settings: Settings = None) -> Optional[str]:
    return clean_html(content_body, _cfg(settings).xss_patterns, CONTENT_TAGS, CONTENT_ATTRIBUTES)


def is_valid_image_url(image_url: Optional[str], settings: Settings = None) -> bool:
    settings = _cfg(settings)
    if _is_blank(image_url) or len(image_url) > settings.image_url_max_length:
        return False

    # Relative path; "//host" is protocol-relative and handled as absolute below
    if image_url.startswith("/") and not image_url.startswith("//"):
        if PATH_TRAVERSAL in image_url:
            return False
        if settings.enforce_image_paths:
            lowered = image_url.lower()
            return any(lowered.startswith(path.lower()) for path in settings.allowed_image_paths)
        return True

    if not is_absolute_http_url(image_url):
        return False

    parts = urlsplit(image_url)
    host = parts.hostname.lower()
    domains = [domain.lower() for domain in settings.allowed_image_domains]
    if domains:
        return any(host == domain or host.endswith(f".{domain}") for domain in domains)

    # No allow-list configured: any https URL is accepted
    return parts.scheme == "https"


def validate_image_url(image_url: Optional[str], settings: Settings = None) -> None:
    if _is_blank(image_url):
        return
    if not is_valid_image_url(image_url, settings):
        raise ValidationError(
            "FeaturedImageUrl must point to an allowed domain or relative path.",
            field="featured_image_url",
        )


def is_valid_meta_description(meta_description: Optional[str], max_length: int = None,
                              settings: Settings = None) -> bool:
    max_length = max_length or _cfg(settings).meta_description_max_length
    return _is_blank(meta_description) or len(meta_description) <= max_length


def validate_meta_description(meta_description: Optional[str], max_length: int = None,
                              settings: Settings = None) -> None:
    max_length = max_length or _cfg(settings).meta_description_max_length
    if not is_valid_meta_description(meta_description, max_length):
        raise ValidationError(
            f"MetaDescription cannot exceed {max_length} characters.", field="meta_description"
        )


def validate_recent_count(count: int, settings: Settings = None) -> None:
    settings = _cfg(settings)
    if count < settings.recent_posts_min:
        raise ValidationError(f"Count must be at least {settings.recent_posts_min}.", field="count")
    if count > settings.recent_posts_max:
        raise ValidationError(f"Count cannot exceed {settings.recent_posts_max}.", field="count")


# --- Lead magnet ---

def is_valid_lead_magnet_title(title: Optional[str], settings: Settings = None) -> bool:
    return not _is_blank(title) and len(title) <= _cfg(settings).lead_magnet_title_max_length


def validate_lead_magnet_title(title: Optional[str], settings: Settings = None) -> None:
    _validate_required_length(title, _cfg(settings).lead_magnet_title_max_length, "Lead magnet title", "title")


def sanitize_lead_magnet_title(title: Optional[str], settings: Settings = None) -> Optional[str]:
    return clean_html(title, _cfg(settings).xss_patterns)


def _is_valid_optional_url(url: Optional[str], settings: Settings = None) -> bool:
    if _is_blank(url):
        return True
    return len(url) <= _cfg(settings).url_max_length and is_absolute_http_url(url)


def _validate_optional_url(url: Optional[str], label: str, field: str, settings: Settings = None) -> None:
    if _is_blank(url):
        return
    max_length = _cfg(settings).url_max_length
    if len(url) > max_length:
        raise ValidationError(f"{label} cannot exceed {max_length} characters.", field=field)
    if not is_absolute_http_url(url):
        raise ValidationError(
            f"{label} must be a valid absolute URL (http:// or https://).", field=field
        )


def is_valid_form_action_url(url: Optional[str], settings: Settings = None) -> bool:
    return _is_valid_optional_url(url, settings)


def validate_form_action_url(url: Optional[str], settings: Settings = None) -> None:
    _validate_optional_url(url, "Form action URL", "form_action_url", settings)


def is_valid_download_file_url(url: Optional[str], settings: Settings = None) -> bool:
    return _is_valid_optional_url(url, settings)


def validate_download_file_url(url: Optional[str], settings: Settings = None) -> None:
    _validate_optional_url(url, "Download file URL", "download_file_url", settings)


def is_valid_category_id(category_id: Optional[int]) -> bool:
    return category_id is not None and category_id > 0


def validate_category_id(category_id: Optional[int]) -> None:
    if not is_valid_category_id(category_id):
        raise ValidationError("Category ID must be greater than zero.", field="category_id")
