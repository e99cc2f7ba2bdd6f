"""
Input validation for API request bodies and query strings.

Each validator takes the raw decoded input and returns a ``ValidationResult``:
either ``ok`` with the cleaned data, or a failure carrying the first problem
found. Validators never raise; endpoints turn failures into 400 responses via
:func:`ensure_valid`.
"""

import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from email_validator import validate_email, EmailNotValidError
from fastapi import Request

from blog.core.errors import ValidationError

PASSWORD_MIN_LENGTH = 6
NAME_MAX_LENGTH = 100
TITLE_MAX_LENGTH = 200
COMMENT_MAX_LENGTH = 2000
CATEGORY_NAME_MAX_LENGTH = 50
CATEGORY_SLUG_MAX_LENGTH = 60

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# Keeps (page - 1) * MAX_LIMIT well inside a 64-bit OFFSET
MAX_PAGE = 1_000_000

INVALID_BODY_MESSAGE = "Invalid request body"


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def success(cls, data: Dict[str, Any]) -> "ValidationResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, message: str) -> "ValidationResult":
        return cls(ok=False, error=message)


class _Invalid(Exception):
    """Internal short-circuit carrying the first validation message."""


def ensure_valid(result: ValidationResult) -> Dict[str, Any]:
    """Return the cleaned data or raise a 400 with the first error."""
    if not result.ok:
        raise ValidationError(result.error)
    return result.data


def decode_json_body(raw: bytes) -> Any:
    """Decode a raw request body; undecodable input becomes None."""
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        return None


async def read_json_body(request: Request) -> Any:
    return decode_json_body(await request.body())


def _require_object(body: Any) -> Dict[str, Any]:
    if not isinstance(body, dict):
        raise _Invalid(INVALID_BODY_MESSAGE)
    return body


def _string(
    body: Dict[str, Any],
    key: str,
    label: str,
    min_length: int = 0,
    max_length: Optional[int] = None,
    strip: bool = False,
) -> str:
    value = body.get(key)
    if not isinstance(value, str):
        raise _Invalid(f"{label} is required")
    if strip:
        value = value.strip()
    if len(value) < min_length:
        if min_length <= 1:
            raise _Invalid(f"{label} is required")
        raise _Invalid(f"{label} must be at least {min_length} characters")
    if max_length is not None and len(value) > max_length:
        raise _Invalid(f"{label} must be at most {max_length} characters")
    return value


def _email(body: Dict[str, Any]) -> str:
    value = body.get("email")
    if not isinstance(value, str):
        raise _Invalid("A valid email address is required")
    try:
        return validate_email(value.strip(), check_deliverability=False).normalized
    except EmailNotValidError:
        raise _Invalid("A valid email address is required")


def _category_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise _Invalid("categoryId must be a valid id")
    try:
        return str(uuid.UUID(value))
    except ValueError:
        raise _Invalid("categoryId must be a valid id")


def _published(value: Any) -> bool:
    if not isinstance(value, bool):
        raise _Invalid("published must be true or false")
    return value


def _run(validator, *args) -> ValidationResult:
    try:
        return ValidationResult.success(validator(*args))
    except _Invalid as e:
        return ValidationResult.failure(str(e))


def validate_register(body: Any) -> ValidationResult:
    def check(raw):
        raw = _require_object(raw)
        return {
            "email": _email(raw),
            "password": _string(
                raw, "password", "Password", min_length=PASSWORD_MIN_LENGTH
            ),
            "name": _string(
                raw,
                "name",
                "Name",
                min_length=1,
                max_length=NAME_MAX_LENGTH,
                strip=True,
            ),
        }

    return _run(check, body)


def validate_login(body: Any) -> ValidationResult:
    def check(raw):
        raw = _require_object(raw)
        return {
            "email": _email(raw),
            "password": _string(raw, "password", "Password", min_length=1),
        }

    return _run(check, body)


def validate_post_create(body: Any) -> ValidationResult:
    def check(raw):
        raw = _require_object(raw)
        if "published" not in raw:
            raise _Invalid("published must be true or false")
        return {
            "title": _string(
                raw, "title", "Title", min_length=1, max_length=TITLE_MAX_LENGTH
            ),
            "content": _string(raw, "content", "Content", min_length=1),
            "category_id": _category_id(raw.get("categoryId")),
            "published": _published(raw["published"]),
        }

    return _run(check, body)


def validate_post_update(body: Any) -> ValidationResult:
    """Partial update: only keys present in the body are validated and returned."""

    def check(raw):
        raw = _require_object(raw)
        data = {}
        if "title" in raw:
            data["title"] = _string(
                raw, "title", "Title", min_length=1, max_length=TITLE_MAX_LENGTH
            )
        if "content" in raw:
            data["content"] = _string(raw, "content", "Content", min_length=1)
        if "categoryId" in raw:
            # null detaches the post from its category
            data["category_id"] = _category_id(raw["categoryId"])
        if "published" in raw:
            data["published"] = _published(raw["published"])
        return data

    return _run(check, body)


def validate_comment_create(body: Any) -> ValidationResult:
    def check(raw):
        raw = _require_object(raw)
        return {
            "content": _string(
                raw,
                "content",
                "Content",
                min_length=1,
                max_length=COMMENT_MAX_LENGTH,
                strip=True,
            ),
        }

    return _run(check, body)


def validate_category_create(body: Any) -> ValidationResult:
    def check(raw):
        raw = _require_object(raw)
        name = _string(
            raw,
            "name",
            "Name",
            min_length=1,
            max_length=CATEGORY_NAME_MAX_LENGTH,
            strip=True,
        )
        slug = raw.get("slug")
        if slug is None:
            slug = slugify(name)
        elif not isinstance(slug, str) or slugify(slug) != slug:
            raise _Invalid("Slug may only contain lowercase letters, digits and '-'")
        if len(slug) > CATEGORY_SLUG_MAX_LENGTH:
            raise _Invalid(
                f"Slug must be at most {CATEGORY_SLUG_MAX_LENGTH} characters"
            )
        if not slug:
            raise _Invalid("Slug is required")
        return {"name": name, "slug": slug}

    return _run(check, body)


def validate_pagination(
    page: Optional[str], limit: Optional[str], category_id: Optional[str]
) -> ValidationResult:
    """Query-string pagination; missing values fall back to page 1 / 10 items."""

    def to_int(value, label, default, minimum, maximum=None):
        if value is None or value == "":
            return default
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise _Invalid(f"{label} must be an integer")
        if number < minimum:
            raise _Invalid(f"{label} must be at least {minimum}")
        if maximum is not None and number > maximum:
            raise _Invalid(f"{label} must be at most {maximum}")
        return number

    def check():
        return {
            "page": to_int(page, "page", DEFAULT_PAGE, 1, MAX_PAGE),
            "limit": to_int(limit, "limit", DEFAULT_LIMIT, 1, MAX_LIMIT),
            "category_id": _category_id(category_id or None),
        }

    return _run(check)


def slugify(value: str) -> str:
    """Lowercase ASCII slug: letters and digits joined by single dashes."""
    cleaned = []
    for char in value.strip().lower():
        if char.isascii() and char.isalnum():
            cleaned.append(char)
        else:
            cleaned.append("-")
    return "-".join(part for part in "".join(cleaned).split("-") if part)
