"""Field-level validation rules for client organization data.

Every validator takes one value and returns an error message, or None when the
value is acceptable. ``validate_client_form`` combines them into a mapping of
field name to message; an empty mapping means the form may be submitted.
"""

import asyncio
import io
import logging
import re
from collections.abc import Mapping
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel

from client_console.core.config import settings
from client_console.models.client import DrawFrequency
from client_console.schemas.client import LogoFile

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
MOBILE_PATTERN = re.compile(r"\+?[0-9]{10,15}")
BRAND_COLOR_PATTERN = re.compile(r"#[0-9A-Fa-f]{6}")
WHITESPACE_PATTERN = re.compile(r"\s")

ORGANIZATION_NAME_MIN_LENGTH = 2
ORGANIZATION_NAME_MAX_LENGTH = 200

ALLOWED_LOGO_TYPES = {"image/png", "image/jpeg", "image/jpg"}
DRAW_FREQUENCIES = tuple(f.value for f in DrawFrequency)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def validate_email(email: Optional[str]) -> Optional[str]:
    """Validate an email address shape (local@domain.tld)."""
    if _is_blank(email):
        return "Email is required"

    if not EMAIL_PATTERN.fullmatch(email):
        return "Invalid email format"

    return None


def validate_mobile_number(mobile: Optional[str]) -> Optional[str]:
    """Validate a mobile number: optional leading + then 10-15 digits, spaces ignored."""
    if _is_blank(mobile):
        return "Mobile number is required"

    if not MOBILE_PATTERN.fullmatch(WHITESPACE_PATTERN.sub("", mobile)):
        return "Mobile number must be 10-15 digits with optional + prefix"

    return None


def validate_organization_name(name: Optional[str]) -> Optional[str]:
    """Validate organization name presence and length."""
    if _is_blank(name):
        return "Organization name is required"

    if len(name) < ORGANIZATION_NAME_MIN_LENGTH:
        return f"Organization name must be at least {ORGANIZATION_NAME_MIN_LENGTH} characters"

    if len(name) > ORGANIZATION_NAME_MAX_LENGTH:
        return f"Organization name must not exceed {ORGANIZATION_NAME_MAX_LENGTH} characters"

    return None


def validate_brand_color(color: Optional[str]) -> Optional[str]:
    """Validate an optional #RRGGBB brand color."""
    if _is_blank(color):
        return None

    if not BRAND_COLOR_PATTERN.fullmatch(color):
        return "Brand color must be in hexadecimal format (#RRGGBB)"

    return None


def validate_draw_frequency(frequency: Optional[str]) -> Optional[str]:
    """Validate an optional draw frequency against the allowed values."""
    if _is_blank(frequency):
        return None

    if frequency not in DRAW_FREQUENCIES:
        return "Invalid draw frequency"

    return None


def validate_time_zone(time_zone: Optional[str]) -> Optional[str]:
    """Validate an optional IANA time zone identifier (e.g. 'Europe/Berlin')."""
    if _is_blank(time_zone):
        return None

    try:
        ZoneInfo(time_zone)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return "Invalid time zone identifier"

    return None


def validate_required(value: Any, field_label: str) -> Optional[str]:
    """Fail when a value is missing or an empty string."""
    if value is None or value == "":
        return f"{field_label} is required"
    return None


def validate_logo_file(file: LogoFile) -> Optional[str]:
    """Check the declared type and the size of a logo file."""
    if file.content_type not in ALLOWED_LOGO_TYPES:
        return "Only PNG, JPG, and JPEG files are allowed"

    if file.size > settings.LOGO_MAX_SIZE_BYTES:
        return "File size must be less than 5MB"

    return None


def read_image_dimensions(data: bytes) -> tuple[int, int]:
    """Decode image bytes and return (width, height). Raises on undecodable data."""
    with Image.open(io.BytesIO(data)) as image:
        return image.size


async def validate_logo_dimensions(file: LogoFile) -> Optional[str]:
    """Decode the logo and require both sides to be at least 512 pixels."""
    try:
        width, height = await asyncio.to_thread(read_image_dimensions, file.data)
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"Could not decode logo {file.filename}: {e}")
        return "Failed to load image"

    minimum = settings.LOGO_MIN_DIMENSION_PX
    if width < minimum or height < minimum:
        return f"Image dimensions must be at least {minimum}x{minimum} pixels"

    return None


async def validate_client_form(data: BaseModel | Mapping[str, Any]) -> dict[str, str]:
    """
    Validate a complete client form payload.

    Required fields are always checked; optional fields only when they carry
    a value. A staged logo is checked for type and size first, and decoded for
    its dimensions only when those pass.

    Args:
        data: ClientFormData (or any mapping with the same field names)

    Returns:
        Mapping of field name to error message for every failing field
    """
    values = dict(data)
    errors: dict[str, str] = {}

    checks = {
        "organization_name": validate_organization_name(values.get("organization_name")),
        "tenant_admin_full_name": validate_required(
            values.get("tenant_admin_full_name"), "Tenant admin full name"
        ),
        "tenant_admin_email": validate_email(values.get("tenant_admin_email")),
        "tenant_admin_mobile": validate_mobile_number(values.get("tenant_admin_mobile")),
        "business_category": validate_required(
            values.get("business_category"), "Business category"
        ),
    }

    optional_checks = {
        "brand_color": validate_brand_color,
        "draw_frequency": validate_draw_frequency,
        "default_time_zone": validate_time_zone,
        "support_contact_email": validate_email,
        "escalation_contact": validate_email,
    }
    for field, validator in optional_checks.items():
        if values.get(field):
            checks[field] = validator(values[field])

    errors.update({field: message for field, message in checks.items() if message})

    logo = values.get("organization_logo")
    if isinstance(logo, LogoFile):
        logo_error = validate_logo_file(logo) or await validate_logo_dimensions(logo)
        if logo_error:
            errors["organization_logo"] = logo_error

    return errors
