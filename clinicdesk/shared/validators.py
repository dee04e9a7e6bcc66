"""Shared validation utilities"""

import re
from datetime import time
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize an international phone number.

    Args:
        phone: Phone number string in various formats

    Returns:
        Digits only, keeping a leading "+" when one was given

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    phone = phone.strip()
    has_plus = phone.startswith("+")

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    if len(digits) < 7 or len(digits) > 15:
        raise ValueError("Phone number must have between 7 and 15 digits")

    return f"+{digits}" if has_plus else digits


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def normalize_cnic(cnic: Optional[str]) -> Optional[str]:
    """Strip dashes and spaces from a national ID number; blank means none"""
    if cnic is None:
        return None
    normalized = re.sub(r"[-\s]", "", cnic)
    if not normalized:
        return None
    if not normalized.isdigit() or len(normalized) > 20:
        raise ValueError("CNIC must contain digits only")
    return normalized


def generate_slug(text: str) -> str:
    """
    Build a URL slug from a clinic name.

    "Shifa Clinic & Labs" -> "shifa-clinic-labs"
    """
    slug = text.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug)
    slug = slug.strip("-")
    return slug or "clinic"


def parse_time_of_day(value: str) -> time:
    """Parse an "HH:MM" 24-hour string"""
    match = re.fullmatch(r"(\d{1,2}):(\d{2})", (value or "").strip())
    if not match:
        raise ValueError("Time must be in HH:MM format")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError("Time must be a valid 24-hour time")
    return time(hours, minutes)


def validate_timezone(tz_name: Optional[str]) -> Optional[str]:
    """Ensure the value is a known IANA time zone name"""
    if tz_name is None:
        return tz_name
    tz_name = tz_name.strip()
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown time zone: {tz_name}") from e
    return tz_name
