"""
Authentication service: student email validation and JWT handling.
"""

import os
import re
import secrets
from datetime import timedelta
from typing import Dict, Optional
import jwt
import logging
from dotenv import load_dotenv

from backend.utils.datetime_utils import utcnow

load_dotenv()

logger = logging.getLogger(__name__)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-change-me")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRATION_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRATION_MINUTES", "60"))
REFRESH_TOKEN_EXPIRATION_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRATION_DAYS", "7"))

STUDENT_EMAIL_DOMAIN = os.getenv("STUDENT_EMAIL_DOMAIN", "student.aiub.edu")
STUDENT_ID_PATTERN = re.compile(r"^\d{2}-\d{5}-\d$")


def normalize_email(email: str) -> str:
    """
    Normalize and validate an institutional student email.

    Args:
        email: Email address as typed by the student

    Returns:
        Lower-cased, stripped email

    Raises:
        ValueError: If the email is not <studentId>@<STUDENT_EMAIL_DOMAIN>
    """
    if not email or not email.strip():
        raise ValueError("Email is required")

    normalized = email.strip().lower()
    local, _, domain = normalized.partition("@")
    if domain != STUDENT_EMAIL_DOMAIN.lower() or not STUDENT_ID_PATTERN.match(local):
        raise ValueError(
            f"Invalid email format. Use your student email (e.g. 22-46589-1@{STUDENT_EMAIL_DOMAIN})"
        )
    return normalized


def student_id_from_email(email: str) -> str:
    """Extract the student ID (local part) from a validated student email."""
    return normalize_email(email).split("@")[0]


def is_valid_student_id(student_id: Optional[str]) -> bool:
    """Check the NN-NNNNN-N student ID format."""
    return bool(student_id) and STUDENT_ID_PATTERN.match(student_id) is not None


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to include (user_id, student_id, email)
        expires_delta: Optional lifetime override

    Returns:
        Encoded JWT string
    """
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRATION_MINUTES))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Optional[Dict]:
    """
    Verify and decode a JWT access token.

    Returns:
        Decoded payload, or None if the token is invalid, expired,
        or not an access token
    """
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.debug("Access token expired")
        return None
    except jwt.PyJWTError as e:
        logger.debug(f"Invalid access token: {e}")
        return None

    if payload.get("type") != "access":
        return None
    return payload


def generate_refresh_token() -> str:
    """Generate an opaque, URL-safe refresh token."""
    return secrets.token_urlsafe(48)
