"""
User service layer: student accounts, profiles and refresh tokens.
"""

import re
from typing import Optional, Dict
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from backend.database.models import User, RefreshToken, Gender, ProgramLevel
from backend.services import auth_service
from backend.services.exceptions import InvalidInputError, NotFoundError, StateError
from backend.utils.datetime_utils import utcnow, isoformat, parse_datetime
import logging

logger = logging.getLogger(__name__)

# A completed profile allows this many full-name changes
MAX_NAME_EDITS = 3

PHONE_PATTERN = re.compile(r"^[0-9+\-\s()]{10,15}$")
BLOOD_GROUPS = {"A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"}
GENDERS = {g.value for g in Gender}
PROGRAM_LEVELS = {p.value for p in ProgramLevel}


async def get_user_by_id(session: AsyncSession, user_id: int) -> Optional[Dict]:
    """
    Get user by ID.

    Args:
        session: Database session
        user_id: User ID

    Returns:
        User dictionary or None if not found
    """
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def get_user_by_student_id(session: AsyncSession, student_id: str) -> Optional[Dict]:
    """Get user by student ID (e.g. 22-46589-1), or None."""
    result = await session.execute(select(User).where(User.student_id == student_id))
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[Dict]:
    """Get user by (lower-cased) email, or None."""
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def login_or_create_user(session: AsyncSession, email: str) -> Dict:
    """
    Log a student in by institutional email, creating the account on first login.

    Args:
        session: Database session
        email: Student email (<studentId>@<domain>)

    Returns:
        Dict with "user" (user dict) and "is_new_user" (bool)

    Raises:
        ValueError: If the email is not a valid student email
    """
    normalized = auth_service.normalize_email(email)
    student_id = normalized.split("@")[0]

    result = await session.execute(select(User).where(User.student_id == student_id))
    user = result.scalar_one_or_none()
    is_new_user = user is None

    if is_new_user:
        user = User(
            student_id=student_id,
            email=normalized,
            is_first_login=True,
            profile_completed=False,
            name_edit_count=0,
            last_login=utcnow(),
        )
        session.add(user)
        logger.info(f"Created account for student {student_id}")
    else:
        user.last_login = utcnow()

    await session.flush()
    await session.refresh(user)
    return {"user": _user_to_dict(user), "is_new_user": is_new_user}


def _validate_profile(data: Dict) -> Dict:
    """Validate profile fields and return the cleaned values."""
    required = ["full_name", "gender", "phone_number", "blood_group", "program_level", "department"]
    if any(not data.get(field) for field in required):
        raise InvalidInputError("All fields are required")

    full_name = str(data["full_name"]).strip()
    if len(full_name) < 2 or len(full_name) > 100:
        raise InvalidInputError("Full name must be between 2 and 100 characters")
    if data["gender"] not in GENDERS:
        raise InvalidInputError("Invalid gender value")
    if not PHONE_PATTERN.match(str(data["phone_number"])):
        raise InvalidInputError("Invalid phone number format")
    if data["blood_group"] not in BLOOD_GROUPS:
        raise InvalidInputError("Invalid blood group")
    if data["program_level"] not in PROGRAM_LEVELS:
        raise InvalidInputError("Invalid program level")
    department = str(data["department"]).strip()
    if len(department) < 2 or len(department) > 100:
        raise InvalidInputError("Department must be between 2 and 100 characters")

    return {
        "full_name": full_name,
        "gender": data["gender"],
        "phone_number": str(data["phone_number"]).strip(),
        "blood_group": data["blood_group"],
        "program_level": data["program_level"],
        "department": department,
    }


async def update_profile(
    session: AsyncSession, student_id: str, data: Dict
) -> Dict:
    """
    Complete or update a student's profile.

    The first completion writes every field and resets the name edit counter.
    Whether this is the first completion comes from the stored profile, never
    from the client.
    Afterwards gender, program level and department are locked; phone and
    blood group may change freely and the full name at most MAX_NAME_EDITS times.

    Args:
        session: Database session
        student_id: Student whose profile is updated
        data: full_name, gender, phone_number, blood_group, program_level, department

    Returns:
        Dict with "user" (updated user dict) and "first_completion" (bool)

    Raises:
        InvalidInputError: Bad student ID or field value, or a locked field changed
        NotFoundError: If the user does not exist
        StateError: If the name edit limit is reached
    """
    if not auth_service.is_valid_student_id(student_id):
        raise InvalidInputError("Invalid student ID format")

    cleaned = _validate_profile(data)

    result = await session.execute(select(User).where(User.student_id == student_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")

    if user.profile_completed:
        if user.gender and user.gender != cleaned["gender"]:
            raise InvalidInputError("Gender cannot be changed after initial setup")
        if user.program_level and user.program_level != cleaned["program_level"]:
            raise InvalidInputError("Program level cannot be changed")
        if user.department and user.department != cleaned["department"]:
            raise InvalidInputError("Department cannot be changed")

    first_completion = user.is_first_login or not user.profile_completed
    if first_completion:
        for field, value in cleaned.items():
            setattr(user, field, value)
        user.is_first_login = False
        user.profile_completed = True
        user.name_edit_count = 0
    else:
        user.phone_number = cleaned["phone_number"]
        user.blood_group = cleaned["blood_group"]
        if user.full_name and user.full_name != cleaned["full_name"]:
            if (user.name_edit_count or 0) >= MAX_NAME_EDITS:
                raise StateError("Name edit limit reached")
            user.full_name = cleaned["full_name"]
            user.name_edit_count = (user.name_edit_count or 0) + 1
    user.last_login = utcnow()

    await session.flush()
    await session.refresh(user)
    return {"user": _user_to_dict(user), "first_completion": first_completion}


async def get_name_edit_count(session: AsyncSession, student_id: str) -> Dict:
    """
    Get how many name edits a student has used and has left.

    Raises:
        NotFoundError: If the user does not exist
    """
    result = await session.execute(
        select(User.name_edit_count).where(User.student_id == student_id)
    )
    row = result.first()
    if row is None:
        raise NotFoundError("User not found")
    used = row[0] or 0
    return {
        "name_edit_count": used,
        "remaining_edits": max(0, MAX_NAME_EDITS - used),
        "can_edit": used < MAX_NAME_EDITS,
    }


# Refresh token functions


async def create_refresh_token(
    session: AsyncSession, user_id: int, token: str, expires_at: datetime
) -> None:
    """
    Store a refresh token, replacing any previous tokens for the user.

    Args:
        session: Database session
        user_id: User ID
        token: Opaque refresh token string
        expires_at: Expiration datetime
    """
    await session.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))
    session.add(RefreshToken(user_id=user_id, token=token, expires_at=expires_at.isoformat()))
    await session.flush()


async def get_refresh_token(session: AsyncSession, token: str) -> Optional[Dict]:
    """
    Get refresh token record by token string.

    Returns:
        Dict with user_id, token and expires_at (datetime), or None if not found
    """
    result = await session.execute(select(RefreshToken).where(RefreshToken.token == token))
    refresh_token = result.scalar_one_or_none()
    if refresh_token:
        return {
            "id": refresh_token.id,
            "user_id": refresh_token.user_id,
            "token": refresh_token.token,
            "expires_at": parse_datetime(refresh_token.expires_at),
        }
    return None


async def delete_refresh_token(session: AsyncSession, token: str) -> bool:
    """Delete a refresh token (on logout or rotation). Returns True if a row was removed."""
    result = await session.execute(delete(RefreshToken).where(RefreshToken.token == token))
    return result.rowcount > 0


def _user_to_dict(user: User) -> Dict:
    return {
        "id": user.id,
        "student_id": user.student_id,
        "email": user.email,
        "full_name": user.full_name,
        "gender": user.gender,
        "phone_number": user.phone_number,
        "blood_group": user.blood_group,
        "program_level": user.program_level,
        "department": user.department,
        "name_edit_count": user.name_edit_count or 0,
        "is_first_login": user.is_first_login,
        "profile_completed": user.profile_completed,
        "last_login": isoformat(user.last_login),
        "created_at": isoformat(user.created_at),
    }
