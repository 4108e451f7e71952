"""Authentication and profile route handlers."""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.routes import limiter, service_error
from backend.database.db import get_db_session
from backend.services import auth_service, user_service, admin_service
from backend.api.auth_dependencies import get_current_user, require_user, resolve_acting_student
from backend.models.schemas import LoginRequest, RefreshTokenRequest, ProfileUpdateRequest
from backend.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)
router = APIRouter()


async def _issue_tokens(session: AsyncSession, user: dict) -> dict:
    token_data = {"user_id": user["id"], "student_id": user["student_id"], "email": user["email"]}
    access_token = auth_service.create_access_token(data=token_data)
    refresh_token = auth_service.generate_refresh_token()
    expires_at = utcnow() + timedelta(days=auth_service.REFRESH_TOKEN_EXPIRATION_DAYS)
    await user_service.create_refresh_token(session, user["id"], refresh_token, expires_at)
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "expires_in": auth_service.ACCESS_TOKEN_EXPIRATION_MINUTES * 60,
    }


@router.post("/api/auth/login")
@limiter.limit("10/minute")
async def login(request: Request, payload: LoginRequest, session: AsyncSession = Depends(get_db_session)):
    """
    Log in with a student email. The account is created on first login.
    """
    try:
        result = await user_service.login_or_create_user(session, payload.email)
        user = result["user"]
        admin_info = await admin_service.get_admin_info(session, user)
        tokens = await _issue_tokens(session, user)

        return {
            "success": True,
            "message": "Welcome! Please complete your profile." if result["is_new_user"] else "Login successful",
            "user": user,
            "is_new_user": result["is_new_user"],
            "is_admin": admin_info["is_admin"],
            "admin_roles": admin_info["roles"],
            "admin_permissions": admin_info["permissions"],
            **tokens,
        }
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error during login: {e}")
        raise HTTPException(status_code=500, detail="Error during login")


@router.post("/api/auth/refresh")
async def refresh_token(payload: RefreshTokenRequest, session: AsyncSession = Depends(get_db_session)):
    """Exchange a refresh token for a new token pair."""
    try:
        record = await user_service.get_refresh_token(session, payload.refresh_token)
        if not record:
            raise HTTPException(status_code=401, detail="Invalid refresh token")
        if utcnow() > record["expires_at"]:
            raise HTTPException(status_code=401, detail="Refresh token has expired")

        user = await user_service.get_user_by_id(session, record["user_id"])
        if not user:
            raise HTTPException(status_code=401, detail="User not found")

        tokens = await _issue_tokens(session, user)
        return {"success": True, **tokens}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error refreshing token: {e}")
        raise HTTPException(status_code=500, detail="Error refreshing token")


@router.post("/api/auth/logout")
async def logout(payload: RefreshTokenRequest, session: AsyncSession = Depends(get_db_session)):
    """Invalidate a refresh token."""
    try:
        await user_service.delete_refresh_token(session, payload.refresh_token)
        return {"success": True, "message": "Logged out successfully"}
    except Exception as e:
        logger.error(f"Error during logout: {e}")
        raise HTTPException(status_code=500, detail="Error during logout")


@router.get("/api/auth/me")
async def get_current_user_info(
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the authenticated user with admin flags."""
    admin_info = await admin_service.get_admin_info(session, user)
    return {
        "success": True,
        "user": user,
        "is_admin": admin_info["is_admin"],
        "admin_permissions": admin_info["permissions"],
    }


@router.get("/api/auth/profile/{student_id}")
async def get_profile(
    student_id: str,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a student's profile (self, or any profile for admins)."""
    if student_id != user["student_id"] and not await admin_service.is_admin(session, user):
        raise HTTPException(status_code=403, detail="You can only view your own profile")
    try:
        profile = await user_service.get_user_by_student_id(session, student_id)
        if not profile:
            raise HTTPException(status_code=404, detail="User not found")
        return {"success": True, "user": profile}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching profile: {e}")
        raise HTTPException(status_code=500, detail="Error fetching profile")


@router.put("/api/auth/profile/{student_id}")
async def update_profile(
    student_id: str,
    payload: ProfileUpdateRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Complete or update the caller's profile."""
    acting = resolve_acting_student(user, student_id)
    try:
        result = await user_service.update_profile(session, acting, payload.model_dump())
        message = (
            "Profile completed successfully! Welcome aboard!"
            if result["first_completion"]
            else "Profile updated successfully"
        )
        return {"success": True, "message": message, "user": result["user"]}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error updating profile: {e}")
        raise HTTPException(status_code=500, detail="Error updating profile")


@router.get("/api/auth/name-edit-count/{student_id}")
async def get_name_edit_count(
    student_id: str,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the caller's used and remaining name edits."""
    acting = resolve_acting_student(user, student_id)
    try:
        result = await user_service.get_name_edit_count(session, acting)
        return {"success": True, **result}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error fetching name edit count: {e}")
        raise HTTPException(status_code=500, detail="Error fetching name edit count")
