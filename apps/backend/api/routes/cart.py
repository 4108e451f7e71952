"""Payment cart route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.routes import service_error
from backend.database.db import get_db_session
from backend.services import cart_service
from backend.api.auth_dependencies import require_user
from backend.models.schemas import CartItemCreate, CheckoutRequest

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/cart")
async def add_to_cart(
    payload: CartItemCreate,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Add a registration fee to the caller's cart."""
    try:
        item = await cart_service.add_to_cart(
            session, user["id"], payload.item_type, payload.item_id, payload.game_id
        )
        return {"success": True, "message": "Item added to cart", "item": item}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error adding to cart: {e}")
        raise HTTPException(status_code=500, detail="Error adding to cart")


@router.get("/api/cart")
async def get_cart(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the caller's cart with totals."""
    try:
        cart = await cart_service.get_cart(session, user["id"])
        return {"success": True, **cart}
    except Exception as e:
        logger.error(f"Error fetching cart: {e}")
        raise HTTPException(status_code=500, detail="Error fetching cart")


@router.post("/api/cart/checkout")
async def checkout(
    payload: CheckoutRequest,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Pay for everything in the caller's cart."""
    try:
        result = await cart_service.checkout(session, user["id"], payload.payment_method, payload.transaction_id)
        return {"success": True, "message": "Payment successful", **result}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error during checkout: {e}")
        raise HTTPException(status_code=500, detail="Error during checkout")


@router.delete("/api/cart/game/{game_id}")
async def remove_game_from_cart(
    game_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove the caller's cart item for a game."""
    try:
        removed = await cart_service.remove_by_game(session, user["id"], game_id)
        return {"success": True, "removed": removed}
    except Exception as e:
        logger.error(f"Error removing game {game_id} from cart: {e}")
        raise HTTPException(status_code=500, detail="Error removing item from cart")


@router.delete("/api/cart/{item_id}")
async def remove_from_cart(
    item_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove one item from the caller's cart."""
    try:
        await cart_service.remove_item(session, user["id"], item_id)
        return {"success": True, "message": "Item removed from cart"}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error removing cart item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Error removing item from cart")


@router.delete("/api/cart")
async def clear_cart(
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Empty the caller's cart."""
    try:
        removed = await cart_service.clear_cart(session, user["id"])
        return {"success": True, "message": "Cart cleared", "removed": removed}
    except Exception as e:
        logger.error(f"Error clearing cart: {e}")
        raise HTTPException(status_code=500, detail="Error clearing cart")
