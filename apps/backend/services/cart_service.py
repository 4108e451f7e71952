"""
Cart service: registration fees waiting for payment, and checkout.
"""

import secrets
from typing import Dict, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from backend.database.models import (
    CartItem,
    CartItemType,
    GameRegistration,
    Payment,
    PaymentStatus,
    Team,
    Tournament,
    TournamentGame,
)
from backend.services import tournament_service
from backend.services.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from backend.utils.datetime_utils import utcnow, isoformat
import logging

logger = logging.getLogger(__name__)

ITEM_TYPES = {t.value for t in CartItemType}


async def add_to_cart(
    session: AsyncSession, user_id: int, item_type: str, item_id: int, game_id: int
) -> Dict:
    """
    Add a registration fee to the user's cart.

    Args:
        session: Database session
        user_id: Cart owner
        item_type: INDIVIDUAL_REGISTRATION or TEAM_REGISTRATION
        item_id: Registration id (individual) or team id (team)
        game_id: Tournament game ID

    Returns:
        Cart item dict

    Raises:
        InvalidInputError: Unknown item type
        NotFoundError: Game, team or registration missing
        ForbiddenError: Team item added by someone other than its leader
        ConflictError: The cart already holds an item for this game
    """
    if item_type not in ITEM_TYPES:
        raise InvalidInputError("Invalid item type")

    if await tournament_service.get_game_with_tournament(session, game_id) is None:
        raise NotFoundError("Game not found")

    if item_type == CartItemType.TEAM_REGISTRATION.value:
        team = await session.get(Team, item_id)
        if not team or team.tournament_game_id != game_id:
            raise NotFoundError("Team not found")
        if team.leader_user_id != user_id:
            raise ForbiddenError("Only team leader can pay for the team")
    else:
        registration = await session.get(GameRegistration, item_id)
        if not registration or registration.user_id != user_id or registration.tournament_game_id != game_id:
            raise NotFoundError("Registration not found")

    result = await session.execute(
        select(CartItem.id).where(CartItem.user_id == user_id, CartItem.tournament_game_id == game_id)
    )
    if result.scalar_one_or_none() is not None:
        raise ConflictError("Item already exists in cart")

    item = CartItem(user_id=user_id, item_type=item_type, item_id=item_id, tournament_game_id=game_id)
    session.add(item)
    try:
        await session.flush()
    except IntegrityError:
        raise ConflictError("Item already exists in cart")
    await session.refresh(item)
    return {
        "id": item.id,
        "item_type": item.item_type,
        "item_id": item.item_id,
        "game_id": item.tournament_game_id,
        "added_at": isoformat(item.added_at),
    }


async def get_cart(session: AsyncSession, user_id: int) -> Dict:
    """
    Get the user's cart with line totals.

    Team items are charged fee_per_person times the game's team size.

    Returns:
        Dict with "items", "total_amount" and "item_count"
    """
    result = await session.execute(
        select(CartItem, TournamentGame, Tournament)
        .join(TournamentGame, TournamentGame.id == CartItem.tournament_game_id)
        .join(Tournament, Tournament.id == TournamentGame.tournament_id)
        .where(CartItem.user_id == user_id)
        .order_by(CartItem.added_at, CartItem.id)
    )
    items = []
    total = 0.0
    for item, game, tournament in result.all():
        multiplier = game.team_size if item.item_type == CartItemType.TEAM_REGISTRATION.value else 1
        line_total = (game.fee_per_person or 0) * (multiplier or 1)
        total += line_total
        items.append(
            {
                "id": item.id,
                "item_type": item.item_type,
                "item_id": item.item_id,
                "game_id": game.id,
                "game_name": game.game_name,
                "category": game.category,
                "tournament_title": tournament.title,
                "fee_per_person": game.fee_per_person,
                "quantity": multiplier,
                "line_total": line_total,
                "added_at": isoformat(item.added_at),
            }
        )
    return {"items": items, "total_amount": total, "item_count": len(items)}


async def remove_item(session: AsyncSession, user_id: int, cart_item_id: int) -> None:
    """
    Remove one cart item.

    Raises:
        NotFoundError: Item missing or owned by another user
    """
    result = await session.execute(
        delete(CartItem).where(CartItem.id == cart_item_id, CartItem.user_id == user_id)
    )
    if result.rowcount == 0:
        raise NotFoundError("Cart item not found")


async def remove_by_game(session: AsyncSession, user_id: int, game_id: int) -> int:
    """Remove the user's cart item for a game. Returns rows deleted."""
    result = await session.execute(
        delete(CartItem).where(CartItem.user_id == user_id, CartItem.tournament_game_id == game_id)
    )
    return result.rowcount


async def clear_cart(session: AsyncSession, user_id: int) -> int:
    """Remove every item from the user's cart. Returns rows deleted."""
    result = await session.execute(delete(CartItem).where(CartItem.user_id == user_id))
    return result.rowcount


async def checkout(
    session: AsyncSession, user_id: int, payment_method: str, transaction_id: str
) -> Dict:
    """
    Pay for every item in the cart.

    Records one Payment for the cart total, marks (or creates) the user's
    registration for each game as PAID with the method and transaction,
    then empties the cart.

    Args:
        session: Database session
        user_id: Paying user
        payment_method: e.g. bkash, nagad, card
        transaction_id: Provider transaction reference

    Returns:
        Dict with "payment" and "registrations"

    Raises:
        InvalidInputError: Missing payment details or empty cart
    """
    if not payment_method or not transaction_id:
        raise InvalidInputError("Payment method and transaction ID are required")

    cart = await get_cart(session, user_id)
    if not cart["items"]:
        raise InvalidInputError("Cart is empty")

    now = utcnow()
    payment = Payment(
        user_id=user_id,
        order_id=f"CART-{now:%Y%m%d%H%M%S}-{secrets.token_hex(3)}",
        transaction_id=transaction_id,
        amount=cart["total_amount"],
        currency="BDT",
        payment_method=payment_method,
        status=PaymentStatus.PAID.value,
        invoice_number=f"INV-{now:%Y%m%d%H%M%S}-{secrets.token_hex(2)}",
        payment_time=now,
    )
    session.add(payment)

    registrations = []
    for item in cart["items"]:
        team_id = item["item_id"] if item["item_type"] == CartItemType.TEAM_REGISTRATION.value else None
        result = await session.execute(
            select(GameRegistration).where(
                GameRegistration.user_id == user_id,
                GameRegistration.tournament_game_id == item["game_id"],
            )
        )
        registration = result.scalar_one_or_none()
        if registration is None:
            registration = GameRegistration(user_id=user_id, tournament_game_id=item["game_id"])
            session.add(registration)
        registration.payment_status = PaymentStatus.PAID.value
        registration.payment_method = payment_method
        registration.transaction_id = transaction_id
        if team_id is not None:
            registration.team_id = team_id
        registrations.append(registration)

    await clear_cart(session, user_id)
    await session.flush()

    logger.info(f"Checkout for user {user_id}: {len(registrations)} items, {cart['total_amount']} BDT via {payment_method}")
    return {
        "payment": {
            "order_id": payment.order_id,
            "invoice_number": payment.invoice_number,
            "amount": payment.amount,
            "currency": payment.currency,
            "payment_method": payment.payment_method,
            "transaction_id": payment.transaction_id,
        },
        "registrations": [
            {
                "id": reg.id,
                "game_id": reg.tournament_game_id,
                "team_id": reg.team_id,
                "payment_status": reg.payment_status,
            }
            for reg in registrations
        ],
    }
