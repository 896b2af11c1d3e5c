import logging
from datetime import datetime, timezone
from typing import Optional

from store import DataStore, FilterOp, Query, StoreError

from .models import Role, UserPreferences

logger = logging.getLogger(__name__)

PREFERENCES = "user_preferences"

WELCOME_FLAGS = {
    Role.RESTAURANT: ("has_seen_restaurant_welcome", "restaurant_welcome_seen_at"),
    Role.DELIVERY_AGENT: ("has_seen_delivery_welcome", "delivery_welcome_seen_at"),
}


class OnboardingError(Exception):
    pass


class OnboardingService:
    """Reads and flips the onboarding flags stored in user preferences."""

    def __init__(self, store: DataStore):
        self.store = store

    async def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        query = Query(PREFERENCES, limit=1).where("user_id", FilterOp.EQ, user_id)
        try:
            result = await self.store.query_records(query)
        except StoreError as e:
            logger.error("Error fetching preferences for %s: %s", user_id, e.message)
            raise OnboardingError(e.message) from e
        return UserPreferences(**result.rows[0]) if result.rows else None

    async def complete_tour(self, user_id: str) -> None:
        await self._set(user_id, {"has_seen_tour": True})

    async def mark_welcome_seen(self, user_id: str, role: Role, now: Optional[datetime] = None) -> None:
        if role not in WELCOME_FLAGS:
            raise OnboardingError(f"No welcome screen for role {role.value}")
        flag, seen_at = WELCOME_FLAGS[role]
        await self._set(user_id, {flag: True, seen_at: now or datetime.now(timezone.utc)})

    async def _set(self, user_id: str, fields: dict) -> None:
        try:
            await self.store.upsert_record(PREFERENCES, {"user_id": user_id, **fields}, on_conflict="user_id")
        except StoreError as e:
            logger.error("Error updating preferences for %s: %s", user_id, e.message)
            raise OnboardingError(e.message) from e
