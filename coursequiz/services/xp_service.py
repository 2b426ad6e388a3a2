"""
Redis-backed user profile store for experience points
"""
import redis
import logging
from typing import Optional
from coursequiz.config import settings

logger = logging.getLogger(__name__)

DIFFICULTY_BEGINNER = "beginner"
DIFFICULTY_INTERMEDIATE = "intermediate"
DIFFICULTY_ADVANCED = "advanced"

BEGINNER_XP_LIMIT = 20
INTERMEDIATE_XP_LIMIT = 60


def difficulty_for_xp(xp: Optional[int]) -> str:
    """Map accumulated xp to a difficulty tier"""
    xp = max(xp or 0, 0)
    if xp < BEGINNER_XP_LIMIT:
        return DIFFICULTY_BEGINNER
    if xp < INTERMEDIATE_XP_LIMIT:
        return DIFFICULTY_INTERMEDIATE
    return DIFFICULTY_ADVANCED


class XPService:
    """Reads and increments the numeric `xp` field of a user profile hash"""

    def __init__(self, redis_client=None):
        if redis_client is not None:
            self.redis_client = redis_client
            return

        try:
            self.redis_client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(f"Redis connection failed: {str(e)}. XP tracking disabled.")
            self.redis_client = None

    @staticmethod
    def profile_key(user_id: str) -> str:
        return f"user:{user_id}"

    def get_xp(self, user_id: str) -> int:
        """Current xp, 0 when unknown or the store is unavailable"""
        if not self.redis_client:
            return 0

        try:
            value = self.redis_client.hget(self.profile_key(user_id), "xp")
            return max(int(value), 0) if value else 0
        except (redis.RedisError, ValueError) as e:
            logger.error(f"XP read error for {user_id}: {str(e)}")
            return 0

    def add_xp(self, user_id: str, amount: int) -> Optional[int]:
        """
        Atomically add xp to a user's profile

        Returns:
            New xp total, or None if the store is unavailable
        """
        if amount < 0:
            raise ValueError("XP amount cannot be negative")
        if not self.redis_client:
            logger.warning(f"Skipping xp update for {user_id}: store unavailable")
            return None

        try:
            total = self.redis_client.hincrby(self.profile_key(user_id), "xp", amount)
            logger.info(f"Added {amount} xp to {user_id} (total: {total})")
            return int(total)
        except redis.RedisError as e:
            logger.error(f"XP update error for {user_id}: {str(e)}")
            return None


# Global instance
xp_service = XPService()
