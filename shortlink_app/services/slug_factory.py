"""
Factory for creating slug generation strategies.
Uses caching to avoid creating multiple instances.
"""

from enum import Enum
from shortlink_app.services.slug_strategies import (
    SlugStrategy,
    UrlSafeSlugStrategy,
    AlphanumericSlugStrategy
)
from shortlink_app.config import settings


class SlugStrategyType(Enum):
    """Available slug generation strategies"""
    URL_SAFE = "url_safe"
    ALPHANUMERIC = "alphanumeric"


class SlugFactory:
    """Factory for creating slug generation strategies with caching"""

    _instances = {}  # Cache for strategy instances

    @classmethod
    def create_strategy(
        cls,
        strategy_type: SlugStrategyType = None
    ) -> SlugStrategy:
        """
        Create or return cached slug generation strategy.

        Args:
            strategy_type: Type of strategy to create.
                          If None, uses value from settings.

        Returns:
            A cached instance of a SlugStrategy

        Raises:
            ValueError: If strategy_type is unknown
        """
        if strategy_type is None:
            strategy_type = SlugStrategyType(settings.slug_strategy)

        if strategy_type in cls._instances:
            return cls._instances[strategy_type]

        if strategy_type == SlugStrategyType.URL_SAFE:
            instance = UrlSafeSlugStrategy(
                length=settings.slug_length,
                max_retries=settings.slug_max_retries
            )
        elif strategy_type == SlugStrategyType.ALPHANUMERIC:
            instance = AlphanumericSlugStrategy(
                length=settings.slug_length,
                max_retries=settings.slug_max_retries
            )
        else:
            raise ValueError(f"Unknown strategy type: {strategy_type}")

        cls._instances[strategy_type] = instance
        return instance

    @classmethod
    def clear_instances(cls):
        """Clear cached instances (for testing)"""
        cls._instances = {}
