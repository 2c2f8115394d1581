"""
Slug generation strategies for the short link service.
Uses Strategy Pattern so the slug alphabet can be swapped by configuration.
"""

import logging
import re
import secrets
import string
from abc import ABC, abstractmethod
from typing import Optional

from shortlink_app.errors import InternalError, InvalidInputError
from shortlink_app.storage.links import LinkStore

logger = logging.getLogger(__name__)

CUSTOM_SLUG_PATTERN = re.compile(r"[A-Za-z0-9]+")

# Paths the app serves itself; a link there could never be reached
RESERVED_SLUGS = frozenset({"api", "docs", "redoc", "health"})


class SlugStrategy(ABC):
    """Abstract base class for slug generation strategies"""

    def __init__(self, length: int = 6, max_retries: Optional[int] = None):
        self.length = length
        self.max_retries = max_retries

    @property
    @abstractmethod
    def alphabet(self) -> str:
        """Characters a generated slug is drawn from"""
        pass

    def generate(self, length: Optional[int] = None) -> str:
        """Draw one random slug (no uniqueness check)"""
        size = length or self.length
        return ''.join(secrets.choice(self.alphabet) for _ in range(size))

    def generate_unique(self, store: LinkStore, length: Optional[int] = None) -> str:
        """
        Draw slugs until one is not used by any link, deleted ones included.

        Retries are unbounded unless ``max_retries`` is set.

        Raises:
            InternalError: if ``max_retries`` draws all collided
        """
        attempt = 0
        while self.max_retries is None or attempt < self.max_retries:
            attempt += 1
            slug = self.generate(length)
            if slug not in RESERVED_SLUGS and not store.exists(slug):
                return slug
            logger.info(f"Slug collision on attempt {attempt}: '{slug}'")

        logger.error(f"Could not generate unique slug after {self.max_retries} attempts")
        raise InternalError()


class UrlSafeSlugStrategy(SlugStrategy):
    """
    Slugs over ``A-Za-z0-9_-`` (64 symbols).

    6 characters give 64^6 (~6.9e10) slugs, so collisions are rare.
    """

    @property
    def alphabet(self) -> str:
        return string.ascii_letters + string.digits + "_-"


class AlphanumericSlugStrategy(SlugStrategy):
    """Slugs over ``A-Za-z0-9`` only, the same alphabet custom slugs use."""

    @property
    def alphabet(self) -> str:
        return string.ascii_letters + string.digits


def validate_custom_slug(slug: str, min_length: int = 3, max_length: int = 30) -> str:
    """
    Check a user-chosen slug against the length and charset rules.

    Raises:
        InvalidInputError: if the slug is too short, too long or not alphanumeric
    """
    if not min_length <= len(slug) <= max_length:
        raise InvalidInputError(
            f"Custom slug must be between {min_length} and {max_length} characters"
        )
    if not CUSTOM_SLUG_PATTERN.fullmatch(slug):
        raise InvalidInputError("Custom slug must be alphanumeric")
    if slug in RESERVED_SLUGS:
        raise InvalidInputError(f"'{slug}' is reserved")
    return slug
