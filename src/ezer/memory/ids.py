"""Short, project-prefixed entry identifiers."""

from __future__ import annotations

import random
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ezer.config import ProjectConfig

# Lowercase base32, no padding
BASE32_ALPHABET = "abcdefghijklmnopqrstuvwxyz234567"
SUFFIX_LENGTH = 5

ID_PATTERN = re.compile(r"[a-z0-9]{2,}-[a-z2-7]{5}")


def is_valid_id(value: object) -> bool:
    return isinstance(value, str) and ID_PATTERN.fullmatch(value) is not None


class IdGenerator:
    """Produces ``<prefix>-<5 random base32 chars>`` ids.

    About 25 bits of randomness: collisions are unlikely within one
    project's store, and are not checked for.
    """

    def __init__(self, project: ProjectConfig, rng: random.Random | None = None) -> None:
        self._project = project
        self._rng = rng or random.SystemRandom()

    def generate(self) -> str:
        if not self._project.persisted:
            self._project.save()
        suffix = "".join(self._rng.choice(BASE32_ALPHABET) for _ in range(SUFFIX_LENGTH))
        return f"{self._project.prefix}-{suffix}"
