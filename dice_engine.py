"""
SleightMap DiceEngine v1.1.0
============================

Seedable randomness source and roll results for SleightMap.

Every random draw in the project (the reference d20 and the weighted donor
pick used by the bias redistribution) goes through a DiceEngine instance, so
callers can inject a seeded engine, or any object with the same two methods,
and get reproducible mappings and rolls.

Changelog v1.1.0:
- Added weighted_pick() and the standalone weighted_index() sampler
- Roll.from_dict is a proper @classmethod with round-trip support
- Added InvalidBiasError, InvalidInputError and PartitionCoverageError to the error hierarchy

This module provides:
- Per-instance RNG isolation (random.Random per engine)
- Uniform single-die rolls
- Cumulative-weight binary-search sampling
- The Roll result type and the DiceEngineError hierarchy

Version: 1.1.0
Author: SleightMap Development Team
License: MIT
"""

import bisect
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import accumulate
from typing import Any, Dict, Optional, Protocol, Sequence, TypeVar

T = TypeVar("T")

# ==========================================
# ENUMS AND CONSTANTS
# ==========================================

D20_SIDES = 20
MIN_DICE = 1
MAX_DICE = 255
MIN_SOH = -128
MAX_SOH = 127

# ==========================================
# EXCEPTIONS
# ==========================================

class DiceEngineError(Exception):
    """Base exception for dice engine errors."""
    pass

class InvalidDiceCountError(DiceEngineError):
    """Raised when a dice count is zero, negative, too large or not an integer."""
    pass

class InvalidBiasError(DiceEngineError):
    """Raised when a Sleight of Hand modifier is out of range."""
    pass

class InvalidInputError(DiceEngineError):
    """Raised when text input cannot be parsed into a dice count or modifier."""
    pass

class PartitionCoverageError(DiceEngineError):
    """Raised when a partition loses or duplicates a d20 face."""
    pass

# ==========================================
# RANDOMNESS
# ==========================================

class RandomSource(Protocol):
    """What the mapping and the character need from a randomness source."""

    def roll_single(self, sides: int) -> int:
        ...

    def weighted_pick(self, items: Sequence[T], weights: Sequence[int]) -> T:
        ...


def weighted_index(weights: Sequence[int], uniform: float) -> int:
    """
    Map a uniform draw onto an index, proportionally to the weights.

    Args:
        weights: Non-negative weights, at least one positive
        uniform: A float in [0.0, 1.0)

    Returns:
        Index i such that P(i) = weights[i] / sum(weights)

    Raises:
        ValueError: If weights are empty, negative or all zero
    """
    if not weights:
        raise ValueError("cannot pick from an empty weight list")
    if any(w < 0 for w in weights):
        raise ValueError(f"weights must be non-negative, got {list(weights)}")

    cumulative = list(accumulate(weights))
    total = cumulative[-1]
    if total <= 0:
        raise ValueError("at least one weight must be positive")

    # bisect_right skips zero-weight entries sharing a cumulative boundary
    return bisect.bisect_right(cumulative, uniform * total)


class DiceEngine:
    """
    Per-instance random source for SleightMap.

    Wraps its own random.Random so two engines never share state, and a seeded
    engine replays the same rolls and the same redistribution choices.
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize the dice engine.

        Args:
            seed: Optional random seed for reproducible results (useful for testing)
        """
        self.seed = seed
        self.rng = random.Random(seed)
        self.logger = logging.getLogger(__name__)

    def roll_single(self, sides: int) -> int:
        """
        Roll a single die with specified number of sides.

        Raises:
            InvalidDiceCountError: If sides is less than 1
        """
        if sides < 1:
            raise InvalidDiceCountError(f"Die must have at least 1 side, got {sides}")

        return self.rng.randint(1, sides)

    def weighted_pick(self, items: Sequence[T], weights: Sequence[int]) -> T:
        """
        Pick one item with probability proportional to its weight.

        Raises:
            ValueError: If items and weights differ in length, or weights are unusable
        """
        if len(items) != len(weights):
            raise ValueError(f"got {len(items)} items but {len(weights)} weights")

        index = weighted_index(weights, self.rng.random())
        self.logger.debug(f"Weighted pick: index {index} of {len(items)} (weights={list(weights)})")
        return items[index]

    def __repr__(self) -> str:
        return f"DiceEngine(seed={self.seed!r})"

# ==========================================
# DATA CLASSES
# ==========================================

@dataclass
class Roll:
    """
    One roll of the reference d20 and the dice face it maps to.

    ``d20`` is the natural face shifted by the Sleight of Hand modifier, so it
    may fall outside 1..20; it is for display only.
    """
    d20: int
    dice: int
    natural: int
    soh: int = 0
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert the roll to a dictionary for serialization."""
        return {
            "d20": self.d20,
            "dice": self.dice,
            "natural": self.natural,
            "soh": self.soh,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Roll':
        """Create a Roll from a dictionary."""
        return cls(**data)

    def __str__(self) -> str:
        return f"{self.d20} -> {self.dice}"
