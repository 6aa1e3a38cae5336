"""
SleightMap d20 Mapping v1.1.0
=============================

Derives the d20 -> dice face mapping used by a Sleight of Hand character.

The twenty faces of the reference d20 are split as evenly as possible across
the faces of the target die, then a signed Sleight of Hand modifier nudges
d20 faces one bucket at a time toward the high end (positive) or the low end
(negative) of the target die. Whatever the modifier, a higher d20 face never
maps to a lower dice face than a lower d20 face.

Changelog v1.1.0:
- Negative modifiers reuse the same redistribution through a descending RankOrder
- Saturation is signalled internally and never surfaces to callers
- Partition labels are clamped to the dice count to absorb float rounding

Version: 1.1.0
Author: SleightMap Development Team
License: MIT
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from dice_engine import (
    D20_SIDES,
    MAX_DICE,
    MAX_SOH,
    MIN_DICE,
    MIN_SOH,
    DiceEngine,
    InvalidBiasError,
    InvalidDiceCountError,
    PartitionCoverageError,
    RandomSource,
)

logger = logging.getLogger(__name__)

# ==========================================
# RANK ORDER
# ==========================================

@dataclass(frozen=True)
class RankOrder:
    """
    Comparator used by the redistribution.

    Ascending ranks push d20 faces toward the highest bucket; descending ranks
    push them toward bucket 1. Faces and bucket labels share the same order.
    """
    descending: bool = False

    @classmethod
    def for_bias(cls, bias: int) -> 'RankOrder':
        return cls(descending=bias < 0)

    def key(self, value: int) -> int:
        return -value if self.descending else value

    def sorted(self, values) -> List[int]:
        return sorted(values, key=self.key)


ASCENDING = RankOrder(descending=False)
DESCENDING = RankOrder(descending=True)

# ==========================================
# PARTITION
# ==========================================

@dataclass
class Partition:
    """Bucket label -> bag of d20 faces currently assigned to that bucket."""
    dice: int
    buckets: Dict[int, List[int]] = field(default_factory=dict)
    moves: int = 0

    def labels(self, order: RankOrder = ASCENDING) -> List[int]:
        return order.sorted(self.buckets)

    def _faces(self) -> List[int]:
        return sorted(face for bag in self.buckets.values() for face in bag)

    def check_coverage(self):
        """Raise PartitionCoverageError unless every d20 face sits in exactly one bag."""
        faces = self._faces()
        if faces != list(range(1, D20_SIDES + 1)):
            raise PartitionCoverageError(f"Partition does not cover 1..{D20_SIDES} exactly once: {faces}")

    def snapshot(self) -> Dict[int, List[int]]:
        return {label: sorted(bag) for label, bag in sorted(self.buckets.items())}


def validate_dice_count(dice) -> int:
    """
    Check a dice count before any partition work.

    Raises:
        InvalidDiceCountError: If dice is not an integer in MIN_DICE..MAX_DICE
    """
    if isinstance(dice, bool) or not isinstance(dice, int):
        raise InvalidDiceCountError(f"Dice count must be an integer, got {dice!r}")
    if dice < MIN_DICE:
        raise InvalidDiceCountError(f"Dice count must be at least {MIN_DICE}, got {dice}")
    if dice > MAX_DICE:
        raise InvalidDiceCountError(f"Dice count must be at most {MAX_DICE}, got {dice}")
    return dice


def validate_soh(soh) -> int:
    """
    Raises:
        InvalidBiasError: If soh is not an integer in MIN_SOH..MAX_SOH
    """
    if isinstance(soh, bool) or not isinstance(soh, int):
        raise InvalidBiasError(f"Sleight of Hand modifier must be an integer, got {soh!r}")
    if not MIN_SOH <= soh <= MAX_SOH:
        raise InvalidBiasError(f"Sleight of Hand modifier must be between {MIN_SOH} and {MAX_SOH}, got {soh}")
    return soh


class PartitionBuilder:
    """Even ceiling-based split of the d20 faces across N buckets."""

    def build(self, dice: int) -> Partition:
        """
        Assign every d20 face to bucket ceil(face / (20 / dice)).

        Args:
            dice: Number of faces on the target die (1..255)

        Returns:
            Partition with buckets labelled 1..dice. When dice > 20 some
            buckets stay empty.

        Raises:
            InvalidDiceCountError: If dice is out of range
        """
        dice = validate_dice_count(dice)
        threshold = float(D20_SIDES) / dice

        partition = Partition(dice=dice, buckets={label: [] for label in range(1, dice + 1)})
        for face in range(1, D20_SIDES + 1):
            label = min(math.ceil(face / threshold), dice)
            partition.buckets[label].append(face)

        logger.debug(f"Built D{dice} partition: {partition.snapshot()}")
        return partition

# ==========================================
# BIAS REDISTRIBUTION
# ==========================================

class RedistributionSaturated(Exception):
    """No bucket can donate a face any more. Not an error."""
    pass


class BiasRedistributor:
    """
    Moves d20 faces one bucket up the rank order, bag-size weighted.

    Each step picks a donor among the non-sink buckets holding more than one
    face, pops its highest-ranked face and pushes it into the next bucket in
    rank order, so bags stay contiguous and non-empty.
    """

    def __init__(self, rng: Optional[RandomSource] = None, order: RankOrder = ASCENDING):
        self.rng = rng if rng is not None else DiceEngine()
        self.order = order

    def apply(self, partition: Partition, magnitude: int) -> Partition:
        """
        Perform up to ``magnitude`` redistribution steps in place.

        Stops early, without error, once no bucket can donate.

        Raises:
            InvalidBiasError: If magnitude is negative
        """
        if magnitude < 0:
            raise InvalidBiasError(f"Redistribution magnitude must be non-negative, got {magnitude}")

        for applied in range(magnitude):
            try:
                self.step(partition)
            except RedistributionSaturated:
                logger.debug(f"Redistribution saturated after {applied} moves ({magnitude - applied} discarded)")
                break
        return partition

    def donors(self, partition: Partition) -> Tuple[List[int], List[int]]:
        """Eligible donor labels and their weights (bag sizes), in rank order."""
        ranked = partition.labels(self.order)
        sink = ranked[-1]
        labels = [label for label in ranked if label != sink and len(partition.buckets[label]) > 1]
        return labels, [len(partition.buckets[label]) for label in labels]

    def step(self, partition: Partition):
        labels, weights = self.donors(partition)
        if not labels:
            raise RedistributionSaturated()

        donor = self.rng.weighted_pick(labels, weights)
        bag = partition.buckets[donor]
        face = max(bag, key=self.order.key)
        bag.remove(face)

        ranked = partition.labels(self.order)
        receiver = ranked[ranked.index(donor) + 1]
        partition.buckets[receiver].append(face)
        partition.moves += 1

        logger.debug(f"Moved d20 face {face} from bucket {donor} to bucket {receiver}")

# ==========================================
# FLAT MAPPING
# ==========================================

@dataclass(frozen=True)
class FlatMapping:
    """Read-only d20 face -> dice face lookup, with the modifier used for display."""
    dice: int
    soh: int
    faces: Dict[int, int]

    def lookup(self, face: int) -> Tuple[int, int]:
        """Return (adjusted d20, dice face) for a natural d20 face."""
        return face + self.soh, self.faces[face]

    def rows(self) -> Iterator[Tuple[int, int]]:
        for face in sorted(self.faces):
            yield self.lookup(face)

    def __len__(self) -> int:
        return len(self.faces)


def flatten(partition: Partition, soh: int) -> FlatMapping:
    faces = {face: label for label, bag in partition.buckets.items() for face in bag}
    return FlatMapping(dice=partition.dice, soh=soh, faces=dict(sorted(faces.items())))


def render_mapping(mapping: FlatMapping) -> List[Tuple[int, int]]:
    """Ordered (adjusted d20, dice face) pairs for display."""
    return list(mapping.rows())


def derive_mapping(dice: int, soh: int, rng: Optional[RandomSource] = None) -> FlatMapping:
    """
    Build, bias and flatten the mapping for a D``dice`` and a signed modifier.

    Args:
        dice: Number of faces on the target die (1..255)
        soh: Sleight of Hand modifier; its sign picks the direction and its
             absolute value bounds the number of moves
        rng: Random source used for donor picks (fresh DiceEngine if omitted)

    Raises:
        InvalidDiceCountError: If dice is out of range
        InvalidBiasError: If soh is not an integer in -128..127
    """
    try:
        soh = validate_soh(soh)
        partition = PartitionBuilder().build(dice)
        if soh != 0:
            BiasRedistributor(rng, RankOrder.for_bias(soh)).apply(partition, abs(soh))
        partition.check_coverage()
        return flatten(partition, soh)
    except (InvalidDiceCountError, InvalidBiasError):
        raise
    except Exception as e:
        logger.error(f"Error deriving D{dice} mapping with SoH {soh}: {e}")
        raise
