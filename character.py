"""
SleightMap Character v1.1.0
===========================

A character rolling a DN with a Sleight of Hand modifier.

The character owns the current d20 mapping and rebuilds it from scratch
whenever the dice count or the modifier changes. A rejected change leaves the
previous dice, modifier and mapping untouched.

Changelog v1.1.0:
- Roll history with ring buffer management and JSON export
- set_dice/set_soh validate before touching state

Version: 1.1.0
Author: SleightMap Development Team
License: MIT
"""

import json
import logging
from typing import List, Optional, Tuple

from d20_mapping import FlatMapping, derive_mapping, render_mapping, validate_dice_count, validate_soh
from dice_engine import (
    D20_SIDES,
    DiceEngine,
    RandomSource,
    Roll,
)

DEFAULT_DICE = 6
DEFAULT_SOH = 0


class Character:
    """
    Rolls the reference d20 and reports the mapped dice face.

    Args:
        dice: Number of faces on the target die
        soh: Sleight of Hand modifier
        rng: Random source for rolls and redistribution (seedable DiceEngine by default)
        max_history: Maximum number of rolls to keep in history (ring buffer)
        record_history: Whether to record roll history
    """

    def __init__(self, dice: int = DEFAULT_DICE, soh: int = DEFAULT_SOH,
                 rng: Optional[RandomSource] = None, max_history: int = 1000,
                 record_history: bool = True):
        self.rng = rng if rng is not None else DiceEngine()
        self.max_history = max_history
        self.record_history = record_history
        self.roll_history: List[Roll] = []
        self.logger = logging.getLogger(f"{__name__}.Character")

        self.dice = validate_dice_count(dice)
        self.soh = validate_soh(soh)
        self.mapping: FlatMapping = derive_mapping(self.dice, self.soh, self.rng)

    def roll(self) -> Roll:
        """Roll the d20 once and look the face up in the current mapping."""
        natural = self.rng.roll_single(D20_SIDES)
        d20, dice = self.mapping.lookup(natural)
        result = Roll(d20=d20, dice=dice, natural=natural, soh=self.soh)
        self.logger.debug(f"Rolled natural {natural}: {result}")

        self._add_to_history(result)
        return result

    def set_dice(self, dice: int):
        """Switch to a D``dice`` and rebuild the mapping."""
        self._rebuild(validate_dice_count(dice), self.soh)

    def set_soh(self, soh: int):
        """Change the Sleight of Hand modifier and rebuild the mapping."""
        self._rebuild(self.dice, validate_soh(soh))

    def _rebuild(self, dice: int, soh: int):
        mapping = derive_mapping(dice, soh, self.rng)
        self.dice, self.soh, self.mapping = dice, soh, mapping
        self.logger.info(f"Mapping rebuilt for {self}")

    def map_rows(self) -> List[Tuple[int, int]]:
        return render_mapping(self.mapping)

    def map_string(self) -> str:
        return "".join(f"{d20:2} -> {dice:2}\n" for d20, dice in self.map_rows())

    # ==========================================
    # HISTORY
    # ==========================================

    def _add_to_history(self, result: Roll):
        """Add a result to the roll history with ring buffer management."""
        if not self.record_history:
            return

        self.roll_history.append(result)

        if len(self.roll_history) > self.max_history:
            self.roll_history = self.roll_history[-self.max_history:]

    def clear_history(self):
        """Clear all roll history."""
        self.roll_history = []

    def export_history_json(self, path: Optional[str] = None) -> str:
        """Export roll history as JSON string."""
        json_data = json.dumps([result.to_dict() for result in self.roll_history], indent=2)

        if path:
            with open(path, 'w') as f:
                f.write(json_data)

        return json_data

    def __str__(self) -> str:
        return f"Character with {self.soh:+} Sleight of Hand rolling a D{self.dice}"

    def __repr__(self) -> str:
        return f"Character(dice={self.dice}, soh={self.soh}, rolls={len(self.roll_history)})"
