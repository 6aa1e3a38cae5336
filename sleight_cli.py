"""
SleightMap Command Line v1.1.0
==============================

Single-shot rolls and the interactive menu around a Sleight of Hand character.

Usage::

    sleight-map                 # interactive menu, starting from a D6 at +0
    sleight-map 8 3             # one roll of a D8 with +3 Sleight of Hand
    sleight-map 8 -3            # negative modifiers need no "--"

Defaults for the interactive menu come from SLEIGHT_MAP_DICE, SLEIGHT_MAP_SOH,
SLEIGHT_MAP_SEED and SLEIGHT_MAP_LOG_LEVEL.

Changelog v1.1.0:
- --log-level accepts any letter case, like SLEIGHT_MAP_LOG_LEVEL

Version: 1.1.0
Author: SleightMap Development Team
License: MIT
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, TextIO

from character import DEFAULT_DICE, DEFAULT_SOH, Character
from d20_mapping import validate_dice_count, validate_soh
from dice_engine import DiceEngine, DiceEngineError, InvalidInputError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

MENU = (
    "\n"
    "R) Roll\n"
    "M) View Map\n"
    "D) Change Dice\n"
    "S) Change Sleight of Hand modifier\n"
    "Q) Quit\n"
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    dice: int = DEFAULT_DICE
    soh: int = DEFAULT_SOH
    seed: Optional[int] = None
    log_level: str = "WARNING"


def _read_int(env: Mapping[str, str], name: str) -> Optional[int]:
    raw_value = env.get(name, "").strip()
    if not raw_value:
        return None
    try:
        return int(raw_value)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer.") from exc


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Read CLI defaults from the environment, reporting every invalid value at once."""
    active_env = os.environ if env is None else env

    errors: List[str] = []
    values: Dict[str, Any] = {}
    for env_name, key, validate in (
        ("SLEIGHT_MAP_DICE", "dice", validate_dice_count),
        ("SLEIGHT_MAP_SOH", "soh", validate_soh),
        ("SLEIGHT_MAP_SEED", "seed", None),
    ):
        try:
            value = _read_int(active_env, env_name)
            if value is not None and validate is not None:
                validate(value)
        except RuntimeError as exc:
            errors.append(str(exc))
            continue
        except DiceEngineError as exc:
            errors.append(f"{env_name}: {exc}")
            continue
        if value is not None:
            values[key] = value

    log_level = active_env.get("SLEIGHT_MAP_LOG_LEVEL", "").strip().upper()
    if log_level:
        if log_level in LOG_LEVELS:
            values["log_level"] = log_level
        else:
            errors.append(f"SLEIGHT_MAP_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}.")

    if errors:
        error_lines = "\n- ".join(errors)
        raise RuntimeError(f"Invalid SleightMap environment:\n- {error_lines}")
    return Settings(**values)


def configure_logging(level: str = "WARNING", stream: Optional[TextIO] = None) -> None:
    """Install a plain-text handler on the root logger.

    Safe to call multiple times; clears existing handlers first.
    """
    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)


def parse_dice_count(text: str) -> int:
    try:
        return validate_dice_count(int(text.strip()))
    except (ValueError, DiceEngineError) as exc:
        raise InvalidInputError(f"Invalid dice number: {text.strip()!r}") from exc


def parse_bias(text: str) -> int:
    try:
        return validate_soh(int(text.strip()))
    except (ValueError, DiceEngineError) as exc:
        raise InvalidInputError(f"Invalid Sleight of Hand modifier: {text.strip()!r}") from exc


# ==========================================
# INTERACTIVE MENU
# ==========================================

class Menu:
    """Text menu around one Character. Empty input repeats the last command."""

    def __init__(self, character: Character, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None):
        self.character = character
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.previous_input: Optional[str] = None

    def _write(self, text: str = "") -> None:
        print(text, file=self.stdout)

    def _prompt(self, text: str) -> Optional[str]:
        self.stdout.write(text)
        self.stdout.flush()
        line = self.stdin.readline()
        return line if line else None

    def run(self) -> None:
        self._write()
        while True:
            self._write(str(self.character))
            self._write(MENU)
            line = self._prompt("> ")
            if line is None or not self.process_input(line):
                break

    def process_input(self, line: str) -> bool:
        """Handle one menu choice; False means quit."""
        choice = line.strip().upper()
        if choice == "":
            if self.previous_input is None:
                self._write("Invalid option")
                return True
            choice = self.previous_input

        if choice == "Q":
            return False
        if choice == "R":
            self._write(f"\n{self.character.roll()}\n")
        elif choice == "M":
            self._write(f"\n{self.character.map_string()}")
        elif choice == "D":
            self._update_dice()
        elif choice == "S":
            self._update_soh()
        else:
            self._write("Invalid option\n")
            return True

        self.previous_input = choice
        return True

    def _update_dice(self) -> None:
        line = self._prompt("\nEnter dice number: ") or ""
        try:
            self.character.set_dice(parse_dice_count(line))
        except InvalidInputError as exc:
            logger.info(str(exc))
            self._write("Invalid dice number\n")
            return
        self._write()

    def _update_soh(self) -> None:
        line = self._prompt("\nEnter Sleight of Hand modifier: ") or ""
        try:
            self.character.set_soh(parse_bias(line))
        except InvalidInputError as exc:
            logger.info(str(exc))
            self._write("Invalid Sleight of Hand modifier\n")
            return
        self._write("\n")


# ==========================================
# ENTRY POINT
# ==========================================

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sleight-map",
        description="Roll a d20 mapped onto any die, skewed by a Sleight of Hand modifier.",
    )
    parser.add_argument("dice", nargs="?", default=None,
                        help="Faces on the target die; omit for the interactive menu.")
    parser.add_argument("soh", nargs="?", default=None, help="Sleight of Hand modifier (default 0).")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible rolls.")
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, default=None)
    return parser


def run_once(dice: str, soh: Optional[str], rng: DiceEngine, stdout: Optional[TextIO] = None) -> None:
    character = Character(parse_dice_count(dice), parse_bias(soh) if soh is not None else 0, rng=rng)
    print(character.roll(), file=stdout or sys.stdout)


def main(argv: Optional[List[str]] = None, env: Optional[Mapping[str, str]] = None,
         stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(env)
    except RuntimeError as exc:
        print(exc, file=sys.stderr)
        return 2

    configure_logging(args.log_level or settings.log_level)
    rng = DiceEngine(seed=args.seed if args.seed is not None else settings.seed)

    if args.dice is None:
        Menu(Character(settings.dice, settings.soh, rng=rng), stdin=stdin, stdout=stdout).run()
        return 0

    try:
        run_once(args.dice, args.soh, rng, stdout=stdout)
    except InvalidInputError as exc:
        print(exc, file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
