from __future__ import annotations

import json

import pytest

from character import Character
from dice_engine import DiceEngine, InvalidBiasError, InvalidDiceCountError


def test_roll_looks_up_scripted_face(scripted_rng):
    character = Character(6, 0, rng=scripted_rng(faces=[17, 3]))

    first = character.roll()
    second = character.roll()

    assert (first.d20, first.dice, first.natural) == (17, 6, 17)
    assert (second.d20, second.dice) == (3, 1)


def test_roll_applies_bias_and_shifts_d20(scripted_rng):
    # one move on a D4 sends face 5 from bucket 1 to bucket 2
    character = Character(4, 1, rng=scripted_rng(faces=[5], picks=[0]))

    result = character.roll()

    assert (result.d20, result.dice) == (6, 2)
    assert str(result) == "6 -> 2"


def test_str_describes_character():
    assert str(Character(6, 3)) == "Character with +3 Sleight of Hand rolling a D6"
    assert str(Character(12, -2)) == "Character with -2 Sleight of Hand rolling a D12"
    assert str(Character(20, 0)) == "Character with +0 Sleight of Hand rolling a D20"


def test_map_string_lists_every_face():
    lines = Character(20, 0).map_string().splitlines()

    assert len(lines) == 20
    assert lines[0] == " 1 ->  1"
    assert lines[-1] == "20 -> 20"


def test_set_dice_rebuilds_mapping():
    character = Character(6, 0, rng=DiceEngine(seed=1))

    character.set_dice(2)

    assert character.dice == 2
    assert character.map_rows()[9] == (10, 1)
    assert character.map_rows()[10] == (11, 2)


def test_set_soh_rebuilds_mapping():
    character = Character(20, 0)

    character.set_soh(-4)

    assert character.soh == -4
    assert character.map_rows()[0] == (-3, 1)


@pytest.mark.parametrize("dice", [0, 256, "8"])
def test_failed_set_dice_keeps_previous_state(dice):
    character = Character(6, 2, rng=DiceEngine(seed=4))
    mapping = character.mapping

    with pytest.raises(InvalidDiceCountError):
        character.set_dice(dice)

    assert character.dice == 6
    assert character.mapping is mapping


@pytest.mark.parametrize("soh", [128, -129, 1.5])
def test_failed_set_soh_keeps_previous_state(soh):
    character = Character(6, 2, rng=DiceEngine(seed=4))
    mapping = character.mapping

    with pytest.raises(InvalidBiasError):
        character.set_soh(soh)

    assert character.soh == 2
    assert character.mapping is mapping


def test_constructor_rejects_zero_dice():
    with pytest.raises(InvalidDiceCountError):
        Character(0, 0)


def test_history_is_a_ring_buffer(scripted_rng):
    character = Character(20, 0, rng=scripted_rng(faces=[1, 2, 3, 4]), max_history=3)

    for _ in range(4):
        character.roll()

    assert [roll.natural for roll in character.roll_history] == [2, 3, 4]
    character.clear_history()
    assert character.roll_history == []


def test_history_can_be_disabled(scripted_rng):
    character = Character(20, 0, rng=scripted_rng(faces=[9]), record_history=False)

    character.roll()

    assert character.roll_history == []


def test_export_history_json_writes_file(tmp_path, scripted_rng):
    character = Character(20, 1, rng=scripted_rng(faces=[7]))
    character.roll()
    target = tmp_path / "history.json"

    exported = character.export_history_json(str(target))

    data = json.loads(target.read_text())
    assert json.loads(exported) == data
    assert data[0]["d20"] == 8
    assert data[0]["dice"] == 7
