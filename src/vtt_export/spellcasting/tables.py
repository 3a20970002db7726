"""
D&D 5e spell slot progression tables.

One table serves every shared-pool caster, single-class or multiclassed:
it is indexed by the total effective caster level. Pact magic has its own
table indexed by the warlock's class level.
"""

# Caster level -> slots for spell levels 1..9 (index 0 is 1st-level slots)
SPELL_SLOT_PROGRESSION: dict[int, tuple[int, ...]] = {
    0: (0, 0, 0, 0, 0, 0, 0, 0, 0),
    1: (2, 0, 0, 0, 0, 0, 0, 0, 0),
    2: (3, 0, 0, 0, 0, 0, 0, 0, 0),
    3: (4, 2, 0, 0, 0, 0, 0, 0, 0),
    4: (4, 3, 0, 0, 0, 0, 0, 0, 0),
    5: (4, 3, 2, 0, 0, 0, 0, 0, 0),
    6: (4, 3, 3, 0, 0, 0, 0, 0, 0),
    7: (4, 3, 3, 1, 0, 0, 0, 0, 0),
    8: (4, 3, 3, 2, 0, 0, 0, 0, 0),
    9: (4, 3, 3, 3, 1, 0, 0, 0, 0),
    10: (4, 3, 3, 3, 2, 0, 0, 0, 0),
    11: (4, 3, 3, 3, 2, 1, 0, 0, 0),
    12: (4, 3, 3, 3, 2, 1, 0, 0, 0),
    13: (4, 3, 3, 3, 2, 1, 1, 0, 0),
    14: (4, 3, 3, 3, 2, 1, 1, 0, 0),
    15: (4, 3, 3, 3, 2, 1, 1, 1, 0),
    16: (4, 3, 3, 3, 2, 1, 1, 1, 0),
    17: (4, 3, 3, 3, 2, 1, 1, 1, 1),
    18: (4, 3, 3, 3, 3, 1, 1, 1, 1),
    19: (4, 3, 3, 3, 3, 2, 1, 1, 1),
    20: (4, 3, 3, 3, 3, 2, 2, 1, 1),
}

# Warlock level -> (pact slot spell level, number of pact slots)
PACT_MAGIC_PROGRESSION: dict[int, tuple[int, int]] = {
    1: (1, 1),
    2: (1, 2),
    3: (2, 2),
    4: (2, 2),
    5: (3, 2),
    6: (3, 2),
    7: (4, 2),
    8: (4, 2),
    9: (5, 2),
    10: (5, 2),
    11: (5, 3),
    12: (5, 3),
    13: (5, 3),
    14: (5, 3),
    15: (5, 3),
    16: (5, 3),
    17: (5, 4),
    18: (5, 4),
    19: (5, 4),
    20: (5, 4),
}

PACT_MAGIC_RECHARGE = "short_rest"
