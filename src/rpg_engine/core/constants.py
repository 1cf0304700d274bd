"""Rules constants shared across the engine.

This module defines the numeric constants of the rules engine: dice
bounds, difficulty classes, spell scaling heuristics, and dispatch
context requirements.
"""

from __future__ import annotations

# =============================================================================
# Dice Bounds
# =============================================================================

MIN_DICE_COUNT = 1
"""Minimum number of dice in an expression."""

MAX_DICE_COUNT = 100
"""Maximum number of dice in a single expression."""

MIN_DIE_SIDES = 2
"""Minimum number of faces on a die."""

MAX_DIE_SIDES = 1000
"""Maximum number of faces on a die."""

# =============================================================================
# Combat Constants
# =============================================================================

UNARMED_DAMAGE_DICE = "1d4"
"""Damage dice for an unarmed strike."""

DEFENSE_DC = 15
"""Difficulty class for dodge and parry checks."""

BLOCK_DAMAGE_REDUCTION = 2
"""Flat damage reduction granted by a block."""

MINIMUM_HIT_DAMAGE = 1
"""A successful hit always deals at least this much damage."""

SPELL_SAVE_DC_BASE = 8
"""Base of the spell save DC formula."""

SPELL_DAMAGE_PER_EXTRA_LEVEL = 6
"""Flat damage added per slot level above a spell's base level."""

SPELL_HEALING_PER_EXTRA_LEVEL = 4
"""Flat healing added per slot level above a spell's base level."""

MAX_SPELL_LEVEL = 9
"""Highest spell slot level."""

# =============================================================================
# Movement Constants
# =============================================================================

RUN_SPEED_MULTIPLIER = 2.0
"""Running doubles the movement budget."""

SNEAK_SPEED_MULTIPLIER = 0.5
"""Moving stealthily halves the movement budget."""

# =============================================================================
# Dispatch Constants
# =============================================================================

REQUIRED_CONTEXT_FIELDS = ("session_id", "participant_id", "turn", "round")
"""Context fields every dispatched action must carry."""

WILDCARD_EVENT = "*"
"""Listener key that receives every event type."""

EVENT_SOURCE = "action_dispatcher"
"""Source tag stamped on events emitted by the dispatcher."""
