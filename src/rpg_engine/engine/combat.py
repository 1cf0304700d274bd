"""Combat and spell resolution.

This module resolves attacks, defensive reactions, spell casts, saving
throws and initiative on top of the dice engine. Outcomes are returned
as immutable records and appended to an in-memory combat log; hit point
changes are applied to the combatants as a side effect.
"""

from __future__ import annotations

from collections.abc import Sequence

from rpg_engine.core.constants import (
    BLOCK_DAMAGE_REDUCTION,
    DEFENSE_DC,
    MAX_SPELL_LEVEL,
    MINIMUM_HIT_DAMAGE,
    SPELL_DAMAGE_PER_EXTRA_LEVEL,
    SPELL_HEALING_PER_EXTRA_LEVEL,
    SPELL_SAVE_DC_BASE,
    UNARMED_DAMAGE_DICE,
)
from rpg_engine.core.exceptions import CombatError
from rpg_engine.core.logging import get_logger
from rpg_engine.engine.dice import CheckResult, DiceRoller, RollType, parse_notation
from rpg_engine.models.combat import (
    AttackOutcome,
    CombatantStats,
    CombatLogEntry,
    CombatStatistics,
    DefenseOutcome,
    SavingThrowResult,
    Spell,
    SpellCastOutcome,
    Weapon,
)
from rpg_engine.models.enums import (
    Ability,
    DamageType,
    DefenseMode,
    EffectKind,
    WeaponCategory,
)


logger = get_logger(__name__)


def _roll_type(advantage: bool, disadvantage: bool) -> RollType:
    if advantage and not disadvantage:
        return RollType.ADVANTAGE
    if disadvantage and not advantage:
        return RollType.DISADVANTAGE
    return RollType.NORMAL


class CombatEngine:
    """Resolve combat actions against an injectable dice roller.

    Attributes:
        dice: The dice roller every resolution draws from.
        defense_dc: Difficulty class of dodge and parry checks.
    """

    def __init__(self, dice: DiceRoller | None = None, *, defense_dc: int = DEFENSE_DC) -> None:
        """Initialize the combat engine.

        Args:
            dice: Dice roller to use. A fresh unseeded roller if omitted.
            defense_dc: Difficulty class of dodge and parry checks.
        """
        self.dice = dice if dice is not None else DiceRoller()
        self.defense_dc = defense_dc
        self._history: list[CombatLogEntry] = []
        logger.debug("CombatEngine initialized", defense_dc=defense_dc)

    # -------------------------------------------------------------------------
    # Attacks
    # -------------------------------------------------------------------------

    @staticmethod
    def attack_ability(weapon: Weapon | None) -> Ability:
        """Ability used to attack with a weapon (STR unless ranged)."""
        if weapon is not None and weapon.category == WeaponCategory.RANGED:
            return Ability.DEX
        return Ability.STR

    def attack_bonus(self, attacker: CombatantStats, weapon: Weapon | None = None) -> int:
        """Compute the attack bonus: ability modifier + proficiency + weapon bonus."""
        bonus = attacker.modifier(self.attack_ability(weapon)) + attacker.proficiency_bonus
        if weapon is not None:
            bonus += weapon.attack_bonus
        return bonus

    @staticmethod
    def can_attack(attacker: CombatantStats, target: CombatantStats) -> bool:
        """Whether an attack is legal. Range and line of sight always pass."""
        return (
            attacker.id != target.id
            and attacker.is_conscious
            and target.is_conscious
        )

    def attack(
        self,
        attacker: CombatantStats,
        target: CombatantStats,
        weapon: Weapon | None = None,
        *,
        advantage: bool = False,
        disadvantage: bool = False,
    ) -> AttackOutcome:
        """Resolve an attack and apply its damage to the target.

        A natural maximum face is a critical hit regardless of armor
        class; a natural 1 is a fumble and never deals damage. Critical
        hits roll the damage dice twice and add modifiers once.

        Args:
            attacker: The attacking combatant.
            target: The combatant being attacked.
            weapon: Weapon to attack with. Falls back to the attacker's
                equipped weapon, then to an unarmed strike.
            advantage: Roll the attack with advantage.
            disadvantage: Roll the attack with disadvantage.

        Returns:
            The resolved AttackOutcome.
        """
        weapon = weapon if weapon is not None else attacker.equipped_weapon
        bonus = self.attack_bonus(attacker, weapon)
        roll = self.dice.roll_d20(bonus, roll_type=_roll_type(advantage, disadvantage))

        critical = roll.critical
        fumble = roll.is_fumble
        hit = (critical or roll.total >= target.armor_class) and not fumble

        weapon_name = weapon.name if weapon is not None else "unarmed strike"
        damage_type = weapon.damage_type if weapon is not None else DamageType.BLUDGEONING
        damage = 0
        damage_rolls: list[int] = []

        if hit:
            damage, damage_rolls = self._roll_weapon_damage(attacker, weapon, critical=critical)
            target.take_damage(damage)

        if fumble:
            description = f"{attacker.name} fumbles the attack on {target.name}!"
        elif critical:
            description = (
                f"Critical hit! {attacker.name} strikes {target.name} with "
                f"{weapon_name} for {damage} {damage_type} damage."
            )
        elif hit:
            description = (
                f"{attacker.name} hits {target.name} with {weapon_name} "
                f"for {damage} {damage_type} damage."
            )
        else:
            description = f"{attacker.name} misses {target.name} ({roll.total} vs AC {target.armor_class})."

        outcome = AttackOutcome(
            attacker_id=attacker.id,
            target_id=target.id,
            weapon_name=weapon_name,
            hit=hit,
            critical=critical,
            fumble=fumble,
            damage=damage,
            damage_type=damage_type,
            attack_roll=roll.total,
            natural_roll=roll.natural,
            attack_bonus=bonus,
            damage_rolls=damage_rolls,
            target_ac=target.armor_class,
            target_hp_remaining=target.hp_current,
            description=description,
        )
        self._history.append(CombatLogEntry(kind="attack", actor_id=attacker.id, outcome=outcome))

        logger.info(
            "Attack resolved",
            attacker=attacker.id,
            target=target.id,
            roll=roll.total,
            ac=target.armor_class,
            hit=hit,
            critical=critical,
            damage=damage,
        )
        return outcome

    def _roll_weapon_damage(
        self,
        attacker: CombatantStats,
        weapon: Weapon | None,
        *,
        critical: bool,
    ) -> tuple[int, list[int]]:
        notation = weapon.damage_dice if weapon is not None else UNARMED_DAMAGE_DICE
        expression = parse_notation(notation)

        rolls = list(self.dice.roll_expression(expression).rolls)
        if critical:
            rolls.extend(self.dice.roll_expression(expression).rolls)

        modifiers = expression.modifier + attacker.modifier(self.attack_ability(weapon))
        if weapon is not None:
            modifiers += weapon.damage_bonus

        return max(MINIMUM_HIT_DAMAGE, sum(rolls) + modifiers), rolls

    # -------------------------------------------------------------------------
    # Checks & defense
    # -------------------------------------------------------------------------

    def ability_check(
        self,
        stats: CombatantStats,
        ability: Ability,
        dc: int,
        *,
        roll_type: RollType = RollType.NORMAL,
    ) -> CheckResult:
        """Roll d20 + ability modifier against a difficulty class."""
        result = self.dice.roll_check(stats.modifier(ability), dc, roll_type=roll_type)
        logger.debug(
            "Ability check",
            combatant=stats.id,
            ability=ability,
            dc=dc,
            total=result.roll.total,
            success=result.success,
        )
        return result

    def defend(self, defender: CombatantStats, mode: DefenseMode | str) -> DefenseOutcome:
        """Resolve a defensive reaction.

        Dodge is a DEX check and parry a STR check against the defense DC;
        parrying without an equipped weapon fails outright. Blocking always
        succeeds without a roll and reduces incoming damage by a flat amount.

        Args:
            defender: The defending combatant.
            mode: Dodge, block or parry.

        Returns:
            The resolved DefenseOutcome.
        """
        mode = DefenseMode(mode)
        roll: int | None = None
        dc: int | None = None
        reduction = 0

        if mode == DefenseMode.BLOCK:
            success = True
            reduction = BLOCK_DAMAGE_REDUCTION
            description = f"{defender.name} braces and blocks, reducing damage by {reduction}."
        elif mode == DefenseMode.PARRY and defender.equipped_weapon is None:
            success = False
            description = f"{defender.name} has no weapon to parry with."
        else:
            ability = Ability.DEX if mode == DefenseMode.DODGE else Ability.STR
            check = self.ability_check(defender, ability, self.defense_dc)
            success = check.success
            roll = check.roll.total
            dc = self.defense_dc
            verb = "dodges" if mode == DefenseMode.DODGE else "parries"
            if success:
                description = f"{defender.name} {verb} successfully ({roll} vs DC {dc})."
            else:
                description = f"{defender.name} fails to {mode.value} ({roll} vs DC {dc})."

        outcome = DefenseOutcome(
            defender_id=defender.id,
            mode=mode,
            success=success,
            roll=roll,
            dc=dc,
            damage_reduction=reduction,
            description=description,
        )
        self._history.append(CombatLogEntry(kind="defense", actor_id=defender.id, outcome=outcome))

        logger.info("Defense resolved", defender=defender.id, mode=mode, success=success)
        return outcome

    # -------------------------------------------------------------------------
    # Spells
    # -------------------------------------------------------------------------

    @staticmethod
    def save_dc(caster: CombatantStats, spell: Spell) -> int:
        """The spell's fixed DC, or 8 + proficiency + casting ability modifier."""
        if spell.fixed_dc is not None:
            return spell.fixed_dc
        return SPELL_SAVE_DC_BASE + caster.proficiency_bonus + caster.modifier(caster.casting_ability)

    def saving_throw(self, target: CombatantStats, ability: Ability, dc: int) -> SavingThrowResult:
        check = self.ability_check(target, ability, dc)
        return SavingThrowResult(
            target_id=target.id,
            ability=ability,
            dc=dc,
            roll=check.roll.total,
            natural_roll=check.roll.natural,
            success=check.success,
        )

    def cast_spell(
        self,
        caster: CombatantStats,
        spell: Spell,
        targets: Sequence[CombatantStats] = (),
        cast_level: int | None = None,
    ) -> SpellCastOutcome:
        """Resolve a spell cast and apply its effects to the targets.

        Damage effects gain a flat bonus per slot level above the spell's
        base level; targets who make their saving throw take half damage
        (rounded down). Healing effects gain a smaller flat bonus per extra
        level and are reported as negative damage. Other effects become
        narrative lines.

        Args:
            caster: The casting combatant.
            spell: The spell being cast.
            targets: Combatants affected by the spell.
            cast_level: Slot level; defaults to the spell's level.

        Returns:
            The resolved SpellCastOutcome.

        Raises:
            CombatError: If the slot level is below the spell's level or
                above the highest slot level.
        """
        level = spell.level if cast_level is None else cast_level
        if level < spell.level:
            raise CombatError(
                f"Cannot cast {spell.name} below level {spell.level}",
                combatant_id=caster.id,
                details={"cast_level": level},
            )
        if level > MAX_SPELL_LEVEL:
            raise CombatError(
                f"Spell level cannot exceed {MAX_SPELL_LEVEL}",
                combatant_id=caster.id,
                details={"cast_level": level},
            )

        extra_levels = level - spell.level
        dc = self.save_dc(caster, spell)

        saves: list[SavingThrowResult] = []
        if spell.save_ability is not None:
            saves = [self.saving_throw(t, spell.save_ability, dc) for t in targets]
        saved = {s.target_id for s in saves if s.success}

        total_damage = 0
        total_healing = 0
        damage_type: DamageType | None = None
        damage_rolls: list[int] = []
        additional: list[str] = []
        damage_by_target = {t.id: 0 for t in targets}
        healing_by_target = {t.id: 0 for t in targets}

        for effect in spell.effects:
            if effect.kind == EffectKind.DAMAGE and effect.dice:
                result = self.dice.roll(effect.dice)
                amount = result.total + SPELL_DAMAGE_PER_EXTRA_LEVEL * extra_levels
                damage_rolls.extend(result.rolls)
                total_damage += amount
                damage_type = damage_type or effect.damage_type
                for target in targets:
                    damage_by_target[target.id] += amount // 2 if target.id in saved else amount
            elif effect.kind == EffectKind.HEALING and effect.dice:
                result = self.dice.roll(effect.dice)
                amount = result.total + SPELL_HEALING_PER_EXTRA_LEVEL * extra_levels
                total_healing += amount
                for target in targets:
                    healing_by_target[target.id] += amount
            else:
                additional.append(effect.description or f"{spell.name} takes effect.")

        per_target: dict[str, int] = {}
        for target in targets:
            lost = target.take_damage(damage_by_target[target.id])
            restored = target.heal(healing_by_target[target.id])
            per_target[target.id] = lost - restored

        if spell.concentration:
            if caster.concentration_spell and caster.concentration_spell != spell.name:
                additional.append(f"{caster.name} stops concentrating on {caster.concentration_spell}.")
            caster.concentration_spell = spell.name

        description = self._describe_spell(caster, spell, level, total_damage, total_healing, saves)

        outcome = SpellCastOutcome(
            caster_id=caster.id,
            spell_name=spell.name,
            cast_level=level,
            save_dc=dc,
            saves=saves,
            damage=total_damage - total_healing,
            damage_type=damage_type,
            damage_rolls=damage_rolls,
            per_target=per_target,
            additional_effects=additional,
            concentration=spell.concentration,
            description=description,
        )
        self._history.append(CombatLogEntry(kind="spell", actor_id=caster.id, outcome=outcome))

        logger.info(
            "Spell cast",
            caster=caster.id,
            spell=spell.name,
            level=level,
            targets=len(targets),
            damage=outcome.damage,
        )
        return outcome

    @staticmethod
    def _describe_spell(
        caster: CombatantStats,
        spell: Spell,
        level: int,
        damage: int,
        healing: int,
        saves: list[SavingThrowResult],
    ) -> str:
        parts = [f"{caster.name} casts {spell.name}"]
        if level > spell.level:
            parts[0] += f" at level {level}"
        if damage:
            parts.append(f"dealing {damage} damage")
        if healing:
            parts.append(f"restoring {healing} hit points")
        if saves:
            passed = sum(1 for s in saves if s.success)
            parts.append(f"{passed}/{len(saves)} targets save")
        return ", ".join(parts) + "."

    # -------------------------------------------------------------------------
    # Initiative
    # -------------------------------------------------------------------------

    def roll_initiative(self, stats: CombatantStats) -> int:
        """Roll 1d20 + DEX modifier."""
        return self.dice.roll_d20(stats.modifier(Ability.DEX)).total

    def order_initiative(self, party: Sequence[CombatantStats]) -> list[tuple[CombatantStats, int]]:
        """Roll initiative for a whole party and sort it, highest first.

        Ties keep the order of ``party``.
        """
        rolled = [(member, self.roll_initiative(member)) for member in party]
        rolled.sort(key=lambda pair: pair[1], reverse=True)
        logger.info("Initiative ordered", order=[(m.id, r) for m, r in rolled])
        return rolled

    # -------------------------------------------------------------------------
    # Log
    # -------------------------------------------------------------------------

    @property
    def history(self) -> list[CombatLogEntry]:
        """The combat log, oldest first."""
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def statistics(self) -> CombatStatistics:
        """Aggregate statistics over the combat log."""
        attacks = [e.outcome for e in self._history if isinstance(e.outcome, AttackOutcome)]
        defenses = [e.outcome for e in self._history if isinstance(e.outcome, DefenseOutcome)]
        spells = [e.outcome for e in self._history if isinstance(e.outcome, SpellCastOutcome)]

        spell_damage = sum(max(v, 0) for s in spells for v in s.per_target.values())
        return CombatStatistics(
            total_attacks=len(attacks),
            hits=sum(1 for a in attacks if a.hit),
            critical_hits=sum(1 for a in attacks if a.critical and a.hit),
            fumbles=sum(1 for a in attacks if a.fumble),
            total_damage=sum(a.damage for a in attacks) + spell_damage,
            spells_cast=len(spells),
            defenses=len(defenses),
            successful_defenses=sum(1 for d in defenses if d.success),
        )


__all__ = ["CombatEngine"]
