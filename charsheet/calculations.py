"""
Derived statistics for 5th edition characters.

Pure functions over document fields. recompute() is the only function that
writes to a document: it refreshes every derived field from the independent
ones and is run by the store after each edit.
"""

import math
from typing import Dict

from charsheet.models import (
    Ability,
    AbilityScores,
    CharacterDocument,
    SavingThrow,
    SavingThrows,
    SkillEntry,
    Skills,
)


SKILL_ABILITY_MAP: Dict[str, Ability] = {
    "acrobatics": Ability.DEXTERITY,
    "animal_handling": Ability.WISDOM,
    "arcana": Ability.INTELLIGENCE,
    "athletics": Ability.STRENGTH,
    "deception": Ability.CHARISMA,
    "history": Ability.INTELLIGENCE,
    "insight": Ability.WISDOM,
    "intimidation": Ability.CHARISMA,
    "investigation": Ability.INTELLIGENCE,
    "medicine": Ability.WISDOM,
    "nature": Ability.INTELLIGENCE,
    "perception": Ability.WISDOM,
    "performance": Ability.CHARISMA,
    "persuasion": Ability.CHARISMA,
    "religion": Ability.INTELLIGENCE,
    "sleight_of_hand": Ability.DEXTERITY,
    "stealth": Ability.DEXTERITY,
    "survival": Ability.WISDOM,
}

SKILL_LABELS: Dict[str, str] = {
    skill: skill.replace("_", " ").title().replace(" Of ", " of ")
    for skill in SKILL_ABILITY_MAP
}

ABILITY_ABBREVIATIONS: Dict[Ability, str] = {
    ability: ability.value[:3].upper() for ability in Ability
}


def ability_modifier(score: int) -> int:
    return math.floor((score - 10) / 2)


def proficiency_bonus(level: int) -> int:
    """+2 at levels 1-4, rising by one every four levels to +6 at 17-20."""
    return math.ceil(level / 4) + 1


def skill_bonus(ability_score: int, skill: SkillEntry, prof_bonus: int) -> int:
    """Expertise doubles the proficiency contribution and dominates the proficient flag."""
    mod = ability_modifier(ability_score)
    if skill.expertise:
        return mod + prof_bonus * 2
    if skill.proficient:
        return mod + prof_bonus
    return mod


def saving_throw_bonus(ability_score: int, save: SavingThrow, prof_bonus: int) -> int:
    mod = ability_modifier(ability_score)
    return mod + prof_bonus if save.proficient else mod


def spell_save_dc(ability_score: int, prof_bonus: int) -> int:
    return 8 + prof_bonus + ability_modifier(ability_score)


def spell_attack_bonus(ability_score: int, prof_bonus: int) -> int:
    return prof_bonus + ability_modifier(ability_score)


def format_modifier(mod: int) -> str:
    return f"+{mod}" if mod >= 0 else str(mod)


def compute_all_skill_bonuses(
    abilities: AbilityScores, skills: Skills, prof_bonus: int
) -> Dict[str, int]:
    return {
        skill: skill_bonus(abilities.score(ability), skills.entry(skill), prof_bonus)
        for skill, ability in SKILL_ABILITY_MAP.items()
    }


def compute_all_saving_throws(
    abilities: AbilityScores, saving_throws: SavingThrows, prof_bonus: int
) -> Dict[Ability, int]:
    return {
        ability: saving_throw_bonus(
            abilities.score(ability), saving_throws.entry(ability), prof_bonus
        )
        for ability in Ability
    }


def recompute(document: CharacterDocument) -> CharacterDocument:
    """Refresh the derived fields of a document in place.

    Spell save DC and attack bonus are only refreshed while a spellcasting
    ability is selected; clearing the ability leaves the last computed values.
    Initiative always follows dexterity, overwriting any hand-entered value.
    """
    prof = proficiency_bonus(document.basic_info.level)
    document.proficiency_bonus = prof

    casting = document.spellcasting
    if casting.spellcasting_ability:
        score = document.abilities.score(Ability(casting.spellcasting_ability))
        casting.spell_save_dc = spell_save_dc(score, prof)
        casting.spell_attack_bonus = spell_attack_bonus(score, prof)

    document.combat.initiative = ability_modifier(document.abilities.dexterity)
    return document
