"""Tests for derived character statistics."""

import pytest

from charsheet.calculations import (
    SKILL_ABILITY_MAP,
    SKILL_LABELS,
    ability_modifier,
    compute_all_saving_throws,
    compute_all_skill_bonuses,
    format_modifier,
    proficiency_bonus,
    recompute,
    saving_throw_bonus,
    skill_bonus,
    spell_attack_bonus,
    spell_save_dc,
)
from charsheet.models import Ability, CharacterDocument, SavingThrow, SkillEntry


class TestAbilityModifier:

    @pytest.mark.parametrize("score,expected", [
        (1, -5), (8, -1), (9, -1), (10, 0), (11, 0), (12, 1), (18, 4), (20, 5), (30, 10),
    ])
    def test_floor_of_half_difference(self, score, expected):
        assert ability_modifier(score) == expected


class TestProficiencyBonus:

    @pytest.mark.parametrize("level,expected", [
        (1, 2), (4, 2), (5, 3), (8, 3), (9, 4), (13, 5), (16, 5), (17, 6), (20, 6),
    ])
    def test_by_level(self, level, expected):
        assert proficiency_bonus(level) == expected


class TestSkillBonus:

    def test_untrained(self):
        assert skill_bonus(14, SkillEntry(), 2) == 2

    def test_proficient(self):
        assert skill_bonus(14, SkillEntry(proficient=True), 2) == 4

    def test_expertise_doubles_proficiency(self):
        assert skill_bonus(14, SkillEntry(proficient=True, expertise=True), 3) == 8

    def test_expertise_without_proficient_flag_still_doubles(self):
        assert skill_bonus(10, SkillEntry(expertise=True), 2) == 4


class TestSavingThrowBonus:

    def test_not_proficient(self):
        assert saving_throw_bonus(8, SavingThrow(), 2) == -1

    def test_proficient(self):
        assert saving_throw_bonus(8, SavingThrow(proficient=True), 2) == 1


class TestSpellStats:

    def test_save_dc_and_attack(self):
        assert spell_save_dc(18, 3) == 15
        assert spell_attack_bonus(18, 3) == 7


class TestFormatModifier:

    def test_signs(self):
        assert format_modifier(0) == "+0"
        assert format_modifier(3) == "+3"
        assert format_modifier(-2) == "-2"


class TestTables:

    def test_eighteen_skills_labelled(self):
        assert len(SKILL_ABILITY_MAP) == 18
        assert SKILL_LABELS["sleight_of_hand"] == "Sleight of Hand"
        assert SKILL_LABELS["animal_handling"] == "Animal Handling"

    def test_all_bonuses_cover_every_entry(self):
        d = CharacterDocument()
        d.abilities.dexterity = 16
        d.skills.stealth.proficient = True
        d.saving_throws.dexterity.proficient = True

        skills = compute_all_skill_bonuses(d.abilities, d.skills, 2)
        saves = compute_all_saving_throws(d.abilities, d.saving_throws, 2)

        assert set(skills) == set(SKILL_ABILITY_MAP)
        assert skills["stealth"] == 5
        assert skills["acrobatics"] == 3
        assert saves[Ability.DEXTERITY] == 5
        assert saves[Ability.STRENGTH] == 0


class TestRecompute:

    def test_proficiency_follows_level(self):
        d = CharacterDocument()
        d.basic_info.level = 5
        recompute(d)
        assert d.proficiency_bonus == 3

    def test_initiative_follows_dexterity(self):
        d = CharacterDocument()
        d.abilities.dexterity = 14
        d.combat.initiative = 9
        recompute(d)
        assert d.combat.initiative == 2

    def test_spell_stats_with_ability(self):
        d = CharacterDocument()
        d.basic_info.level = 5
        d.abilities.intelligence = 18
        d.spellcasting.spellcasting_ability = "intelligence"
        recompute(d)
        assert d.spellcasting.spell_save_dc == 15
        assert d.spellcasting.spell_attack_bonus == 7

    def test_spell_stats_left_stale_when_ability_cleared(self):
        d = CharacterDocument()
        d.abilities.intelligence = 18
        d.spellcasting.spellcasting_ability = "intelligence"
        recompute(d)
        dc, attack = d.spellcasting.spell_save_dc, d.spellcasting.spell_attack_bonus

        d.spellcasting.spellcasting_ability = ""
        d.abilities.intelligence = 8
        recompute(d)

        assert d.spellcasting.spell_save_dc == dc
        assert d.spellcasting.spell_attack_bonus == attack

    def test_idempotent(self):
        d = CharacterDocument()
        d.abilities.wisdom = 15
        d.spellcasting.spellcasting_ability = "wisdom"
        once = recompute(d)
        snapshot = (once.proficiency_bonus, once.spellcasting.spell_save_dc, once.combat.initiative)
        twice = recompute(once)
        assert (twice.proficiency_bonus, twice.spellcasting.spell_save_dc, twice.combat.initiative) == snapshot
