"""
Edit operations offered to the presentation layer.

Each operation validates its input before anything reaches the store.
Rejected input is dropped silently: the method returns False (or None for
the add_* methods) and the document is not touched. Accepted input is
applied through CharacterStore.apply, which recomputes derived fields and
schedules the autosave.
"""

import uuid
from typing import Callable, Iterable, Optional, Union

from charsheet.calculations import SKILL_ABILITY_MAP
from charsheet.models import (
    Ability,
    Alignment,
    Cantrip,
    EquipmentItem,
    Feature,
    FeatureCategory,
    Spell,
    SPELL_SLOT_LEVELS,
)
from charsheet.reference_data import SpellOption
from charsheet.store import CharacterStore

MIN_ABILITY_SCORE = 1
MAX_ABILITY_SCORE = 30
MIN_LEVEL = 1
MAX_LEVEL = 20

_TEXT_INFO_FIELDS = ("name", "race", "class_name", "subclass", "background")
_COMBAT_INT_FIELDS = (
    "armor_class", "speed", "max_hit_points", "current_hit_points", "temporary_hit_points",
)
_CURRENCIES = ("copper", "silver", "electrum", "gold", "platinum")
_PERSONALITY_FIELDS = ("traits", "ideals", "bonds", "flaws")
_APPEARANCE_TEXT_FIELDS = ("height", "weight", "eyes", "skin", "hair")
_PROFICIENCY_CATEGORIES = ("armor", "weapons", "tools", "languages")


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_ability(ability: Union[Ability, str]) -> Optional[Ability]:
    if isinstance(ability, Ability):
        return ability
    try:
        return Ability(ability)
    except ValueError:
        return None


class SheetEditor:
    """Validated edits against the character open in a store."""

    def __init__(self, store: CharacterStore, id_factory: Callable[[], str] = lambda: str(uuid.uuid4())):
        self.store = store
        self._id_factory = id_factory

    # Identity

    def set_basic_info(self, field: str, value) -> bool:
        if field in _TEXT_INFO_FIELDS:
            if not isinstance(value, str):
                return False
        elif field == "level":
            if not _is_int(value) or not MIN_LEVEL <= value <= MAX_LEVEL:
                return False
        elif field == "alignment":
            if value != "" and value not in {a.value for a in Alignment}:
                return False
        elif field == "experience_points":
            if not _is_int(value) or value < 0:
                return False
        else:
            return False

        self.store.apply(lambda d: setattr(d.basic_info, field, value))
        return True

    # Abilities, saves and skills

    def set_ability_score(self, ability: Union[Ability, str], score) -> bool:
        parsed = _parse_ability(ability)
        if parsed is None or not _is_int(score):
            return False
        if not MIN_ABILITY_SCORE <= score <= MAX_ABILITY_SCORE:
            return False
        self.store.apply(lambda d: setattr(d.abilities, parsed.value, score))
        return True

    def step_ability_score(self, ability: Union[Ability, str], delta: int) -> bool:
        parsed = _parse_ability(ability)
        if parsed is None:
            return False
        return self.set_ability_score(parsed, self.store.document.abilities.score(parsed) + delta)

    def cycle_skill(self, skill: str) -> bool:
        """Advance a skill through none -> proficient -> expertise -> none."""
        if skill not in SKILL_ABILITY_MAP:
            return False

        def mutate(d):
            entry = d.skills.entry(skill)
            if not entry.proficient and not entry.expertise:
                entry.proficient = True
            elif entry.proficient and not entry.expertise:
                entry.expertise = True
            else:
                entry.proficient = False
                entry.expertise = False

        self.store.apply(mutate)
        return True

    def toggle_saving_throw(self, ability: Union[Ability, str]) -> bool:
        parsed = _parse_ability(ability)
        if parsed is None:
            return False

        def mutate(d):
            entry = d.saving_throws.entry(parsed)
            entry.proficient = not entry.proficient

        self.store.apply(mutate)
        return True

    # Combat

    def set_combat_stat(self, field: str, value) -> bool:
        # initiative is derived from dexterity and cannot be edited
        if field not in _COMBAT_INT_FIELDS or not _is_int(value):
            return False
        self.store.apply(lambda d: setattr(d.combat, field, value))
        return True

    def set_hit_dice(self, total: Optional[str] = None, current: Optional[int] = None) -> bool:
        if total is not None and not isinstance(total, str):
            return False
        if current is not None and not _is_int(current):
            return False

        def mutate(d):
            if total is not None:
                d.combat.hit_dice.total = total
            if current is not None:
                d.combat.hit_dice.current = current

        self.store.apply(mutate)
        return True

    def set_death_saves(self, successes: Optional[int] = None, failures: Optional[int] = None) -> bool:
        # No upper bound is enforced here; see DESIGN.md
        for value in (successes, failures):
            if value is not None and (not _is_int(value) or value < 0):
                return False

        def mutate(d):
            if successes is not None:
                d.combat.death_saves.successes = successes
            if failures is not None:
                d.combat.death_saves.failures = failures

        self.store.apply(mutate)
        return True

    # Equipment and currency

    def add_equipment(self, name: str, quantity: int = 1, weight: float = 0,
                      description: str = "") -> Optional[str]:
        """Add an item and return its new id."""
        if not isinstance(name, str) or not name.strip():
            return None
        if not _is_int(quantity) or quantity < 1:
            return None
        if not _is_number(weight) or weight < 0:
            return None

        item = EquipmentItem(
            id=self._id_factory(),
            name=name.strip(),
            quantity=quantity,
            weight=weight,
            description=description or "",
        )
        self.store.apply(lambda d: d.equipment.append(item))
        return item.id

    def remove_equipment(self, item_id: str) -> bool:
        if not any(i.id == item_id for i in self.store.document.equipment):
            return False

        def mutate(d):
            d.equipment = [i for i in d.equipment if i.id != item_id]

        self.store.apply(mutate)
        return True

    def toggle_equipped(self, item_id: str) -> bool:
        if not any(i.id == item_id for i in self.store.document.equipment):
            return False

        def mutate(d):
            for item in d.equipment:
                if item.id == item_id:
                    item.equipped = not item.equipped

        self.store.apply(mutate)
        return True

    def set_equipment_quantity(self, item_id: str, quantity: int) -> bool:
        if not _is_int(quantity) or quantity < 1:
            return False
        if not any(i.id == item_id for i in self.store.document.equipment):
            return False

        def mutate(d):
            for item in d.equipment:
                if item.id == item_id:
                    item.quantity = quantity

        self.store.apply(mutate)
        return True

    def set_currency(self, denomination: str, amount: int) -> bool:
        if denomination not in _CURRENCIES or not _is_int(amount) or amount < 0:
            return False
        self.store.apply(lambda d: setattr(d.currency, denomination, amount))
        return True

    # Spellcasting

    def set_spellcasting_ability(self, ability: Union[Ability, str, None]) -> bool:
        """Select the spellcasting ability; None or "" clears it."""
        if ability in (None, ""):
            value = ""
        else:
            parsed = _parse_ability(ability)
            if parsed is None:
                return False
            value = parsed.value
        self.store.apply(lambda d: setattr(d.spellcasting, "spellcasting_ability", value))
        return True

    def add_spell(self, name: str, level: int = 1, school: str = "", description: str = "",
                  casting_time: str = "", range: str = "", components: str = "",
                  duration: str = "") -> Optional[str]:
        """Add a leveled spell, or a cantrip when level is 0. Returns the new id."""
        if not isinstance(name, str) or not name.strip():
            return None
        if not _is_int(level) or not 0 <= level <= 9:
            return None

        new_id = self._id_factory()
        if level == 0:
            cantrip = Cantrip(id=new_id, name=name.strip(), school=school, description=description)
            self.store.apply(lambda d: d.spellcasting.cantrips.append(cantrip))
        else:
            spell = Spell(
                id=new_id,
                name=name.strip(),
                level=level,
                school=school,
                casting_time=casting_time,
                range=range,
                components=components,
                duration=duration,
                description=description,
            )
            self.store.apply(lambda d: d.spellcasting.spells_known.append(spell))
        return new_id

    def add_spell_from_catalog(self, option: SpellOption) -> Optional[str]:
        """Add a spell pre-filled from a reference catalog entry."""
        return self.add_spell(
            option.name,
            level=option.level,
            school=option.school,
            casting_time=option.casting_time,
            range=option.range,
            components=option.components,
            duration=option.duration,
        )

    def toggle_prepared(self, spell_id: str) -> bool:
        if not any(s.id == spell_id for s in self.store.document.spellcasting.spells_known):
            return False

        def mutate(d):
            for spell in d.spellcasting.spells_known:
                if spell.id == spell_id:
                    spell.prepared = not spell.prepared

        self.store.apply(mutate)
        return True

    def remove_spell(self, spell_id: str) -> bool:
        """Remove a leveled spell or cantrip by id."""
        casting = self.store.document.spellcasting
        if not any(s.id == spell_id for s in casting.spells_known + casting.cantrips):
            return False

        def mutate(d):
            d.spellcasting.spells_known = [s for s in d.spellcasting.spells_known if s.id != spell_id]
            d.spellcasting.cantrips = [c for c in d.spellcasting.cantrips if c.id != spell_id]

        self.store.apply(mutate)
        return True

    def set_spell_slot(self, level: Union[int, str], max: Optional[int] = None,
                       used: Optional[int] = None) -> bool:
        """Write a spell slot's max and/or used count, creating the slot if needed."""
        key = str(level)
        if key not in SPELL_SLOT_LEVELS:
            return False
        for value in (max, used):
            if value is not None and (not _is_int(value) or value < 0):
                return False

        def mutate(d):
            slot = d.spellcasting.ensure_slot(key)
            if max is not None:
                slot.max = max
            if used is not None:
                slot.used = used

        self.store.apply(mutate)
        return True

    # Features and traits

    def add_feature(self, name: str, source: str = "", description: str = "",
                    category: Union[FeatureCategory, str] = FeatureCategory.FEATURE) -> Optional[str]:
        if not isinstance(name, str) or not name.strip():
            return None
        try:
            category = FeatureCategory(category)
        except ValueError:
            return None

        feature = Feature(
            id=self._id_factory(),
            name=name.strip(),
            source=source,
            description=description,
            category=category.value,
        )
        self.store.apply(lambda d: d.features.append(feature))
        return feature.id

    def remove_feature(self, feature_id: str) -> bool:
        if not any(f.id == feature_id for f in self.store.document.features):
            return False

        def mutate(d):
            d.features = [f for f in d.features if f.id != feature_id]

        self.store.apply(mutate)
        return True

    # Proficiencies and free text

    def set_proficiencies(self, category: str, values: Union[str, Iterable[str]]) -> bool:
        """Replace a proficiency list. A string is split on commas."""
        if category not in _PROFICIENCY_CATEGORIES:
            return False
        if isinstance(values, str):
            values = values.split(",")
        cleaned = [v.strip() for v in values if isinstance(v, str) and v.strip()]
        self.store.apply(lambda d: setattr(d.proficiencies, category, cleaned))
        return True

    def set_personality(self, field: str, text: str) -> bool:
        if field not in _PERSONALITY_FIELDS or not isinstance(text, str):
            return False
        self.store.apply(lambda d: setattr(d.personality, field, text))
        return True

    def set_appearance(self, field: str, value) -> bool:
        if field == "age":
            if not _is_int(value) or value < 0:
                return False
        elif field == "portrait_url":
            if value is not None and not isinstance(value, str):
                return False
        elif field not in _APPEARANCE_TEXT_FIELDS or not isinstance(value, str):
            return False
        self.store.apply(lambda d: setattr(d.appearance, field, value))
        return True

    def set_backstory(self, text: str) -> bool:
        if not isinstance(text, str):
            return False
        self.store.set_field("backstory", text)
        return True

    def set_notes(self, text: str) -> bool:
        if not isinstance(text, str):
            return False
        self.store.set_field("notes", text)
        return True

    def set_allies(self, allies: Iterable[str]) -> bool:
        cleaned = [a.strip() for a in allies if isinstance(a, str) and a.strip()]
        self.store.set_field("allies", cleaned)
        return True
