"""
Data models for the character sheet editor.

The CharacterDocument tree mirrors the JSON document stored locally, sent to
the remote store and written to export files. Field names are snake_case in
Python; codec.py maps them to the camelCase wire names.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict


class Ability(Enum):
    STRENGTH = "strength"
    DEXTERITY = "dexterity"
    CONSTITUTION = "constitution"
    INTELLIGENCE = "intelligence"
    WISDOM = "wisdom"
    CHARISMA = "charisma"


class Alignment(Enum):
    LAWFUL_GOOD = "Lawful Good"
    NEUTRAL_GOOD = "Neutral Good"
    CHAOTIC_GOOD = "Chaotic Good"
    LAWFUL_NEUTRAL = "Lawful Neutral"
    TRUE_NEUTRAL = "True Neutral"
    CHAOTIC_NEUTRAL = "Chaotic Neutral"
    LAWFUL_EVIL = "Lawful Evil"
    NEUTRAL_EVIL = "Neutral Evil"
    CHAOTIC_EVIL = "Chaotic Evil"


class FeatureCategory(Enum):
    FEATURE = "feature"
    TRAIT = "trait"


SPELL_SLOT_LEVELS = tuple(str(level) for level in range(1, 10))


@dataclass
class BasicInfo:
    name: str = ""
    race: str = ""
    class_name: str = field(default="", metadata={"wire": "class"})
    subclass: str = ""
    level: int = 1
    background: str = ""
    alignment: str = ""
    experience_points: int = 0


@dataclass
class AbilityScores:
    strength: int = 10
    dexterity: int = 10
    constitution: int = 10
    intelligence: int = 10
    wisdom: int = 10
    charisma: int = 10

    def score(self, ability: Ability) -> int:
        return getattr(self, ability.value)


@dataclass
class SavingThrow:
    proficient: bool = False


@dataclass
class SavingThrows:
    strength: SavingThrow = field(default_factory=SavingThrow)
    dexterity: SavingThrow = field(default_factory=SavingThrow)
    constitution: SavingThrow = field(default_factory=SavingThrow)
    intelligence: SavingThrow = field(default_factory=SavingThrow)
    wisdom: SavingThrow = field(default_factory=SavingThrow)
    charisma: SavingThrow = field(default_factory=SavingThrow)

    def entry(self, ability: Ability) -> SavingThrow:
        return getattr(self, ability.value)


@dataclass
class SkillEntry:
    proficient: bool = False
    expertise: bool = False


@dataclass
class Skills:
    acrobatics: SkillEntry = field(default_factory=SkillEntry)
    animal_handling: SkillEntry = field(default_factory=SkillEntry)
    arcana: SkillEntry = field(default_factory=SkillEntry)
    athletics: SkillEntry = field(default_factory=SkillEntry)
    deception: SkillEntry = field(default_factory=SkillEntry)
    history: SkillEntry = field(default_factory=SkillEntry)
    insight: SkillEntry = field(default_factory=SkillEntry)
    intimidation: SkillEntry = field(default_factory=SkillEntry)
    investigation: SkillEntry = field(default_factory=SkillEntry)
    medicine: SkillEntry = field(default_factory=SkillEntry)
    nature: SkillEntry = field(default_factory=SkillEntry)
    perception: SkillEntry = field(default_factory=SkillEntry)
    performance: SkillEntry = field(default_factory=SkillEntry)
    persuasion: SkillEntry = field(default_factory=SkillEntry)
    religion: SkillEntry = field(default_factory=SkillEntry)
    sleight_of_hand: SkillEntry = field(default_factory=SkillEntry)
    stealth: SkillEntry = field(default_factory=SkillEntry)
    survival: SkillEntry = field(default_factory=SkillEntry)

    def entry(self, skill: str) -> SkillEntry:
        return getattr(self, skill)


@dataclass
class HitDice:
    total: str = "1d8"
    current: int = 1


@dataclass
class DeathSaves:
    successes: int = 0
    failures: int = 0


@dataclass
class Combat:
    armor_class: int = 10
    initiative: int = 0
    speed: int = 30
    max_hit_points: int = 8
    current_hit_points: int = 8
    temporary_hit_points: int = 0
    hit_dice: HitDice = field(default_factory=HitDice)
    death_saves: DeathSaves = field(default_factory=DeathSaves)


@dataclass
class EquipmentItem:
    id: str
    name: str
    quantity: int = 1
    weight: float = 0
    description: str = ""
    equipped: bool = False


@dataclass
class Currency:
    copper: int = 0
    silver: int = 0
    electrum: int = 0
    gold: int = 0
    platinum: int = 0


@dataclass
class SpellSlot:
    max: int = 0
    used: int = 0


@dataclass
class Spell:
    id: str
    name: str
    level: int = 1
    school: str = ""
    casting_time: str = ""
    range: str = ""
    components: str = ""
    duration: str = ""
    description: str = ""
    prepared: bool = False


@dataclass
class Cantrip:
    id: str
    name: str
    school: str = ""
    description: str = ""


@dataclass
class Spellcasting:
    spellcasting_ability: str = ""
    spell_save_dc: int = field(default=0, metadata={"wire": "spellSaveDC"})
    spell_attack_bonus: int = 0
    spell_slots: Dict[str, SpellSlot] = field(default_factory=dict)
    spells_known: List[Spell] = field(default_factory=list)
    cantrips: List[Cantrip] = field(default_factory=list)

    def slot(self, level: str) -> SpellSlot:
        """Return the slot for a level, synthesizing an empty one if unset.

        Reading does not store the synthesized slot; only writes go through
        ensure_slot().
        """
        return self.spell_slots.get(level) or SpellSlot()

    def ensure_slot(self, level: str) -> SpellSlot:
        if level not in self.spell_slots:
            self.spell_slots[level] = SpellSlot()
        return self.spell_slots[level]


@dataclass
class Feature:
    id: str
    name: str
    source: str = ""
    description: str = ""
    category: str = FeatureCategory.FEATURE.value


@dataclass
class Proficiencies:
    armor: List[str] = field(default_factory=list)
    weapons: List[str] = field(default_factory=list)
    tools: List[str] = field(default_factory=list)
    languages: List[str] = field(default_factory=list)


@dataclass
class Personality:
    traits: str = ""
    ideals: str = ""
    bonds: str = ""
    flaws: str = ""


@dataclass
class Appearance:
    age: int = 0
    height: str = ""
    weight: str = ""
    eyes: str = ""
    skin: str = ""
    hair: str = ""
    portrait_url: Optional[str] = None


@dataclass
class CharacterDocument:
    basic_info: BasicInfo = field(default_factory=BasicInfo)
    abilities: AbilityScores = field(default_factory=AbilityScores)
    proficiency_bonus: int = 2
    saving_throws: SavingThrows = field(default_factory=SavingThrows)
    skills: Skills = field(default_factory=Skills)
    combat: Combat = field(default_factory=Combat)
    equipment: List[EquipmentItem] = field(default_factory=list)
    currency: Currency = field(default_factory=Currency)
    spellcasting: Spellcasting = field(default_factory=Spellcasting)
    features: List[Feature] = field(default_factory=list)
    proficiencies: Proficiencies = field(default_factory=Proficiencies)
    personality: Personality = field(default_factory=Personality)
    backstory: str = ""
    appearance: Appearance = field(default_factory=Appearance)
    allies: List[str] = field(default_factory=list)
    notes: str = ""

    @property
    def display_name(self) -> str:
        return self.basic_info.name or "Unnamed"

    def features_in(self, category: FeatureCategory) -> List[Feature]:
        return [f for f in self.features if f.category == category.value]


@dataclass
class LocalCharacter:
    """A document as persisted in on-device storage."""
    local_id: str
    name: str
    data: CharacterDocument
    created_at: str = ""
    updated_at: str = ""
    remote_id: Optional[str] = None


@dataclass
class RemoteCharacter:
    """A character record as returned by the remote store.

    ``data`` is the opaque serialized document; the remote store never
    interprets it.
    """
    id: str
    name: str
    data: str
    user_id: str = ""
    created_at: str = ""
    updated_at: str = ""


@dataclass
class AuthIdentity:
    user_id: str
    username: str
    email: str
    token: str
    expires_at: str = ""

    @property
    def display_name(self) -> str:
        return self.username or self.email
