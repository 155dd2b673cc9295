"""
Reference data client.

Fetches race, class, background and spell catalogs from the 5etools JSON
mirror for autocomplete and for pre-filling new spells. Catalogs are
optional: any fetch or parse failure is logged and yields an empty list, so
manual entry keeps working without them.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import requests

from util.constants import ALLOWED_SPELL_SOURCES, HTTP_TIMEOUT_SECONDS, REFERENCE_DATA_URL

logger = logging.getLogger(__name__)


SCHOOL_ABBR = {
    "A": "Abjuration", "C": "Conjuration", "D": "Divination",
    "E": "Enchantment", "EN": "Enchantment", "V": "Evocation", "EV": "Evocation",
    "I": "Illusion", "N": "Necromancy", "T": "Transmutation",
}

STAT_ABBR = {
    "str": "strength", "dex": "dexterity", "con": "constitution",
    "int": "intelligence", "wis": "wisdom", "cha": "charisma",
}


@dataclass
class RaceOption:
    name: str
    source: str
    ability_increases: Dict[str, int] = field(default_factory=dict)
    size: str = "M"
    speed: int = 30


@dataclass
class SubclassOption:
    name: str
    short_name: str
    source: str


@dataclass
class ClassOption:
    name: str
    source: str
    hit_die: int = 8
    saving_throws: List[str] = field(default_factory=list)
    subclasses: List[SubclassOption] = field(default_factory=list)


@dataclass
class BackgroundOption:
    name: str
    source: str
    skill_proficiencies: List[str] = field(default_factory=list)


@dataclass
class SpellOption:
    name: str
    source: str
    level: int
    school: str = ""
    casting_time: str = ""
    range: str = ""
    components: str = ""
    duration: str = ""


# Format helpers


def format_range(r: Optional[dict]) -> str:
    if not r:
        return ""
    kind = r.get("type", "")
    if kind in ("self", "touch", "sight", "unlimited", "special"):
        return kind.title()
    distance = r.get("distance")
    if distance:
        amount = distance.get("amount", "")
        if distance.get("type") == "feet":
            return f"{amount} ft."
        if distance.get("type") == "miles":
            return f"{amount} mi."
        if distance.get("type") in ("self", "touch", "sight", "unlimited"):
            return distance["type"].title()
        return str(amount)
    return kind


def format_components(c: Optional[dict]) -> str:
    if not c:
        return ""
    parts = []
    if c.get("v"):
        parts.append("V")
    if c.get("s"):
        parts.append("S")
    material = c.get("m")
    if isinstance(material, str):
        parts.append(f"M ({material})")
    elif isinstance(material, dict) and "text" in material:
        parts.append(f"M ({material['text']})")
    elif material:
        parts.append("M")
    return ", ".join(parts)


def format_duration(durations: Optional[list]) -> str:
    if not durations:
        return ""
    d = durations[0]
    kind = d.get("type")
    if kind == "instant":
        return "Instantaneous"
    if kind == "permanent":
        return "Until dispelled"
    if kind == "special":
        return "Special"
    if d.get("duration"):
        amount = d["duration"].get("amount", 1)
        unit = d["duration"].get("type", "")
        base = f"{amount} {unit}{'s' if amount != 1 else ''}"
        return f"Conc., up to {base}" if d.get("concentration") else base
    return kind or ""


def format_casting_time(times: Optional[list]) -> str:
    if not times:
        return ""
    return f"{times[0].get('number', 1)} {times[0].get('unit', '')}".strip()


def _title_case_key(key: str) -> str:
    """animalHandling -> Animal Handling"""
    words = []
    current = ""
    for ch in key:
        if ch.isupper() and current:
            words.append(current)
            current = ch
        else:
            current += ch
    words.append(current)
    return " ".join(w[:1].upper() + w[1:] for w in words)


def _is_named(entry) -> bool:
    return isinstance(entry, dict) and isinstance(entry.get("name"), str) and bool(entry["name"])


class ReferenceDataClient:
    """Fetches and caches catalog JSON files.

    Each file is fetched at most once per client; results are cached in
    memory. All public methods return empty lists instead of raising.
    """

    def __init__(self, base_url: str = REFERENCE_DATA_URL, session: Optional[requests.Session] = None):
        self.base_url = base_url
        self._session = session or requests.Session()
        self._cache: Dict[str, object] = {}

    def _fetch_json(self, path: str):
        if path in self._cache:
            return self._cache[path]
        response = self._session.get(self.base_url + path, timeout=HTTP_TIMEOUT_SECONDS)
        response.raise_for_status()
        data = response.json()
        self._cache[path] = data
        return data

    def _safe_fetch(self, path: str):
        try:
            return self._fetch_json(path)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Failed to fetch reference data %s: %s", path, e)
            return None

    def _safe_parse(self, label: str, parse) -> list:
        try:
            return parse()
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            logger.warning("Malformed %s reference data: %s", label, e)
            return []

    def get_races(self) -> List[RaceOption]:
        return self._safe_parse("race", self._parse_races)

    def get_classes(self) -> List[ClassOption]:
        return self._safe_parse("class", self._parse_classes)

    def get_backgrounds(self) -> List[BackgroundOption]:
        return self._safe_parse("background", self._parse_backgrounds)

    def get_spells(self, sources: Sequence[str] = ALLOWED_SPELL_SOURCES) -> List[SpellOption]:
        """Spells from the given source books, ordered by level then name.

        Sources outside ALLOWED_SPELL_SOURCES are ignored.
        """
        return self._safe_parse("spell", lambda: self._parse_spells(sources))

    def find_spell(self, name: str) -> Optional[SpellOption]:
        """Case-insensitive exact lookup across the allowed sources."""
        name_lower = name.strip().lower()
        for spell in self.get_spells():
            if spell.name.lower() == name_lower:
                return spell
        return None

    def _parse_races(self) -> List[RaceOption]:
        raw = self._safe_fetch("races.json")
        if not isinstance(raw, dict):
            return []

        seen = set()
        result = []
        for r in raw.get("race", []):
            if not _is_named(r) or r.get("edition") == "one" or r["name"] in seen:
                continue
            seen.add(r["name"])

            increases: Dict[str, int] = {}
            for entry in r.get("ability") or []:
                if not isinstance(entry, dict):
                    continue
                for key, value in entry.items():
                    if key == "choose" or not isinstance(value, int):
                        continue
                    ability = STAT_ABBR.get(key, key)
                    increases[ability] = increases.get(ability, 0) + value

            speed = r.get("speed", 30)
            if isinstance(speed, dict):
                speed = speed.get("walk", 30)

            result.append(RaceOption(
                name=r["name"],
                source=r.get("source", ""),
                ability_increases=increases,
                size=(r.get("size") or ["M"])[0],
                speed=speed if isinstance(speed, int) else 30,
            ))

        return sorted(result, key=lambda o: o.name)

    def _parse_classes(self) -> List[ClassOption]:
        index = self._safe_fetch("class/index.json")
        if not isinstance(index, dict):
            return []

        classes = []
        for filename in index.values():
            data = self._safe_fetch(f"class/{filename}")
            if not isinstance(data, dict):
                continue
            for cls in data.get("class", []):
                if not _is_named(cls) or cls.get("edition") == "one":
                    continue
                subclasses = sorted(
                    (
                        SubclassOption(
                            name=sc["name"],
                            short_name=sc.get("shortName", sc["name"]),
                            source=sc.get("source", ""),
                        )
                        for sc in data.get("subclass", [])
                        if _is_named(sc)
                        and sc.get("className") == cls["name"]
                        and sc.get("classSource") == cls.get("source")
                        and sc.get("edition") != "one"
                    ),
                    key=lambda o: o.name,
                )
                classes.append(ClassOption(
                    name=cls["name"],
                    source=cls.get("source", ""),
                    hit_die=(cls.get("hd") or {}).get("faces", 8),
                    saving_throws=[
                        STAT_ABBR.get(p, p).title() for p in cls.get("proficiency", [])
                    ],
                    subclasses=subclasses,
                ))

        return sorted(classes, key=lambda o: o.name)

    def _parse_backgrounds(self) -> List[BackgroundOption]:
        raw = self._safe_fetch("backgrounds.json")
        if not isinstance(raw, dict):
            return []

        seen = set()
        result = []
        for bg in raw.get("background", []):
            if not _is_named(bg) or bg.get("edition") == "one" or bg["name"] in seen:
                continue
            seen.add(bg["name"])
            skills = [
                _title_case_key(key)
                for entry in bg.get("skillProficiencies") or []
                if isinstance(entry, dict)
                for key, value in entry.items()
                if value is True
            ]
            result.append(BackgroundOption(
                name=bg["name"], source=bg.get("source", ""), skill_proficiencies=skills,
            ))

        return sorted(result, key=lambda o: o.name)

    def _parse_spells(self, sources: Sequence[str]) -> List[SpellOption]:
        index = self._safe_fetch("spells/index.json")
        if not isinstance(index, dict):
            return []

        spells = []
        for source in sources:
            if source not in ALLOWED_SPELL_SOURCES or source not in index:
                continue
            data = self._safe_fetch(f"spells/{index[source]}")
            if not isinstance(data, dict):
                continue
            for s in data.get("spell", []):
                level = s.get("level", 0) if isinstance(s, dict) else None
                if not _is_named(s) or not isinstance(level, int) or isinstance(level, bool):
                    continue
                spells.append(SpellOption(
                    name=s["name"],
                    source=s.get("source", source),
                    level=level,
                    school=SCHOOL_ABBR.get(s.get("school", ""), s.get("school", "")),
                    casting_time=format_casting_time(s.get("time")),
                    range=format_range(s.get("range")),
                    components=format_components(s.get("components")),
                    duration=format_duration(s.get("duration")),
                ))

        return sorted(spells, key=lambda o: (o.level, o.name))
