"""
Printable character sheet.

layout_pages() turns a document into positioned text lines, page by page, in
millimetres from the top-left corner of an A4 page. render_pdf() draws those
lines with PyMuPDF. Keeping the layout separate means page breaking can be
checked without opening a PDF.
"""

import re
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import List

import fitz

from charsheet.calculations import (
    ABILITY_ABBREVIATIONS,
    SKILL_ABILITY_MAP,
    SKILL_LABELS,
    compute_all_saving_throws,
    compute_all_skill_bonuses,
    format_modifier,
    ability_modifier,
)
from charsheet.models import Ability, CharacterDocument
from util.logging_util import setup_logger

logger = setup_logger(__name__)

MARGIN_MM = 15
LINE_HEIGHT_MM = 6
# A new page starts once the cursor passes this point
PAGE_BREAK_MM = 270
WRAP_CHARS = 95

PT_PER_MM = 72 / 25.4

TITLE_SIZE = 18
HEADING_SIZE = 12
BODY_SIZE = 10


@dataclass
class TextLine:
    x: float
    y: float
    text: str
    bold: bool = False
    size: float = BODY_SIZE


class _Layout:
    def __init__(self):
        self.pages: List[List[TextLine]] = [[]]
        self.y = MARGIN_MM

    def new_page(self):
        self.pages.append([])
        self.y = MARGIN_MM

    def ensure_room(self, height: float):
        if self.y > PAGE_BREAK_MM or self.y + height > PAGE_BREAK_MM + LINE_HEIGHT_MM:
            self.new_page()

    def put(self, x: float, y: float, text: str, bold: bool = False, size: float = BODY_SIZE):
        self.pages[-1].append(TextLine(MARGIN_MM + x, y, text, bold, size))

    def line(self, text: str, indent: float = 0, bold: bool = False):
        self.ensure_room(LINE_HEIGHT_MM)
        self.put(indent, self.y, text, bold)
        self.y += LINE_HEIGHT_MM

    def paragraph(self, text: str, indent: float = 0):
        for chunk in text.splitlines() or [""]:
            for wrapped in textwrap.wrap(chunk, WRAP_CHARS) or [""]:
                self.line(wrapped, indent)

    def section(self, title: str, body_height: float = LINE_HEIGHT_MM):
        self.ensure_room(LINE_HEIGHT_MM + 2 + body_height)
        self.y += 2
        self.put(0, self.y, title, bold=True, size=HEADING_SIZE)
        self.y += LINE_HEIGHT_MM


def _dash(value) -> str:
    return str(value) if value else "-"


def layout_pages(document: CharacterDocument) -> List[List[TextLine]]:
    """Lay the sheet out as a list of pages of positioned text lines."""
    out = _Layout()
    info = document.basic_info
    prof = document.proficiency_bonus

    out.put(0, out.y, document.basic_info.name or "Unnamed Character", bold=True, size=TITLE_SIZE)
    out.y += 8
    subclass = f" ({info.subclass})" if info.subclass else ""
    out.line(f"{info.race} {info.class_name}{subclass} - Level {info.level}".strip())
    out.line(
        f"Background: {_dash(info.background)}  |  Alignment: {_dash(info.alignment)}"
        f"  |  XP: {info.experience_points}"
    )

    out.section("ABILITY SCORES", body_height=12)
    for i, ability in enumerate(Ability):
        score = document.abilities.score(ability)
        out.put(i * 30, out.y, ABILITY_ABBREVIATIONS[ability], bold=True)
        out.put(i * 30, out.y + 5, f"{score} ({format_modifier(ability_modifier(score))})")
    out.y += 12

    combat = document.combat
    out.section("COMBAT")
    out.line(
        f"AC: {combat.armor_class}  |  Initiative: {format_modifier(combat.initiative)}"
        f"  |  Speed: {combat.speed} ft"
    )
    out.line(
        f"HP: {combat.current_hit_points}/{combat.max_hit_points}"
        f"  |  Temp HP: {combat.temporary_hit_points}  |  Hit Dice: {combat.hit_dice.total}"
    )
    out.line(
        f"Prof. Bonus: {format_modifier(prof)}  |  Death Saves: "
        f"{combat.death_saves.successes} successes, {combat.death_saves.failures} failures"
    )

    saves = compute_all_saving_throws(document.abilities, document.saving_throws, prof)
    out.section("SAVING THROWS", body_height=3 * LINE_HEIGHT_MM)
    for i, ability in enumerate(Ability):
        mark = "[x]" if document.saving_throws.entry(ability).proficient else "[ ]"
        out.put(
            0 if i < 3 else 80,
            out.y + (i % 3) * LINE_HEIGHT_MM,
            f"{mark} {ABILITY_ABBREVIATIONS[ability]}: {format_modifier(saves[ability])}",
        )
    out.y += 3 * LINE_HEIGHT_MM

    bonuses = compute_all_skill_bonuses(document.abilities, document.skills, prof)
    out.section("SKILLS", body_height=9 * LINE_HEIGHT_MM)
    for i, skill in enumerate(SKILL_ABILITY_MAP):
        entry = document.skills.entry(skill)
        mark = "[E]" if entry.expertise else "[x]" if entry.proficient else "[ ]"
        out.put(
            0 if i < 9 else 90,
            out.y + (i % 9) * LINE_HEIGHT_MM,
            f"{mark} {SKILL_LABELS[skill]}: {format_modifier(bonuses[skill])}",
        )
    out.y += 9 * LINE_HEIGHT_MM

    if document.equipment:
        out.section("EQUIPMENT")
        for item in document.equipment:
            weight = f" ({item.weight:g} lb)" if item.weight else ""
            out.line(f"{'[E]' if item.equipped else '   '} {item.name} x{item.quantity}{weight}")

    c = document.currency
    out.section("CURRENCY")
    out.line(
        f"CP: {c.copper}  SP: {c.silver}  EP: {c.electrum}  GP: {c.gold}  PP: {c.platinum}"
    )

    casting = document.spellcasting
    if casting.spellcasting_ability:
        out.section("SPELLCASTING")
        out.line(
            f"Ability: {casting.spellcasting_ability}  |  Spell Save DC: {casting.spell_save_dc}"
            f"  |  Spell Attack: {format_modifier(casting.spell_attack_bonus)}"
        )
        slots = [
            f"{level}: {slot.max - slot.used}/{slot.max}"
            for level, slot in sorted(casting.spell_slots.items(), key=lambda kv: int(kv[0]))
            if slot.max
        ]
        if slots:
            out.line("Slots  " + "  ".join(slots))
        if casting.cantrips:
            out.line("Cantrips:", bold=True)
            for cantrip in casting.cantrips:
                out.line(cantrip.name, indent=4)
        if casting.spells_known:
            out.line("Spells:", bold=True)
            for spell in casting.spells_known:
                out.line(f"{'[P]' if spell.prepared else '   '} Lvl {spell.level}: {spell.name}", indent=4)

    if document.features:
        out.section("FEATURES & TRAITS")
        for feature in document.features:
            source = f" ({feature.source})" if feature.source else ""
            out.line(f"{feature.name}{source}", bold=True)
            if feature.description:
                out.paragraph(feature.description)

    personality = document.personality
    out.section("PERSONALITY")
    for label, value in (
        ("Traits", personality.traits),
        ("Ideals", personality.ideals),
        ("Bonds", personality.bonds),
        ("Flaws", personality.flaws),
    ):
        if value:
            out.paragraph(f"{label}: {value}")

    profs = document.proficiencies
    prof_lines = [
        f"{label}: {', '.join(values)}"
        for label, values in (
            ("Armor", profs.armor),
            ("Weapons", profs.weapons),
            ("Tools", profs.tools),
            ("Languages", profs.languages),
        )
        if values
    ]
    if prof_lines:
        out.section("PROFICIENCIES & LANGUAGES")
        for text in prof_lines:
            out.paragraph(text)

    if document.backstory:
        out.section("BACKSTORY")
        out.paragraph(document.backstory)

    looks = document.appearance
    look_parts = [
        f"{label}: {value}"
        for label, value in (
            ("Age", looks.age),
            ("Height", looks.height),
            ("Weight", looks.weight),
            ("Eyes", looks.eyes),
            ("Skin", looks.skin),
            ("Hair", looks.hair),
        )
        if value
    ]
    if look_parts:
        out.section("APPEARANCE")
        out.paragraph("  |  ".join(look_parts))

    if document.allies:
        out.section("ALLIES & ORGANIZATIONS")
        for ally in document.allies:
            out.line(ally)

    if document.notes:
        out.section("NOTES")
        out.paragraph(document.notes)

    return out.pages


def pdf_filename(document: CharacterDocument) -> str:
    info = document.basic_info
    name = re.sub(r"\s+", "_", info.name or "Character")
    return f"{name}_Level{info.level}_{info.class_name or 'Unknown'}.pdf"


def render_pdf(document: CharacterDocument) -> bytes:
    pdf = fitz.open()
    width, height = fitz.paper_size("a4")
    for page_lines in layout_pages(document):
        page = pdf.new_page(width=width, height=height)
        for line in page_lines:
            page.insert_text(
                fitz.Point(line.x * PT_PER_MM, line.y * PT_PER_MM),
                line.text,
                fontsize=line.size,
                fontname="hebo" if line.bold else "helv",
            )
    data = pdf.tobytes()
    pdf.close()
    return data


def write_pdf(document: CharacterDocument, directory: Path) -> Path:
    path = Path(directory) / pdf_filename(document)
    path.write_bytes(render_pdf(document))
    logger.info(f"Exported PDF to {path}")
    return path
