"""
Command-line access to locally stored characters.

Usage:
    charsheet list
    charsheet new --name "Elara"
    charsheet show <local_id>
    charsheet set-ability <local_id> intelligence 18
    charsheet set-level <local_id> 5
    charsheet export-json <local_id> --out exports/
    charsheet import-json exports/Elara.json
    charsheet export-pdf <local_id> --out exports/
    charsheet delete <local_id>

Edits go through the same store and autosave path as any other host. The
debounce timer runs on a virtual clock and is flushed before exit.
"""

import argparse
import sys
from pathlib import Path

from charsheet.calculations import (
    ABILITY_ABBREVIATIONS,
    SKILL_LABELS,
    ability_modifier,
    compute_all_skill_bonuses,
    format_modifier,
)
from charsheet.database import init_db
from charsheet.debounce import ManualScheduler
from charsheet.editor import SheetEditor
from charsheet.errors import ImportFormatError
from charsheet.models import Ability
from charsheet.pdf_export import write_pdf
from charsheet.persistence import PersistenceGateway
from charsheet.store import CharacterStore


def _open(store: CharacterStore, local_id: str):
    if not store.load_from_local(local_id):
        print(f"Error: no character with id {local_id}", file=sys.stderr)
        sys.exit(1)


def cmd_list(store, gateway, args):
    records = gateway.list_characters()
    if not records:
        print("No characters saved.")
        return
    for record in records:
        info = record.data.basic_info
        synced = " [cloud]" if record.remote_id else ""
        print(f"{record.local_id}  {record.name}  L{info.level} {info.class_name}{synced}")


def cmd_new(store, gateway, args):
    local_id = store.create_new()
    if args.name:
        SheetEditor(store).set_basic_info("name", args.name)
    print(local_id)


def cmd_show(store, gateway, args):
    _open(store, args.local_id)
    d = store.document
    info = d.basic_info
    print(f"{d.display_name} - {info.race} {info.class_name} level {info.level}".rstrip())
    print(f"Proficiency bonus: {format_modifier(d.proficiency_bonus)}")
    for ability in Ability:
        score = d.abilities.score(ability)
        print(f"  {ABILITY_ABBREVIATIONS[ability]} {score:>2} ({format_modifier(ability_modifier(score))})")
    print(f"AC {d.combat.armor_class}  Initiative {format_modifier(d.combat.initiative)}  "
          f"HP {d.combat.current_hit_points}/{d.combat.max_hit_points}")
    if d.spellcasting.spellcasting_ability:
        print(f"Spell save DC {d.spellcasting.spell_save_dc}  "
              f"Spell attack {format_modifier(d.spellcasting.spell_attack_bonus)}")
    if args.skills:
        bonuses = compute_all_skill_bonuses(d.abilities, d.skills, d.proficiency_bonus)
        for skill, bonus in bonuses.items():
            print(f"  {SKILL_LABELS[skill]}: {format_modifier(bonus)}")


def cmd_set_ability(store, gateway, args):
    _open(store, args.local_id)
    if not SheetEditor(store).set_ability_score(args.ability, args.score):
        print(f"Error: invalid ability score {args.ability}={args.score}", file=sys.stderr)
        sys.exit(1)


def cmd_set_level(store, gateway, args):
    _open(store, args.local_id)
    if not SheetEditor(store).set_basic_info("level", args.level):
        print(f"Error: level must be between 1 and 20, got {args.level}", file=sys.stderr)
        sys.exit(1)


def cmd_export_json(store, gateway, args):
    record = gateway.load(args.local_id)
    if record is None:
        print(f"Error: no character with id {args.local_id}", file=sys.stderr)
        sys.exit(1)
    print(gateway.write_export(record, args.out))


def cmd_import_json(store, gateway, args):
    if not args.path.exists():
        print(f"Error: {args.path} not found", file=sys.stderr)
        sys.exit(1)
    try:
        record = gateway.import_file(args.path)
    except ImportFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(record.local_id)


def cmd_export_pdf(store, gateway, args):
    _open(store, args.local_id)
    print(write_pdf(store.document, args.out))


def cmd_delete(store, gateway, args):
    if not gateway.delete(args.local_id):
        print(f"Error: no character with id {args.local_id}", file=sys.stderr)
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Edit locally stored D&D 5e character sheets")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List saved characters").set_defaults(func=cmd_list)

    p = sub.add_parser("new", help="Create a new character and print its id")
    p.add_argument("--name", help="Character name")
    p.set_defaults(func=cmd_new)

    p = sub.add_parser("show", help="Print a character summary")
    p.add_argument("local_id")
    p.add_argument("--skills", action="store_true", help="Include skill bonuses")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("set-ability", help="Set an ability score (1-30)")
    p.add_argument("local_id")
    p.add_argument("ability", choices=[a.value for a in Ability])
    p.add_argument("score", type=int)
    p.set_defaults(func=cmd_set_ability)

    p = sub.add_parser("set-level", help="Set the character level (1-20)")
    p.add_argument("local_id")
    p.add_argument("level", type=int)
    p.set_defaults(func=cmd_set_level)

    p = sub.add_parser("export-json", help="Write a character to a JSON export file")
    p.add_argument("local_id")
    p.add_argument("--out", type=Path, default=Path("."), help="Output directory (default: .)")
    p.set_defaults(func=cmd_export_json)

    p = sub.add_parser("import-json", help="Import a JSON export file as a new character")
    p.add_argument("path", type=Path)
    p.set_defaults(func=cmd_import_json)

    p = sub.add_parser("export-pdf", help="Write a printable PDF sheet")
    p.add_argument("local_id")
    p.add_argument("--out", type=Path, default=Path("."), help="Output directory (default: .)")
    p.set_defaults(func=cmd_export_pdf)

    p = sub.add_parser("delete", help="Delete a locally stored character")
    p.add_argument("local_id")
    p.set_defaults(func=cmd_delete)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    init_db()
    gateway = PersistenceGateway(scheduler=ManualScheduler())
    store = CharacterStore(gateway)
    try:
        args.func(store, gateway, args)
    finally:
        gateway.flush()


if __name__ == "__main__":
    main()
