"""
Command-line entry point.

1) Load family members from a JSON snapshot or the SQLite database.
2) Validate parent links and birth dates.
3) Lay the active members out as a tree and fit them to a viewport.
4) Answer kinship queries between two members.
5) Render the diagram (matplotlib image or pinned Graphviz graph).
6) Import/export snapshots to and from the database.
"""

import argparse
import logging
from pathlib import Path
import sys

from config import settings
from database import MemberRepository
from family import FamilyRegistry
from graph import find_roots
from kinship import relationship_label_by_id
from layout import layout_members
from models import Person, active_members
from parsing import SnapshotError, dump_snapshot, load_snapshot
from plotting import plot_layout, write_dot
from validation import validate_members
from viewport import fit_transform

logger = logging.getLogger("clanscroll")


def load_source(args) -> list[Person]:
    """Members from --snapshot when given, otherwise from the database."""
    if args.snapshot:
        return load_snapshot(Path(args.snapshot))
    repo = MemberRepository(args.db, settings.BACKUP_PATH)
    try:
        return repo.load()
    finally:
        repo.close()


def cmd_validate(args) -> int:
    members = load_source(args)
    trees = find_roots(active_members(members))
    print(f"Validating {len(members)} members in {len(trees)} trees...")
    warnings = validate_members(members)
    if warnings:
        print(f"  Found {len(warnings)} validation warnings:")
        for w in warnings[:20]:
            print(f"    - {w}")
        if len(warnings) > 20:
            print(f"    ... and {len(warnings) - 20} more")
        return 1
    print("  No validation issues found")
    return 0


def cmd_layout(args) -> int:
    active = active_members(load_source(args))
    nodes = layout_members(active, settings.node_size)
    if nodes is None:
        print("Layout failed, see the log for details")
        return 1

    for node in nodes.values():
        print(f"{node.id}\t{node.person.name}\tgen {node.generation}\t({node.x:.1f}, {node.y:.1f})")

    fit = fit_transform(nodes.values(), args.width, args.height, settings.fit_padding)
    if fit is not None:
        print(f"Auto-fit for {args.width:g}x{args.height:g}: translate=({fit.x:.1f}, {fit.y:.1f}) scale={fit.k:.3f}")
    return 0


def cmd_relation(args) -> int:
    active = active_members(load_source(args))
    label = relationship_label_by_id(args.target, args.center, active, args.locale)
    if label is None:
        print(f"No defined relationship between {args.target} and {args.center}")
        return 1
    print(label)
    return 0


def cmd_plot(args) -> int:
    active = active_members(load_source(args))
    nodes = layout_members(active, settings.node_size)
    if nodes is None:
        print("Layout failed, nothing to plot")
        return 1

    labels = None
    if args.center:
        labels = {}
        for node_id in nodes:
            label = relationship_label_by_id(node_id, args.center, active, args.locale)
            if label is not None:
                labels[node_id] = label

    output = Path(args.output)
    if output.suffix.lower() == ".dot" or args.graphviz:
        write_dot(nodes, output)
    else:
        plot_layout(nodes, output, labels)
    return 0


def cmd_import(args) -> int:
    members = load_snapshot(Path(args.input))
    repo = MemberRepository(args.db, settings.BACKUP_PATH)
    registry = FamilyRegistry(sink=repo.save)
    try:
        imported = registry.import_members(members)
        repo.write_backup(registry.members)
    finally:
        repo.close()
    print(f"Imported {len(imported)} members into {args.db}")
    return 0


def cmd_export(args) -> int:
    members = load_source(args)
    dump_snapshot(members, Path(args.output))
    print(f"Exported {len(members)} members to {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clanscroll", description="Family tree layout and kinship terms")
    parser.add_argument("--db", default=settings.DB_PATH, help="SQLite database path")
    parser.add_argument("--snapshot", help="read members from this JSON snapshot instead of the database")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("validate", help="check parent links and dates").set_defaults(func=cmd_validate)

    p = sub.add_parser("layout", help="print node positions and the auto-fit transform")
    p.add_argument("--width", type=float, default=1280)
    p.add_argument("--height", type=float, default=800)
    p.set_defaults(func=cmd_layout)

    p = sub.add_parser("relation", help="kinship term of TARGET as seen from CENTER")
    p.add_argument("target")
    p.add_argument("center")
    p.add_argument("--locale", default=settings.LOCALE, choices=["zh", "en"])
    p.set_defaults(func=cmd_relation)

    p = sub.add_parser("plot", help="render the diagram")
    p.add_argument("output")
    p.add_argument("--center", help="annotate nodes with kinship terms relative to this member")
    p.add_argument("--locale", default=settings.LOCALE, choices=["zh", "en"])
    p.add_argument("--graphviz", action="store_true", help="render through Graphviz (neato -n)")
    p.set_defaults(func=cmd_plot)

    p = sub.add_parser("import", help="load a JSON snapshot into the database")
    p.add_argument("input")
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("export", help="write all members to a JSON snapshot")
    p.add_argument("output")
    p.set_defaults(func=cmd_export)

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except SnapshotError as e:
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
