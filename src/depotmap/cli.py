"""CLI entrypoint for the depot coverage map."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .config import AppConfig, load_config
from .debounce import AttributeSync
from .errors import InvalidNumericInput
from .inputs import accept_radius, parse_color, parse_count, parse_radius
from .render import (
    StoreSnapshot,
    format_render_lines,
    load_map_data,
    run_render_turkey,
    run_render_world,
)
from .store import COLORS, COUNTS, RADII, AttributeStore
from .util import ensure_directories, setup_logging, write_json
from .validate import Validator, format_report_lines
from .world import format_world_lines

LOGGER = logging.getLogger("depotmap.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="depotmap",
        description="Depot coverage maps over Turkish provinces.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    def add_selection(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--depot",
            action="append",
            default=[],
            help="Depot id to draw a ring for. Can be repeated; order sets ring colors. Default: all depots.",
        )
        p.add_argument("--radius", default=None, help="Global coverage radius in km (10-600).")
        p.add_argument("--output", default=None, help="Output file path.")
        p.add_argument(
            "--offline",
            action="store_true",
            help="Do not read counts, colors or radii from the attribute store.",
        )

    validate_p = subparsers.add_parser("validate", help="Validate config, data tables and base map.")
    add_common(validate_p)
    validate_p.add_argument("--skip-base-map", action="store_true", help="Do not load the base map.")
    validate_p.add_argument("--strict", action="store_true", help="Treat a missing base map as an error.")

    turkey_p = subparsers.add_parser("render-turkey", help="Render the province map as SVG.")
    add_common(turkey_p)
    add_selection(turkey_p)
    turkey_p.add_argument("--png", action="store_true", help="Also write a rasterized PNG.")
    turkey_p.add_argument("--pdf", action="store_true", help="Also write an A3 landscape PDF.")
    turkey_p.add_argument("--no-labels", action="store_true", help="Omit name and count labels.")

    world_p = subparsers.add_parser("render-world", help="Render depot rings on a world basemap PNG.")
    add_common(world_p)
    add_selection(world_p)

    init_p = subparsers.add_parser("db-init", help="Seed empty count/color tables for all provinces.")
    add_common(init_p)

    pull_p = subparsers.add_parser("db-pull", help="Write a JSON snapshot of the attribute store.")
    add_common(pull_p)
    pull_p.add_argument("--output", default=None, help="Snapshot path (default: <output_dir>/store_snapshot.json).")

    clear_p = subparsers.add_parser("db-clear", help="Delete all stored counts and colors.")
    add_common(clear_p)
    clear_p.add_argument("--yes", action="store_true", help="Confirm the deletion.")

    count_p = subparsers.add_parser("set-count", help="Set the store count of one province.")
    add_common(count_p)
    count_p.add_argument("city", help="Province display name.")
    count_p.add_argument("value", help="Non-negative integer.")

    color_p = subparsers.add_parser("set-color", help="Set the fill color of one province.")
    add_common(color_p)
    color_p.add_argument("city", help="Province display name.")
    color_p.add_argument("value", help="Hex color, e.g. #22c55e.")

    radius_p = subparsers.add_parser("set-radius", help="Set a per-depot coverage radius.")
    add_common(radius_p)
    radius_p.add_argument("depot", help="Depot id.")
    radius_p.add_argument("value", help="Radius in km (10-600).")

    reset_p = subparsers.add_parser("reset-colors", help="Clear stored colors so the reference palette applies.")
    add_common(reset_p)

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    log_path = cfg.paths.logs_dir / "depotmap.log"
    setup_logging(log_path, verbose=args.verbose)
    ensure_directories(cfg.paths.build_directories)
    return cfg


def _make_store(cfg: AppConfig) -> AttributeStore:
    provinces = load_map_data(cfg).provinces
    return AttributeStore(cfg.store, city_ids={name: pid for pid, name in provinces.items()})


def _read_snapshot(cfg: AppConfig, *, offline: bool) -> StoreSnapshot:
    if offline:
        return StoreSnapshot()
    if not cfg.store.configured:
        LOGGER.warning("Attribute store not configured; rendering without stored data.")
        return StoreSnapshot()
    store = _make_store(cfg)
    return StoreSnapshot(
        counts=store.read_all(COUNTS),
        colors=store.read_all(COLORS),
        radii=store.read_all(RADII),
    )


def _run_validate(cfg: AppConfig, *, check_base_map: bool, strict: bool) -> int:
    report = Validator(cfg).run(check_base_map=check_base_map, strict=strict)
    for line in format_report_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_render_turkey(cfg: AppConfig, args: argparse.Namespace) -> int:
    report = run_render_turkey(
        cfg,
        snapshot=_read_snapshot(cfg, offline=bool(args.offline)),
        depot_ids=[str(item) for item in args.depot],
        radius_km=_radius_arg(cfg, args.radius),
        output_path=Path(args.output) if args.output else None,
        png=bool(args.png),
        pdf=bool(args.pdf),
        show_labels=not args.no_labels,
    )
    for line in format_render_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_render_world(cfg: AppConfig, args: argparse.Namespace) -> int:
    report = run_render_world(
        cfg,
        snapshot=_read_snapshot(cfg, offline=bool(args.offline)),
        depot_ids=[str(item) for item in args.depot],
        radius_km=_radius_arg(cfg, args.radius),
        output_path=Path(args.output) if args.output else None,
    )
    for line in format_world_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _radius_arg(cfg: AppConfig, raw: str | None) -> float:
    if raw is None:
        return cfg.coverage.default_radius_km
    return accept_radius(raw, cfg.coverage.default_radius_km)


def _run_db_init(cfg: AppConfig) -> int:
    data = load_map_data(cfg)
    ok = _make_store(cfg).initialize_database(data.provinces, data.reference)
    LOGGER.info("[OK] Database initialized." if ok else "[ERROR] Database initialization failed.")
    return 0 if ok else 1


def _run_db_pull(cfg: AppConfig, output: str | None) -> int:
    if not cfg.store.configured:
        LOGGER.error("[ERROR] Attribute store not configured.")
        return 1
    snapshot = _read_snapshot(cfg, offline=False)
    path = Path(output) if output else cfg.paths.output_dir / "store_snapshot.json"
    write_json(
        path,
        {
            "counts": dict(snapshot.counts),
            "colors": dict(snapshot.colors),
            "radii": dict(snapshot.radii),
        },
    )
    LOGGER.info(
        "[OK] Snapshot written to %s (counts=%d, colors=%d, radii=%d)",
        path,
        len(snapshot.counts),
        len(snapshot.colors),
        len(snapshot.radii),
    )
    return 0


def _run_db_clear(cfg: AppConfig, *, confirmed: bool) -> int:
    if not confirmed:
        LOGGER.error("[ERROR] Refusing to delete stored counts and colors without --yes.")
        return 1
    ok = _make_store(cfg).clear_all_data()
    LOGGER.info("[OK] Stored counts and colors deleted." if ok else "[ERROR] Clearing the store failed.")
    return 0 if ok else 1


def _run_set(cfg: AppConfig, command: str, key: str, raw_value: str) -> int:
    sync = AttributeSync(_make_store(cfg))
    try:
        if command == "set-count":
            count = parse_count(raw_value)
            sync.set_count(key, count)
        elif command == "set-color":
            color = parse_color(raw_value)
            sync.set_color(key, color)
        else:
            radius = parse_radius(raw_value)
            sync.set_radius(key, radius)
    except InvalidNumericInput as exc:
        LOGGER.error("[ERROR] %s", exc)
        return 2

    sync.flush()
    if sync.last_error:
        LOGGER.error("[ERROR] %s", sync.last_error)
        return 1
    LOGGER.info("[OK] %s %s = %s", command, key, raw_value.strip())
    return 0


def _run_reset_colors(cfg: AppConfig) -> int:
    ok = _make_store(cfg).delete_all(COLORS)
    LOGGER.info(
        "[OK] Stored colors cleared; the reference palette applies on next render."
        if ok
        else "[ERROR] Clearing stored colors failed."
    )
    return 0 if ok else 1


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    if command == "validate":
        return _run_validate(cfg, check_base_map=not args.skip_base_map, strict=bool(args.strict))
    if command == "render-turkey":
        return _run_render_turkey(cfg, args)
    if command == "render-world":
        return _run_render_world(cfg, args)
    if command == "db-init":
        return _run_db_init(cfg)
    if command == "db-pull":
        return _run_db_pull(cfg, args.output)
    if command == "db-clear":
        return _run_db_clear(cfg, confirmed=bool(args.yes))
    if command in ("set-count", "set-color"):
        return _run_set(cfg, command, str(args.city), str(args.value))
    if command == "set-radius":
        return _run_set(cfg, command, str(args.depot), str(args.value))
    if command == "reset-colors":
        return _run_reset_colors(cfg)
    raise ValueError(f"Unsupported command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
