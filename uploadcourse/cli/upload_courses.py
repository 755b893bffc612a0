"""CLI entry point for bulk course uploads."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from uploadcourse.core.errors import StoreUnavailableError
from uploadcourse.core.modes import ImportMode, OutputMode, UpdateMode, parse_mode
from uploadcourse.pipeline import bootstrap_upload, load_csv_rows, run_upload
from uploadcourse.reporting.tracker import RunTotals


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create, update or delete courses from a CSV file.")
    parser.add_argument("csv", help="CSV file with one course per row (header row required).")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the upload YAML (default: <repo-root>/config/upload.yaml when present)",
    )
    parser.add_argument(
        "--repo-root",
        default=None,
        help="Base directory for relative paths (default: COURSE_UPLOAD_REPO_ROOT or the current directory)",
    )
    parser.add_argument(
        "--store",
        default=None,
        help="Override the catalog SQLite path (also settable via COURSE_UPLOAD_STORE).",
    )
    parser.add_argument(
        "--mode",
        default=None,
        help=f"Upload mode ({', '.join(ImportMode.choices())}).",
    )
    parser.add_argument(
        "--update-mode",
        default=None,
        help=f"What updates may change ({', '.join(UpdateMode.choices())}).",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Simulate the run: report what would happen without writing anything.",
    )
    parser.add_argument(
        "--category-autocreate",
        action="store_true",
        help="Create categories named in category_path that do not exist yet.",
    )
    parser.add_argument("--allow-deletes", action="store_true", help="Honour delete=1 rows.")
    parser.add_argument("--allow-renames", action="store_true", help="Honour the rename column on updates.")
    parser.add_argument(
        "--shortname-template",
        default=None,
        help="Template for rows without a shortname, e.g. '%%-8f' or '%%i'.",
    )
    parser.add_argument(
        "--output",
        default=None,
        choices=OutputMode.choices(),
        help="Report format (default: from config, 'plain' otherwise).",
    )
    parser.add_argument("--provenance", default=None, help="Append JSONL provenance events to this file.")
    parser.add_argument("--encoding", default="utf-8-sig", help="CSV file encoding (default: utf-8-sig).")
    parser.add_argument("--quiet", action="store_true", help="Suppress the closing summary line.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def _resolve_path(value: str | Path, *, base: Path | None = None) -> Path:
    candidate = Path(value).expanduser()
    if candidate.is_absolute():
        return candidate.resolve()
    anchor = Path(base).expanduser().resolve() if base is not None else Path.cwd()
    return (anchor / candidate).resolve()


def _resolve_optional(value: str | Path | None, *, base: Path | None = None) -> Path | None:
    if value is None:
        return None
    return _resolve_path(value, base=base)


def _option_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {
        "mode": parse_mode(ImportMode, args.mode, default=None),
        "update_mode": parse_mode(UpdateMode, args.update_mode, default=None),
        "shortname_template": args.shortname_template,
    }
    # store_true flags only ever switch a capability on.
    for flag, field_name in (
        ("preview", "preview"),
        ("category_autocreate", "allow_category_autocreate"),
        ("allow_deletes", "allow_deletes"),
        ("allow_renames", "allow_renames"),
    ):
        if getattr(args, flag):
            overrides[field_name] = True
    return overrides


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        repo_root = _resolve_optional(args.repo_root)
        csv_path = _resolve_path(args.csv)
        ctx = bootstrap_upload(
            config_path=_resolve_optional(args.config, base=repo_root),
            repo_root=repo_root,
            store_override=_resolve_optional(args.store, base=repo_root),
            option_overrides=_option_overrides(args),
            output_override=OutputMode(args.output) if args.output else None,
            provenance_override=_resolve_optional(args.provenance, base=repo_root),
        )
        rows = load_csv_rows(csv_path, encoding=args.encoding)
        totals = run_upload(ctx, rows)
        _print_summary(totals, preview=ctx.preview, quiet=args.quiet)
    except StoreUnavailableError as exc:
        print(f"[upload] catalog unavailable: {exc}", file=sys.stderr)
        return 2
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))
    except Exception as exc:  # noqa: BLE001 - bubble up to CLI for now
        print(f"[upload] error: {exc}", file=sys.stderr)
        return 1

    return 0


def _print_summary(totals: RunTotals, *, preview: bool, quiet: bool = False) -> None:
    if quiet:
        return
    label = "[preview]" if preview else "[upload]"
    print(
        f"{label} rows={totals.total} created={totals.created} updated={totals.updated} "
        f"deleted={totals.deleted} errors={totals.errors} categories={totals.categories_created}"
    )


if __name__ == "__main__":
    sys.exit(main())
