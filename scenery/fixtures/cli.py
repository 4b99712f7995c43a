"""Lint YAML fixture snapshots against the reference CMS schema."""

from __future__ import annotations

import argparse
from pathlib import Path

from scenery.fixtures.errors import FixtureSnapshotError
from scenery.fixtures.snapshot import load_snapshot_file
from scenery.schema.registry import build_cms_registry


def main(argv: list[str] | None = None) -> int:
    """Validate one or more snapshot files.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Exit code: 0 when every file is valid, 1 otherwise.

    """
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "snapshots", type=Path, nargs="+", help="YAML fixture snapshots to lint"
    )
    args = parser.parse_args(argv)

    registry = build_cms_registry()
    status = 0
    for path in args.snapshots:
        try:
            snapshot = load_snapshot_file(path)
        except FixtureSnapshotError as exc:
            issues = exc.issues
        else:
            issues = snapshot.lint(registry)
        if issues:
            print(f"Snapshot validation failed for {path}:")
            for issue in issues:
                print(f"  - {issue}")
            status = 1
            continue
        print(
            f"snapshot {path} is valid "
            f"({len(snapshot.type_names)} types / {len(snapshot)} records)"
        )
    return status


if __name__ == "__main__":
    raise SystemExit(main())
