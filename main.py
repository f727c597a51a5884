# main.py
"""CLI entry point for actor-materials generation."""

from __future__ import annotations

import argparse
import sys

from models import ActingTechnique
from orchestration.cli_runner import run


def _episode_list(value: str) -> list[int]:
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"expected comma-separated episode numbers, got {value!r}"
        ) from exc


def main(argv: list[str] | None = None) -> int:
    """Parse command-line arguments and generate materials for one arc."""
    parser = argparse.ArgumentParser(
        description="Generate actor preparation materials for a narrative arc."
    )
    parser.add_argument(
        "--project-dir", required=True, help="Directory holding the story documents"
    )
    parser.add_argument(
        "--arc", type=int, required=True, help="Zero-based narrative arc index"
    )
    parser.add_argument(
        "--episodes",
        type=_episode_list,
        default=None,
        help="Comma-separated episode numbers (default: the arc's own list)",
    )
    parser.add_argument(
        "--character", default=None, help="Only generate for this character id or name"
    )
    parser.add_argument(
        "--technique",
        choices=[t.value for t in ActingTechnique],
        default=None,
        help="Acting technique to emphasize",
    )
    parser.add_argument(
        "--output-dir", default=None, help="Where to write the bundle JSON"
    )
    args = parser.parse_args(argv)
    return run(
        args.project_dir,
        args.arc,
        episodes=args.episodes,
        character=args.character,
        technique=args.technique,
        output_dir=args.output_dir,
    )


if __name__ == "__main__":
    sys.exit(main())
