"""Entry point for the skillpack command-line tool.

Usage:
    python -m skillpack --root ./plugins scan
    python -m skillpack --root ./plugins activate "convert my CloudFormation stack to Pulumi" --lang ts
"""

import sys

from skillpack.cli import run_cli


def main() -> None:
    """Main entry point."""
    sys.exit(run_cli(sys.argv[1:]))


if __name__ == "__main__":
    main()
