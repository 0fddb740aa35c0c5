#!/usr/bin/env python3
"""
libpin - Shared library version resolution command-line interface.

Usage:
    libpin resolve pipeline-utils                           # Default version
    libpin resolve pipeline-utils 1.4                       # Literal override
    libpin resolve pipeline-utils '${BRANCH_NAME}' \\
        --env BRANCH_NAME=PR-42 --env CHANGE_BRANCH=feature/y
    libpin resolve pipeline-utils '${BRANCH_NAME}' --branch-spec '*/release'
    libpin check                                            # Lint all libraries
    libpin list                                             # Show libraries
    libpin --help                                           # Show help
"""

import argparse
import logging
import sys
from pathlib import Path

from libpin import __version__
from libpin.commands.resolve import ResolveCommand


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="libpin",
        description="libpin - resolve shared library versions for pipeline jobs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s resolve utils                          Default version of 'utils'
  %(prog)s resolve utils 2.0                      Requested version (if overridable)
  %(prog)s resolve utils '${BRANCH_NAME}' --env BRANCH_NAME=feature/x
  %(prog)s resolve utils '${BRANCH_NAME}' --branch-spec '*/release' --trace
  %(prog)s check                                  Lint all configured libraries
  %(prog)s list                                   Show configured libraries
        """
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--repo",
        type=str,
        default=None,
        help="Directory containing .libpin/ (default: $LIBPIN_HOME, else search upward from cwd)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose (debug) logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # ----- libpin resolve NAME [VERSION] -----
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve the version of a library",
        description="Resolve a requested version against the library's policy"
    )
    resolve_parser.add_argument("name", type=str, help="Library name")
    resolve_parser.add_argument(
        "requested",
        nargs="?",
        default=None,
        help="Requested version (omit for the default version)"
    )
    resolve_parser.add_argument(
        "--env", "-e",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Environment variable of the simulated run (repeatable)"
    )
    resolve_parser.add_argument(
        "--inherit-env",
        action="store_true",
        help="Start from the current process environment"
    )
    resolve_parser.add_argument(
        "--branch-spec",
        action="append",
        default=[],
        metavar="SPEC",
        help="Branch spec of the job's git source (repeatable, first one wins)"
    )
    resolve_parser.add_argument(
        "--trace",
        action="store_true",
        help="Print resolution diagnostics to stderr"
    )

    # ----- libpin check [NAME] -----
    check_parser = subparsers.add_parser(
        "check",
        help="Lint library configurations",
        description="Check default versions and policy flags of configured libraries"
    )
    check_parser.add_argument("name", nargs="?", default=None, help="Library name")

    # ----- libpin list -----
    subparsers.add_parser(
        "list",
        help="List configured libraries",
        description="Print configured libraries and their policy flags"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    repo_path = Path(args.repo) if args.repo else None
    cmd = ResolveCommand(repo_root=repo_path)

    if args.command == "resolve":
        return cmd.resolve(
            args.name,
            args.requested,
            env_pairs=args.env,
            inherit_env=args.inherit_env,
            branch_specs=args.branch_spec,
            trace=args.trace,
        )

    elif args.command == "check":
        return cmd.check(args.name)

    elif args.command == "list":
        return cmd.list()

    else:
        parser.print_help()
        return 0


def cli() -> int:
    """Console script entry point."""
    return main()


if __name__ == "__main__":
    sys.exit(cli())
