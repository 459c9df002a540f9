"""Argument parsing functionality for packdeps."""

import argparse

from constants import Constants


def _add_common_options(parser):
    """Options shared by every command."""
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)
    parser.add_argument("--cabal-dir",
                        dest="CABAL_DIR",
                        help="Package manager directory holding 'config' and 'packages/'",
                        action="store",
                        type=str)
    parser.add_argument("-i", "--index",
                        dest="INDEXES",
                        help="Index archive to load instead of the configured repositories (repeatable)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--compiler-version",
                        dest="COMPILER_VERSION",
                        help="Compiler version to resolve conditionals with (skips detection)",
                        action="store",
                        type=str)
    parser.add_argument("--os",
                        dest="TARGET_OS",
                        help="Operating system to resolve conditionals with",
                        action="store",
                        type=str)
    parser.add_argument("--arch",
                        dest="TARGET_ARCH",
                        help="Architecture to resolve conditionals with",
                        action="store",
                        type=str)
    parser.add_argument("--json",
                        dest="JSON",
                        help="Emit JSON instead of text",
                        action="store_true")
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=Constants.LOG_LEVELS)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="packdeps",
        description="packdeps - check packages against the newest versions of their dependencies",
        add_help=True,
    )
    _add_common_options(parser)
    subparsers = parser.add_subparsers(dest="action", required=True)

    check = subparsers.add_parser("check", help="Check local metadata files against the index")
    check.add_argument("FILES", nargs="+", help="Package metadata files (.cabal)")

    search = subparsers.add_parser("search", help="Find packages by author, maintainer or name")
    search.add_argument("NEEDLE", help="Case-insensitive search text")

    reverse = subparsers.add_parser("reverse", help="List packages depending on a package")
    reverse.add_argument("PACKAGE", help="Package name")

    deep = subparsers.add_parser("deep", help="Check packages and everything they depend on")
    deep.add_argument("PACKAGES", nargs="+", help="Package names")

    return parser.parse_args(argv)
