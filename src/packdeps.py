"""packdeps - check packages against the newest versions of their dependencies.

Returns:
    int: Exit code
"""
import json
import logging
import sys

from args import parse_args
from cli_config import ConfigError, PackdepsConfig, apply_cli_overrides, load_config
from common.logging_utils import add_file_handler, configure_logging
from constants import ExitCodes
from index.archive import ArchiveError
from index.builder import load_newest
from index.models import AllNewest, DescInfo, Newest
from index.queries import check_deps, deep_deps, filter_packages, get_package, get_reverses
from metadata.descriptor import load_package
from metadata.platform import (
    BuildTarget,
    CompilerDetectionError,
    GhcCompilerProvider,
    StaticCompilerProvider,
    host_target,
)

logger = logging.getLogger(__name__)


def build_target(config: PackdepsConfig) -> BuildTarget:
    """Resolve the build target, probing the compiler unless configured."""
    target_cfg = config.target
    if target_cfg.compiler_version:
        provider = StaticCompilerProvider(target_cfg.compiler, target_cfg.compiler_version)
    else:
        provider = GhcCompilerProvider(target_cfg.compiler, flavor=target_cfg.compiler)
    return host_target(provider, target_cfg.os, target_cfg.arch)


def check_result(newest: Newest, desc: DescInfo) -> dict:
    """Compatibility check of one package as a plain dict."""
    name, version, res = check_deps(newest, desc)
    if isinstance(res, AllNewest):
        return {"package": name, "version": str(version), "allNewest": True}
    return {
        "package": name,
        "version": str(version),
        "allNewest": False,
        "wontAccept": [{"package": p, "version": v} for p, v in res.packages],
        "outdatedAt": res.outdated_at.isoformat(),
    }


def format_check(result: dict) -> str:
    """Text rendering of :func:`check_result` output."""
    head = f"{result['package']}-{result['version']}"
    if result["allNewest"]:
        return f"{head}: can use all newest versions"
    rejected = ", ".join(f"{r['package']}-{r['version']}" for r in result["wontAccept"])
    return f"{head}: cannot accept {rejected} (outdated since {result['outdatedAt']})"


def _emit(args, results, formatter) -> None:
    if args.JSON:
        print(json.dumps(results, ensure_ascii=False, indent=4))
    else:
        for result in results:
            print(formatter(result))


def cmd_check(args, newest: Newest, target: BuildTarget) -> int:
    results = []
    exit_code = ExitCodes.SUCCESS.value
    for path in args.FILES:
        try:
            desc = load_package(target, path)
        except OSError as e:
            logger.error("Cannot read %s: %s", path, e)
            exit_code = ExitCodes.FILE_ERROR.value
            continue
        if desc is None:
            logger.error("Could not parse package metadata in %s", path)
            exit_code = ExitCodes.FILE_ERROR.value
            continue
        results.append(check_result(newest, desc))
    _emit(args, results, format_check)
    if exit_code == ExitCodes.SUCCESS.value and any(not r["allNewest"] for r in results):
        return ExitCodes.EXIT_WARNINGS.value
    return exit_code


def cmd_search(args, newest: Newest) -> int:
    results = [check_result(newest, d) for d in filter_packages(args.NEEDLE, newest)]
    if not results:
        logger.info("No packages match %r", args.NEEDLE)
    _emit(args, results, format_check)
    return ExitCodes.SUCCESS.value


def cmd_reverse(args, newest: Newest) -> int:
    entry = get_reverses(newest).get(args.PACKAGE)
    if entry is None:
        logger.info("No indexed packages depend on %s", args.PACKAGE)
        _emit(args, [], str)
        return ExitCodes.SUCCESS.value
    version, relying = entry
    results = [
        {
            "package": rel,
            "range": str(version_range),
            "acceptsNewest": version_range.contains(version),
        }
        for rel, version_range in relying
    ]

    def _format(r):
        mark = "ok" if r["acceptsNewest"] else f"does not accept {args.PACKAGE}-{version}"
        return f"{r['package']} ({r['range']}): {mark}"

    _emit(args, results, _format)
    return ExitCodes.SUCCESS.value


def cmd_deep(args, newest: Newest) -> int:
    seeds = []
    for name in args.PACKAGES:
        desc = get_package(name, newest)
        if desc is None:
            logger.warning("Package %s is not in the index", name)
            continue
        seeds.append(desc)
    results = [check_result(newest, d) for d in deep_deps(newest, seeds)]
    _emit(args, results, format_check)
    if any(not r["allNewest"] for r in results):
        return ExitCodes.EXIT_WARNINGS.value
    return ExitCodes.SUCCESS.value


def run(argv=None) -> int:
    """Run the CLI and return the exit code."""
    args = parse_args(argv)
    try:
        config = apply_cli_overrides(load_config(args.CONFIG), args)
    except ConfigError as e:
        configure_logging(args.LOG_LEVEL)
        logger.error("%s", e)
        return ExitCodes.CONFIG_ERROR.value

    configure_logging(config.log_level)
    if args.LOG_FILE:
        add_file_handler(args.LOG_FILE)

    try:
        target = build_target(config)
    except CompilerDetectionError as e:
        logger.error("Cannot determine compiler: %s (use --compiler-version)", e)
        return ExitCodes.COMPILER_ERROR.value

    try:
        newest = load_newest(config, target)
    except ConfigError as e:
        logger.error("%s", e)
        return ExitCodes.CONFIG_ERROR.value
    except (ArchiveError, OSError) as e:
        logger.error("Cannot load package index: %s", e)
        return ExitCodes.FILE_ERROR.value

    if args.action == "check":
        return cmd_check(args, newest, target)
    if args.action == "search":
        return cmd_search(args, newest)
    if args.action == "reverse":
        return cmd_reverse(args, newest)
    return cmd_deep(args, newest)


def main():
    """Console script entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
