"""prebuilt-fetch command line: update, verify, list and resolve modes."""

from __future__ import annotations

import logging
from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Mapping, Sequence

from prebuilt_core.backends import select_backend
from prebuilt_core.buildconfig import write_build_config
from prebuilt_core.config import load_config
from prebuilt_core.errors import ToolInvocationError, UsageError
from prebuilt_core.locking import run_lock
from prebuilt_core.manifest import read_records
from prebuilt_core.status import list_packages, verify
from prebuilt_core.types import OUTCOME_CURRENT, OUTCOME_INSTALLED, FetchConfig, Mode

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_PACKAGE_FAILURE = 2
EXIT_TOOL_FAILURE = 3


class _ArgumentParser(ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message)


def build_parser() -> ArgumentParser:
    parser = _ArgumentParser(prog="prebuilt-fetch", description="Fetch pinned prebuilt packages")
    modes = parser.add_mutually_exclusive_group()
    modes.add_argument("--verify", action="store_true", help="Check installed stamps against the manifest")
    modes.add_argument("--list", action="store_true", help="List packages with installed and current versions")
    modes.add_argument("--resolve", action="store_true", help="Re-pin versions with cipd ensure-file-resolve")
    parser.add_argument("--no-cipd", action="store_true", help="Download directly even if cipd is available")
    parser.add_argument("--config", help="Path to prebuilt.toml")
    parser.add_argument("--download-root", help="Directory packages are installed into")
    parser.add_argument("--versions", action="append", help="Versions manifest (repeatable)")
    parser.add_argument("--ensure", action="append", help="cipd ensure file (repeatable)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _mode_for(args: Namespace) -> Mode:
    if args.verify:
        return Mode.VERIFY
    if args.list:
        return Mode.LIST
    if args.resolve:
        return Mode.RESOLVE
    return Mode.UPDATE


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _run_update(config: FetchConfig) -> int:
    records = read_records(config.versions_files, config.namespace)
    with run_lock(config.download_root):
        backend = select_backend(config)
        report = backend.ensure(records)

    for outcome in report.failures:
        print(f"[prebuilt:update] failed {outcome.identity.display_name}: {outcome.detail}")
    installed = report.count(OUTCOME_INSTALLED)
    current = report.count(OUTCOME_CURRENT)
    if installed or report.failures:
        print(
            f"[prebuilt:update] backend={report.backend} installed={installed} "
            f"current={current} failed={len(report.failures)}"
        )
    if not report.ok:
        return EXIT_PACKAGE_FAILURE

    written = write_build_config(config, records)
    if written is not None:
        logger.debug("wrote build config %s", written)
    return EXIT_OK


def _run_verify(config: FetchConfig) -> int:
    records = read_records(config.versions_files, config.namespace)
    mismatches = verify(config, records)
    for mismatch in mismatches:
        print(f"[prebuilt:verify] warning: {mismatch.describe()}")
    return EXIT_PACKAGE_FAILURE if mismatches else EXIT_OK


def _run_list(config: FetchConfig) -> int:
    records = read_records(config.versions_files, config.namespace)
    for row in list_packages(config, records):
        print(row.render())
    return EXIT_OK


def _run_resolve(config: FetchConfig) -> int:
    if not config.use_cipd:
        raise UsageError("--resolve cannot be combined with --no-cipd")
    with run_lock(config.download_root):
        backend = select_backend(config)
        backend.resolve_versions()
    print(f"[prebuilt:resolve] pinned versions under {config.versions_dir}")
    return EXIT_OK


_HANDLERS = {
    Mode.UPDATE: _run_update,
    Mode.VERIFY: _run_verify,
    Mode.LIST: _run_list,
    Mode.RESOLVE: _run_resolve,
}


def main(
    argv: Sequence[str] | None = None,
    *,
    start_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as exc:
        print(f"[prebuilt] {exc}")
        parser.print_usage()
        return EXIT_USAGE

    _configure_logging(bool(args.verbose))
    args.mode = _mode_for(args)
    tag = f"[prebuilt:{args.mode.value}]"
    try:
        config = load_config(args, environ=environ, cwd=start_dir)
        return _HANDLERS[config.mode](config)
    except UsageError as exc:
        print(f"{tag} {exc}")
        return EXIT_USAGE
    except ToolInvocationError as exc:
        print(f"{tag} cipd failed: {exc}")
        return EXIT_TOOL_FAILURE
