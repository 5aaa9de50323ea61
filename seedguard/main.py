from __future__ import annotations

import argparse
import logging
from typing import Optional

from .errors import SeedguardError
from .installer import install_config
from .lib.env import Paths
from .logging_utils import configure_logging
from .restrict import RestrictOptions, restrict_cloud_init
from .settings import Settings, load_settings
from .status import query_state

logger = logging.getLogger(__name__)


def _paths(args: argparse.Namespace, settings: Settings) -> Paths:
    return Paths.at(args.root or settings.root, agent=settings.agent)


def cmd_install(args: argparse.Namespace, settings: Settings) -> int:
    report = install_config(
        args.grade or settings.grade,
        target_root=args.target or settings.target_root,
        gadget_dir=args.gadget_dir or settings.gadget_dir,
        seed_dir=args.seed_dir or settings.seed_dir,
        allow_cloud_init=settings.allow_cloud_init and not args.disallow_cloud_init,
        dry_run=bool(args.dry_run),
    )
    if report.disabled:
        print("cloud-init disabled")
    for p in report.installed:
        print(p)
    return 0


def cmd_status(args: argparse.Namespace, settings: Settings) -> int:
    state = query_state(_paths(args, settings))
    print(state.value)
    return 0


def cmd_restrict(args: argparse.Namespace, settings: Settings) -> int:
    opts = RestrictOptions(
        force_disable=settings.force_disable or bool(args.force_disable),
        disable_local_after_first_run=settings.disable_local_after_first_run
        or bool(args.disable_local_after_first_run),
    )
    res = restrict_cloud_init(_paths(args, settings), opts)
    print(f"action: {res.action.value}")
    if res.datasource:
        print(f"datasource: {res.datasource}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="seedguard")
    p.add_argument("--config", default=None, help="Settings file (yaml)")
    p.add_argument("--log", default=None, help="Path to log file")
    p.add_argument("-v", "--verbose", action="store_true", help="Log at debug level")
    p.add_argument("-q", "--quiet", action="store_true", help="Do not log to stderr")

    sub = p.add_subparsers(dest="subcmd", required=True)

    sp = sub.add_parser("install", help="Install cloud-init config into an image (seeding time)")
    sp.add_argument("--target", default=None, help="Target root directory of the image")
    sp.add_argument("--grade", default=None, help="Model grade (secured|signed|dangerous)")
    sp.add_argument("--gadget-dir", default=None, help="Unpacked gadget directory")
    sp.add_argument("--seed-dir", default=None, help="Directory of seed *.cfg files")
    sp.add_argument("--disallow-cloud-init", action="store_true", help="Disable cloud-init entirely")
    sp.add_argument("--dry-run", action="store_true")
    sp.set_defaults(func=cmd_install)

    sp = sub.add_parser("status", help="Print the cloud-init state")
    sp.add_argument("--root", default=None)
    sp.set_defaults(func=cmd_status)

    sp = sub.add_parser("restrict", help="Disable or restrict cloud-init after first boot")
    sp.add_argument("--root", default=None)
    sp.add_argument("--force-disable", action="store_true", help="Disable even if cloud-init is enabled or errored")
    sp.add_argument(
        "--disable-local-after-first-run",
        action="store_true",
        help="Disable instead of restrict when a local datasource (NoCloud, None) was used",
    )
    sp.set_defaults(func=cmd_restrict)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)

    try:
        settings = load_settings(args.config) if args.config else Settings()
        configure_logging(
            log_path=args.log or settings.log_path,
            level=logging.DEBUG if args.verbose else settings.log_level,
            console=settings.log_console and not args.quiet,
        )
        return int(args.func(args, settings))
    except SeedguardError as e:
        logger.error("%s failed: %s", args.subcmd, e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
