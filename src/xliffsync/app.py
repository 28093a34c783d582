from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from importlib import metadata

from .config import Config, ConfigError, load_config
from .engines.base import TranslationEngine
from .engines.google_v2 import GoogleTranslateV2
from .engines.google_v3 import GoogleTranslateV3
from .logging import attach_file_logging, configure_logging
from .runner import XliffMerge


log = logging.getLogger("xliffsync")


def package_version() -> str:
    try:
        return metadata.version("xliffsync")
    except metadata.PackageNotFoundError:
        return "unknown"


def build_engine(cfg: Config) -> TranslationEngine | None:
    """Google basic edition with an API key, else advanced edition with a GCP project."""
    if not cfg.autotranslate_on:
        return None
    api_key = cfg.api_key
    if api_key:
        return GoogleTranslateV2(api_key=api_key)
    if cfg.gcp_project_id:
        return GoogleTranslateV3(
            project_id=cfg.gcp_project_id,
            location=cfg.gcp_location,
            credentials_path=cfg.gcp_credentials_path,
        )
    return None


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="xliffsync",
        description="merge a master translation catalog into the catalogs of each language",
    )
    parser.add_argument("-p", "--profile", help="a json configuration file containing all relevant parameters")
    parser.add_argument("-v", "--verbose", action="store_true", help="show some output for debugging purposes")
    parser.add_argument("-q", "--quiet", action="store_true", help="only show errors, nothing else")
    parser.add_argument("--version", action="version", version=f"xliffsync {package_version()}")
    parser.add_argument("--log-file", help="also write the log to this file")
    parser.add_argument(
        "languages",
        nargs="*",
        metavar="lang",
        help='a valid language short string, e.g. "en", "de", "de-ch"',
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    cfg = load_config(
        profile_path=args.profile,
        languages=tuple(args.languages),
        quiet=args.quiet,
        verbose=args.verbose,
    )
    configure_logging(quiet=cfg.quiet, verbose=cfg.verbose)
    if args.log_file:
        attach_file_logging(args.log_file)

    try:
        engine = build_engine(cfg)
    except ConfigError as exc:
        # reported again by the config check of the run
        log.debug("no translation engine: %s", exc)
        engine = None

    retcode = asyncio.run(XliffMerge(cfg, engine=engine, version=package_version()).run_async())
    sys.exit(retcode)


if __name__ == "__main__":
    main()
