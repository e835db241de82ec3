from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from opentelemetry import trace

from .attributes import as_dict, to_span
from .config import load_settings
from .contributor import run_contribution


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scm-attributes",
        description="Derive scm telemetry attributes (provenance, committers, diffstat) from a local git checkout.",
    )
    parser.add_argument("--repo", type=Path, default=None, help="Repository root (default: $SCM_ATTRIBUTES_REPOSITORY or cwd).")
    parser.add_argument("--target-branch", type=str, default="", help="Configured branch to compare HEAD against (overrides CI detection).")
    parser.add_argument("--head-sha", type=str, default="", help="Full commit hash to use instead of HEAD.")
    parser.add_argument("--remote", type=str, default="", help="Remote whose URLs are reported (default: origin).")
    parser.add_argument("--config", type=Path, default=None, help="Optional JSON config file.")
    parser.add_argument("--span", action="store_true", help="Also set the attributes on a span named 'scm'.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr.")
    return parser


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        settings = load_settings(
            config_path=args.config,
            repository_path=args.repo,
            target_branch=str(args.target_branch or ""),
            head_sha=str(args.head_sha or ""),
            remote_name=str(args.remote or ""),
        )
    except (OSError, ValueError) as e:
        # a broken config file must not fail the build either
        logging.getLogger(__name__).warning("ignoring config %s: %s", args.config, e)
        settings = load_settings(
            repository_path=args.repo,
            target_branch=str(args.target_branch or ""),
            head_sha=str(args.head_sha or ""),
            remote_name=str(args.remote or ""),
        )

    bag, _ = run_contribution(settings)

    if args.span:
        tracer = trace.get_tracer("scm_attributes")
        with tracer.start_as_current_span("scm") as span:
            to_span(bag, span)

    print(json.dumps(as_dict(bag), indent=2))
    return 0
