# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""navgate CLI: check a URL, or browse with the gate installed.

Usage:
    python -m navgate.cli check URL [--format json|text]
    python -m navgate.cli browse [URL] [--headed] [--no-protection]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from .config import GateConfig
from .errors import NavGateError
from .prompt import format_probability
from .urls import is_bypassed, normalize_url

EXIT_MALICIOUS = 3


def _load_config(args: argparse.Namespace) -> GateConfig:
    config = GateConfig.from_env()
    if getattr(args, "classifier_url", None) or getattr(args, "timeout", None):
        config = GateConfig(
            classifier_url=(args.classifier_url or config.classifier_url).rstrip("/"),
            classifier_timeout=args.timeout or config.classifier_timeout,
            search_url=config.search_url,
            home_url=config.home_url,
            protective_session=config.protective_session,
        )
    return config


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


async def _classify_once(config: GateConfig, url: str) -> dict:
    from .classifier import ClassifierClient

    async with ClassifierClient(config.classifier_url, timeout=config.classifier_timeout) as client:
        result = await client.classify(url)
    return {
        "url": url,
        "is_malicious": result.is_malicious,
        "probability": result.probability,
        "confidence": result.confidence_label,
        "fail_open": result.fail_open,
    }


def _format_check_text(report: dict) -> str:
    if report.get("bypass"):
        return f"{report['url']}\n  not classified (local scheme)"
    if report["fail_open"]:
        return f"{report['url']}\n  classifier unavailable: navigation would be allowed (fail-open)"
    verdict = "MALICIOUS" if report["is_malicious"] else "safe"
    return (
        f"{report['url']}\n"
        f"  verdict:     {verdict}\n"
        f"  confidence:  {report['confidence']}\n"
        f"  probability: {format_probability(report['probability'])}"
    )


def cmd_check(args: argparse.Namespace) -> int:
    """Classify one URL and print the verdict."""
    config = _load_config(args)
    url = normalize_url(args.url, config.search_url)
    if not url:
        print("Error: empty URL", file=sys.stderr)
        return 2

    if is_bypassed(url):
        report = {"url": url, "bypass": True}
    else:
        report = asyncio.run(_classify_once(config, url))

    if args.format == "json":
        print(json.dumps(report, ensure_ascii=False))
    else:
        print(_format_check_text(report))
    return EXIT_MALICIOUS if report.get("is_malicious") else 0


# ---------------------------------------------------------------------------
# browse
# ---------------------------------------------------------------------------


async def _browse(config: GateConfig, start_url: str, *, headless: bool, protected: bool) -> bool:
    from .browser import BrowserConfig, create_surface
    from .prompt import ConsoleNotifier, ConsolePrompt
    from .session import GateSession, ProtectiveSession

    async with GateSession(
        config,
        prompt=ConsolePrompt(),
        notifier=ConsoleNotifier(),
        protection=ProtectiveSession(active=protected),
    ) as gate:
        async with create_surface(BrowserConfig(headless=headless)) as surface:
            await surface.install_gate(gate.interceptor)
            allowed = await gate.interceptor.open(start_url)
            if headless:
                print(f"{'loaded' if allowed else 'blocked'}: {surface.current_url or start_url}")
            else:
                await surface.wait_closed()
            stats = gate.engine.cache.stats
            print(
                f"verdicts: stored={stats.stores} hits={stats.hits} overrides={stats.overrides}",
                file=sys.stderr,
            )
    return allowed


def cmd_browse(args: argparse.Namespace) -> int:
    """Open a Chromium window guarded by the navigation gate."""
    config = _load_config(args)
    protected = config.protective_session and not args.no_protection
    allowed = asyncio.run(_browse(config, args.url or config.home_url, headless=not args.headed, protected=protected))
    return 0 if allowed else EXIT_MALICIOUS


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="navgate: malicious-URL navigation gate", prog="python -m navgate.cli")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines on stderr")
    parser.add_argument("--telemetry", action="store_true", help="Record gate events to ~/.navgate/telemetry")
    parser.add_argument("--classifier-url", type=str, metavar="URL", help="Classifier base URL (env NAVGATE_CLASSIFIER_URL)")
    parser.add_argument("--timeout", type=float, metavar="SECONDS", help="Classifier timeout (env NAVGATE_CLASSIFIER_TIMEOUT)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_check = subparsers.add_parser("check", help="Classify a single URL")
    p_check.add_argument("url", type=str, metavar="URL", help="URL or address-bar input (example.com)")
    p_check.add_argument("--format", type=str, choices=["json", "text"], default="text")

    p_browse = subparsers.add_parser(
        "browse",
        help="Browse with the navigation gate installed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  %(prog)s example.com               Check and load once (headless)
  %(prog)s --headed                  Open a window on the home page
  %(prog)s --headed --no-protection  Same, gate disabled""",
    )
    p_browse.add_argument("url", type=str, nargs="?", metavar="URL", help="Start URL (default: NAVGATE_HOME_URL)")
    p_browse.add_argument("--headed", action="store_true", help="Show the browser window")
    p_browse.add_argument("--no-protection", action="store_true", help="Start with the gate disabled")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    from .logging_config import configure

    configure(json_output=args.json_logs, level="DEBUG" if args.verbose else "WARNING")

    collector = None
    if args.telemetry:
        from . import telemetry
        from .telemetry.collector import TelemetryConfig

        collector = telemetry.configure(TelemetryConfig(enabled=True))

    commands = {"check": cmd_check, "browse": cmd_browse}
    try:
        code = commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except SystemExit:
        raise
    except NavGateError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        sys.exit(1)

    if collector is not None:
        collector.shutdown()
        counts = ", ".join(f"{name}={n}" for name, n in sorted(collector.stats.by_event.items()))
        print(
            f"telemetry: {collector.stats.exported} event(s) -> {collector.config.export_path} ({counts or 'none'})",
            file=sys.stderr,
        )
    sys.exit(code)


if __name__ == "__main__":
    main()
