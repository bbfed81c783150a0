"""Command line entry points: run the service or analyze a lyric file."""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from .config import CadenceSettings, get_settings
from .session import LyricSession
from .syllables import BACKENDS, LineResult, format_line_analysis


async def analyze_text(text: str, settings: CadenceSettings) -> LyricSession:
    """Run a session over ``text`` until every line is analyzed.

    The returned session is closed; its store and error list stay readable.
    """
    session = LyricSession.from_settings(settings)
    try:
        session.set_text(text)
        await session.flush()
    finally:
        await session.aclose()
    return session


def render_report(session: LyricSession) -> str:
    """One report line per document line, then the statistics."""
    out = []
    for line_number in range(session.line_count):
        result = session.get(line_number) or LineResult.empty(line_number)
        out.append(format_line_analysis(result))

    stats = session.statistics()
    out.append("")
    out.append(
        f"{stats.lines_with_data} line(s), {stats.total_words} word(s), "
        f"{stats.total_syllables} syllable(s), "
        f"{stats.average_syllables_per_line:.2f} syllables/line"
    )
    for error in session.errors:
        out.append(f"error: {error}")
    return "\n".join(out)


def render_json(session: LyricSession) -> str:
    snapshot = session.store.snapshot()
    return json.dumps(
        {
            "lines": [snapshot[n].to_dict() for n in sorted(snapshot)],
            "statistics": session.statistics().to_dict(),
            "errors": session.errors,
        },
        indent=2,
        ensure_ascii=False,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="cadence", description="Real-time lyric syllable analysis")
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service")
    serve_parser.add_argument("--host", help="Bind address (default from CADENCE_HOST)")
    serve_parser.add_argument("--port", type=int, help="Port (default from CADENCE_PORT)")

    # Analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Count syllables in a lyric file")
    analyze_parser.add_argument("file", nargs="?", help="Lyric file (stdin when omitted)")
    analyze_parser.add_argument("--json", action="store_true", help="Emit JSON instead of a report")
    analyze_parser.add_argument("--language", help="Hyphenation language, e.g. en_US or de_DE")
    analyze_parser.add_argument("--backend", choices=BACKENDS, help="Hyphenation backend")

    args = parser.parse_args(argv)
    settings = get_settings()

    if args.command == "serve":
        import uvicorn

        logging.basicConfig(
            level=getattr(logging, settings.log_level.upper()),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
        uvicorn.run(
            "cadence.main:app",
            host=args.host or settings.host,
            port=args.port or settings.port,
            log_level=settings.log_level.lower(),
        )
        return 0

    if args.command == "analyze":
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
        overrides = {}
        if args.language:
            overrides["hyphenation_language"] = args.language
        if args.backend:
            overrides["hyphenation_backend"] = args.backend
        if overrides:
            settings = settings.model_copy(update=overrides)

        if args.file:
            with open(args.file, encoding="utf-8") as f:
                text = f.read()
        else:
            text = sys.stdin.read()

        try:
            session = asyncio.run(analyze_text(text, settings))
        except ValueError as e:
            print(f"error: {e}", file=sys.stderr)
            return 2
        print(render_json(session) if args.json else render_report(session))
        return 0

    parser.print_help()
    return 1
