"""Command-line interface for paperparse."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .version import __version__

EXIT_OK = 0
EXIT_INVALID_ARGS = 6
EXIT_OUTPUT_PATH = 7


def _get_usage() -> str:
    return (
        f"paperparse {__version__}\n"
        "Usage:\n"
        "  paperparse [--help] [--version|--ver]\n"
        "  paperparse --write-matchers PATH\n"
        "  paperparse --input FILE --output FILE [options]\n\n"
        "Options:\n"
        "  --base REF                   Base reference for relative image paths (default: input path)\n"
        "  --markdown FILE              Also write a Markdown export\n"
        "  --context-text FILE          Also write [[ID:...]]-tagged plain text\n"
        "  --cache-dir DIR              Reuse/store results keyed by input content hash\n"
        "  --matchers PATH              Load overlay matchers JSON\n"
        "  --write-matchers PATH        Write default overlay matchers JSON and exit\n"
        "  --verbose                    Verbose progress logs\n"
        "  --debug                      Debug logs"
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--help", action="store_true")
    parser.add_argument("--version", action="store_true")
    parser.add_argument("--ver", action="store_true")
    parser.add_argument("--input", help="Source document (HTML or lightweight markup)")
    parser.add_argument("--output", help="Output JSON file")
    parser.add_argument("--base", default=None, help="Base reference used to resolve relative image sources")
    parser.add_argument("--markdown", help="Write a Markdown export to this path")
    parser.add_argument("--context-text", help="Write [[ID:...]]-tagged plain text to this path")
    parser.add_argument("--cache-dir", help="Directory of cached parse results")
    parser.add_argument("--matchers", help="Path to an overlay matchers JSON file")
    parser.add_argument("--write-matchers", help="Write the default overlay matchers JSON to the given path and exit")
    parser.add_argument("--verbose", action="store_true", help="Verbose progress logs")
    parser.add_argument("--debug", action="store_true", help="Debug logs")
    return parser


def _check_output_path(path: Path) -> str | None:
    if path.exists() and path.is_dir():
        return f"Output path is a directory: {path}"
    return None


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = _build_parser()
    args, unknown = parser.parse_known_args(argv)
    if unknown:
        print(_get_usage())
        return 2

    if not argv or args.help:
        print(_get_usage())
        return EXIT_OK

    if args.version or args.ver:
        print(__version__)
        return EXIT_OK

    from paperparse import core
    from paperparse import matchers as matchers_mod

    core.setup_logging(args.verbose, args.debug)

    if args.write_matchers:
        target = Path(args.write_matchers).expanduser().resolve()
        try:
            matchers_mod.write_matchers_file(target)
        except OSError as exc:
            print(f"Unable to write matchers file {target}: {exc}", file=sys.stderr)
            return EXIT_OUTPUT_PATH
        if args.verbose:
            print(f"Default matchers written to {target}")
        return EXIT_OK

    if not args.input or not args.output:
        print(_get_usage())
        print("Options --input and --output are required unless --write-matchers or --version/--ver is used", file=sys.stderr)
        return EXIT_INVALID_ARGS

    input_path = Path(args.input).expanduser().resolve()
    if not input_path.exists() or not input_path.is_file():
        print(f"Input file not found: {input_path}", file=sys.stderr)
        return EXIT_INVALID_ARGS

    output_paths = [Path(p).expanduser().resolve() for p in (args.output, args.markdown, args.context_text) if p]
    for path in output_paths:
        problem = _check_output_path(path)
        if problem:
            print(problem, file=sys.stderr)
            return EXIT_OUTPUT_PATH

    config = core.ParserConfig()
    if args.matchers:
        matchers_path = Path(args.matchers).expanduser().resolve()
        if not matchers_path.exists() or not matchers_path.is_file():
            print(f"Matchers file not found: {matchers_path}", file=sys.stderr)
            return EXIT_INVALID_ARGS
        try:
            config.matchers = matchers_mod.load_matchers_file(matchers_path)
        except ValueError as exc:
            print(str(exc), file=sys.stderr)
            return EXIT_INVALID_ARGS

    try:
        raw = input_path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        print(f"Unable to read {input_path}: {exc}", file=sys.stderr)
        return EXIT_INVALID_ARGS

    base_reference = args.base if args.base is not None else input_path.as_posix()

    from paperparse.cache import ParseCache
    from paperparse.export import document_context_text, paragraphs_to_markdown

    cache = ParseCache(Path(args.cache_dir).expanduser().resolve()) if args.cache_dir else None
    result = cache.load(raw, base_reference) if cache is not None and not args.matchers else None
    if result is not None:
        core.LOG.info("Loaded cached parse for %s", input_path.name)
    else:
        result = core.parse_safe(raw, base_reference, config)
        if cache is not None and not args.matchers:
            try:
                stored = cache.store(raw, result, base_reference)
            except RuntimeError as exc:
                print(str(exc), file=sys.stderr)
                return EXIT_OUTPUT_PATH
            core.LOG.info("Cached parse result: %s", stored)

    core.LOG.info(
        "Parsed %s: %d paragraph(s), %d heading(s), %d figure(s), %d table(s)",
        input_path.name,
        len(result.paragraphs),
        len(result.structure.toc),
        len(result.structure.figures),
        len(result.structure.tables),
    )

    outputs = [(Path(args.output), json.dumps(result.to_dict(), ensure_ascii=False, indent=2) + "\n")]
    if args.markdown:
        outputs.append((Path(args.markdown), paragraphs_to_markdown(result)))
    if args.context_text:
        outputs.append((Path(args.context_text), document_context_text(result.paragraphs) + "\n"))

    for path, text in outputs:
        target = path.expanduser().resolve()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8", newline="\n")
        except OSError as exc:
            print(f"Unable to write {target}: {exc}", file=sys.stderr)
            return EXIT_OUTPUT_PATH
        if args.verbose:
            print(f"Written: {target}")

    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
