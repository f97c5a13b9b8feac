"""Command-line entry point: mdmermaid <input.md> [--format html|pdf] ..."""

from __future__ import annotations

import argparse
import sys

from .errors import ConfigError, MdMermaidError
from .exporter import export_markdown
from .options import MERMAID_THEMES, PDF_PAGE_FORMATS, SECURITY_LEVELS, load_options

EPILOG = """examples:
  mdmermaid README.md --format html --out README.html
  mdmermaid README.md --format pdf  --out README.pdf
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdmermaid",
        description="Convert markdown with ```mermaid fences to self-contained HTML or PDF.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("input", help="Markdown file to convert.")
    parser.add_argument("--format", default="html", help="Output format: html or pdf (default: html).")
    parser.add_argument("--out", default=None, help="Output path (default: input basename + .html/.pdf in cwd).")
    parser.add_argument("--title", default=None, help="Document title (default: input file name).")
    parser.add_argument("--mermaid-theme", default=None, help=f"One of {', '.join(MERMAID_THEMES)}.")
    parser.add_argument("--security", default=None, help=f"Mermaid security level: {', '.join(SECURITY_LEVELS)}.")
    parser.add_argument("--pdf-format", default=None, help=f"Page size: {', '.join(PDF_PAGE_FORMATS)}.")
    parser.add_argument("--pdf-margin", type=float, default=None, help="Margin in mm on every edge (default: 15).")
    parser.add_argument(
        "--keep-html",
        action="store_true",
        default=None,
        help="Keep the intermediate HTML next to the PDF.",
    )
    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        help="How long to wait for Mermaid to finish rendering (default: 60000).",
    )
    parser.add_argument("--chrome", default=None, help="Browser executable override for the render process.")
    parser.add_argument(
        "--page-numbers",
        action="store_true",
        default=None,
        help="Stamp 'N of M' footers on every PDF page.",
    )
    parser.add_argument("--mermaid-js", default=None, help="Path to mermaid.min.js.")
    parser.add_argument("--css", default=None, help="Stylesheet to inline instead of the built-in one.")
    parser.add_argument("--config", default=None, help="Settings file (default: ~/.mdmermaid.json).")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    options = load_options(
        args.config,
        title=args.title,
        mermaid_theme=args.mermaid_theme,
        security_level=args.security,
        pdf_format=args.pdf_format,
        pdf_margin_mm=args.pdf_margin,
        timeout_ms=args.timeout_ms,
        keep_html=args.keep_html,
        chrome_path=args.chrome,
        page_numbers=args.page_numbers,
        mermaid_js=args.mermaid_js,
        stylesheet=args.css,
    )

    try:
        result = export_markdown(args.input, args.format, args.out, options)
    except ConfigError as exc:
        print(f"mdmermaid: {exc}", file=sys.stderr)
        return 2
    except (MdMermaidError, OSError, UnicodeDecodeError) as exc:
        print(f"mdmermaid: {exc}", file=sys.stderr)
        return 1

    for message in result.warnings:
        print(f"[warn] {message}", file=sys.stderr)

    label = "PDF: " if str(args.format).strip().lower() == "pdf" else "HTML:"
    print(f"Wrote {label} {result.output_path}", file=sys.stderr)
    if result.kept_html_path is not None:
        print(f"Kept HTML: {result.kept_html_path}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
