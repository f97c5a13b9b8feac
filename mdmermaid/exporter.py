"""Markdown -> HTML/PDF export shared by the command line and desktop shims."""

from __future__ import annotations

import os
import tempfile
import warnings
from dataclasses import dataclass, field
from pathlib import Path

from .errors import DiagramRenderWarning, InputNotFoundError
from .options import RenderOptions, normalize_output_format
from .printer import print_html_to_pdf
from .renderer import build_html


@dataclass
class ExportResult:
    output_path: Path
    kept_html_path: Path | None = None
    warnings: list[str] = field(default_factory=list)


def default_output_path(input_path: str | os.PathLike, fmt: str, directory: str | os.PathLike | None = None) -> Path:
    """Input stem with the format's extension, placed in directory (default: cwd)."""
    fmt = normalize_output_format(fmt)
    base_dir = Path(directory) if directory is not None else Path.cwd()
    return (base_dir / f"{Path(input_path).stem}.{fmt}").resolve()


def kept_html_path_for(pdf_path: str | os.PathLike) -> Path:
    """Where the intermediate HTML goes when it is retained next to the PDF."""
    text = str(pdf_path)
    if text.lower().endswith(".pdf"):
        text = text[:-4]
    return Path(text + ".html")


def resolve_input(input_path: str | os.PathLike) -> Path:
    resolved = Path(input_path).expanduser().resolve()
    if not resolved.is_file():
        raise InputNotFoundError(f"Input file not found: {resolved}")
    return resolved


def export_markdown(
    input_path: str | os.PathLike,
    fmt: str = "html",
    output_path: str | os.PathLike | None = None,
    options: RenderOptions | None = None,
    *,
    driver_factory=None,
) -> ExportResult:
    """Convert one markdown file to HTML or PDF.

    Format and options are validated before the filesystem is touched.
    For PDF the intermediate HTML lives in a unique temp file that is removed
    whether or not printing succeeds, unless ``options.keep_html`` asks for it
    to stay beside the PDF.
    """
    fmt = normalize_output_format(fmt)
    options = (options or RenderOptions()).validate()
    source = resolve_input(input_path)

    if output_path is None:
        target = default_output_path(source, fmt)
    else:
        target = Path(output_path).expanduser().resolve()

    markdown_text = source.read_text(encoding="utf-8")
    html_doc = build_html(
        markdown_text,
        input_path=source,
        title=options.title or source.name,
        mermaid_theme=options.mermaid_theme,
        security_level=options.security_level,
        mermaid_js=options.mermaid_js,
        stylesheet=options.stylesheet,
    )

    target.parent.mkdir(parents=True, exist_ok=True)

    if fmt == "html":
        target.write_text(html_doc, encoding="utf-8")
        return ExportResult(output_path=target)

    if options.keep_html:
        html_path = kept_html_path_for(target)
        html_path.write_text(html_doc, encoding="utf-8")
    else:
        fd, tmp_name = tempfile.mkstemp(prefix="md-mermaid-", suffix=".html")
        html_path = Path(tmp_name)

    try:
        if not options.keep_html:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(html_doc)
        driver = driver_factory(options) if driver_factory is not None else None
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", DiagramRenderWarning)
            print_html_to_pdf(
                html_path,
                target,
                timeout_ms=options.timeout_ms,
                pdf_format=options.pdf_format,
                pdf_margin_mm=options.pdf_margin_mm,
                chrome_path=options.chrome_path,
                page_numbers=options.page_numbers,
                driver=driver,
            )
    finally:
        if not options.keep_html:
            html_path.unlink(missing_ok=True)

    diagram_warnings = []
    for entry in caught:
        if issubclass(entry.category, DiagramRenderWarning):
            diagram_warnings.append(str(entry.message))
        else:
            warnings.warn_explicit(entry.message, entry.category, entry.filename, entry.lineno)

    return ExportResult(
        output_path=target,
        kept_html_path=html_path if options.keep_html else None,
        warnings=diagram_warnings,
    )
