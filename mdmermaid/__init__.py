"""mdmermaid: markdown with Mermaid diagrams to self-contained HTML or PDF."""

from .errors import (
    AssetNotFoundError,
    BrowserLaunchError,
    ConfigError,
    DiagramRenderWarning,
    InputNotFoundError,
    MdMermaidError,
    PageLoadError,
    PrinterError,
    RenderTimeoutError,
)
from .exporter import ExportResult, default_output_path, export_markdown
from .options import RenderOptions, load_options
from .printer import CompletionSignal, print_html_to_pdf
from .renderer import MarkdownRenderer, build_html

__version__ = "0.1.0"

__all__ = [
    "AssetNotFoundError",
    "BrowserLaunchError",
    "CompletionSignal",
    "ConfigError",
    "DiagramRenderWarning",
    "ExportResult",
    "InputNotFoundError",
    "MarkdownRenderer",
    "MdMermaidError",
    "PageLoadError",
    "PrinterError",
    "RenderOptions",
    "RenderTimeoutError",
    "build_html",
    "default_output_path",
    "export_markdown",
    "load_options",
    "print_html_to_pdf",
]
