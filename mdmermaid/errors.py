"""Exception and warning types raised by mdmermaid."""

from __future__ import annotations


class MdMermaidError(Exception):
    """Base class for every fatal mdmermaid failure."""


class ConfigError(MdMermaidError):
    """Invalid format selection or render option, detected before any work."""


class InputNotFoundError(ConfigError):
    """The markdown input path does not exist or is not a regular file."""


class AssetNotFoundError(MdMermaidError):
    """A required runtime asset (the Mermaid bundle) could not be located."""


class PrinterError(MdMermaidError):
    """Base class for browser automation failures during PDF printing."""


class BrowserLaunchError(PrinterError):
    """Qt WebEngine could not be started or its render process died."""


class PageLoadError(BrowserLaunchError):
    """The intermediate HTML page failed to load in the browser engine."""


class RenderTimeoutError(PrinterError):
    """Diagram rendering never reported completion before the deadline."""


class DiagramRenderWarning(UserWarning):
    """Mermaid finished but reported a problem; output is still produced."""
