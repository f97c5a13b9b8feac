"""Render options and the optional JSON settings file."""

from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path

from .errors import ConfigError

CONFIG_FILE_NAME = ".mdmermaid.json"
CONFIG_ENV_VAR = "MDMERMAID_CONFIG"

OUTPUT_FORMATS = ("html", "pdf")
MERMAID_THEMES = ("default", "dark", "forest", "neutral")
SECURITY_LEVELS = ("strict", "loose", "antiscript")
# Names accepted by QPageSize.PageSizeId, matched case-insensitively.
PDF_PAGE_FORMATS = ("A0", "A1", "A2", "A3", "A4", "A5", "A6", "Letter", "Legal", "Tabloid", "Ledger")

DEFAULT_PDF_MARGIN_MM = 15.0
DEFAULT_TIMEOUT_MS = 60_000

# Settings-file keys use the editor-style camelCase names.
SETTINGS_KEYS = {
    "mermaidTheme": "mermaid_theme",
    "securityLevel": "security_level",
    "pdfFormat": "pdf_format",
    "pdfMarginMm": "pdf_margin_mm",
    "timeoutMs": "timeout_ms",
    "keepHtml": "keep_html",
    "chromePath": "chrome_path",
    "pageNumbers": "page_numbers",
}


@dataclass(frozen=True)
class RenderOptions:
    """Every knob that influences assembling and printing one document."""

    mermaid_theme: str = "default"
    security_level: str = "strict"
    pdf_format: str = "A4"
    pdf_margin_mm: float = DEFAULT_PDF_MARGIN_MM
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    keep_html: bool = False
    chrome_path: str | None = None
    page_numbers: bool = False
    title: str | None = None
    mermaid_js: str | None = None
    stylesheet: str | None = None

    def validate(self) -> "RenderOptions":
        """Return a normalized copy, raising ConfigError on bad values."""
        theme = str(self.mermaid_theme).strip().lower()
        if theme not in MERMAID_THEMES:
            raise ConfigError(f"mermaid theme must be one of {', '.join(MERMAID_THEMES)} (got: {self.mermaid_theme})")

        security = str(self.security_level).strip().lower()
        if security not in SECURITY_LEVELS:
            raise ConfigError(
                f"security level must be one of {', '.join(SECURITY_LEVELS)} (got: {self.security_level})"
            )

        page_format = normalize_pdf_format(self.pdf_format)

        try:
            margin = float(self.pdf_margin_mm)
        except (TypeError, ValueError):
            raise ConfigError(f"PDF margin must be a number of millimetres (got: {self.pdf_margin_mm})") from None
        if not math.isfinite(margin) or margin < 0:
            raise ConfigError(f"PDF margin must be a non-negative number (got: {self.pdf_margin_mm})")

        try:
            timeout = int(self.timeout_ms)
        except (TypeError, ValueError):
            raise ConfigError(f"timeout must be an integer number of milliseconds (got: {self.timeout_ms})") from None
        if timeout <= 0:
            raise ConfigError(f"timeout must be positive (got: {self.timeout_ms})")

        chrome_path = str(self.chrome_path).strip() if self.chrome_path else None
        return replace(
            self,
            mermaid_theme=theme,
            security_level=security,
            pdf_format=page_format,
            pdf_margin_mm=margin,
            timeout_ms=timeout,
            keep_html=_flag_value("keepHtml", self.keep_html),
            chrome_path=chrome_path or None,
            page_numbers=_flag_value("pageNumbers", self.page_numbers),
        )

    def merged(self, **overrides) -> "RenderOptions":
        """Apply overrides, ignoring keys whose value is None."""
        known = {field.name for field in fields(self)}
        changes = {key: value for key, value in overrides.items() if key in known and value is not None}
        return replace(self, **changes)


def _flag_value(name: str, value) -> bool:
    """Accept booleans or the strings "true"/"false"; anything else raises ConfigError."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered == "true"
    raise ConfigError(f"{name} must be true or false (got: {value!r})")


def normalize_output_format(value: str | None) -> str:
    fmt = str(value or "html").strip().lower()
    if fmt not in OUTPUT_FORMATS:
        raise ConfigError(f"format must be 'html' or 'pdf' (got: {value})")
    return fmt


def normalize_pdf_format(value: str | None) -> str:
    """Map a case-insensitive page format name onto its canonical spelling."""
    wanted = str(value or "").strip().casefold()
    for name in PDF_PAGE_FORMATS:
        if name.casefold() == wanted:
            return name
    raise ConfigError(f"PDF page format must be one of {', '.join(PDF_PAGE_FORMATS)} (got: {value})")


def settings_file_path(explicit: str | os.PathLike | None = None) -> Path:
    if explicit:
        return Path(explicit).expanduser()
    env_value = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if env_value:
        return Path(env_value).expanduser()
    return Path.home() / CONFIG_FILE_NAME


def load_settings(path: str | os.PathLike | None = None) -> dict:
    """Read the settings file as RenderOptions keyword arguments."""
    cfg_path = settings_file_path(path)
    try:
        if not cfg_path.is_file():
            return {}
        payload = json.loads(cfg_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        # Unreadable or malformed settings fall back to built-in defaults.
        return {}
    if not isinstance(payload, dict):
        return {}

    settings = {}
    for key, attr in SETTINGS_KEYS.items():
        value = payload.get(key)
        if value is not None:
            settings[attr] = value
    return settings


def load_options(path: str | os.PathLike | None = None, **overrides) -> RenderOptions:
    """Build options from defaults, then the settings file, then overrides."""
    return RenderOptions().merged(**load_settings(path)).merged(**overrides)
