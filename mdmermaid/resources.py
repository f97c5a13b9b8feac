"""Locate the Mermaid runtime and stylesheet assets that get inlined."""

from __future__ import annotations

import os
from pathlib import Path

from .errors import AssetNotFoundError

MERMAID_JS_ENV_VAR = "MDMERMAID_MERMAID_JS"
STYLESHEET_ENV_VAR = "MDMERMAID_CSS"

PACKAGE_DIR = Path(__file__).resolve().parent
BUILTIN_STYLESHEET = PACKAGE_DIR / "static" / "markdown.css"


def _node_modules_candidates(relative: str, start_dirs: list[Path]) -> list[Path]:
    """Walk up from each start directory, mirroring node's module lookup."""
    candidates: list[Path] = []
    for start in start_dirs:
        try:
            resolved = start.resolve()
        except OSError:
            continue
        for directory in (resolved, *resolved.parents):
            candidates.append(directory / "node_modules" / relative)
    return candidates


def _first_file(candidates: list[Path]) -> Path | None:
    for candidate in candidates:
        try:
            if candidate.is_file():
                return candidate.resolve()
        except OSError:
            continue
    return None


def _search_dirs(base_dir: Path | None) -> list[Path]:
    dirs = [Path.cwd()]
    if base_dir is not None:
        dirs.insert(0, base_dir)
    return dirs


def mermaid_script_candidates(explicit: str | os.PathLike | None = None, base_dir: Path | None = None) -> list[Path]:
    """Ordered list of places a local Mermaid bundle may live."""
    candidates: list[Path] = []
    if explicit:
        candidates.append(Path(explicit).expanduser())
    env_value = os.environ.get(MERMAID_JS_ENV_VAR, "").strip()
    if env_value:
        candidates.append(Path(env_value).expanduser())

    candidates.extend(
        [
            PACKAGE_DIR / "vendor" / "mermaid" / "mermaid.min.js",
            PACKAGE_DIR / "vendor" / "mermaid" / "dist" / "mermaid.min.js",
        ]
    )
    candidates.extend(_node_modules_candidates("mermaid/dist/mermaid.min.js", _search_dirs(base_dir)))
    candidates.extend(
        [
            Path("/usr/share/javascript/mermaid/mermaid.min.js"),
            Path("/usr/share/nodejs/mermaid/dist/mermaid.min.js"),
        ]
    )
    # Keep order while dropping duplicates.
    return list(dict.fromkeys(candidates))


def resolve_mermaid_script(explicit: str | os.PathLike | None = None, base_dir: Path | None = None) -> Path:
    """Return the Mermaid bundle path or raise AssetNotFoundError."""
    candidates = mermaid_script_candidates(explicit, base_dir)
    found = _first_file(candidates)
    if found is None:
        searched = "\n  ".join(str(path) for path in candidates[:12])
        raise AssetNotFoundError(
            "Could not find the Mermaid runtime (mermaid.min.js). "
            f"Set {MERMAID_JS_ENV_VAR}, pass --mermaid-js, or run 'npm install mermaid'.\n"
            f"Searched:\n  {searched}"
        )
    return found


def read_mermaid_script(explicit: str | os.PathLike | None = None, base_dir: Path | None = None) -> str:
    path = resolve_mermaid_script(explicit, base_dir)
    try:
        script = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise AssetNotFoundError(f"Could not read the Mermaid runtime at {path}: {exc}") from exc
    if not script.strip():
        raise AssetNotFoundError(f"Mermaid runtime at {path} is empty")
    return script


def resolve_stylesheet(explicit: str | os.PathLike | None = None, base_dir: Path | None = None) -> Path | None:
    """Locate the document stylesheet; None means render unstyled."""
    candidates: list[Path] = []
    if explicit:
        candidates.append(Path(explicit).expanduser())
    env_value = os.environ.get(STYLESHEET_ENV_VAR, "").strip()
    if env_value:
        candidates.append(Path(env_value).expanduser())
    candidates.extend(
        _node_modules_candidates("github-markdown-css/github-markdown-light.css", _search_dirs(base_dir))
    )
    candidates.append(BUILTIN_STYLESHEET)
    return _first_file(list(dict.fromkeys(candidates)))


def read_stylesheet(explicit: str | os.PathLike | None = None, base_dir: Path | None = None) -> str:
    """Stylesheet text, or an empty string when nothing usable is found."""
    path = resolve_stylesheet(explicit, base_dir)
    if path is None:
        return ""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        # Styling is cosmetic; a broken stylesheet never blocks export.
        return ""
