"""Desktop shims: dialog-driven export and a diagram-aware page viewer."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from PySide6.QtCore import QCoreApplication, Qt, QUrl
from PySide6.QtWebEngineCore import QWebEngineScript, QWebEngineSettings
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import QApplication, QFileDialog, QMainWindow, QMessageBox

from .contentscript import build_content_script
from .errors import ConfigError, MdMermaidError
from .exporter import ExportResult, default_output_path, export_markdown
from .options import load_options, normalize_output_format
from .printer import prepare_environment
from .resources import read_mermaid_script

MARKDOWN_FILTER = "Markdown (*.md *.markdown);;All files (*)"


def _create_application(argv: list[str], chrome_path: str | None = None) -> QApplication:
    app = QApplication.instance()
    if app is not None:
        return app
    # WebEngine reads its process flags before the first page exists.
    prepare_environment(chrome_path)
    QCoreApplication.setAttribute(Qt.ApplicationAttribute.AA_ShareOpenGLContexts)
    app = QApplication(argv)
    app.setApplicationName("mdmermaid")
    return app


def ensure_input_file(parent=None, input_path: str | None = None) -> Path | None:
    """Use the given markdown path, or ask for one with an open dialog."""
    if input_path:
        return Path(input_path).expanduser().resolve()
    selected, _filter = QFileDialog.getOpenFileName(parent, "Select Markdown File", str(Path.cwd()), MARKDOWN_FILTER)
    if not selected:
        return None
    return Path(selected).resolve()


def resolve_output_path(parent, input_path: Path, fmt: str) -> Path | None:
    """Ask where to save, defaulting to the input's folder."""
    default_path = default_output_path(input_path, fmt, directory=input_path.parent)
    if fmt == "pdf":
        caption, file_filter = "Export PDF", "PDF (*.pdf)"
    else:
        caption, file_filter = "Export HTML", "HTML (*.html)"
    selected, _filter = QFileDialog.getSaveFileName(parent, caption, str(default_path), file_filter)
    if not selected:
        return None
    return Path(selected).resolve()


def export_with_dialogs(
    fmt: str, input_path: str | None = None, parent=None, config_path: str | None = None
) -> ExportResult | None:
    """Resolve paths through dialogs, export, and report through message boxes."""
    fmt = normalize_output_format(fmt)
    source = ensure_input_file(parent, input_path)
    if source is None:
        return None
    target = resolve_output_path(parent, source, fmt)
    if target is None:
        return None

    options = load_options(config_path)
    try:
        result = export_markdown(source, fmt, target, options)
    except (MdMermaidError, OSError, UnicodeDecodeError) as exc:
        QMessageBox.critical(parent, "Export failed", f"Markdown Mermaid export failed:\n{exc}")
        return None

    message = f"Exported {fmt.upper()} to {result.output_path}"
    if result.kept_html_path is not None:
        message += f"\nKept HTML at {result.kept_html_path}"
    if result.warnings:
        message += "\n\n" + "\n".join(result.warnings)
        QMessageBox.warning(parent, "Exported with diagram problems", message)
    else:
        QMessageBox.information(parent, "Export complete", message)
    return result


class DiagramViewer(QMainWindow):
    """Browser window that promotes mermaid code blocks on any page it shows."""

    def __init__(self, url: QUrl, injected_source: str):
        super().__init__()
        self.setWindowTitle("mdmermaid")
        self.resize(1280, 900)

        self.view = QWebEngineView()
        settings = self.view.settings()
        settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessRemoteUrls, True)
        settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessFileUrls, True)

        script = QWebEngineScript()
        script.setName("mdmermaid-content-script")
        script.setSourceCode(injected_source)
        script.setInjectionPoint(QWebEngineScript.InjectionPoint.DocumentReady)
        script.setWorldId(QWebEngineScript.ScriptWorldId.ApplicationWorld)
        script.setRunsOnSubFrames(False)
        self.view.page().scripts().insert(script)

        self.view.titleChanged.connect(self._on_title_changed)
        self.view.loadFinished.connect(self._on_load_finished)
        self.setCentralWidget(self.view)
        self.statusBar().showMessage(f"Loading {url.toString()}")
        self.view.load(url)

    def _on_title_changed(self, title: str) -> None:
        self.setWindowTitle(f"{title} - mdmermaid" if title else "mdmermaid")

    def _on_load_finished(self, ok: bool) -> None:
        if ok:
            self.statusBar().showMessage("Loaded; mermaid blocks render in place (Alt+M promotes a clicked block)", 6000)
        else:
            self.statusBar().showMessage(f"Could not load {self.view.url().toString()}")


def _url_for(target: str) -> QUrl:
    path = Path(target).expanduser()
    if path.exists():
        return QUrl.fromLocalFile(str(path.resolve()))
    return QUrl.fromUserInput(target)


def export_main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="mdmermaid-gui", description="Export markdown with Mermaid via dialogs.")
    parser.add_argument("input", nargs="?", default=None, help="Markdown file (default: ask with a dialog).")
    parser.add_argument("--format", default="pdf", help="html or pdf (default: pdf).")
    parser.add_argument("--config", default=None, help="Settings file (default: ~/.mdmermaid.json).")
    args = parser.parse_args(argv)

    try:
        fmt = normalize_output_format(args.format)
        options = load_options(args.config).validate()
    except ConfigError as exc:
        print(f"mdmermaid-gui: {exc}", file=sys.stderr)
        return 2

    try:
        app = _create_application(sys.argv[:1], options.chrome_path)
    except MdMermaidError as exc:
        print(f"mdmermaid-gui: {exc}", file=sys.stderr)
        return 1

    result = export_with_dialogs(fmt, args.input, config_path=args.config)
    app.processEvents()
    return 0 if result is not None else 1


def view_main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="mdmermaid-view", description="Open a page with mermaid blocks rendered.")
    parser.add_argument("target", help="URL or local HTML file.")
    parser.add_argument("--mermaid-theme", default=None, help="Mermaid theme (default: settings or 'default').")
    parser.add_argument("--mermaid-js", default=None, help="Path to mermaid.min.js.")
    parser.add_argument("--config", default=None, help="Settings file (default: ~/.mdmermaid.json).")
    args = parser.parse_args(argv)

    try:
        options = load_options(args.config, mermaid_theme=args.mermaid_theme, mermaid_js=args.mermaid_js).validate()
    except ConfigError as exc:
        print(f"mdmermaid-view: {exc}", file=sys.stderr)
        return 2
    try:
        runtime = read_mermaid_script(options.mermaid_js)
    except MdMermaidError as exc:
        print(f"mdmermaid-view: {exc}", file=sys.stderr)
        return 1

    app = _create_application(sys.argv[:1])
    injected = runtime + "\n;\n" + build_content_script(options.mermaid_theme)
    window = DiagramViewer(_url_for(args.target), injected)
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(export_main())
