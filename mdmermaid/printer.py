"""Print assembled HTML to PDF through an offscreen Qt WebEngine page."""

from __future__ import annotations

import os
import tempfile
import time
import warnings
from dataclasses import dataclass
from pathlib import Path

from .errors import BrowserLaunchError, DiagramRenderWarning, PageLoadError, PrinterError, RenderTimeoutError
from .renderer import DONE_FLAG, ERROR_FLAG, OK_FLAG

PDF_POLL_INTERVAL_MS = 140
PDF_PROBE_TIMEOUT_MS = 2_000
CHROMIUM_FLAGS = ("--no-sandbox", "--allow-file-access-from-files")

COMPLETION_PROBE_JS = f"""
(() => ({{
  done: window.{DONE_FLAG} === true,
  ok: !!window.{OK_FLAG},
  error: window.{ERROR_FLAG} ? String(window.{ERROR_FLAG}) : null
}}))();
"""

# Module-level so the application outlives every driver created from it.
_APP = None


@dataclass
class CompletionSignal:
    """One-shot render status published by the page's bootstrap script."""

    done: bool = False
    ok: bool = False
    error: str | None = None

    @classmethod
    def from_result(cls, result) -> "CompletionSignal":
        if not isinstance(result, dict):
            return cls()
        error = result.get("error")
        return cls(
            done=bool(result.get("done")),
            ok=bool(result.get("ok")),
            error=str(error) if error else None,
        )


def _remaining_ms(deadline: float) -> int:
    return int((deadline - time.monotonic()) * 1000)


def prepare_environment(chrome_path: str | None) -> None:
    """Set process-wide knobs Qt WebEngine reads once at startup."""
    if chrome_path:
        executable = Path(chrome_path).expanduser()
        if not executable.is_file():
            raise BrowserLaunchError(f"Browser executable not found: {executable}")
        os.environ["QTWEBENGINEPROCESS_PATH"] = str(executable.resolve())

    existing = os.environ.get("QTWEBENGINE_CHROMIUM_FLAGS", "").split()
    missing = [flag for flag in CHROMIUM_FLAGS if flag not in existing]
    if missing:
        os.environ["QTWEBENGINE_CHROMIUM_FLAGS"] = " ".join(existing + missing)
    os.environ.setdefault("QTWEBENGINE_DISABLE_SANDBOX", "1")


def ensure_application():
    """Return the running QApplication, creating a headless one if needed."""
    global _APP
    try:
        from PySide6.QtCore import QCoreApplication, Qt
        from PySide6.QtWidgets import QApplication

        import PySide6.QtWebEngineCore  # noqa: F401
    except ImportError as exc:
        raise BrowserLaunchError(f"Qt WebEngine is not available (install PySide6): {exc}") from exc

    app = QApplication.instance()
    if app is not None:
        return app

    # No display is needed when printing from the command line.
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    QCoreApplication.setAttribute(Qt.ApplicationAttribute.AA_ShareOpenGLContexts)
    _APP = QApplication(["mdmermaid"])
    return _APP


class WebEnginePageDriver:
    """Headless browser session backed by one off-the-record QWebEnginePage."""

    def __init__(self, chrome_path: str | None = None) -> None:
        prepare_environment(chrome_path)
        ensure_application()

        from PySide6.QtWebEngineCore import QWebEnginePage, QWebEngineProfile, QWebEngineSettings

        self._active_loop = None
        self._terminated: tuple[str, int] | None = None
        self._profile = QWebEngineProfile()
        self._page = QWebEnginePage(self._profile)
        settings = self._page.settings()
        settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessFileUrls, True)
        settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessRemoteUrls, True)
        if hasattr(QWebEngineSettings.WebAttribute, "PrintElementBackgrounds"):
            settings.setAttribute(QWebEngineSettings.WebAttribute.PrintElementBackgrounds, True)
        self._page.renderProcessTerminated.connect(self._on_render_process_terminated)

    def _on_render_process_terminated(self, status, exit_code) -> None:
        name = getattr(status, "name", str(status))
        self._terminated = (name, int(exit_code))
        if self._active_loop is not None and self._active_loop.isRunning():
            self._active_loop.quit()

    def _block(self, start, timeout_ms: int):
        """Run the Qt event loop until start's callback fires or the timeout elapses."""
        from PySide6.QtCore import QEventLoop, QTimer

        loop = QEventLoop()
        outcome = {"done": False, "value": None}

        def finish(value=None) -> None:
            if outcome["done"]:
                return
            outcome["done"] = True
            outcome["value"] = value
            if loop.isRunning():
                loop.quit()

        start(finish)
        if not outcome["done"] and self._terminated is None:
            timeout_timer = QTimer()
            timeout_timer.setSingleShot(True)
            timeout_timer.timeout.connect(loop.quit)
            timeout_timer.start(max(1, int(timeout_ms)))
            self._active_loop = loop
            try:
                loop.exec()
            finally:
                self._active_loop = None
                timeout_timer.stop()

        if self._terminated is not None:
            status, exit_code = self._terminated
            raise BrowserLaunchError(f"Qt WebEngine render process terminated ({status}, exit code {exit_code})")
        return outcome["done"], outcome["value"]

    def load(self, url: str, timeout_ms: int) -> bool:
        """Navigate to url; False when the load did not finish in time."""
        from PySide6.QtCore import QUrl

        def start(finish) -> None:
            self._page.loadFinished.connect(finish)
            self._page.load(QUrl(url))

        try:
            done, ok = self._block(start, timeout_ms)
        finally:
            self._page.loadFinished.disconnect()
        if not done:
            return False
        if not ok:
            raise PageLoadError(f"Could not load {url}")
        return True

    def probe(self, timeout_ms: int) -> CompletionSignal | None:
        done, result = self._block(lambda finish: self._page.runJavaScript(COMPLETION_PROBE_JS, finish), timeout_ms)
        if not done:
            return None
        return CompletionSignal.from_result(result)

    def wait(self, interval_ms: int) -> None:
        from PySide6.QtCore import QTimer

        interval_ms = max(1, int(interval_ms))
        self._block(lambda finish: QTimer.singleShot(interval_ms, finish), interval_ms + 250)

    def print_pdf(self, pdf_format: str, margin_mm: float, timeout_ms: int) -> bytes | None:
        """Print the current page; None when the engine never answered."""
        from PySide6.QtCore import QMarginsF
        from PySide6.QtGui import QPageLayout, QPageSize

        page_size = QPageSize(getattr(QPageSize.PageSizeId, pdf_format))
        margins = QMarginsF(margin_mm, margin_mm, margin_mm, margin_mm)
        layout = QPageLayout(page_size, QPageLayout.Orientation.Portrait, margins, QPageLayout.Unit.Millimeter)
        done, data = self._block(lambda finish: self._page.printToPdf(finish, layout), timeout_ms)
        if not done:
            return None
        return bytes(data) if data is not None else b""

    def close(self) -> None:
        """Destroy the page, and with it the render process, then the profile."""
        if self._page is None:
            return
        from PySide6.QtCore import QCoreApplication

        page, self._page = self._page, None
        page.renderProcessTerminated.disconnect()
        del page
        self._profile = None
        QCoreApplication.processEvents()


def wait_for_completion(driver, deadline: float, timeout_ms: int) -> CompletionSignal:
    """Poll the page's completion flag until it is set or the deadline passes."""
    while True:
        remaining = _remaining_ms(deadline)
        if remaining <= 0:
            raise RenderTimeoutError(f"Mermaid did not finish rendering within {timeout_ms} ms")
        signal = driver.probe(min(remaining, PDF_PROBE_TIMEOUT_MS))
        if signal is not None and signal.done:
            return signal
        remaining = _remaining_ms(deadline)
        if remaining > 0:
            driver.wait(min(remaining, PDF_POLL_INTERVAL_MS))


def write_pdf_atomically(pdf_path: Path, pdf_bytes: bytes) -> None:
    """Write to a sibling temp file and rename, so readers never see a partial PDF."""
    pdf_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{pdf_path.name}.", suffix=".part", dir=pdf_path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(pdf_bytes)
        os.replace(tmp_name, pdf_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def print_html_to_pdf(
    html_path: str | os.PathLike,
    pdf_path: str | os.PathLike,
    *,
    timeout_ms: int = 60_000,
    pdf_format: str = "A4",
    pdf_margin_mm: float = 15.0,
    chrome_path: str | None = None,
    page_numbers: bool = False,
    driver=None,
) -> CompletionSignal:
    """Render an assembled HTML file to PDF once its diagrams have settled.

    Raises RenderTimeoutError when the page never reports completion within
    ``timeout_ms``; nothing is written to ``pdf_path`` in that case. A page
    that completes with a Mermaid error still prints, after emitting a
    DiagramRenderWarning. The driver is closed on every exit path.
    """
    html_file = Path(html_path).expanduser().resolve()
    target = Path(pdf_path).expanduser()
    if driver is None:
        driver = WebEnginePageDriver(chrome_path=chrome_path)

    deadline = time.monotonic() + timeout_ms / 1000.0
    try:
        if not driver.load(html_file.as_uri(), max(1, _remaining_ms(deadline))):
            raise RenderTimeoutError(f"Page did not finish loading within {timeout_ms} ms: {html_file}")

        signal = wait_for_completion(driver, deadline, timeout_ms)
        if not signal.ok:
            detail = signal.error or "unknown error"
            warnings.warn(
                f"Mermaid reported a render problem: {detail}. "
                "PDF will still be produced, but diagrams may be missing or broken.",
                DiagramRenderWarning,
                stacklevel=2,
            )

        pdf_bytes = driver.print_pdf(pdf_format, pdf_margin_mm, timeout_ms)
        if pdf_bytes is None:
            raise RenderTimeoutError(f"PDF printing did not finish within {timeout_ms} ms")
        if not pdf_bytes:
            raise PrinterError("Qt WebEngine returned an empty PDF payload")

        if page_numbers:
            from .pagenum import stamp_page_numbers

            try:
                pdf_bytes = stamp_page_numbers(pdf_bytes, pdf_margin_mm)
            except Exception as exc:
                raise PrinterError(f"Could not stamp page numbers: {exc}") from exc

        write_pdf_atomically(target, pdf_bytes)
        return signal
    finally:
        driver.close()
