from __future__ import annotations

import time
from io import BytesIO
from pathlib import Path

import pytest
from reportlab.pdfgen import canvas

from mdmermaid.printer import CompletionSignal

STUB_MERMAID_OK = """
window.mermaid = {
  initialize: function (config) { window.__stubMermaidConfig = config; },
  render: function (id, text) { return Promise.resolve({ svg: "<svg id='" + id + "'></svg>" }); },
  run: function (options) { return Promise.resolve(); }
};
"""

STUB_MERMAID_FAILING = """
window.mermaid = {
  initialize: function (config) {},
  render: function (id, text) { return Promise.reject(new Error("Parse error on line 2")); },
  run: function (options) { return Promise.reject(new Error("Parse error on line 2")); }
};
"""

# Fails only the diagrams whose source mentions "broken".
STUB_MERMAID_PARTIAL = """
window.mermaid = {
  initialize: function (config) {},
  render: function (id, text) {
    if (text.indexOf("broken") !== -1) {
      return Promise.reject(new Error("Parse error in " + id));
    }
    return Promise.resolve({ svg: "<svg id='" + id + "'></svg>" });
  }
};
"""

STUB_MERMAID_HANGING = """
window.mermaid = {
  initialize: function (config) {},
  render: function (id, text) { return new Promise(function () {}); },
  run: function (options) { return new Promise(function () {}); }
};
"""

SAMPLE_MARKDOWN = "# T\n```mermaid\nflowchart LR\nA-->B\n```\n"


def make_pdf(page_count: int = 1) -> bytes:
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=(595.0, 842.0))
    for index in range(page_count):
        pdf.drawString(72, 770, f"Body text on page {index + 1}")
        pdf.showPage()
    pdf.save()
    return buffer.getvalue()


class FakeDriver:
    """Stands in for WebEnginePageDriver; replays scripted completion probes."""

    def __init__(self, signals=(), pdf_bytes: bytes | None = None, load_result=True):
        self.signals = list(signals)
        self.pdf_bytes = make_pdf(1) if pdf_bytes is None else pdf_bytes
        self.load_result = load_result
        self.loaded_url: str | None = None
        self.printed_with: tuple | None = None
        self.probe_count = 0
        self.closed = False

    def load(self, url: str, timeout_ms: int) -> bool:
        self.loaded_url = url
        if isinstance(self.load_result, Exception):
            raise self.load_result
        return self.load_result

    def probe(self, timeout_ms: int) -> CompletionSignal:
        self.probe_count += 1
        if self.signals:
            return self.signals.pop(0)
        return CompletionSignal()

    def wait(self, interval_ms: int) -> None:
        time.sleep(interval_ms / 1000.0)

    def print_pdf(self, pdf_format: str, margin_mm: float, timeout_ms: int):
        self.printed_with = (pdf_format, margin_mm)
        return self.pdf_bytes

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def mermaid_stub(tmp_path, monkeypatch) -> Path:
    stub = tmp_path / "assets" / "mermaid.min.js"
    stub.parent.mkdir()
    stub.write_text(STUB_MERMAID_OK, encoding="utf-8")
    monkeypatch.setenv("MDMERMAID_MERMAID_JS", str(stub))
    monkeypatch.setenv("MDMERMAID_CONFIG", str(tmp_path / "no-settings.json"))
    return stub


@pytest.fixture
def markdown_file(tmp_path) -> Path:
    source = tmp_path / "docs" / "guide.md"
    source.parent.mkdir()
    source.write_text(SAMPLE_MARKDOWN, encoding="utf-8")
    return source


@pytest.fixture
def private_tempdir(tmp_path, monkeypatch) -> Path:
    """Route tempfile.mkstemp into a directory the test can inspect."""
    import tempfile

    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    return scratch
