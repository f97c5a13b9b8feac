"""End-to-end printing through a real offscreen Qt WebEngine page.

These need a working Chromium render process, so they only run when
MDMERMAID_WEBENGINE_TESTS=1 is set.
"""

import os
import warnings

import pytest

if os.environ.get("MDMERMAID_WEBENGINE_TESTS") != "1":
    pytest.skip("set MDMERMAID_WEBENGINE_TESTS=1 to run WebEngine tests", allow_module_level=True)

pytest.importorskip("PySide6.QtWebEngineCore")

from pypdf import PdfReader  # noqa: E402

from conftest import (  # noqa: E402
    SAMPLE_MARKDOWN,
    STUB_MERMAID_FAILING,
    STUB_MERMAID_HANGING,
    STUB_MERMAID_PARTIAL,
)
from mdmermaid.errors import DiagramRenderWarning, RenderTimeoutError  # noqa: E402
from mdmermaid.exporter import export_markdown  # noqa: E402
from mdmermaid.options import RenderOptions  # noqa: E402


def test_pdf_from_real_page(mermaid_stub, markdown_file, tmp_path):
    target = tmp_path / "guide.pdf"

    result = export_markdown(markdown_file, "pdf", target, RenderOptions(timeout_ms=30_000, page_numbers=True))

    assert result.warnings == []
    reader = PdfReader(str(target))
    assert len(reader.pages) >= 1
    assert "1 of" in reader.pages[0].extract_text()


def test_failing_diagram_still_prints(mermaid_stub, markdown_file, tmp_path):
    mermaid_stub.write_text(STUB_MERMAID_FAILING, encoding="utf-8")
    target = tmp_path / "guide.pdf"

    with warnings.catch_warnings():
        warnings.simplefilter("error", DiagramRenderWarning)
        result = export_markdown(markdown_file, "pdf", target, RenderOptions(timeout_ms=30_000))

    assert target.is_file()
    assert any("Parse error on line 2" in message for message in result.warnings)


def test_hanging_diagram_times_out(mermaid_stub, markdown_file, tmp_path):
    mermaid_stub.write_text(STUB_MERMAID_HANGING, encoding="utf-8")
    markdown_file.write_text(SAMPLE_MARKDOWN, encoding="utf-8")
    target = tmp_path / "guide.pdf"

    with pytest.raises(RenderTimeoutError):
        export_markdown(markdown_file, "pdf", target, RenderOptions(timeout_ms=2_000))
    assert not target.exists()


def test_one_failing_block_is_counted(mermaid_stub, markdown_file, tmp_path):
    mermaid_stub.write_text(STUB_MERMAID_PARTIAL, encoding="utf-8")
    markdown_file.write_text(
        "```mermaid\ngraph TD\nA-->B\n```\n\n```mermaid\nbroken diagram\n```\n", encoding="utf-8"
    )
    target = tmp_path / "guide.pdf"

    result = export_markdown(markdown_file, "pdf", target, RenderOptions(timeout_ms=30_000))

    assert target.is_file()
    assert len(result.warnings) == 1
    assert "1 of 2 diagram(s) failed to render" in result.warnings[0]
    assert "diagram 2: Parse error in mdmermaid-diagram-1" in result.warnings[0]
