import json

import pytest

from mdmermaid.contentscript import (
    DIAGRAM_SELECTORS,
    build_content_script,
    diagram_source_for,
    extract_fenced_source,
)


def test_fenced_block_yields_inner_source():
    assert extract_fenced_source("```mermaid\ngraph TD\nA-->B\n```") == "graph TD\nA-->B"


def test_fence_detection_ignores_case_and_surrounding_whitespace():
    assert extract_fenced_source("\n  ```MERMAID\nsequenceDiagram\nA->>B: hi\n```  \n") == "sequenceDiagram\nA->>B: hi"


@pytest.mark.parametrize(
    "text",
    [None, "", "graph TD\nA-->B", "```python\nprint(1)\n```", "see ```mermaid\ngraph TD\n``` inline"],
)
def test_non_fences_are_not_detected(text):
    assert extract_fenced_source(text) is None


def test_diagram_source_falls_back_to_trimmed_text():
    assert diagram_source_for("  graph LR\nX-->Y  \n") == "graph LR\nX-->Y"
    assert diagram_source_for("```mermaid\npie\n```") == "pie"
    assert diagram_source_for(None) == ""


def test_content_script_has_no_placeholders():
    script = build_content_script()
    assert "__MDMERMAID_" not in script
    assert json.dumps(list(DIAGRAM_SELECTORS)) in script
    assert '"securityLevel": "loose"' in script
    assert '"theme": "default"' in script


def test_content_script_carries_theme():
    assert '"theme": "dark"' in build_content_script("dark")


def test_selectors_cover_class_and_data_attribute_markers():
    assert "pre.mermaid" in DIAGRAM_SELECTORS
    assert "code.language-mermaid" in DIAGRAM_SELECTORS
    assert "code[data-lang='mermaid']" in DIAGRAM_SELECTORS
