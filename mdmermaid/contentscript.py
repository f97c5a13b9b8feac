"""Diagram detection rules for live web pages and the script that applies them."""

from __future__ import annotations

import json
import re

# One canonical rule set: any code element tagged as mermaid by class or data
# attribute, plus <pre> blocks whose text is still a literal ```mermaid fence.
DIAGRAM_SELECTORS = (
    "pre.mermaid",
    "code.mermaid",
    "code.language-mermaid",
    "code.lang-mermaid",
    "code[data-language='mermaid']",
    "code[data-lang='mermaid']",
)
FENCE_PATTERN = r"^```mermaid\s*([\s\S]*?)```\s*$"
FENCE_RE = re.compile(FENCE_PATTERN, re.IGNORECASE)

CONTENT_SCRIPT_JS = """
(() => {
  if (window.__mdmermaidContentScript) {
    return;
  }
  window.__mdmermaidContentScript = true;

  const SELECTORS = __MDMERMAID_SELECTORS__;
  const FENCE_RE = new RegExp(__MDMERMAID_FENCE_PATTERN__, "i");
  const INIT = __MDMERMAID_INIT_CONFIG__;
  let runScheduled = false;
  let contextTarget = null;

  const sourceFor = (text) => {
    const trimmed = String(text || "").trim();
    const match = trimmed.match(FENCE_RE);
    return (match ? match[1] : trimmed).trim();
  };

  const ensureStyles = () => {
    if (document.getElementById("__mdmermaid_content_style")) {
      return;
    }
    const style = document.createElement("style");
    style.id = "__mdmermaid_content_style";
    style.textContent = ".mermaid svg { max-width: 100%; height: auto; }";
    (document.head || document.documentElement).appendChild(style);
  };

  const replaceWithContainer = (node, source) => {
    if (!source) {
      return;
    }
    const container = document.createElement("div");
    container.className = "mermaid";
    container.dataset.mdmermaidRenderer = "pending";
    container.textContent = source;
    node.replaceWith(container);
  };

  const isSettled = (node) =>
    !(node instanceof HTMLElement) ||
    !!node.dataset.mdmermaidRenderer ||
    node.hasAttribute("data-processed") ||
    !!node.querySelector("svg");

  const collectBlocks = () => {
    for (const node of Array.from(document.querySelectorAll(SELECTORS.join(",")))) {
      if (isSettled(node)) {
        continue;
      }
      const parentPre = node.tagName.toLowerCase() === "code" ? node.closest("pre") : null;
      replaceWithContainer(parentPre || node, sourceFor(node.textContent));
    }
    for (const pre of Array.from(document.querySelectorAll("pre"))) {
      if (isSettled(pre)) {
        continue;
      }
      const text = (pre.textContent || "").trim();
      if (FENCE_RE.test(text)) {
        replaceWithContainer(pre, sourceFor(text));
      }
    }
  };

  const renderPending = async () => {
    collectBlocks();
    const nodes = Array.from(document.querySelectorAll("div.mermaid[data-mdmermaid-renderer='pending']"));
    if (!nodes.length) {
      return;
    }
    ensureStyles();
    if (typeof mermaid === "undefined") {
      console.warn("Mermaid runtime is not loaded; diagrams left as text.");
      return;
    }
    for (const node of nodes) {
      node.dataset.mdmermaidRenderer = "rendering";
    }
    try {
      mermaid.initialize(INIT);
      await mermaid.run({ nodes });
    } catch (error) {
      console.warn("Mermaid renderer failed:", error);
    } finally {
      for (const node of nodes) {
        node.dataset.mdmermaidRenderer = "done";
      }
    }
  };

  const scheduleRender = () => {
    if (runScheduled) {
      return;
    }
    runScheduled = true;
    queueMicrotask(() => {
      runScheduled = false;
      renderPending();
    });
  };

  new MutationObserver(scheduleRender).observe(document.documentElement, { childList: true, subtree: true });
  scheduleRender();

  // Alt+M after a right click promotes the clicked block to a diagram.
  document.addEventListener("contextmenu", (event) => {
    contextTarget = event.target instanceof Element ? event.target.closest("div, pre") : null;
  });
  document.addEventListener("keydown", (event) => {
    if (!contextTarget || !event.altKey || event.key.toLowerCase() !== "m") {
      return;
    }
    const source = sourceFor(contextTarget.textContent);
    if (!source) {
      return;
    }
    contextTarget.classList.add("mermaid");
    contextTarget.dataset.mdmermaidRenderer = "pending";
    contextTarget.textContent = source;
    contextTarget = null;
    scheduleRender();
  });
})();
"""


def extract_fenced_source(text: str | None) -> str | None:
    """Inner diagram text of a literal ```mermaid fence, or None."""
    match = FENCE_RE.match((text or "").strip())
    if match is None:
        return None
    return match.group(1).strip()


def diagram_source_for(text: str | None) -> str:
    """Text a detected block renders: fence body when fenced, else the text itself."""
    fenced = extract_fenced_source(text)
    if fenced is not None:
        return fenced
    return (text or "").strip()


def build_content_script(mermaid_theme: str = "default", security_level: str = "loose") -> str:
    init = {"startOnLoad": False, "securityLevel": security_level, "theme": mermaid_theme}
    return (
        CONTENT_SCRIPT_JS.replace("__MDMERMAID_SELECTORS__", json.dumps(list(DIAGRAM_SELECTORS)))
        .replace("__MDMERMAID_FENCE_PATTERN__", json.dumps(FENCE_PATTERN))
        .replace("__MDMERMAID_INIT_CONFIG__", json.dumps(init))
    )
