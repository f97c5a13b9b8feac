"""Markdown to self-contained HTML with inlined Mermaid rendering."""

from __future__ import annotations

import html
import json
import os
import re
from pathlib import Path

from markdown_it import MarkdownIt
from mdit_py_plugins.tasklists import tasklists_plugin

from . import resources

# Window globals written once by the bootstrap script and read by the printer.
DONE_FLAG = "__mdmermaidDone"
OK_FLAG = "__mdmermaidOk"
ERROR_FLAG = "__mdmermaidError"

DIAGRAM_LANGUAGE = "mermaid"
DIAGRAM_CONTAINER_SELECTOR = "pre.mermaid"

_SCRIPT_CLOSE_RE = re.compile(r"</(script)", re.IGNORECASE)

LAYOUT_CSS = """
    body { margin: 0; }
    .markdown-body {
      box-sizing: border-box;
      min-width: 200px;
      max-width: 980px;
      margin: 0 auto;
      padding: 24px;
    }
    .mermaid svg { max-width: 100%; height: auto; }
    @media print {
      .markdown-body { max-width: none; padding: 0; }
      a { color: inherit; text-decoration: none; }
    }
"""

BOOTSTRAP_JS = """
(function () {
  function messageOf(error) {
    return error && error.message ? String(error.message) : String(error);
  }

  function markDone(ok, err) {
    window.__MDMERMAID_OK_FLAG__ = ok;
    if (err) {
      window.__MDMERMAID_ERROR_FLAG__ = messageOf(err);
    }
    window.__MDMERMAID_DONE_FLAG__ = true;
  }

  function renderBlock(block, index) {
    var id = "mdmermaid-diagram-" + index;
    var source = block.textContent || "";
    return Promise.resolve()
      .then(function () { return mermaid.render(id, source); })
      .then(function (result) {
        var svg = typeof result === "string" ? result : (result && result.svg);
        block.innerHTML = svg || "";
        block.setAttribute("data-processed", "true");
        if (result && typeof result.bindFunctions === "function") {
          result.bindFunctions(block);
        }
        return null;
      })
      .catch(function (error) {
        console.error(error);
        // Mermaid leaves its scratch element in the body when a render throws.
        var leftover = document.getElementById("d" + id);
        if (leftover && leftover.parentNode) {
          leftover.parentNode.removeChild(leftover);
        }
        block.setAttribute("data-mdmermaid-error", messageOf(error));
        return "diagram " + (index + 1) + ": " + messageOf(error);
      });
  }

  try {
    if (typeof mermaid === "undefined") {
      markDone(false, "Mermaid failed to load");
      return;
    }

    var init = __MDMERMAID_INIT_CONFIG__;
    if (typeof mermaid.initialize === "function") {
      mermaid.initialize(init);
    } else if (mermaid.mermaidAPI && typeof mermaid.mermaidAPI.initialize === "function") {
      mermaid.mermaidAPI.initialize(init);
    }

    var blocks = Array.prototype.slice.call(document.querySelectorAll("__MDMERMAID_SELECTOR__"));
    if (!blocks.length) {
      markDone(true);
      return;
    }

    var pending;
    if (typeof mermaid.render === "function") {
      // One block at a time: mermaid.render shares scratch state between calls.
      pending = blocks.reduce(function (chain, block, index) {
        return chain.then(function (failures) {
          return renderBlock(block, index).then(function (failure) {
            if (failure) {
              failures.push(failure);
            }
            return failures;
          });
        });
      }, Promise.resolve([]));
    } else if (typeof mermaid.run === "function") {
      pending = Promise.resolve(mermaid.run({ nodes: blocks })).then(function () { return []; });
    } else if (typeof mermaid.init === "function") {
      mermaid.init(undefined, blocks);
      pending = Promise.resolve([]);
    } else {
      pending = Promise.reject(new Error("Unknown Mermaid API (no render/run/init found)"));
    }

    pending
      .then(function (failures) {
        if (failures.length) {
          markDone(false, failures.length + " of " + blocks.length + " diagram(s) failed to render: " + failures.join("; "));
        } else {
          markDone(true);
        }
      })
      .catch(function (error) { console.error(error); markDone(false, error); });
  } catch (error) {
    console.error(error);
    markDone(false, error);
  }
})();
"""


def inline_script(text: str) -> str:
    """Neutralize closing tags so script text can sit inside <script>."""
    return _SCRIPT_CLOSE_RE.sub(r"<\\/\1", text)


def base_href_for(input_path: str | os.PathLike) -> str:
    """file:// URI of the input's directory, with the trailing slash <base> needs."""
    directory = Path(input_path).expanduser().resolve().parent
    uri = directory.as_uri()
    return uri if uri.endswith("/") else uri + "/"


def bootstrap_script(mermaid_theme: str = "default", security_level: str = "strict") -> str:
    init = {"startOnLoad": False, "securityLevel": security_level, "theme": mermaid_theme}
    return (
        BOOTSTRAP_JS.replace("__MDMERMAID_INIT_CONFIG__", json.dumps(init))
        .replace("__MDMERMAID_SELECTOR__", DIAGRAM_CONTAINER_SELECTOR)
        .replace("__MDMERMAID_DONE_FLAG__", DONE_FLAG)
        .replace("__MDMERMAID_OK_FLAG__", OK_FLAG)
        .replace("__MDMERMAID_ERROR_FLAG__", ERROR_FLAG)
    )


class MarkdownRenderer:
    """Converts markdown to HTML, turning mermaid fences into diagram containers."""

    def __init__(self) -> None:
        self._md = (
            MarkdownIt("commonmark", {"html": True, "linkify": True, "typographer": True})
            .enable(["table", "strikethrough", "linkify", "replacements", "smartquotes"])
            .use(tasklists_plugin, enabled=True, label=True)
        )

        default_fence = self._md.renderer.rules["fence"]

        def custom_fence(tokens, idx, options, env):
            token = tokens[idx]
            info = token.info.strip().split(maxsplit=1)[0].lower() if token.info else ""
            if info != DIAGRAM_LANGUAGE:
                return default_fence(tokens, idx, options, env)

            diagram_index = int(env.get("diagram_count", 0)) if isinstance(env, dict) else 0
            if isinstance(env, dict):
                env["diagram_count"] = diagram_index + 1
            source = self.prepare_diagram_source(token.content)
            return f'<pre class="mermaid" data-mdmermaid-index="{diagram_index}">{html.escape(source)}</pre>\n'

        self._md.renderer.rules["fence"] = custom_fence

    @staticmethod
    def prepare_diagram_source(code: str) -> str:
        """Normalize line endings and drop the newline that closes the last fence line."""
        code = code.replace("\r\n", "\n")
        return code[:-1] if code.endswith("\n") else code

    def render_body(self, markdown_text: str, env: dict | None = None) -> str:
        if env is None:
            env = {}
        env.setdefault("diagram_count", 0)
        return self._md.render(markdown_text, env)

    def render_document(
        self,
        markdown_text: str,
        title: str,
        *,
        input_path: str | os.PathLike,
        mermaid_theme: str = "default",
        security_level: str = "strict",
        mermaid_js: str | os.PathLike | None = None,
        stylesheet: str | os.PathLike | None = None,
    ) -> str:
        """Assemble the full page; raises AssetNotFoundError without a Mermaid bundle."""
        base_dir = Path(input_path).expanduser().resolve().parent
        # Resolve the runtime first so a missing bundle fails before any rendering.
        mermaid_script = resources.read_mermaid_script(mermaid_js, base_dir)
        stylesheet_text = resources.read_stylesheet(stylesheet, base_dir)

        body = self.render_body(markdown_text)
        return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width,initial-scale=1" />
  <base href="{html.escape(base_href_for(input_path))}" />
  <title>{html.escape(title)}</title>
  <style>{stylesheet_text}
{LAYOUT_CSS}</style>
</head>
<body>
  <article class="markdown-body">
{body}
  </article>

  <script>{inline_script(mermaid_script)}</script>
  <script>{bootstrap_script(mermaid_theme, security_level)}</script>
</body>
</html>
"""


def build_html(
    markdown_text: str,
    *,
    input_path: str | os.PathLike,
    title: str | None = None,
    mermaid_theme: str = "default",
    security_level: str = "strict",
    mermaid_js: str | os.PathLike | None = None,
    stylesheet: str | os.PathLike | None = None,
) -> str:
    """One-shot helper around MarkdownRenderer.render_document."""
    if title is None:
        title = Path(input_path).name
    return MarkdownRenderer().render_document(
        markdown_text,
        title,
        input_path=input_path,
        mermaid_theme=mermaid_theme,
        security_level=security_level,
        mermaid_js=mermaid_js,
        stylesheet=stylesheet,
    )
