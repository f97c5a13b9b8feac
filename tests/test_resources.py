import pytest

from mdmermaid import resources
from mdmermaid.errors import AssetNotFoundError


def test_explicit_path_comes_first(tmp_path, monkeypatch):
    explicit = tmp_path / "explicit.js"
    from_env = tmp_path / "env.js"
    monkeypatch.setenv("MDMERMAID_MERMAID_JS", str(from_env))

    candidates = resources.mermaid_script_candidates(str(explicit))
    assert candidates[:2] == [explicit, from_env]


def test_node_modules_are_searched_upwards(tmp_path, monkeypatch):
    monkeypatch.delenv("MDMERMAID_MERMAID_JS", raising=False)
    bundle = tmp_path / "node_modules" / "mermaid" / "dist" / "mermaid.min.js"
    bundle.parent.mkdir(parents=True)
    bundle.write_text("window.mermaid = {};", encoding="utf-8")
    nested = tmp_path / "docs" / "deep"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)

    assert resources.resolve_mermaid_script(base_dir=nested) == bundle


def test_missing_runtime_lists_searched_paths(tmp_path, monkeypatch):
    absent = tmp_path / "absent.js"
    monkeypatch.setattr(resources, "mermaid_script_candidates", lambda *args, **kwargs: [absent])

    with pytest.raises(AssetNotFoundError) as excinfo:
        resources.resolve_mermaid_script()
    assert "mermaid.min.js" in str(excinfo.value)
    assert str(absent) in str(excinfo.value)


def test_empty_runtime_is_rejected(tmp_path):
    empty = tmp_path / "mermaid.min.js"
    empty.write_text("  \n", encoding="utf-8")

    with pytest.raises(AssetNotFoundError, match="empty"):
        resources.read_mermaid_script(empty)


def test_stylesheet_env_override(tmp_path, monkeypatch):
    css = tmp_path / "site.css"
    css.write_text("body { margin: 0; }", encoding="utf-8")
    monkeypatch.setenv("MDMERMAID_CSS", str(css))

    assert resources.resolve_stylesheet() == css
    assert resources.read_stylesheet() == "body { margin: 0; }"


def test_builtin_stylesheet_ships_with_package(tmp_path, monkeypatch):
    monkeypatch.delenv("MDMERMAID_CSS", raising=False)
    monkeypatch.chdir(tmp_path)

    assert resources.resolve_stylesheet(base_dir=tmp_path) == resources.BUILTIN_STYLESHEET
    assert ".markdown-body" in resources.read_stylesheet(base_dir=tmp_path)


def test_unreadable_stylesheet_degrades_to_empty(tmp_path, monkeypatch):
    monkeypatch.setattr(resources, "resolve_stylesheet", lambda *args, **kwargs: tmp_path)
    assert resources.read_stylesheet() == ""
