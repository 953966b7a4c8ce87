"""Tests for project-name slugs, asset linking and bundle packaging."""

import base64
import io
import json
import re
import zipfile

import pytest

from deploy_bundle import (
    REDIRECTS_FILE,
    SPA_REDIRECT_RULE,
    build_descriptor,
    create_zip,
    fallback_project_name,
    is_valid_project_name,
    link_assets,
    sanitize_project_name,
    vercel_files,
)

SLUG_RE = re.compile(r'^[a-z0-9]([a-z0-9-]*[a-z0-9])?$')
PAGE = "<!DOCTYPE html>\n<html>\n<head>\n<title>x</title>\n</head>\n<body>\n<h1>x</h1>\n</body>\n</html>"


class TestProjectName:

    def test_simple_title(self):
        assert sanitize_project_name("My Cool Site!!") == "my-cool-site"

    def test_collapses_hyphens_and_trims(self):
        assert sanitize_project_name("  --Hello   World--  ") == "hello-world"

    def test_too_short_gets_fallback(self):
        name = sanitize_project_name("a!")
        assert name.startswith("webcraft-site-")
        assert name[len("webcraft-site-"):].isdigit()

    def test_only_invalid_characters_gets_fallback(self):
        assert sanitize_project_name("!!!***").startswith("webcraft-site-")

    def test_empty_gets_fallback(self):
        assert sanitize_project_name("").startswith("webcraft-site-")
        assert sanitize_project_name(None).startswith("webcraft-site-")

    def test_long_name_truncated_without_trailing_hyphen(self):
        name = sanitize_project_name("a" * 62 + " b" + "c" * 10)
        assert len(name) <= 63
        assert not name.endswith("-")
        assert name == "a" * 62

    def test_fallback_is_valid(self):
        assert is_valid_project_name(fallback_project_name())

    def test_validity(self):
        assert is_valid_project_name("my-site")
        assert not is_valid_project_name("-bad")
        assert not is_valid_project_name("ab")
        assert not is_valid_project_name("Upper")
        assert not is_valid_project_name("x" * 64)
        assert not is_valid_project_name("")
        assert not is_valid_project_name("my-site\n")


class TestLinkAssets:

    def test_inserts_link_and_script(self):
        result = link_assets(PAGE, "body{}", "go();")
        assert '<link rel="stylesheet" href="styles.css">\n</head>' in result
        assert '<script src="script.js"></script>\n</body>' in result

    def test_idempotent(self):
        once = link_assets(PAGE, "body{}", "go();")
        assert link_assets(once, "body{}", "go();") == once

    def test_skips_when_assets_empty(self):
        assert link_assets(PAGE, "", "  ") == PAGE

    def test_existing_references_are_respected(self):
        html = '<html><head><link href="main.css" rel="stylesheet"></head><body><script src="app.js"></script></body></html>'
        assert link_assets(html, "a{}", "b();") == html

    def test_head_without_closing_tag(self):
        result = link_assets("<html><head><title>x</title><body></body></html>", "a{}", "")
        assert result.startswith('<html><head>\n    <link rel="stylesheet" href="styles.css">')

    def test_script_before_html_close_without_body(self):
        result = link_assets("<html><p>x</p></html>", "", "b();")
        assert result.endswith('<script src="script.js"></script>\n</html>')

    def test_uppercase_tags(self):
        result = link_assets("<HTML><HEAD></HEAD><BODY></BODY></HTML>", "a{}", "b();")
        assert 'href="styles.css">\n</HEAD>' in result
        assert '<script src="script.js"></script>\n</BODY>' in result


class TestDescriptor:

    def test_manifest(self):
        d = build_descriptor(PAGE, "body{}", "go();", "my-site")
        assert d.project_name == "my-site"
        assert list(d.files) == ["index.html", "styles.css", "script.js", REDIRECTS_FILE]
        assert d.files["index.html"] == link_assets(PAGE, "body{}", "go();")
        assert d.files[REDIRECTS_FILE] == SPA_REDIRECT_RULE

    def test_optional_assets_omitted(self):
        d = build_descriptor("<html></html>", None, "", "test-site")
        assert set(d.files) == {"index.html", REDIRECTS_FILE}
        assert d.files["index.html"] == "<html></html>"

    def test_empty_html_rejected(self):
        with pytest.raises(ValueError):
            build_descriptor("  ", "a", "b", "site")

    def test_deploy_scenario_slug_and_index(self):
        name = sanitize_project_name("Test Site")
        d = build_descriptor("<html></html>", "", "", name)
        assert SLUG_RE.match(d.project_name)
        assert d.files["index.html"] == "<html></html>"


class TestPackaging:

    def test_zip_contains_all_files(self):
        d = build_descriptor(PAGE, "body{}", "go();", "my-site")
        with zipfile.ZipFile(io.BytesIO(create_zip(d))) as zf:
            assert sorted(zf.namelist()) == sorted(d.files)
            assert zf.read("index.html").decode("utf-8") == d.files["index.html"]
            assert zf.read(REDIRECTS_FILE).decode("utf-8") == SPA_REDIRECT_RULE

    def test_vercel_files_swap_redirects_for_rewrites(self):
        d = build_descriptor(PAGE, "body{}", "", "my-site")
        files = {f["file"]: f for f in vercel_files(d)}
        assert set(files) == {"index.html", "styles.css", "vercel.json"}
        assert all(f["encoding"] == "base64" for f in files.values())
        assert base64.b64decode(files["styles.css"]["data"]).decode("utf-8") == "body{}"
        config = json.loads(base64.b64decode(files["vercel.json"]["data"]))
        assert config["rewrites"][0]["destination"] == "/index.html"
