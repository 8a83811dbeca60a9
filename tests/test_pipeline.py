# tests/test_pipeline.py
"""Tests for SiteBuilder and VirtualFile basics."""

import io
from pathlib import Path

import pytest

from sitefiles.config.settings import BuildConfig
from sitefiles.core.output import write_file
from sitefiles.core.pipeline import SiteBuilder
from sitefiles.core.site import Site
from sitefiles.core.vfile import VirtualFile
from sitefiles.exceptions import OutputError, StreamingUnsupported


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    src = tmp_path / "src"
    (src / "docs").mkdir(parents=True)
    (src / "index.hbs").write_text("+++\ntitle = \"Index\"\n+++\n{{title}} - {{site}}")
    (src / "docs" / "guide.hbs").write_text("{{title}}", encoding="utf-8")
    (src / "docs" / "_layout.hbs").write_text("layout {{title}}")
    return src


class TestSiteBuilder:
    """End-to-end builds through the library API."""

    def test_build_writes_rendered_files(self, source_tree: Path):
        config = BuildConfig(
            src_patterns=["**/*.hbs"],
            exclude_patterns=["**/_*.hbs"],
            base_dir=source_tree,
            dest_dir=Path("../public"),
            locals={"site": "S", "title": "fallback"},
        )
        result = SiteBuilder(config).build()

        public = source_tree.parent / "public"
        assert result.ok
        assert sorted(p.relative_to(public.resolve()).as_posix() for p in result.written) == [
            "docs/guide.html", "index.html",
        ]
        assert (public / "index.html").read_text() == "fallback - S"
        assert (public / "docs" / "guide.html").read_text() == "fallback"

    def test_front_matter_wins_when_locals_do_not_set_the_key(self, source_tree: Path):
        config = BuildConfig(src_patterns=["index.hbs"], base_dir=source_tree, locals={"site": "S"})
        SiteBuilder(config).build()
        assert (config.dest_dir / "index.html").read_text() == "Index - S"

    def test_file_data_can_be_disabled(self, source_tree: Path):
        config = BuildConfig(src_patterns=["index.hbs"], base_dir=source_tree, include_file_data=False)
        SiteBuilder(config).build()
        assert (config.dest_dir / "index.html").read_text() == " - "

    def test_stream_sources_fail_and_are_closed(self, source_tree: Path):
        config = BuildConfig(src_patterns=["index.hbs"], base_dir=source_tree, buffer=False)
        result = SiteBuilder(config).build()
        assert not result.ok
        assert isinstance(result.errors[0], StreamingUnsupported)
        assert result.written == []

    def test_no_sources(self, source_tree: Path):
        result = SiteBuilder(BuildConfig(src_patterns=["*.md"], base_dir=source_tree)).build()
        assert result.ok
        assert result.written == []

    def test_partials_are_loaded_and_not_built(self, source_tree: Path):
        (source_tree / "partials").mkdir()
        (source_tree / "partials" / "nav.hbs").write_text("<nav/>")
        (source_tree / "page.hbs").write_text("{{> nav}}page")
        config = BuildConfig(src_patterns=["page.hbs", "partials/*.hbs"], partial_patterns=["partials/*.hbs"], base_dir=source_tree)
        site = Site()
        result = SiteBuilder(config, site=site).build()

        assert "nav" in site.partial_cache
        assert [p.name for p in result.written] == ["page.html"]
        assert (config.dest_dir / "page.html").read_text() == "<nav/>page"

    def test_rebuild_does_not_pick_up_its_own_output(self, tmp_path: Path):
        (tmp_path / "index.html").write_text("<p>{{title}}</p>")
        config = BuildConfig(src_patterns=["**/*.html"], base_dir=tmp_path, locals={"title": "T"})

        for _ in range(3):
            result = SiteBuilder(config).build()
            assert result.ok

        built = sorted(p.relative_to(tmp_path.resolve()).as_posix() for p in tmp_path.resolve().rglob("*.html"))
        assert built == ["_site/index.html", "index.html"]
        assert [p.name for p in result.written] == ["index.html"]


class TestVirtualFile:
    """Content kinds and path helpers."""

    def test_content_kinds(self):
        assert VirtualFile(Path("d"), None).is_null()
        assert VirtualFile(Path("a"), b"x").is_buffer()
        assert VirtualFile(Path("a"), io.BytesIO(b"x")).is_stream()
        assert not VirtualFile(Path("a"), 3).is_stream()

    def test_text_contents_are_encoded(self):
        file = VirtualFile(Path("a.hbs"), "héllo")
        assert file.contents == "héllo".encode("utf-8")
        assert file.text() == "héllo"

    def test_ext_setter_rewrites_path_and_history(self):
        file = VirtualFile(Path("/site/docs/a.hbs"), b"x", base=Path("/site"))
        file.ext = "html"
        assert file.path == Path("/site/docs/a.html")
        assert file.relative == Path("docs/a.html")
        assert file.stem == "a"
        assert file.history == [Path("/site/docs/a.hbs"), Path("/site/docs/a.html")]

    def test_relative_outside_base_falls_back_to_name(self):
        file = VirtualFile(Path("/elsewhere/a.hbs"), b"x", base=Path("/site"))
        assert file.relative == Path("a.hbs")


class TestWriteFile:
    """Failures while writing rendered files."""

    def test_os_errors_are_wrapped(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(OutputError):
            write_file(VirtualFile(Path("/site/a.html"), b"x", base=Path("/site")), blocker)
