# tests/test_site.py
"""Tests for the Site render capability, engines, helpers and partials."""

import asyncio
from pathlib import Path

import pytest

from sitefiles.core.compose import compose_render_config
from sitefiles.core.engines import EngineRegistry, HandlebarsEngine, NoopEngine, RenderResult
from sitefiles.core.engines.base import Engine
from sitefiles.core.site import Site, load_helpers_from_file
from sitefiles.core.vfile import VirtualFile
from sitefiles.exceptions import ConfigError, EngineError, TemplateError


def render_with_stage(site, files, **stage_kwargs):
    stage = site.renderer(**stage_kwargs)
    errors = []
    stage.on_error(errors.append)
    outputs = asyncio.run(stage.collect(files))
    return outputs, errors


class UpperEngine(Engine):
    name = "upper"
    output_ext = ".txt"

    def render(self, file, config):
        file.contents = file.contents.upper()
        return RenderResult(file, self.output_ext)


class TestEngineRegistry:
    """Extension lookup and the pass-through fallback."""

    def test_lookup_is_normalised(self):
        registry = EngineRegistry()
        engine = UpperEngine()
        registry.register(["HBS", ".md"], engine)
        assert registry.get(".hbs") is engine
        assert registry.get("md") is engine
        assert ".hbs" in registry
        assert registry.extensions() == [".hbs", ".md"]

    def test_unknown_extension_resolves_to_fallback(self):
        registry = EngineRegistry()
        assert registry.get(".png") is None
        assert isinstance(registry.resolve(".png"), NoopEngine)

    def test_empty_extension_cannot_be_registered(self):
        with pytest.raises(ValueError):
            EngineRegistry().register("", UpperEngine())


class TestSiteRender:
    """Site.render calls back exactly once, with or without a running loop."""

    def test_render_without_event_loop_calls_back_inline(self):
        site = Site()
        file = VirtualFile(Path("page.hbs"), b"Hello {{name}}")
        results = []
        site.render(file, compose_render_config(site.options, None, {"name": "World"}), lambda *a: results.append(a))

        assert len(results) == 1
        err, rendered, ext = results[0]
        assert err is None
        assert rendered.contents == b"Hello World"
        assert ext == ".html"

    def test_render_error_is_passed_to_callback(self):
        site = Site()
        file = VirtualFile(Path("page.hbs"), b"{{> missing}}")
        results = []
        site.render(file, compose_render_config(site.options), lambda *a: results.append(a))
        err, rendered, _ = results[0]
        assert isinstance(err, TemplateError)
        assert rendered is None

    def test_handlebars_through_stage(self):
        site = Site()
        file = VirtualFile(Path("/site/page.hbs"), b"<h1>{{title}}</h1> by {{author}}", data={"title": "Hi"})
        outputs, errors = render_with_stage(site, [file], locals={"author": "me"})

        assert errors == []
        assert outputs[0].contents == b"<h1>Hi</h1> by me"
        assert outputs[0].path == Path("/site/page.html")

    def test_no_engine_pass_through_uses_default_extension(self):
        site = Site().set("ext", ".htm")
        image = VirtualFile(Path("img/logo.png"), b"\x89PNG\r\n")
        outputs, errors = render_with_stage(site, [image])

        assert errors == []
        assert outputs[0].contents == b"\x89PNG\r\n"
        assert outputs[0].path == Path("img/logo.htm")

    def test_custom_engine_registration(self):
        site = Site().engine(".txt", UpperEngine())
        outputs, _ = render_with_stage(site, [VirtualFile(Path("a.txt"), b"shout")])
        assert outputs[0].contents == b"SHOUT"
        assert outputs[0].ext == ".txt"

    def test_engine_failure_becomes_engine_error(self):
        site = Site()
        files = [
            VirtualFile(Path("a.hbs"), b"{{title}}", data={"title": "A"}),
            VirtualFile(Path("b.hbs"), b"{{> nope}}"),
            VirtualFile(Path("c.hbs"), b"{{title}}", data={"title": "C"}),
        ]
        outputs, errors = render_with_stage(site, files)

        assert [f.contents for f in outputs] == [b"A", b"C"]
        assert len(errors) == 1
        assert isinstance(errors[0], EngineError)
        assert isinstance(errors[0].cause, TemplateError)

    def test_site_options_are_the_base_layer(self):
        site = Site(options={"locals": {"site_name": "Demo"}})
        outputs, _ = render_with_stage(site, [VirtualFile(Path("a.hbs"), b"{{site_name}}")])
        assert outputs[0].contents == b"Demo"
        assert site.options["locals"] == {"site_name": "Demo"}

    def test_encoding_option(self):
        site = Site()
        source = "café {{x}}".encode("latin-1")
        outputs, errors = render_with_stage(site, [VirtualFile(Path("a.hbs"), source)], options={"encoding": "latin-1"}, locals={"x": "ok"})
        assert errors == []
        assert outputs[0].contents == "café ok".encode("latin-1")


class TestHelpersAndPartials:
    """Helpers and partials registered on the site are used by the Handlebars engine."""

    def test_registered_helper(self):
        site = Site().helpers({"shout": lambda this, value: f"{value.upper()}!"})
        outputs, _ = render_with_stage(site, [VirtualFile(Path("a.hbs"), b"{{shout name}}", data={"name": "abc"})])
        assert outputs[0].contents == b"ABC!"

    def test_builtin_helpers(self):
        site = Site()
        outputs, _ = render_with_stage(site, [VirtualFile(Path("a.hbs"), b"{{upper name}} {{lower name}}", data={"name": "Ab"})])
        assert outputs[0].contents == b"AB ab"

    def test_per_call_helpers_option(self):
        site = Site()
        outputs, _ = render_with_stage(
            site,
            [VirtualFile(Path("a.hbs"), b"{{foo name}}", data={"name": "x"})],
            options={"helpers": {"foo": lambda this, s: "foo" + s}},
        )
        assert outputs[0].contents == b"foox"

    def test_registered_partial(self):
        site = Site().partials({"header": "<h1>{{title}}</h1>"})
        outputs, _ = render_with_stage(site, [VirtualFile(Path("a.hbs"), b"{{> header}}body", data={"title": "T"})])
        assert outputs[0].contents == b"<h1>T</h1>body"

    def test_helpers_from_python_file(self, tmp_path: Path):
        helper_file = tmp_path / "my_helpers.py"
        helper_file.write_text(
            "def foo(this, value):\n"
            "    return 'foo' + value\n"
            "\n"
            "def _private(this):\n"
            "    return 'hidden'\n"
        )
        helpers = load_helpers_from_file(helper_file)
        assert set(helpers) == {"foo"}

        site = Site().helpers(helper_file)
        outputs, _ = render_with_stage(site, [VirtualFile(Path("a.hbs"), b"{{foo name}}", data={"name": "bar"})])
        assert outputs[0].contents == b"foobar"

    def test_helpers_dict_in_python_file(self, tmp_path: Path):
        helper_file = tmp_path / "exported.py"
        helper_file.write_text(
            "def _impl(this, value):\n"
            "    return value[::-1]\n"
            "\n"
            "HELPERS = {'reverse': _impl}\n"
        )
        assert set(load_helpers_from_file(helper_file)) == {"reverse"}

    def test_missing_helper_file(self, tmp_path: Path):
        with pytest.raises(ConfigError):
            Site().helpers(tmp_path / "nope.py")

    def test_non_callable_helper_rejected(self):
        with pytest.raises(ConfigError):
            Site().helpers({"bad": "not callable"})


class TestHandlebarsEngine:
    """Direct engine use."""

    def test_only_partials_are_cached(self):
        engine = HandlebarsEngine(partials={"nav": "<nav>{{x}}</nav>"})
        config = compose_render_config(None, None, {"x": 1})
        for i in range(3):
            result = engine.render(VirtualFile(Path(f"p{i}.hbs"), f"{{{{> nav}}}} page {i}".encode()), config)
            assert result.file.contents == f"<nav>1</nav> page {i}".encode()
        assert list(engine._compiled_cache) == ["<nav>{{x}}</nav>"]

    def test_output_extension(self):
        result = HandlebarsEngine().render(VirtualFile(Path("a.hbs"), b"plain"), compose_render_config())
        assert result.ext == ".html"
        assert result.file.contents == b"plain"
