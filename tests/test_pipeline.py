"""
Tests for the pipeline orchestrator.

Tests cover:
- End-to-end builds over files and inline layers
- Failure handling: nothing is written, errors surface
- Dry-run aggregation and reporting
- Determinism and incremental rebuilds
"""

import logging
from pathlib import Path

import pytest

from chuk_mcp_tokens.constants import PipelineStage
from chuk_mcp_tokens.errors import (
    ConfigError,
    CyclicTokenReference,
    IdentifierCollision,
    MalformedTokenDocument,
    ModeCoverageMismatch,
    OutputWriteError,
    TokenBuildFailed,
    UnresolvedTokenReference,
)
from chuk_mcp_tokens.models.config import BuildOptions, PipelineConfig
from chuk_mcp_tokens.pipeline import TokenPipeline


COLLIDING = {"A B": {"value": 1}, "A-B": {"value": 2}}


def base_color(value: str) -> dict:
    return {"Color": {"Base": {"default": {"value": value}}}}


def output_files(root: Path) -> dict[str, str]:
    if not root.exists():
        return {}
    return {
        str(path.relative_to(root)): path.read_text(encoding="utf-8")
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


class TestEndToEnd:
    """Builds that succeed."""

    def test_minified_two_mode_build(self, inline_config, temp_dir: Path):
        """A light and a dark layer produce one :root and one dark block."""
        config = inline_config(
            [
                {"name": "light", "mode": "light", "data": base_color("#fff")},
                {"name": "dark", "mode": "dark", "data": base_color("#000")},
            ],
            modes=["light", "dark"],
            minify=True,
        )
        report = TokenPipeline(config).run()
        content = (temp_dir / "out" / "theme" / "tokens.css").read_text()
        assert ':root{--Color-Base-default:#fff;}' in content
        assert '[data-mode="dark"]{--Color-Base-default:#000;}' in content
        assert report.succeeded
        assert report.mode_counts == {"light": 1, "dark": 1}
        assert report.total_variables == 2

    def test_segment_sanitization(self, inline_config, temp_dir: Path):
        config = inline_config(
            [
                {
                    "name": "base",
                    "data": {
                        "Color": {"Base": {"Subtle Background": {"default": {"value": "#eee"}}}}
                    },
                }
            ],
            minify=True,
        )
        TokenPipeline(config).run()
        content = (temp_dir / "out" / "theme" / "tokens.css").read_text()
        assert ":root{--Color-Base-Subtle-Background-default:#eee;}" in content

    def test_override_resolves_per_mode(self, inline_config, temp_dir: Path):
        """A mode layer overriding a primitive changes every reference to it in that mode only."""
        config = inline_config(
            [
                {"name": "base", "data": {"Primary": {"value": "#00f"}}, "emit": False},
                {
                    "name": "dark",
                    "mode": "dark",
                    "data": {"Primary": {"value": "#88f"}},
                    "emit": False,
                },
                {"name": "component", "data": {"Link": {"value": "{Primary}"}}},
            ],
            modes=["light", "dark"],
            minify=True,
        )
        result = TokenPipeline(config).build()
        assert result.resolved["light"][("Link",)].value == "#00f"
        assert result.resolved["dark"][("Link",)].value == "#88f"
        content = (temp_dir / "out" / "theme" / "tokens.css").read_text()
        assert ":root{--Link:#00f;}" in content
        assert '[data-mode="dark"]{--Link:#88f;}' in content
        assert "--Primary" not in content

    def test_file_backed_build(self, pipeline_config, temp_dir: Path):
        report = TokenPipeline(pipeline_config).run()
        files = output_files(temp_dir / "css-vars")
        assert sorted(files) == [
            "dive-theme/component.css",
            "dive-theme/index.css",
            "dive-theme/layout.css",
            "index.css",
        ]
        component = files["dive-theme/component.css"]
        assert "  --Button-Background: #fff;" in component
        assert "  --Button-Background: #000;" in component
        assert "  --Button-Padding: 8;" in component
        assert '  --Button-Font: "Open Sans";' in component
        assert "  --Button-Weight: 700;" in component
        assert "  --Layout-Gutter: 1.5;" in files["dive-theme/layout.css"]
        assert report.total_variables == 10
        assert report.stage == PipelineStage.DONE
        assert sorted(report.files_written) == sorted(files)

    def test_metadata_config_build(self, token_data: Path):
        config = PipelineConfig.from_metadata(token_data)
        TokenPipeline(config).run()
        assert (token_data.parent / "css-vars" / "dive-theme" / "component.css").exists()

    def test_output_dir_override(self, pipeline_config, temp_dir: Path):
        TokenPipeline(pipeline_config).run(BuildOptions(output_dir=temp_dir / "elsewhere"))
        assert (temp_dir / "elsewhere" / "index.css").exists()
        assert not (temp_dir / "css-vars").exists()

    def test_mode_filter(self, pipeline_config, temp_dir: Path):
        report = TokenPipeline(pipeline_config).run(BuildOptions(modes=["dark-mode"]))
        component = (temp_dir / "css-vars" / "dive-theme" / "component.css").read_text()
        assert '[data-mode="dark-mode"]' in component
        assert ":root" not in component
        assert report.mode_counts == {"dark-mode": 5}

    def test_unknown_mode_filter(self, pipeline_config):
        with pytest.raises(ConfigError, match="Unknown mode 'sepia'"):
            TokenPipeline(pipeline_config).run(BuildOptions(modes=["sepia"]))

    def test_deterministic_output(self, pipeline_config, temp_dir: Path):
        """Two fresh pipelines produce byte-identical output."""
        first = TokenPipeline(pipeline_config).build(BuildOptions(dry_run=True)).files
        second = TokenPipeline(pipeline_config).build(BuildOptions(dry_run=True)).files
        assert first == second

    def test_rebuild_is_incremental(self, pipeline_config):
        """An unchanged rebuild writes nothing and reuses the resolution cache."""
        pipeline = TokenPipeline(pipeline_config)
        pipeline.run()
        misses = pipeline.cache.misses
        report = pipeline.run()
        assert report.files_written == []
        assert len(report.files_unchanged) == 4
        assert pipeline.cache.misses == misses
        assert report.cache["hits"] > 0

    def test_verbose_logs_each_token(self, pipeline_config, caplog):
        with caplog.at_level(logging.DEBUG):
            TokenPipeline(pipeline_config).run(BuildOptions(verbose=True, dry_run=True))
        assert "Stage: resolving" in caplog.text
        assert "Button.Background = '#000' (via Color.Base.default -> Color.Primitive.Black)" in (
            caplog.text
        )


class TestFailures:
    """Failed builds abort and write nothing."""

    def test_missing_reference(self, inline_config, temp_dir: Path):
        config = inline_config([{"name": "base", "data": {"A": {"value": "{Missing}"}}}])
        pipeline = TokenPipeline(config)
        with pytest.raises(UnresolvedTokenReference):
            pipeline.run()
        assert output_files(temp_dir / "out") == {}
        assert pipeline.stage == PipelineStage.FAILED
        assert pipeline.last_report.unresolved_tokens == 1

    def test_cycle(self, inline_config, temp_dir: Path):
        config = inline_config(
            [
                {
                    "name": "base",
                    "data": {"A": {"value": "{B}"}, "B": {"value": "{C}"}, "C": {"value": "{A}"}},
                }
            ]
        )
        with pytest.raises(CyclicTokenReference) as exc_info:
            TokenPipeline(config).run()
        assert exc_info.value.cycle == (("A",), ("B",), ("C",), ("A",))
        assert output_files(temp_dir / "out") == {}

    def test_mode_coverage_mismatch(self, inline_config, temp_dir: Path):
        config = inline_config(
            [
                {"name": "light", "mode": "light", "data": {"A": {"value": 1}}},
                {"name": "dark", "mode": "dark", "data": {"A": {"value": 2}, "B": {"value": 3}}},
            ],
            modes=["light", "dark"],
        )
        with pytest.raises(ModeCoverageMismatch) as exc_info:
            TokenPipeline(config).run()
        assert exc_info.value.path == ("B",)
        assert exc_info.value.missing_in == ("light",)
        assert output_files(temp_dir / "out") == {}

    def test_identifier_collision(self, inline_config, temp_dir: Path):
        config = inline_config([{"name": "base", "data": COLLIDING}])
        with pytest.raises(IdentifierCollision):
            TokenPipeline(config).run()
        assert output_files(temp_dir / "out") == {}

    def test_collision_in_non_emitted_layer_ignored(self, inline_config):
        """Tokens that never reach CSS cannot collide."""
        config = inline_config(
            [
                {"name": "prims", "data": COLLIDING, "emit": False},
                {"name": "base", "data": {"Out": {"value": "{A B}"}}},
            ]
        )
        assert TokenPipeline(config).run().succeeded

    def test_malformed_document(self, pipeline_config, token_data: Path, temp_dir: Path):
        (token_data / "layouts" / "layout.json").write_text("{ not json", encoding="utf-8")
        with pytest.raises(MalformedTokenDocument):
            TokenPipeline(pipeline_config).run()
        assert output_files(temp_dir / "css-vars") == {}

    def test_failed_rebuild_keeps_previous_output(self, inline_config, temp_dir: Path):
        config = inline_config([{"name": "base", "data": {"A": {"value": 1}}}])
        TokenPipeline(config).run()
        before = output_files(temp_dir / "out")

        broken = inline_config([{"name": "base", "data": {"A": {"value": "{Gone}"}}}])
        with pytest.raises(UnresolvedTokenReference):
            TokenPipeline(broken).run()
        assert output_files(temp_dir / "out") == before

    def test_write_failure_ends_in_failed_stage(self, inline_config, temp_dir: Path):
        """An OS error while writing fails the run and leaves no partial output."""
        config = inline_config([{"name": "base", "data": {"A": {"value": 1}}}])
        (temp_dir / "out" / "index.css").mkdir(parents=True)
        pipeline = TokenPipeline(config)
        with pytest.raises(OutputWriteError) as exc_info:
            pipeline.run()

        assert isinstance(exc_info.value.reason, OSError)
        assert pipeline.stage == PipelineStage.FAILED
        report = pipeline.last_report
        assert report.stage == PipelineStage.FAILED
        assert report.errors == [str(exc_info.value)]
        assert "Could not write output" in report.errors[0]
        assert output_files(temp_dir / "out") == {}


class TestDryRun:
    """Dry-run resolves everything and writes nothing."""

    def test_success_writes_nothing(self, pipeline_config, temp_dir: Path):
        report = TokenPipeline(pipeline_config).run(BuildOptions(dry_run=True))
        assert report.dry_run
        assert report.succeeded
        assert report.files_written == []
        assert sorted(report.files_planned) == [
            "dive-theme/component.css",
            "dive-theme/index.css",
            "dive-theme/layout.css",
            "index.css",
        ]
        assert output_files(temp_dir / "css-vars") == {}

    def test_collects_all_errors(self, inline_config, temp_dir: Path):
        """One dry run reports every independent problem."""
        config = inline_config(
            [
                {
                    "name": "base",
                    "data": {
                        "Loop": {"value": "{Loop}"},
                        "Dangling": {"value": "{Nowhere}"},
                        "A B": {"value": 1},
                        "A-B": {"value": 2},
                        "Fine": {"value": 3},
                    },
                }
            ]
        )
        pipeline = TokenPipeline(config)
        with pytest.raises(TokenBuildFailed) as exc_info:
            pipeline.run(BuildOptions(dry_run=True))

        failure = exc_info.value
        kinds = sorted(type(e).__name__ for e in failure.errors)
        assert kinds == ["CyclicTokenReference", "IdentifierCollision", "UnresolvedTokenReference"]
        report = failure.report
        assert report is pipeline.last_report
        assert report.stage == PipelineStage.FAILED
        assert report.unresolved_tokens == 2
        assert report.cycle_detections == 1
        assert report.collisions == 1
        assert len(report.errors) == 3
        assert output_files(temp_dir / "out") == {}

    def test_malformed_documents_all_reported(self, pipeline_config, token_data: Path):
        (token_data / "layouts" / "layout.json").write_text("{", encoding="utf-8")
        (token_data / "components" / "component.json").write_text("[]", encoding="utf-8")
        with pytest.raises(TokenBuildFailed) as exc_info:
            TokenPipeline(pipeline_config).run(BuildOptions(dry_run=True))
        assert all(isinstance(e, MalformedTokenDocument) for e in exc_info.value.errors)
        assert len(exc_info.value.errors) == 2


class TestDescribe:
    """Tests for pipeline introspection helpers."""

    def test_describe_layers(self, pipeline_config):
        layers = TokenPipeline(pipeline_config).describe_layers()
        names = [layer["name"] for layer in layers]
        assert names == ["brand", "light", "dark", "component", "layout"]
        assert layers[1]["mode"] == "light-mode"
        assert layers[0]["priority"] == 0

    def test_resolve_token(self, pipeline_config):
        pipeline = TokenPipeline(pipeline_config)
        assert pipeline.resolve_token("Button.Background", "dark-mode") == "#000"
        assert pipeline.resolve_token("Button.Background", "light-mode") == "#fff"


class TestDemoProject:
    """The bundled example project builds cleanly."""

    EXAMPLES = Path(__file__).parent.parent / "examples"

    def test_yaml_config_validates(self):
        config = PipelineConfig.from_yaml(self.EXAMPLES / "tokens.yaml")
        report = TokenPipeline(config).run(BuildOptions(dry_run=True))
        assert report.succeeded
        assert report.mode_counts == {"light-mode": 11, "dark-mode": 11, "hc-dark-mode": 11}

    def test_metadata_config_validates(self):
        config = PipelineConfig.from_metadata(self.EXAMPLES / "data")
        assert config.modes == ["light-mode", "dark-mode", "hc-dark-mode"]
        report = TokenPipeline(config).run(BuildOptions(dry_run=True))
        assert report.succeeded
