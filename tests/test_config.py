"""Tests for configuration schemas and the YAML loader."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from geolapse.config import (
    GeolapseConfig,
    RenderConfig,
    ViewConfig,
    load_config,
    save_config,
    substitute_params,
)
from geolapse.frames import DEFAULT_EPOCH
from geolapse.frames.binner import DEFAULT_BATCH_SIZE

CONFIG_DIR = Path(__file__).parent.parent / "configs"


class TestSchemas:
    """Test defaults and validation."""

    def test_defaults(self):
        config = GeolapseConfig()
        assert config.view.bbox == (-180.0, -90.0, 180.0, 90.0)
        assert config.view.height == 1800
        assert config.view.projection == "equirectangular"
        assert config.timing.epoch == DEFAULT_EPOCH
        assert config.timing.seconds_per_frame == 86400
        assert config.render.mode == "age"
        assert config.render.lookup is None
        assert config.render.loop == 0

    def test_bbox_from_string(self):
        view = ViewConfig(bbox="-10,35,30,60")
        assert view.bbox == (-10.0, 35.0, 30.0, 60.0)
        assert view.view_box.span_x == 40.0

    @pytest.mark.parametrize(
        "bbox",
        [
            (10.0, 0.0, 5.0, 10.0),
            (0.0, 10.0, 10.0, 5.0),
            (-190.0, 0.0, 10.0, 10.0),
            (0.0, 0.0, 10.0, 95.0),
        ],
    )
    def test_invalid_bbox(self, bbox):
        with pytest.raises(ValidationError):
            ViewConfig(bbox=bbox)

    def test_height_bounds(self):
        with pytest.raises(ValidationError):
            ViewConfig(height=0)
        with pytest.raises(ValidationError):
            ViewConfig(height=70000)

    def test_decay_factor_bounds(self):
        with pytest.raises(ValidationError):
            RenderConfig(decay_factor=1.0)

    def test_assignment_is_validated(self):
        config = GeolapseConfig()
        with pytest.raises(ValidationError):
            config.render.mode = "sum"
        with pytest.raises(ValidationError):
            config.timing.seconds_per_frame = 0

    def test_unknown_projection(self):
        with pytest.raises(ValidationError):
            ViewConfig(projection="mercator")

    def test_ingest_batch_size(self):
        config = GeolapseConfig()
        assert config.ingest.batch_size == DEFAULT_BATCH_SIZE
        with pytest.raises(ValidationError):
            config.ingest.batch_size = 0


class TestLoader:
    """Test loading YAML configuration files."""

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == GeolapseConfig()

    def test_partial_file(self, tmp_path):
        path = tmp_path / "europe.yaml"
        path.write_text(
            "view:\n"
            "  bbox: [-10, 35, 30, 60]\n"
            "  height: 500\n"
            "timing:\n"
            "  seconds_per_frame: 604800\n"
            "render:\n"
            "  mode: decay\n"
        )
        config = load_config(path)
        assert config.view.bbox == (-10.0, 35.0, 30.0, 60.0)
        assert config.view.height == 500
        assert config.timing.seconds_per_frame == 604800
        assert config.render.mode == "decay"
        assert config.ingest.require_sorted is False

    def test_runtime_params(self, tmp_path):
        path = tmp_path / "params.yaml"
        path.write_text("view:\n  height: ${HEIGHT}\n")
        config = load_config(path, runtime_params={"HEIGHT": 320})
        assert config.view.height == 320

    def test_env_params(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GEOLAPSE_TEST_RAMP", "ramps/heat.csv")
        path = tmp_path / "env.yaml"
        path.write_text("render:\n  colour_ramp: ${GEOLAPSE_TEST_RAMP}\n")
        assert load_config(path).render.colour_ramp == Path("ramps/heat.csv")

    def test_embedded_placeholder(self):
        result = substitute_params({"ramp": "${ROOT}/heat.csv", "h": "${H}"}, {"ROOT": "ramps", "H": 5})
        assert result == {"ramp": "ramps/heat.csv", "h": 5}

    def test_missing_param(self):
        with pytest.raises(ValueError, match="Missing parameter"):
            substitute_params({"a": ["${GEOLAPSE_DEFINITELY_UNSET}"]}, {})

    def test_validation_error_is_value_error(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("timing:\n  seconds_per_frame: 0\n")
        with pytest.raises(ValueError, match="validation failed"):
            load_config(path)

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="YAML dict"):
            load_config(path)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("view: [1, 2\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    @pytest.mark.parametrize("name", ["world.yaml", "globe.yaml"])
    def test_bundled_configs(self, name):
        config = load_config(CONFIG_DIR / name)
        assert config.view.height > 0

    def test_bundled_config_with_params(self):
        config = load_config(CONFIG_DIR / "europe.yaml", runtime_params={"RAMP_PATH": "heat.csv"})
        assert config.render.mode == "decay"
        assert config.render.colour_ramp == Path("heat.csv")

    def test_save_and_reload(self, tmp_path):
        config = GeolapseConfig()
        config.view.height = 600
        config.render.colour_ramp = Path("ramps/heat.csv")
        path = tmp_path / "out" / "saved.yaml"

        save_config(config, path)
        assert load_config(path) == config
