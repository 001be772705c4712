"""Tests for configuration loading and dataset files.

Uses isolated directories via tmp_path and PROV_COMP_CONFIG_PATH
to avoid touching a real configuration.
"""

import json

import pytest
import yaml

from provcomp.sdk.config import (
    ConfigNotFoundError,
    ConfigValidationError,
    ProfileNotFoundError,
    get_config_dir,
    get_profile_path,
    get_setting,
    init_profile,
    load_optimizer_settings,
    load_profile,
    load_synonym_map,
    load_target_settings,
    set_setting,
)
from provcomp.sdk.datasets import DatasetError, load_market, load_providers


# === FIXTURES ===


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Point the config directory at an empty temp dir."""
    path = tmp_path / "config"
    path.mkdir()
    monkeypatch.setenv("PROV_COMP_CONFIG_PATH", str(path))
    return path


def write_profile(config_dir, profile: dict):
    path = config_dir / "profile.yaml"
    path.write_text(yaml.safe_dump(profile))
    return path


class TestConfigPaths:

    def test_env_var_sets_config_dir(self, config_dir):
        assert get_config_dir() == config_dir

    def test_xdg_fallback(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PROV_COMP_CONFIG_PATH", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert get_config_dir() == tmp_path / "prov-comp"

    def test_settings_round_trip(self, config_dir):
        set_setting("default_output_format", "json")
        assert get_setting("default_output_format") == "json"
        assert json.loads((config_dir / "settings.json").read_text()) == {"default_output_format": "json"}

    def test_profile_pointer_in_settings(self, config_dir, tmp_path):
        custom = tmp_path / "plans" / "fy27.yaml"
        set_setting("profile", str(custom))
        assert get_profile_path() == custom
        with pytest.raises(ProfileNotFoundError):
            get_profile_path(require_exists=True)


class TestProfile:

    def test_init_profile_writes_defaults(self, config_dir):
        path = init_profile()
        assert path == config_dir / "profile.yaml"
        profile = load_profile()
        assert profile["optimizer"]["max_recommended_cf_percentile"] == 50

    def test_init_profile_refuses_overwrite(self, config_dir):
        init_profile()
        with pytest.raises(FileExistsError):
            init_profile()
        assert init_profile(force=True).exists()

    def test_missing_profile_gives_defaults(self, config_dir):
        assert load_profile() == {}
        assert load_optimizer_settings().error_metric == "squared"
        assert load_target_settings().target_approach == "wrvu_percentile"

    def test_explicit_missing_path(self, config_dir, tmp_path):
        with pytest.raises(ConfigNotFoundError):
            load_profile(tmp_path / "nope.yaml")

    def test_optimizer_section(self, config_dir):
        write_profile(config_dir, {
            "optimizer": {
                "error_metric": "absolute",
                "cf_bounds": {"min_change_pct": 10, "max_change_pct": 15},
                "include_quality_payments": False,
            }
        })
        settings = load_optimizer_settings()
        assert settings.error_metric == "absolute"
        assert settings.cf_bounds.max_change_pct == 15
        assert not settings.component("quality").included

    def test_invalid_optimizer_section(self, config_dir):
        write_profile(config_dir, {"optimizer": {"error_metric": "cubic"}})
        with pytest.raises(ConfigValidationError, match="Invalid optimizer settings"):
            load_optimizer_settings()

    def test_section_must_be_mapping(self, config_dir):
        write_profile(config_dir, {"targets": ["wrvu_percentile"]})
        with pytest.raises(ConfigValidationError, match="must be a mapping"):
            load_target_settings()

    def test_unparseable_profile(self, config_dir):
        (config_dir / "profile.yaml").write_text("optimizer: [unclosed")
        with pytest.raises(ConfigValidationError, match="could not parse"):
            load_profile()


class TestSynonyms:

    def test_inline_entries_override_profile_file(self, config_dir, tmp_path):
        synonyms_file = tmp_path / "synonyms.yaml"
        synonyms_file.write_text(yaml.safe_dump({"synonyms": {"Cards": "Cardiology", "Derm": "Dermatology"}}))
        write_profile(config_dir, {
            "synonyms_file": str(synonyms_file),
            "synonyms": {"Cards": "Cardiology, General"},
        })
        assert load_synonym_map() == {"Cards": "Cardiology, General", "Derm": "Dermatology"}

    def test_argument_file_wins(self, config_dir, tmp_path):
        write_profile(config_dir, {"synonyms": {"Cards": "Cardiology"}})
        override = tmp_path / "override.json"
        override.write_text(json.dumps({"Cards": "Cardiology, Invasive"}))
        assert load_synonym_map(synonyms_file=override) == {"Cards": "Cardiology, Invasive"}

    def test_missing_synonym_file(self, config_dir, tmp_path):
        with pytest.raises(ConfigNotFoundError):
            load_synonym_map(synonyms_file=tmp_path / "missing.yaml")


class TestDatasets:

    def test_providers_from_yaml_list(self, tmp_path):
        path = tmp_path / "providers.yaml"
        path.write_text(yaml.safe_dump([
            {"provider_id": "P1", "specialty": "Cardiology", "clinical_fte": 1.0, "work_rvus": 4600},
        ]))
        providers = load_providers(path)
        assert providers[0].key == "P1"

    def test_market_from_json_mapping(self, tmp_path):
        path = tmp_path / "market.json"
        path.write_text(json.dumps({"market": [{"specialty": "Cardiology", "cf_50": 50}]}))
        assert load_market(path)[0].cf.p50 == 50

    def test_invalid_record(self, tmp_path):
        path = tmp_path / "providers.json"
        path.write_text(json.dumps([{"provider_id": "P1", "clinical_fte": -1}]))
        with pytest.raises(DatasetError, match="record 0 is invalid"):
            load_providers(path)

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "providers.yaml"
        path.write_text(yaml.safe_dump({"rows": []}))
        with pytest.raises(DatasetError, match="expected a list"):
            load_providers(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(DatasetError, match="not found"):
            load_market(tmp_path / "market.yaml")
