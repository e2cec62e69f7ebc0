"""Tests for configuration models and the YAML loader."""

import pytest
import yaml
from pydantic import ValidationError

from correlator.config import (
    BatchConfig,
    CampaignType,
    ConfigError,
    ConfigLoader,
    CorrelationConfig,
    DetectionConfig,
    SinkConfig,
    TimestampConfig,
)
from correlator.config.defaults import PROFILE_TEMPLATES, get_default_campaign


def test_defaults():
    detection = DetectionConfig()
    assert detection.detection_rate == 0.7
    assert detection.delay_range == "2m-30m"
    assert detection.triggers_per_stage == 2
    assert CorrelationConfig().log_count == 6
    assert SinkConfig().format == "ndjson"


@pytest.mark.parametrize("kwargs", [
    {"detection_rate": 1.5},
    {"detection_rate": -0.1},
    {"delay_range": "soon"},
    {"triggers_per_stage": 0},
])
def test_invalid_detection(kwargs):
    with pytest.raises(ValidationError):
        DetectionConfig(**kwargs)


def test_invalid_batch_and_window():
    with pytest.raises(ValidationError):
        BatchConfig(techniques=["not-a-technique"])
    with pytest.raises(ValidationError):
        BatchConfig(concurrency=0)
    with pytest.raises(ValidationError):
        TimestampConfig(start_date="last tuesday")
    assert TimestampConfig(start_date="7d", end_date="now").start_date == "7d"


def test_load_single_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({
        "campaign": {"campaign_type": "insider", "detection": {"detection_rate": 0.25}},
        "sink": {"type": "memory"},
    }))

    loader = ConfigLoader(path).load()

    assert loader.campaign.campaign_type == CampaignType.INSIDER
    assert loader.campaign.detection.detection_rate == 0.25
    assert loader.sink.type == "memory"
    assert loader.batch.count == 10
    assert loader.loaded_sections() == ["campaign", "sink"]


def test_load_directory(tmp_path):
    (tmp_path / "batch.yml").write_text(yaml.dump({"count": 3, "techniques": ["T1486"]}))
    (tmp_path / "correlation.yaml").write_text(yaml.dump({"host_name": "WS01", "log_count": 4}))

    loader = ConfigLoader(tmp_path).load()

    assert loader.batch.count == 3
    assert loader.correlation.host_name == "WS01"
    assert loader.loaded_sections() == ["correlation", "batch"]


def test_invalid_yaml_and_values(tmp_path):
    broken = tmp_path / "broken.yaml"
    broken.write_text("campaign: [unclosed\n")
    with pytest.raises(ConfigError):
        ConfigLoader(broken).load()

    invalid = tmp_path / "invalid.yaml"
    invalid.write_text(yaml.dump({"campaign": {"detection": {"detection_rate": 3}}}))
    with pytest.raises(ConfigError):
        ConfigLoader(invalid).load()

    with pytest.raises(ConfigError):
        ConfigLoader(tmp_path / "missing.yaml").load()
    with pytest.raises(ConfigError):
        ConfigLoader().load()


def test_cross_section_validation():
    loader = ConfigLoader.from_dict(campaign={"logs_per_stage": 0})
    with pytest.raises(ConfigError):
        loader.validate()

    loader = ConfigLoader.from_dict(batch={"use_ai": True, "concurrency": 4, "throttle_seconds": 0})
    with pytest.raises(ConfigError):
        loader.validate()

    assert ConfigLoader.from_dict(campaign=get_default_campaign("ransomware")).validate()


def test_save_and_reload(tmp_path):
    loader = ConfigLoader.from_dict(batch={"count": 7}, sink={"format": "json"})
    loader.save(tmp_path)

    assert sorted(p.name for p in tmp_path.iterdir()) == ["batch.yaml", "sink.yaml"]
    reloaded = ConfigLoader(tmp_path).load()
    assert reloaded.batch.count == 7
    assert reloaded.sink.format == "json"


def test_profile_templates_are_valid():
    for name, profile in PROFILE_TEMPLATES.items():
        sections = {section: profile[section] for section in ConfigLoader.SECTIONS}
        loader = ConfigLoader.from_dict(**sections)
        assert loader.validate(), name
