"""
Configuration loader for YAML files.

Handles loading, validation, and merging of configuration files.
"""

from pathlib import Path
from typing import Optional, Dict, Any, Union
import yaml
from pydantic import BaseModel, ValidationError

from ..errors import ConfigError
from .models import (
    CorrelationConfig,
    CampaignConfig,
    BatchConfig,
    SinkConfig,
)


class ConfigLoader:
    """
    Loads and validates configuration from YAML files.

    Supports loading a single file holding several sections, or a
    configuration directory with one file per section.
    """

    SECTIONS = {
        "correlation": CorrelationConfig,
        "campaign": CampaignConfig,
        "batch": BatchConfig,
        "sink": SinkConfig,
    }

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Initialize the config loader.

        Args:
            config_path: Path to config file or directory
        """
        self.config_path = Path(config_path) if config_path else None
        self._correlation: Optional[CorrelationConfig] = None
        self._campaign: Optional[CampaignConfig] = None
        self._batch: Optional[BatchConfig] = None
        self._sink: Optional[SinkConfig] = None

    def load(self) -> "ConfigLoader":
        """
        Load all configuration files from the config path.

        Returns:
            Self for method chaining
        """
        if self.config_path is None:
            raise ConfigError("No configuration path specified")

        if self.config_path.is_file():
            self._load_single_file(self.config_path)
        elif self.config_path.is_dir():
            self._load_directory(self.config_path)
        else:
            raise ConfigError(f"Configuration path does not exist: {self.config_path}")

        return self

    def _load_single_file(self, file_path: Path) -> None:
        """Load a single YAML file containing all configurations."""
        data = self._read_yaml(file_path)

        for section in self.SECTIONS:
            if section in data:
                setattr(self, f"_{section}", self._parse(section, data[section]))

    def _load_directory(self, dir_path: Path) -> None:
        """Load configuration from a directory with one YAML file per section."""
        for section in self.SECTIONS:
            for suffix in (".yaml", ".yml"):
                file_path = dir_path / f"{section}{suffix}"
                if file_path.exists():
                    data = self._read_yaml(file_path)
                    setattr(self, f"_{section}", self._parse(section, data))
                    break

    def _read_yaml(self, file_path: Path) -> Dict[str, Any]:
        """Read and parse a YAML file."""
        try:
            with open(file_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {file_path}: {e}")
        except IOError as e:
            raise ConfigError(f"Cannot read {file_path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping at the top of {file_path}")
        return data

    def _parse(self, section: str, data: Dict[str, Any]) -> BaseModel:
        """Validate one configuration section."""
        model = self.SECTIONS[section]
        try:
            return model(**(data or {}))
        except ValidationError as e:
            raise ConfigError(f"Invalid {section} configuration: {e}")
        except TypeError:
            raise ConfigError(f"Invalid {section} configuration: expected a mapping")

    @property
    def correlation(self) -> CorrelationConfig:
        """Loaded correlation configuration, or defaults."""
        return self._correlation or CorrelationConfig()

    @property
    def campaign(self) -> CampaignConfig:
        """Loaded campaign configuration, or defaults."""
        return self._campaign or CampaignConfig()

    @property
    def batch(self) -> BatchConfig:
        """Loaded batch configuration, or defaults."""
        return self._batch or BatchConfig()

    @property
    def sink(self) -> SinkConfig:
        """Loaded sink configuration, or defaults."""
        return self._sink or SinkConfig()

    def loaded_sections(self) -> list:
        """Names of sections that were present in the loaded files."""
        return [s for s in self.SECTIONS if getattr(self, f"_{s}") is not None]

    def validate(self) -> bool:
        """
        Validate cross-section consistency.

        Returns:
            True if valid

        Raises:
            ConfigError: If configuration is inconsistent
        """
        campaign = self.campaign
        if campaign.logs_per_stage == 0 and campaign.detection.detection_rate > 0:
            raise ConfigError(
                "campaign.logs_per_stage is 0: no stage can be detected with a non-zero detection_rate"
            )

        batch = self.batch
        if batch.use_ai and batch.concurrency > 1 and batch.throttle_seconds == 0:
            raise ConfigError(
                "batch.use_ai with concurrency > 1 requires a non-zero throttle_seconds"
            )

        return True

    def save(self, output_path: Union[str, Path]) -> None:
        """
        Save current configuration to YAML files.

        Args:
            output_path: Directory to save configuration files
        """
        output_path = Path(output_path)
        output_path.mkdir(parents=True, exist_ok=True)

        for section in self.SECTIONS:
            config = getattr(self, f"_{section}")
            if config is not None:
                file_path = output_path / f"{section}.yaml"
                with open(file_path, "w") as f:
                    yaml.dump(
                        config.model_dump(mode="json", exclude_none=True),
                        f,
                        default_flow_style=False,
                        sort_keys=False,
                    )

    @classmethod
    def from_dict(
        cls,
        correlation: Optional[Dict] = None,
        campaign: Optional[Dict] = None,
        batch: Optional[Dict] = None,
        sink: Optional[Dict] = None,
    ) -> "ConfigLoader":
        """
        Create a ConfigLoader from dictionaries.

        Useful for programmatic configuration.
        """
        loader = cls()
        sections = {"correlation": correlation, "campaign": campaign, "batch": batch, "sink": sink}
        for section, data in sections.items():
            if data is not None:
                setattr(loader, f"_{section}", loader._parse(section, data))
        return loader


__all__ = ["ConfigLoader", "ConfigError"]
