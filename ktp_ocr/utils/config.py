"""Configuration for the KTP OCR pipeline.

Settings are read from a YAML file and validated with pydantic; any
missing section or key falls back to the defaults below.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("configs/config.yaml")


class PreprocessingConfig(BaseModel):
    """Binarization settings."""

    threshold: int = Field(default=120, ge=0, le=255)
    low_level: int = Field(default=0, ge=0, le=255)
    high_level: int = Field(default=255, ge=0, le=255)

    @model_validator(mode="after")
    def _levels_differ(self) -> "PreprocessingConfig":
        if self.low_level == self.high_level:
            raise ValueError("low_level and high_level must differ")
        return self


class OCRConfig(BaseModel):
    """Tesseract settings.

    ``psm`` 3 is fully automatic page segmentation, which suits the
    mixed layout of the card; ``lang`` is the Indonesian model.
    """

    tesseract_cmd: str | None = None
    lang: str = "ind"
    psm: int = Field(default=3, ge=0, le=13)
    preserve_interword_spaces: bool = True
    timeout: float = Field(default=0, ge=0)


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML file. Defaults to ``configs/config.yaml``.

    Returns:
        Validated application configuration, or defaults if the file
        does not exist.
    """
    path = path or DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.info("No config file found at %s, using defaults", path)
        return AppConfig()

    logger.info("Loading configuration from %s", path)
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    return AppConfig(**raw)
