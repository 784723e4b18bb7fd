"""Configuration for the zone enrichment pipeline.

Pipelines are described in YAML::

    zones:
      path: data/london_sport.shp
      key: name
    points:
      path: data/stations.shp
    table:
      path: data/mps-recordedcrime-borough.csv
      encoding: latin1
      key: Borough
      value_column: CrimeCount
      fn: sum
      relabel:
        "Corp of London": "City of London"
    options:
      boundary: inside
      multi_match: first
      target_crs: 27700
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from zonesmith.utils.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class LayerConfig:
    """A vector layer on disk."""

    path: Path
    key: Optional[str] = None
    layer: Optional[str] = None


@dataclass
class TableConfig:
    """A delimited table on disk and how to join it."""

    path: Path
    key: str
    encoding: str = "utf-8"
    value_column: Optional[str] = None
    fn: str = "sum"
    relabel: dict[str, str] = field(default_factory=dict)


@dataclass
class EnrichmentOptions:
    """Engine options shared by all pipeline steps."""

    boundary: str = "inside"
    multi_match: str = "first"
    prefilter: bool = True
    parallel: bool = False
    validate: bool = True
    target_crs: Optional[Any] = None
    count_column: str = "count"


@dataclass
class EnrichmentConfig:
    """Full pipeline configuration."""

    zones: LayerConfig
    points: Optional[LayerConfig] = None
    table: Optional[TableConfig] = None
    options: EnrichmentOptions = field(default_factory=EnrichmentOptions)

    @classmethod
    def from_dict(cls, data: dict, base_dir: Optional[Path] = None) -> "EnrichmentConfig":
        """Build a config from a parsed mapping.

        Relative paths are resolved against ``base_dir`` when given.

        Raises:
            ConfigurationError: If a required key is missing or a section is
                malformed.
        """
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration must be a mapping, got {type(data).__name__}"
            )

        zones = _section(data, "zones", required=True)
        zones_config = LayerConfig(
            path=_path(_require(zones, "path", "zones"), base_dir),
            key=_require(zones, "key", "zones"),
            layer=zones.get("layer"),
        )

        points_config = None
        points = _section(data, "points")
        if points is not None:
            points_config = LayerConfig(
                path=_path(_require(points, "path", "points"), base_dir),
                layer=points.get("layer"),
            )

        table_config = None
        table = _section(data, "table")
        if table is not None:
            table_config = TableConfig(
                path=_path(_require(table, "path", "table"), base_dir),
                key=_require(table, "key", "table"),
                encoding=table.get("encoding", "utf-8"),
                value_column=table.get("value_column"),
                fn=table.get("fn", "sum"),
                relabel=dict(table.get("relabel") or {}),
            )

        options = _section(data, "options") or {}
        unknown = set(options) - set(EnrichmentOptions.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(f"Unknown option(s): {sorted(unknown)}")

        return cls(
            zones=zones_config,
            points=points_config,
            table=table_config,
            options=EnrichmentOptions(**options),
        )


def _section(data: dict, name: str, required: bool = False) -> Optional[dict]:
    section = data.get(name)
    if section is None:
        if required:
            raise ConfigurationError(f"Missing required section '{name}'")
        return None
    if not isinstance(section, dict):
        raise ConfigurationError(f"Section '{name}' must be a mapping")
    return section


def _require(section: dict, key: str, name: str) -> Any:
    if section.get(key) is None:
        raise ConfigurationError(f"Missing required option '{name}.{key}'")
    return section[key]


def _path(value: Union[str, Path], base_dir: Optional[Path]) -> Path:
    path = Path(value)
    if base_dir is not None and not path.is_absolute():
        path = base_dir / path
    return path


def load_config(path: Union[str, Path]) -> EnrichmentConfig:
    """Load an EnrichmentConfig from a YAML file.

    Relative paths inside the file are resolved against the file's directory.

    Args:
        path: YAML file path.

    Returns:
        EnrichmentConfig.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    logger.debug(f"Loaded configuration from {path}")
    return EnrichmentConfig.from_dict(data, base_dir=path.parent)
