"""
Configuration service using Pydantic for type-safe config management.
"""

from pathlib import Path
from typing import Dict, Any, List, Optional
import yaml
import logging
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class ConversionParameters(BaseModel):
    """Parameters controlling coordinate handling and provenance."""
    position_scale_factor: float = Field(4.0, gt=0.0)
    y_axis_padding: float = 50.0
    invert_y_axis: bool = True
    boundary_inlet_max_x: float = 200.0
    application_source: str = "dexpi-bridge"
    transform_foreign_documents: bool = True


class LayoutParameters(BaseModel):
    """Auto-layout spacing for imported nodes without a position."""
    grid_columns: int = Field(4, ge=1)
    grid_spacing_x: float = 250.0
    grid_spacing_y: float = 150.0
    grid_start_x: float = 100.0
    grid_start_y: float = 100.0
    column_spacing: float = 150.0
    column_start_y: float = 100.0


class ModeTaxonomy(BaseModel):
    """Legal element types of one diagram mode."""
    node_types: List[str] = Field(default_factory=list)
    edge_types: List[str] = Field(default_factory=list)


def _default_modes() -> Dict[str, ModeTaxonomy]:
    return {
        "playground": ModeTaxonomy(
            node_types=["rectangle", "circle", "diamond", "triangle", "text"],
            edge_types=["default", "arrow", "dashed"],
        ),
        "bfd": ModeTaxonomy(
            node_types=["process_block", "input_output", "storage"],
            edge_types=["material_stream", "energy_stream", "signal"],
        ),
        "pfd": ModeTaxonomy(
            node_types=[
                "reactor", "tank", "vessel", "pump", "compressor",
                "heat_exchanger", "column", "valve", "mixer", "splitter",
            ],
            edge_types=["material_stream", "energy_stream", "utility_stream"],
        ),
        "pid": ModeTaxonomy(
            node_types=[
                "pumps", "pumps_iso", "pumps_din", "compressors", "compressors_iso",
                "vessels", "separators", "heat_exchangers", "mixers", "agitators",
                "filters", "centrifuges", "driers", "valves", "instruments",
                "flow_sensors", "fittings", "piping",
            ],
            edge_types=["material_stream", "energy_stream", "utility_stream", "signal"],
        ),
    }


def _default_categories() -> List[str]:
    return [
        "Pumps", "Pumps_ISO", "Pumps_DIN", "Compressors", "Compressors_ISO",
        "Vessels", "Separators", "Heat_Exchangers", "Mixers", "Agitators",
        "Filters", "Centrifuges", "Driers", "Valves", "Instruments",
        "Flow_Sensors", "Fittings", "Piping",
    ]


class TaxonomyConfig(BaseModel):
    """Externally owned table of legal element types per mode and category."""
    boundary_node_types: List[str] = Field(default_factory=lambda: ["input_output"])
    modes: Dict[str, ModeTaxonomy] = Field(default_factory=_default_modes)
    categories: List[str] = Field(default_factory=_default_categories)


class PathsConfig(BaseModel):
    """Paths configuration."""
    output_dir: str = "outputs"
    log_dir: str = "outputs/logs"


class AppConfig(BaseModel):
    """Main application configuration."""
    paths: PathsConfig = Field(default_factory=PathsConfig)
    conversion: ConversionParameters = Field(default_factory=ConversionParameters)
    layout: LayoutParameters = Field(default_factory=LayoutParameters)
    taxonomy: TaxonomyConfig = Field(default_factory=TaxonomyConfig)


class ConfigService:
    """Service for loading and managing configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else Path("config.yaml")
        self._config: Optional[AppConfig] = None
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            logger.warning(f"Config file not found: {self.config_path}, using defaults")
            self._config = AppConfig()
            return

        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                raw_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading config: {e}", exc_info=True)
            self._config = AppConfig()
            return

        if not isinstance(raw_config, dict):
            logger.error(f"Config root must be a mapping, got {type(raw_config).__name__}; using defaults")
            self._config = AppConfig()
            return

        try:
            # Pydantic converts nested dicts to the section models
            self._config = AppConfig(**raw_config)
            logger.info(f"Configuration loaded from {self.config_path}")
        except ValidationError as e:
            logger.error(f"Config validation error: {e}")
            self._config = AppConfig()

    def get_config(self) -> AppConfig:
        """Get current configuration."""
        if self._config is None:
            self._load_config()
        return self._config

    def get_raw_config(self) -> Dict[str, Any]:
        """Get config as a plain dict."""
        return self.get_config().model_dump()

    def update_config(self, updates: Dict[str, Any]) -> None:
        """Update configuration (does not persist to file)."""
        current = self.get_config().model_dump()
        for key, value in updates.items():
            if isinstance(value, dict) and isinstance(current.get(key), dict):
                current[key].update(value)
            else:
                current[key] = value
        self._config = AppConfig(**current)

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    def get_path(self, key: str) -> Optional[Path]:
        """
        Get a configured path.

        Args:
            key: Attribute name in the paths section

        Returns:
            Path or None if the key is unknown
        """
        value = getattr(self.get_config().paths, key, None)
        return Path(value) if value else None

    def get_conversion_parameters(self) -> Dict[str, Any]:
        """Get conversion parameters as dict."""
        return self.get_config().conversion.model_dump()
