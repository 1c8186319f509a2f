"""
Depreciation Engine Configuration Schema.

Defines the tunable constants of the engine and their defaults.  Actual
values may be loaded from tenant configuration at runtime.
"""

import os
from dataclasses import dataclass, fields
from decimal import Decimal
from pathlib import Path
from typing import Any, Self

import yaml

from asset_kernel.logging_config import get_logger

logger = get_logger("depreciation.config")

# Accumulated within this of the depreciable amount counts as fully depreciated
FULLY_DEPRECIATED_EPSILON = Decimal("0.01")

# Average days per month used for disposal proration
AVERAGE_DAYS_PER_MONTH = Decimal("30.44")

# 50 years of monthly periods
MAX_SCHEDULE_PERIODS = 600

DEFAULT_DATABASE_URL = "sqlite:///depreciation.db"


@dataclass
class DepreciationConfig:
    """
    Configuration schema for the depreciation engine.

    Override at instantiation with tenant-specific values:

        config = DepreciationConfig(
            allow_category_reassignment_with_history=True,
            **load_from_database("depreciation_settings"),
        )
    """

    fully_depreciated_epsilon: Decimal = FULLY_DEPRECIATED_EPSILON
    disposal_days_per_month: Decimal = AVERAGE_DAYS_PER_MONTH
    max_schedule_periods: int = MAX_SCHEDULE_PERIODS

    # Reassigning a category resets accumulated depreciation.  When False the
    # caller must pass force=True for assets that already have ledger rows.
    allow_category_reassignment_with_history: bool = False

    default_ledger_page_size: int = 100
    max_ledger_page_size: int = 200

    def __post_init__(self):
        if self.max_schedule_periods <= 0:
            raise ValueError("max_schedule_periods must be positive")
        if self.disposal_days_per_month <= 0:
            raise ValueError("disposal_days_per_month must be positive")
        logger.info(
            "depreciation_config_initialized",
            extra={
                "fully_depreciated_epsilon": str(self.fully_depreciated_epsilon),
                "disposal_days_per_month": str(self.disposal_days_per_month),
                "max_schedule_periods": self.max_schedule_periods,
                "allow_category_reassignment_with_history": (
                    self.allow_category_reassignment_with_history
                ),
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the engine's standard constants."""
        logger.info("depreciation_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary (e.g., loaded from database/file)."""
        logger.info(
            "depreciation_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            raise ValueError(f"Unknown depreciation config keys: {sorted(unknown)}")
        values = dict(data)
        for key in ("fully_depreciated_epsilon", "disposal_days_per_month"):
            if key in values:
                values[key] = Decimal(str(values[key]))
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: Path | str) -> Self:
        """
        Create config from a YAML file.

        The file may hold the settings at top level or under a
        ``depreciation:`` key.  An empty file yields the defaults.

        Raises:
            FileNotFoundError: if the file does not exist.
            yaml.YAMLError: if the file contains invalid YAML.
            ValueError: if the file holds unknown keys or invalid values.
        """
        data = load_yaml_file(Path(path))
        section = data
        if isinstance(data, dict) and "depreciation" in data:
            section = data["depreciation"] or {}
        if not isinstance(section, dict):
            raise ValueError(f"{path}: depreciation settings must be a mapping")
        return cls.from_dict(section)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file and return its contents as a dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def get_database_url() -> str:
    """Get database URL from environment, or the local SQLite default."""
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)
