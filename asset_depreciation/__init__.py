"""
Asset Depreciation

Straight-line depreciation engine: category rate tables, the monthly
calculator, schedule projection, disposal settlement, and the run
orchestrator that posts to the append-only depreciation ledger.
"""

from asset_depreciation.calculator import compute_period, summarize
from asset_depreciation.categories import (
    DEFAULT_TAX_CATEGORIES,
    CategoryRegistry,
    CategoryService,
    annual_rate_from_useful_life,
    useful_life_from_annual_rate,
)
from asset_depreciation.config import DepreciationConfig
from asset_depreciation.disposal import compute_disposal, compute_partial_depreciation
from asset_depreciation.models import (
    AssetDepreciationState,
    AssetLifecycleState,
    CalculationType,
    CategoryAssignment,
    DisposalMethod,
)
from asset_depreciation.schedule import project
from asset_depreciation.service import (
    BatchRunSummary,
    DepreciationRunResult,
    DepreciationService,
    DisposalResult,
    RunStatus,
)
from asset_depreciation.store import DepreciationStore, SqlDepreciationStore

__all__ = [
    "AssetDepreciationState",
    "AssetLifecycleState",
    "BatchRunSummary",
    "CalculationType",
    "CategoryAssignment",
    "CategoryRegistry",
    "CategoryService",
    "DEFAULT_TAX_CATEGORIES",
    "DepreciationConfig",
    "DepreciationRunResult",
    "DepreciationService",
    "DepreciationStore",
    "DisposalMethod",
    "DisposalResult",
    "RunStatus",
    "SqlDepreciationStore",
    "annual_rate_from_useful_life",
    "compute_disposal",
    "compute_partial_depreciation",
    "compute_period",
    "project",
    "summarize",
    "useful_life_from_annual_rate",
]
