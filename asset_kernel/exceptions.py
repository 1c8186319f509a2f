"""
Typed Exception Hierarchy for the Depreciation Engine.

Callers catch by type and read ``code`` plus structured attributes;
nothing downstream should parse message strings.

    DepreciationEngineError (base)
    |
    +-- AssetError
    |   +-- AssetNotFoundError
    |   +-- AssetAlreadyDisposedError
    |
    +-- ConfigurationError
    |   +-- NoCategoryAssignedError
    |   +-- InvalidUsefulLifeError
    |   +-- InvalidAcquisitionCostError
    |   +-- InvalidSalvageValueError
    |
    +-- CategoryError
    |   +-- CategoryNotFoundError
    |   +-- CategoryInUseError
    |   +-- DuplicateCategoryCodeError
    |   +-- InvalidCategoryError
    |
    +-- DisposalError
    |   +-- InvalidDisposalDateError
    |   +-- InvalidDisposalProceedsError
    |
    +-- LedgerError
    |   +-- DuplicateDepreciationPeriodError
    |   +-- LedgerHistoryExistsError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

Code            | Raised when
----------------|-------------------------------------------------------------
ASSET_NOT_FOUND | Asset missing OR owned by another tenant (never
                | distinguishable, so no cross-tenant disclosure)
NO_CATEGORY     | Depreciation requested for an asset without a category
INVALID_USEFUL_LIFE / INVALID_ACQUISITION_COST / INVALID_SALVAGE_VALUE
                | Asset data cannot be depreciated until corrected
CATEGORY_IN_USE | Delete attempted while assets still reference the category
DUPLICATE_PERIOD| Ledger already holds a row for (asset_id, period_end)
LEDGER_HISTORY_EXISTS
                | Category reassignment would reset posted history
"""


class DepreciationEngineError(Exception):
    """
    Base exception for all depreciation engine errors.

    All subclasses must define a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "DEPRECIATION_ENGINE_ERROR"


# Asset-related exceptions


class AssetError(DepreciationEngineError):
    """Base exception for asset lookup and state errors."""

    code: str = "ASSET_ERROR"


class AssetNotFoundError(AssetError):
    """Asset does not exist for the given tenant."""

    code: str = "ASSET_NOT_FOUND"

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Asset not found: {asset_id}")


class AssetAlreadyDisposedError(AssetError):
    """Asset has already been disposed; no further postings apply."""

    code: str = "ASSET_DISPOSED"

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Asset {asset_id} is already disposed")


# Configuration errors -- require data correction, never retried


class ConfigurationError(DepreciationEngineError):
    """Base exception for asset data that cannot be depreciated as-is."""

    code: str = "CONFIGURATION_ERROR"


class NoCategoryAssignedError(ConfigurationError):
    """No depreciation category is assigned to the asset."""

    code: str = "NO_CATEGORY"

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"No depreciation category assigned to asset {asset_id}")


class InvalidUsefulLifeError(ConfigurationError):
    """Resolved useful life is zero or negative."""

    code: str = "INVALID_USEFUL_LIFE"

    def __init__(self, asset_id: str, useful_life_months: int):
        self.asset_id = asset_id
        self.useful_life_months = useful_life_months
        super().__init__(
            f"Invalid useful life for asset {asset_id}: "
            f"{useful_life_months} months (must be > 0)"
        )


class InvalidAcquisitionCostError(ConfigurationError):
    """Asset has no positive acquisition cost."""

    code: str = "INVALID_ACQUISITION_COST"

    def __init__(self, asset_id: str, acquisition_cost: str):
        self.asset_id = asset_id
        self.acquisition_cost = acquisition_cost
        super().__init__(
            f"Asset {asset_id} has no cost value "
            f"(acquisition_cost={acquisition_cost})"
        )


class InvalidSalvageValueError(ConfigurationError):
    """Salvage value is negative or not below acquisition cost."""

    code: str = "INVALID_SALVAGE_VALUE"

    def __init__(self, asset_id: str, salvage_value: str, acquisition_cost: str):
        self.asset_id = asset_id
        self.salvage_value = salvage_value
        self.acquisition_cost = acquisition_cost
        super().__init__(
            f"Invalid salvage value {salvage_value} for asset {asset_id} "
            f"with cost {acquisition_cost}"
        )


# Category-related exceptions


class CategoryError(DepreciationEngineError):
    """Base exception for depreciation category errors."""

    code: str = "CATEGORY_ERROR"


class CategoryNotFoundError(CategoryError):
    """Depreciation category does not exist for the tenant."""

    code: str = "CATEGORY_NOT_FOUND"

    def __init__(self, category_ref: str):
        self.category_ref = category_ref
        super().__init__(f"Depreciation category not found: {category_ref}")


class CategoryInUseError(CategoryError):
    """Category cannot be deleted while assets reference it."""

    code: str = "CATEGORY_IN_USE"

    def __init__(self, category_id: str, asset_count: int):
        self.category_id = category_id
        self.asset_count = asset_count
        super().__init__(
            f"Cannot delete category {category_id}: "
            f"{asset_count} asset(s) still reference it"
        )


class DuplicateCategoryCodeError(CategoryError):
    """Category code already exists for the tenant."""

    code: str = "DUPLICATE_CATEGORY_CODE"

    def __init__(self, category_code: str):
        self.category_code = category_code
        super().__init__(f"Depreciation category code already exists: {category_code}")


class InvalidCategoryError(CategoryError):
    """Category data is malformed (rate and useful life unusable)."""

    code: str = "INVALID_CATEGORY"

    def __init__(self, category_code: str, reason: str):
        self.category_code = category_code
        self.reason = reason
        super().__init__(f"Invalid depreciation category {category_code}: {reason}")


# Disposal-related exceptions


class DisposalError(DepreciationEngineError):
    """Base exception for disposal errors."""

    code: str = "DISPOSAL_ERROR"


class InvalidDisposalDateError(DisposalError):
    """Disposal date precedes purchase date or last posted period."""

    code: str = "INVALID_DISPOSAL_DATE"

    def __init__(self, asset_id: str, disposal_date: str, reason: str):
        self.asset_id = asset_id
        self.disposal_date = disposal_date
        self.reason = reason
        super().__init__(
            f"Invalid disposal date {disposal_date} for asset {asset_id}: {reason}"
        )


class InvalidDisposalProceedsError(DisposalError):
    """Proceeds are negative, or a sale reports no proceeds."""

    code: str = "INVALID_DISPOSAL_PROCEEDS"

    def __init__(self, asset_id: str, proceeds: str, disposal_method: str):
        self.asset_id = asset_id
        self.proceeds = proceeds
        self.disposal_method = disposal_method
        super().__init__(
            f"Invalid proceeds {proceeds} for {disposal_method} disposal "
            f"of asset {asset_id}"
        )


# Ledger-related exceptions


class LedgerError(DepreciationEngineError):
    """Base exception for depreciation ledger errors."""

    code: str = "LEDGER_ERROR"


class DuplicateDepreciationPeriodError(LedgerError):
    """A ledger record already exists for (asset_id, period_end)."""

    code: str = "DUPLICATE_PERIOD"

    def __init__(self, asset_id: str, period_end: str):
        self.asset_id = asset_id
        self.period_end = period_end
        super().__init__(
            f"Depreciation already recorded for asset {asset_id} "
            f"for period ending {period_end}"
        )


class LedgerHistoryExistsError(LedgerError):
    """Category reassignment would reset an asset with posted history."""

    code: str = "LEDGER_HISTORY_EXISTS"

    def __init__(self, asset_id: str, record_count: int):
        self.asset_id = asset_id
        self.record_count = record_count
        super().__init__(
            f"Asset {asset_id} has {record_count} posted depreciation record(s); "
            "pass force=True to reset its depreciation state"
        )


# Immutability-related exceptions


class ImmutabilityError(DepreciationEngineError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only ledger record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
