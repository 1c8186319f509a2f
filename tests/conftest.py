"""
Pytest fixtures for the depreciation engine test suite.

Provides:
- Database sessions (in-memory SQLite by default) with per-test rollback
- Deterministic clock, tenant ids, and category / asset factories
- Structured log capture

Environment Variables:
- DATABASE_URL: Database URL for the suite.  Defaults to in-memory SQLite;
  set a postgresql:// URL to run the same tests against PostgreSQL.
"""

import json
import logging
import os
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from asset_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from asset_kernel.domain.clock import DeterministicClock
from asset_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from asset_depreciation.categories import CategoryService
from asset_depreciation.config import DepreciationConfig
from asset_depreciation.models import Asset, AssetStatus
from asset_depreciation.orm import AssetModel
from asset_depreciation.service import DepreciationService

DEFAULT_TEST_DATABASE_URL = "sqlite://"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture asset_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, depreciation_service):
            depreciation_service.run_for_asset(...)
            logs = captured_logs()
            assert any(r["message"] == "depreciation_posted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("asset_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_TEST_DATABASE_URL)


@pytest.fixture(scope="session")
def db_engine():
    engine = init_engine_from_url(get_database_url())
    yield engine
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    create_tables()
    yield True
    drop_tables()


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    The session joins an outer transaction on a dedicated connection:
    ``session.commit()`` inside the code under test releases a savepoint,
    and teardown rolls the outer transaction back, undoing every change
    the test made.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def test_actor_id() -> UUID:
    return uuid4()


@pytest.fixture
def depreciation_config() -> DepreciationConfig:
    return DepreciationConfig.with_defaults()


@pytest.fixture
def category_service(session) -> CategoryService:
    return CategoryService(session)


@pytest.fixture
def depreciation_service(session, deterministic_clock, depreciation_config) -> DepreciationService:
    return DepreciationService(
        session,
        clock=deterministic_clock,
        config=depreciation_config,
    )


@pytest.fixture
def create_category(category_service, tenant_id):
    """Factory for persisted categories.  Defaults to a 1-year, 100% category."""

    def _create(
        code: str = "EQUIP",
        name: str = "Test Equipment",
        annual_rate_percent: Decimal | None = None,
        useful_life_years: int | None = 1,
        salvage_value_percent: Decimal = Decimal("0"),
        tenant: UUID | None = None,
    ):
        return category_service.create_category(
            tenant_id=tenant or tenant_id,
            code=code,
            name=name,
            annual_rate_percent=annual_rate_percent,
            useful_life_years=useful_life_years,
            salvage_value_percent=salvage_value_percent,
        )

    return _create


@pytest.fixture
def create_asset(session, tenant_id):
    """
    Factory for persisted assets.

    Returns the asset id.  Running totals default to a freshly assigned
    asset (accumulated 0, net book value = cost).
    """

    def _create(
        acquisition_cost: Decimal = Decimal("12000"),
        purchase_date: date | None = date(2024, 1, 1),
        category_id: UUID | None = None,
        salvage_value: Decimal | None = None,
        custom_useful_life_months: int | None = None,
        depreciation_start_date: date | None = None,
        accumulated_depreciation: Decimal = Decimal("0"),
        last_depreciation_period_end: date | None = None,
        is_fully_depreciated: bool = False,
        status: AssetStatus = AssetStatus.ACTIVE,
        asset_tag: str | None = None,
        tenant: UUID | None = None,
    ) -> UUID:
        asset = Asset(
            id=uuid4(),
            tenant_id=tenant or tenant_id,
            acquisition_cost=acquisition_cost,
            asset_tag=asset_tag,
            purchase_date=purchase_date,
            status=status,
            category_id=category_id,
            salvage_value=salvage_value,
            custom_useful_life_months=custom_useful_life_months,
            depreciation_start_date=depreciation_start_date or purchase_date,
            accumulated_depreciation=accumulated_depreciation,
            net_book_value=acquisition_cost - accumulated_depreciation,
            last_depreciation_period_end=last_depreciation_period_end,
            is_fully_depreciated=is_fully_depreciated,
        )
        session.add(AssetModel.from_dto(asset))
        # Commit releases the test savepoint so a service rollback keeps the asset
        session.commit()
        return asset.id

    return _create


@pytest.fixture
def load_asset(session):
    """Reload an asset from the database as a frozen DTO."""

    def _load(asset_id: UUID) -> Asset:
        session.expire_all()
        return session.get(AssetModel, asset_id).to_dto()

    return _load
