"""
Shared fixtures: a fresh SQLite ledger per test and helpers to seed it.

DATABASE_URL must be set before commission_ledger.config is imported; the
module-level engine it builds is never used by the tests.
"""
import os
import uuid
from datetime import timedelta
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import pytest

from commission_ledger.database import build_engine, build_session_factory, init_db
from commission_ledger.models.commission import utcnow
from commission_ledger.services import CommissionService


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def vendor_id():
    return uuid.uuid4()


@pytest.fixture
def admin_id():
    return uuid.uuid4()


@pytest.fixture
def seed_commissions(db):
    """
    Record commissions for a vendor, oldest first, one hour apart and ten
    days in the past.
    """
    async def _seed(vendor_id, amounts, start=None):
        service = CommissionService(db)
        start = start or utcnow() - timedelta(days=10)
        records = []
        for offset, amount in enumerate(amounts):
            records.append(
                await service.record_commission(
                    order_id=uuid.uuid4(),
                    vendor_id=vendor_id,
                    doctor_id=None,
                    amount=amount,
                    rate=Decimal("10.00"),
                    created_at=start + timedelta(hours=offset),
                )
            )
        return records

    return _seed
