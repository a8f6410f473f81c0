from __future__ import annotations

import os
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"

import scmdb  # noqa: E402,F401  registers every model on Base.metadata
from scmdb.database import Base, build_engine  # noqa: E402
from scmdb.apps.inventory import models as inventory_models  # noqa: E402


@pytest.fixture()
def engine():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def db_session(engine):
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def catalog(db_session):
    """Two warehouses and three items, committed."""
    main = inventory_models.Warehouse(code="WH-MAIN", name="Main Store")
    site = inventory_models.Warehouse(code="WH-SITE", name="Site Store")
    bolt = inventory_models.Item(item_code="BOLT-M12", description="Bolt M12", uom="EA", abc_class="A")
    cable = inventory_models.Item(item_code="CABLE-3C", description="Cable 3 core", uom="M", abc_class="B")
    valve = inventory_models.Item(item_code="VALVE-2IN", description="Gate valve 2in", uom="EA", abc_class="C")
    db_session.add_all([main, site, bolt, cable, valve])
    db_session.commit()
    return SimpleNamespace(main=main, site=site, bolt=bolt, cable=cable, valve=valve)
