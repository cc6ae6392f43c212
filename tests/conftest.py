"""
Pytest configuration and shared fixtures.
"""
import itertools
import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from crm.core.config import reset_settings
from crm.core.database import reset_engine
from crm.core.models import (
    Base, Customer, CustomerType, Lead, Contact, Interaction, Opportunity,
    Ticket, Activity,
)


@pytest.fixture(scope="function")
def clean_env(monkeypatch):
    """
    Clean environment for testing.

    Removes all app-related env vars to ensure clean state.
    """
    env_vars = [
        "DATABASE_URL",
        "DB_POOL_SIZE",
        "DB_MAX_OVERFLOW",
        "DB_ECHO",
        "LOG_LEVEL",
        "CUSTOMER_NAME_THRESHOLD",
        "CUSTOMER_ADDRESS_THRESHOLD",
        "LEAD_NAME_THRESHOLD",
        "LEAD_COMPANY_THRESHOLD",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)

    # Reset settings and engine singletons
    reset_settings()
    reset_engine()

    yield

    # Reset again after test
    reset_settings()
    reset_engine()


@pytest.fixture(scope="function")
def test_db():
    """
    Create an in-memory SQLite database for testing.

    Fresh database for each test.
    """
    engine = create_engine("sqlite:///:memory:")

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def tenant_id():
    return f"tenant-{str(uuid.uuid4())[:8]}"


@pytest.fixture
def other_tenant_id():
    return f"tenant-{str(uuid.uuid4())[:8]}"


# =============================================================================
# Record factories
# =============================================================================

@pytest.fixture
def _clock():
    """Strictly increasing created_at values so 'oldest first' is deterministic."""
    start = datetime(2026, 1, 1, 9, 0, 0)
    counter = itertools.count()
    return lambda: start + timedelta(seconds=next(counter))


@pytest.fixture
def add_customer(test_db, tenant_id, _clock):
    """Insert a customer (defaults: individual, tenant_id fixture)."""
    def _add(**kwargs):
        kwargs.setdefault("tenant_id", tenant_id)
        kwargs.setdefault("name", "Unnamed Customer")
        kwargs.setdefault("type", CustomerType.INDIVIDUAL)
        kwargs.setdefault("created_at", _clock())
        customer = Customer(**kwargs)
        test_db.add(customer)
        test_db.commit()
        test_db.refresh(customer)
        return customer
    return _add


@pytest.fixture
def add_lead(test_db, tenant_id, _clock):
    """Insert a lead."""
    def _add(**kwargs):
        kwargs.setdefault("tenant_id", tenant_id)
        kwargs.setdefault("title", "Inbound enquiry")
        kwargs.setdefault("created_at", _clock())
        lead = Lead(**kwargs)
        test_db.add(lead)
        test_db.commit()
        test_db.refresh(lead)
        return lead
    return _add


@pytest.fixture
def add_dependent(test_db, tenant_id, _clock):
    """Insert a dependent row (Contact, Interaction, Opportunity, Ticket, Activity)."""
    required = {
        Contact: {"first_name": "Pat"},
        Interaction: {"subject": "Intro call"},
        Opportunity: {"name": "Renewal"},
        Ticket: {"subject": "Cannot log in"},
        Activity: {"subject": "Follow up"},
    }

    def _add(model, **kwargs):
        for key, value in required[model].items():
            kwargs.setdefault(key, value)
        kwargs.setdefault("tenant_id", tenant_id)
        kwargs.setdefault("created_at", _clock())
        row = model(**kwargs)
        test_db.add(row)
        test_db.commit()
        test_db.refresh(row)
        return row
    return _add
