"""
Pytest fixtures for the catering ledger test suite.

Provides:
- Deterministic clock and id factory
- Actors and permission presets
- Command contexts with the configured lost reasons and competitors
- In-memory and SQLite-backed document stores
- Event / client builders persisted through the kernel services
- Captured structured logs

Environment Variables:
- DATABASE_URL: database for the SQL store fixtures.  Defaults to an
  in-memory SQLite database.
"""

import json
import logging
import os
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from catering_config import clear_config_cache, get_active_config
from catering_kernel.db.document_store import InMemoryDocumentStore, SqlDocumentStore
from catering_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from catering_kernel.domain.clock import DeterministicClock
from catering_kernel.domain.commands import CommandContext, LostReasonRule
from catering_kernel.domain.models import Actor, Event
from catering_kernel.domain.permissions import AppPermissions
from catering_kernel.domain.values import PermissionLevel
from catering_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from catering_kernel.services import ClientService, LedgerService, LifecycleService
from catering_services.ledger_orchestrator import LedgerOrchestrator

DEFAULT_DATABASE_URL = "sqlite:///:memory:"

LOST_REASONS = {
    "Budget": LostReasonRule(code="Budget", label="Budget"),
    "Competition": LostReasonRule(
        code="Competition", label="Competition", requires_competitor=True
    ),
}
COMPETITORS = {"comp-royal": "Royal Caterers"}


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
    Capture catering_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger_service):
            ledger_service.create_charge(...)
            logs = captured_logs()
            assert any(r["message"] == "charge_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("catering_kernel")
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
# Time, identity, permissions
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock()


@pytest.fixture
def id_factory():
    """Sequential ids: id-1, id-2, ..."""
    counter = {"n": 0}

    def _next() -> str:
        counter["n"] += 1
        return f"id-{counter['n']}"

    return _next


@pytest.fixture
def actor():
    return Actor(actor_id="u1", actor_name="Asha Manager")


@pytest.fixture
def other_actor():
    return Actor(actor_id="u2", actor_name="Ravi Accounts")


@pytest.fixture
def full_permissions():
    return AppPermissions.full_access()


@pytest.fixture
def view_only_permissions():
    return AppPermissions(
        finance_core=PermissionLevel.VIEW,
        finance_charges=PermissionLevel.VIEW,
        finance_payments=PermissionLevel.VIEW,
        finance_expenses=PermissionLevel.VIEW,
        clients_and_events=PermissionLevel.VIEW,
    )


def make_context(actor, permissions, clock, id_factory=None) -> CommandContext:
    kwargs = {}
    if id_factory is not None:
        kwargs["id_factory"] = id_factory
    return CommandContext(
        actor=actor,
        permissions=permissions,
        clock=clock,
        lost_reasons=LOST_REASONS,
        competitors=COMPETITORS,
        **kwargs,
    )


@pytest.fixture
def ctx(actor, full_permissions, deterministic_clock, id_factory):
    """Full-access context for actor u1."""
    return make_context(actor, full_permissions, deterministic_clock, id_factory)


@pytest.fixture
def context_with(actor, deterministic_clock, id_factory):
    """Factory for contexts with other permissions or actors."""

    def _make(permissions, acting=actor):
        return make_context(acting, permissions, deterministic_clock, id_factory)

    return _make


# =============================================================================
# Aggregate builders (pure)
# =============================================================================


@pytest.fixture
def make_event():
    """Build an Event value without going through the store."""

    def _make(**overrides) -> Event:
        fields = {
            "id": "evt-1",
            "client_id": "cli-1",
            "event_type": "Wedding",
            "start_date": date(2024, 3, 15),
            "location": "Main Hall",
            "pax": 100,
            "per_pax_price": Decimal("500"),
        }
        fields.update(overrides)
        return Event(**fields)

    return _make


# =============================================================================
# Stores and services
# =============================================================================


@pytest.fixture
def memory_store():
    return InMemoryDocumentStore()


@pytest.fixture
def sql_store():
    """SqlDocumentStore on a fresh schema."""
    init_engine_from_url(os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL))
    create_tables()
    yield SqlDocumentStore(get_session_factory())
    drop_tables()
    reset_engine()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Both store implementations, for tests of the shared contract."""
    if request.param == "memory":
        return InMemoryDocumentStore()
    return request.getfixturevalue("sql_store")


@pytest.fixture
def lifecycle_service(memory_store):
    return LifecycleService(memory_store)


@pytest.fixture
def ledger_service(memory_store):
    return LedgerService(memory_store)


@pytest.fixture
def client_service(memory_store):
    return ClientService(memory_store)


@pytest.fixture
def stored_event(lifecycle_service, ctx):
    """A persisted lead: variable pricing, 100 pax at 500."""
    event = lifecycle_service.create_event(
        ctx,
        client_id="cli-1",
        event_type="Wedding",
        start_date=date(2024, 3, 15),
        location="Main Hall",
        pax=100,
    )
    return lifecycle_service.update_core_figures(
        event.id, ctx, per_pax_price=Decimal("500"), reason="Quote agreed"
    )


# =============================================================================
# Configuration and orchestrator
# =============================================================================


@pytest.fixture
def ledger_config():
    clear_config_cache()
    yield get_active_config()
    clear_config_cache()


@pytest.fixture
def orchestrator(memory_store, ledger_config, deterministic_clock, id_factory):
    return LedgerOrchestrator(
        memory_store, ledger_config, clock=deterministic_clock, id_factory=id_factory
    )
