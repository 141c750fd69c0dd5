"""
Catering services -- orchestration over kernel services and configuration.

Modules:
    ledger_orchestrator  -- wires store, config and kernel services together
    reports              -- income, expense, profitability, additional-PAX,
                            monthly sales and sales funnel reports
"""

from catering_services.ledger_orchestrator import LedgerOrchestrator
from catering_services.reports import ReportFilters

__all__ = ["LedgerOrchestrator", "ReportFilters"]
