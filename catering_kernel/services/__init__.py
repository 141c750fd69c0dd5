"""
Kernel services: the imperative shell that loads aggregates from the
document store, runs domain commands and writes the results back.
"""

from catering_kernel.services.base import BaseService
from catering_kernel.services.client_service import ClientService
from catering_kernel.services.ledger_service import LedgerService
from catering_kernel.services.lifecycle_service import LifecycleService

__all__ = [
    "BaseService",
    "ClientService",
    "LedgerService",
    "LifecycleService",
]
