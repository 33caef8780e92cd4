"""
Process rate lookup.

Two resolution rules live here and are intentionally kept apart:

* ``resolve_process_rate`` prices a single process name. Invoice aggregation
  calls it once per process of a challan.
* ``resolve_statement_rate`` prices a whole challan from its first process
  only. Client statements show one approximate rate per challan line.

Both use the same priority: client override, then master process rate,
then zero.
"""

import logging
from typing import Dict, Iterable, Optional

from textile_erp.models import Client, DeliveryChallan, ProcessType

logger = logging.getLogger(__name__)


def normalize_process_name(name: str) -> str:
    return (name or "").strip().strip('"').strip().lower()


class RateBook:
    """Case-insensitive rate tables for one client."""

    def __init__(self, client: Optional[Client], process_types: Iterable[ProcessType]):
        self.client_name = client.name if client else None
        self._client_rates: Dict[str, float] = {}
        self._master_rates: Dict[str, float] = {}

        if client:
            for process in client.processes:
                self._client_rates.setdefault(normalize_process_name(process.process_name), process.rate)
        for process_type in process_types:
            self._master_rates.setdefault(normalize_process_name(process_type.name), process_type.rate)

    def client_rate(self, process_name: str) -> Optional[float]:
        return self._client_rates.get(normalize_process_name(process_name))

    def master_rate(self, process_name: str) -> Optional[float]:
        return self._master_rates.get(normalize_process_name(process_name))

    def resolve(self, process_name: str) -> float:
        rate = self.client_rate(process_name)
        if rate is not None:
            return rate
        rate = self.master_rate(process_name)
        if rate is not None:
            return rate
        logger.warning(
            f"⚠️ No rate found for process '{process_name}' (client: {self.client_name}); using 0"
        )
        return 0.0


def resolve_process_rate(process_name: str, client: Optional[Client], process_types: Iterable[ProcessType]) -> float:
    """Rate for one process: client override -> master rate -> 0."""
    return RateBook(client, process_types).resolve(process_name)


def resolve_statement_rate(challan: DeliveryChallan, client: Optional[Client], process_types: Iterable[ProcessType]) -> float:
    """Rate for a whole challan on a client statement, decided by its first process."""
    primary = challan.primary_process()
    if primary is None:
        return 0.0
    return RateBook(client, process_types).resolve(primary)
