"""Query ledger - one auditable row per acquisition attempt."""

from sintillio.ledger.reconciler import LedgerReconciler
from sintillio.ledger.repository import LedgerRepository
from sintillio.ledger.schemas import (
    AcquisitionQuery,
    CryptoQueryConfig,
    LedgerPatch,
    QueryStatus,
    SearchQueryConfig,
)

__all__ = [
    "AcquisitionQuery",
    "CryptoQueryConfig",
    "LedgerPatch",
    "LedgerReconciler",
    "LedgerRepository",
    "QueryStatus",
    "SearchQueryConfig",
]
