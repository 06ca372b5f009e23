"""Service layer - orchestration across connectors, ledger and result store."""

from sintillio.services.acquisition import AcquisitionService, CryptoOutcome, SearchOutcome

__all__ = ["AcquisitionService", "CryptoOutcome", "SearchOutcome"]
