"""
Read-only repository interface for opportunity snapshots.

The risk engine never writes opportunities; the pipeline owns them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from app.modules.risk.models import Opportunity


class OpportunitySnapshotProvider(ABC):
    """Supplies opportunity snapshots at call time."""

    @abstractmethod
    def get(self, id: str) -> Opportunity | None:
        """Get one opportunity by ID."""
        pass

    @abstractmethod
    def list_opportunities(self) -> list[Opportunity]:
        """All current opportunities, in pipeline order."""
        pass
