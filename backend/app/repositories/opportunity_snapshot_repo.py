from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

from pydantic import ValidationError

from app.modules.risk.models import Opportunity
from app.observability.logging import get_logger
from app.repositories.base_repository import OpportunitySnapshotProvider
from app.settings import settings

log = get_logger("opportunity_snapshot_repo")


class InMemoryOpportunityRepo(OpportunitySnapshotProvider):
    """
    Snapshot provider backed by an in-process list.

    Insertion order is preserved; it is the tie-break order of the radar.
    """

    def __init__(self, opportunities: Iterable[Opportunity] | None = None):
        self._items: dict[str, Opportunity] = {}
        for opp in opportunities or []:
            if opp.id in self._items:
                # Last row wins; the earlier snapshot drops out of the radar.
                log.warning("opportunity_duplicate_id", opportunity_id=opp.id)
            self._items[opp.id] = opp

    def get(self, id: str) -> Opportunity | None:
        return self._items.get(str(id or "").strip())

    def list_opportunities(self) -> list[Opportunity]:
        return list(self._items.values())


def parse_opportunities(raw: Any) -> list[Opportunity]:
    """
    Parse a list of opportunity dicts, skipping rows that fail validation.
    """
    rows = raw if isinstance(raw, list) else []
    out: list[Opportunity] = []
    for i, row in enumerate(rows):
        try:
            out.append(Opportunity.model_validate(row))
        except ValidationError as e:
            log.warning("opportunity_row_invalid", index=i, errors=e.error_count())
    return out


def load_seed_file(path: str | Path) -> list[Opportunity]:
    p = Path(path)
    data = json.loads(p.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("opportunities")
    opps = parse_opportunities(data)
    log.info("opportunity_seed_loaded", path=str(p), count=len(opps))
    return opps


@lru_cache(maxsize=1)
def get_opportunity_repo() -> OpportunitySnapshotProvider:
    seed = str(settings.opportunities_seed_path or "").strip()
    if not seed:
        return InMemoryOpportunityRepo()
    return InMemoryOpportunityRepo(load_seed_file(seed))
