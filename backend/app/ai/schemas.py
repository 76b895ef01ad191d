from __future__ import annotations

from pydantic import BaseModel, Field


class MitigationStrategiesAI(BaseModel):
    strategies: list[str] = Field(default_factory=list)
