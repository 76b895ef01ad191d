from __future__ import annotations

"""
Central inventory of AI purposes used across the app.

Purpose strings tag log events and pick per-purpose token caps, so keep them
in one place.
"""

from dataclasses import dataclass
from typing import Literal


AiPurpose = Literal[
    "mitigation_strategies",
]


@dataclass(frozen=True)
class PurposeDefaults:
    kind: Literal["json", "text"]
    max_tokens_default: int
    temperature: float


PURPOSE_DEFAULTS: dict[str, PurposeDefaults] = {
    "mitigation_strategies": PurposeDefaults(kind="json", max_tokens_default=600, temperature=0.3),
}


def defaults_for(purpose: str) -> PurposeDefaults:
    return PURPOSE_DEFAULTS.get(
        str(purpose or "").strip().lower(),
        PurposeDefaults(kind="json", max_tokens_default=600, temperature=0.2),
    )
