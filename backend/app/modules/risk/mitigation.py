from __future__ import annotations

from ...observability.logging import get_logger
from .catalog import RiskFactorCatalog
from .generators import GeneratorError, MitigationStrategyGenerator, StrategyResult
from .models import RiskCategory, RiskCategoryEntry

log = get_logger("risk_mitigation")


class MitigationStrategyResolver:
    """
    Ordered mitigation actions for one risk.

    The authored strategy (if any) comes first, then whatever the generator
    returns. Any generator failure falls back to the static catalog, so
    resolve() never raises and a failed call still yields the catalog list
    for a known category. A successful empty generator result is kept as-is.
    """

    def __init__(self, generator: MitigationStrategyGenerator):
        self._generator = generator

    @property
    def generator_name(self) -> str:
        return str(getattr(self._generator, "name", self._generator.__class__.__name__))

    async def _attempt(self, entry: RiskCategoryEntry) -> StrategyResult:
        try:
            return await self._generator.generate([entry])
        except Exception as e:
            # Generators report failures as results; anything raised is a bug
            # in the generator and still must not reach the UI.
            log.exception("mitigation_generator_raised", generator=self.generator_name)
            return StrategyResult.failure(GeneratorError("generator_exception", str(e)))

    async def resolve(self, entry: RiskCategoryEntry, category: RiskCategory | str | None = None) -> list[str]:
        cat = category if category is not None else entry.category
        cat_value = cat.value if isinstance(cat, RiskCategory) else str(cat or "")

        out: list[str] = []
        if entry.mitigationStrategy:
            out.append(entry.mitigationStrategy)

        result = await self._attempt(entry)
        if result.ok:
            out.extend(result.strategies)
            source = self.generator_name
        else:
            err = result.error
            log.warning(
                "mitigation_generator_failed",
                generator=self.generator_name,
                category=cat_value,
                reason=err.reason if err else None,
                status_code=err.status_code if err else None,
                error=str(err) if err else None,
            )
            out.extend(RiskFactorCatalog.get(cat))
            source = "catalog"

        log.info("mitigation_resolved", category=cat_value, source=source, count=len(out))
        return out
