"""Version probe pipeline — ordered strategies with early exit."""

from __future__ import annotations

import structlog

from jdowser.probe.models import ProbeTarget, VersionRecord
from jdowser.probe.strategies import ProbeStrategy, default_strategies

log = structlog.get_logger("jdowser.probe")


class VersionProbe:
    """Run probe strategies in priority order until one succeeds.

    All strategies fill the same record, so fields found by a failed
    earlier strategy survive into later ones. When every strategy fails the
    record is returned as-is, possibly empty; that is not an error.
    """

    def __init__(
        self,
        strategies: list[ProbeStrategy] | None = None,
        allow_running_java: bool = True,
        env: dict[str, str] | None = None,
    ) -> None:
        self.strategies = strategies if strategies is not None else default_strategies(env)
        self.allow_running_java = allow_running_java

    def probe(self, target: ProbeTarget) -> VersionRecord:
        record = VersionRecord()
        for strategy in self.strategies:
            if strategy.executes_runtime and not self.allow_running_java:
                continue
            if not strategy.applies(target):
                continue
            if strategy.attempt(target, record):
                log.debug("probe.succeeded", strategy=strategy.name, libjvm=target.libjvm)
                return record
            log.debug("probe.fell_through", strategy=strategy.name, libjvm=target.libjvm)

        log.info("probe.version_unknown", libjvm=target.libjvm)
        return record
