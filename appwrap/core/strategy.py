"""
Execution strategies and the selector that resolves ``auto``.

The selector is a pure function of the requested strategy, the tool's
allow-list and auto-detect rules, and a ProbeResult gathered beforehand.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .errors import NoStrategyAvailable, UnsupportedStrategy


class ExecutionStrategy(str, Enum):
    PACKAGE = 'package'
    SHARED_PACKAGE = 'cdc-shared-package'
    SINGULARITY = 'singularity'
    SHARED_SINGULARITY = 'cdc-shared-singularity'
    DOCKER = 'docker'
    ENVIRONMENT = 'environment'
    MODULE = 'module'
    AUTO = 'auto'

    @classmethod
    def parse(cls, name: str) -> 'ExecutionStrategy':
        """
        Parse an execution method name, accepting the generic aliases.

        Raises:
            UnsupportedStrategy: If the name is not a known strategy
        """
        key = (name or '').strip().lower()
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise UnsupportedStrategy(f'Invalid execution method: {name}')

    @property
    def is_container(self) -> bool:
        return self in CONTAINER_STRATEGIES

    def __str__(self) -> str:
        return self.value


_ALIASES = {
    'shared-package': 'cdc-shared-package',
    'container-local': 'singularity',
    'container-shared': 'cdc-shared-singularity',
    'native': 'environment',
    'cdc-module': 'module',
    'cdc-package': 'cdc-shared-package',
    'cdc-singularity': 'cdc-shared-singularity',
}

CONTAINER_STRATEGIES = frozenset(
    {ExecutionStrategy.SINGULARITY, ExecutionStrategy.SHARED_SINGULARITY, ExecutionStrategy.DOCKER}
)

# Container engine each container strategy needs on the host
ENGINE_FOR_STRATEGY = {
    ExecutionStrategy.SINGULARITY: 'singularity',
    ExecutionStrategy.SHARED_SINGULARITY: 'singularity',
    ExecutionStrategy.DOCKER: 'docker',
}


@dataclass(frozen=True)
class ProbeResult:
    """Host facts observed once per invocation."""

    runtimes: Dict[str, bool] = field(default_factory=dict)
    files: Dict[str, bool] = field(default_factory=dict)

    def has_runtime(self, name: str) -> bool:
        return bool(self.runtimes.get(name, False))

    def has_file(self, path: str) -> bool:
        return bool(self.files.get(path, False))


@dataclass(frozen=True)
class AutoRule:
    """One step of a tool's auto-detect priority list."""

    strategy: ExecutionStrategy
    runtime: Optional[str] = None
    file: Optional[str] = None

    def satisfied_by(self, probe: ProbeResult) -> bool:
        if self.runtime and not probe.has_runtime(self.runtime):
            return False
        if self.file and not probe.has_file(self.file):
            return False
        return True


def select_strategy(
    requested: ExecutionStrategy,
    probe: ProbeResult,
    allow_list: Iterable[ExecutionStrategy],
    auto_rules: Sequence[AutoRule] = (),
) -> ExecutionStrategy:
    """
    Map a requested strategy to exactly one concrete strategy.

    Args:
        requested: Strategy asked for by the caller, possibly AUTO
        probe: Host facts used to evaluate auto-detect rules
        allow_list: Strategies the tool declares support for
        auto_rules: Priority ordered rules, most self-contained backend first

    Returns:
        A concrete member of allow_list (never AUTO)

    Raises:
        UnsupportedStrategy: requested is not in allow_list
        NoStrategyAvailable: AUTO was requested and no rule is satisfied
    """
    allowed: Tuple[ExecutionStrategy, ...] = tuple(allow_list)
    if requested not in allowed:
        raise UnsupportedStrategy(f'Invalid execution method: {requested}')

    if requested is not ExecutionStrategy.AUTO:
        return requested

    for rule in auto_rules:
        if rule.strategy is ExecutionStrategy.AUTO or rule.strategy not in allowed:
            continue
        if rule.satisfied_by(probe):
            return rule.strategy

    raise NoStrategyAvailable('Valid execution method not detected')
