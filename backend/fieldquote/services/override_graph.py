from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Mapping, Set


@dataclass(frozen=True)
class OverrideGraph:
    """Dependency declaration for override-eligible fields.

    ``inputs[field]`` names the QuoteInput attributes whose change invalidates
    an override on ``field``; ``upstream[field]`` names the fields it is
    computed from. Invalidation follows upstream edges in reverse.
    """

    inputs: Mapping[str, FrozenSet[str]]
    upstream: Mapping[str, FrozenSet[str]]

    @property
    def fields(self) -> FrozenSet[str]:
        return frozenset(self.inputs) | frozenset(self.upstream)

    def __contains__(self, field: object) -> bool:
        return field in self.inputs or field in self.upstream

    def direct_downstream(self, field: str) -> Set[str]:
        return {name for name, parents in self.upstream.items() if field in parents}

    def downstream(self, roots: Iterable[str]) -> Set[str]:
        """Every field transitively computed from any of ``roots``."""
        seen: Set[str] = set()
        stack = list(roots)
        while stack:
            current = stack.pop()
            for child in self.direct_downstream(current):
                if child not in seen:
                    seen.add(child)
                    stack.append(child)
        return seen

    def fields_depending_on_input(self, name: str) -> Set[str]:
        return {field for field, deps in self.inputs.items() if name in deps}

    def invalidated_by_input(self, name: str) -> Set[str]:
        direct = self.fields_depending_on_input(name)
        return direct | self.downstream(direct)
