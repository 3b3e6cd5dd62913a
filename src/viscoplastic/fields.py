"""Compositional field names and index lookup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

from viscoplastic.exceptions import ConfigurationError


@dataclass(frozen=True)
class CompositionalFields:
    """Ordered names of the compositional fields carried by the solver.

    The background material is *not* a field; per-phase parameter lists have
    ``n_fields + 1`` entries with the background first.
    """

    names: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        names = tuple(str(n) for n in self.names)
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate compositional field names: {names}")
        object.__setattr__(self, "names", names)

    @classmethod
    def from_names(cls, names: Sequence[str]) -> "CompositionalFields":
        return cls(names=tuple(names))

    @property
    def n_fields(self) -> int:
        return len(self.names)

    @property
    def n_phases(self) -> int:
        return len(self.names) + 1

    def name_exists(self, name: str) -> bool:
        return name in self.names

    def index_for_name(self, name: str) -> int:
        try:
            return self.names.index(name)
        except ValueError:
            raise ConfigurationError(
                f"No compositional field named '{name}' (fields: {list(self.names)})"
            ) from None
