"""
Lock Order Data Models — Acquisition pairs, witnesses, and detected cycles.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from hyplint.models.diagnostic_models import Location


class Witness(BaseModel):
    """Where a 'held while acquiring' relationship was observed."""

    model_config = ConfigDict(frozen=True)

    function: str = Field(..., description="Qualified function name, e.g. 'Bank::transfer'")
    location: Location

    def sort_key(self) -> tuple:
        return (self.location.sort_key(), self.function)


class LockOrderPair(BaseModel):
    """Lock ``held`` was held when lock ``acquired`` was taken."""

    model_config = ConfigDict(frozen=True)

    held: str
    acquired: str
    witness: Witness


class LockCycle(BaseModel):
    """A closed chain of lock-order edges, rotated to its smallest lock."""

    model_config = ConfigDict(frozen=True)

    locks: tuple[str, ...] = Field(..., description="Cycle nodes; the last edge returns to locks[0]")
    witnesses: tuple[tuple[Witness, ...], ...] = Field(
        ..., description="Witnesses per edge, in cycle order"
    )

    @property
    def edges(self) -> list[tuple[str, str]]:
        n = len(self.locks)
        return [(self.locks[i], self.locks[(i + 1) % n]) for i in range(n)]

    def describe(self) -> str:
        return " -> ".join([*self.locks, self.locks[0]])
