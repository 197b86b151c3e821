"""
Ordered rule chains.

A chain is a list of ``Rule(name, predicate, build)``; ``first_match`` returns the
outcome of the first rule whose predicate holds. Precedence is the list order,
so the order itself is data that tests can inspect.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

Ctx = TypeVar("Ctx")
Out = TypeVar("Out")


class NoRuleMatched(LookupError):
    """Raised when a chain without a catch-all rule falls through."""


@dataclass(frozen=True)
class Rule(Generic[Ctx, Out]):
    name: str
    predicate: Callable[[Ctx], bool]
    build: Callable[[Ctx], Out]


def always(_ctx: object) -> bool:
    """Predicate for a chain's terminal default rule."""
    return True


def first_match(rules: Sequence[Rule[Ctx, Out]], ctx: Ctx) -> Out:
    for rule in rules:
        if rule.predicate(ctx):
            return rule.build(ctx)
    raise NoRuleMatched(f"No rule matched among {[r.name for r in rules]}")


def matching_rule(rules: Sequence[Rule[Ctx, Out]], ctx: Ctx) -> Rule[Ctx, Out] | None:
    """Return the rule that would fire, without building its outcome."""
    return next((rule for rule in rules if rule.predicate(ctx)), None)
