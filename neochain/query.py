"""
Immutable Cypher query values.

A ``Query`` is a tuple of ``(kind, text)`` clauses plus the parameters those
clauses reference. Every builder method returns a new ``Query``; nothing is
mutated, so a query can be shared between chains and extended independently.

Rendering splits the clauses into segments at each ``WITH``. Inside a segment
clauses are emitted in Cypher's order regardless of the order they were
added. Callers that must keep their own order (a filter added after a LIMIT,
a second SKIP) call :meth:`Query.seal_before` first, which closes the
segment with ``WITH *`` whenever the new clause would otherwise move ahead
of an existing one.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from neochain.exceptions import InvalidArgument

# special operators
IN = "IN"
IS_NULL = "IS NULL"
IS_NOT_NULL = "IS NOT NULL"
REGEX = "=~"

_UNARY_OPERATORS = (IS_NULL, IS_NOT_NULL)

# position of each clause kind inside a rendered segment
_CLAUSE_RANK = {
    "match": 0,
    "where": 0,
    "optional_match": 1,
    "create": 2,
    "set": 3,
    "delete": 4,
    "return": 5,
    "order": 6,
    "skip": 7,
    "limit": 8,
}
_SINGLE_VALUED = ("skip", "limit")


@dataclass(frozen=True)
class Comparison:
    """A value paired with an explicit comparison operator, e.g. ``Comparison('<', 5)``."""

    operator: str
    value: Any = None


def _as_int(value: Any, clause: str) -> int:
    if isinstance(value, bool):
        raise InvalidArgument(f"{clause} expects an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgument(f"{clause} expects an integer, got {value!r}") from exc


def _place_holder_base(lhs: str) -> str:
    return re.sub(r"\W+", "_", lhs).strip("_") or "param"


def _comparison_for(value: Any) -> Comparison:
    if isinstance(value, Comparison):
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        return Comparison(IN, list(value))
    if value is None:
        return Comparison(IS_NULL)
    if isinstance(value, re.Pattern):
        return Comparison(REGEX, value.pattern)
    return Comparison("=", value)


class Query:
    def __init__(
        self,
        clauses: Iterable[tuple[str, str]] = (),
        params: Optional[dict[str, Any]] = None,
    ) -> None:
        self._clauses: tuple[tuple[str, str], ...] = tuple(clauses)
        self._params: dict[str, Any] = dict(params or {})

    def _extend(
        self, *clauses: tuple[str, str], params: Optional[dict[str, Any]] = None
    ) -> "Query":
        merged = dict(self._params)
        if params:
            merged.update(params)
        return Query(self._clauses + clauses, merged)

    @staticmethod
    def _register_place_holder(base: str, params: dict[str, Any]) -> str:
        number = 1
        while f"{base}_{number}" in params:
            number += 1
        return f"{base}_{number}"

    def _predicates(self, lhs: str, value: Any, params: dict[str, Any]) -> str:
        comparison = _comparison_for(value)
        if comparison.operator in _UNARY_OPERATORS:
            return f"{lhs} {comparison.operator}"
        place_holder = self._register_place_holder(_place_holder_base(lhs), params)
        params[place_holder] = comparison.value
        return f"{lhs} {comparison.operator} ${place_holder}"

    # builders

    def match(self, *patterns: str) -> "Query":
        return self._extend(*(("match", pattern) for pattern in patterns))

    def optional_match(self, *patterns: str) -> "Query":
        return self._extend(*(("optional_match", pattern) for pattern in patterns))

    def where(self, condition: Any) -> "Query":
        """
        Add one or more predicates.

        ``condition`` may be a raw string, ``{var: {prop: value}}`` or
        ``{expression: value}``. The shape of each value picks the operator,
        see :class:`Comparison`.
        """
        if isinstance(condition, str):
            return self._extend(("where", f"({condition})"))
        if not isinstance(condition, dict):
            raise InvalidArgument(f"Unsupported where condition: {condition!r}")

        params = dict(self._params)
        predicates = []
        for key, value in condition.items():
            if isinstance(value, dict):
                for prop, prop_value in value.items():
                    predicates.append(
                        self._predicates(f"{key}.{prop}", prop_value, params)
                    )
            else:
                predicates.append(self._predicates(key, value, params))
        return Query(
            self._clauses + tuple(("where", predicate) for predicate in predicates),
            params,
        )

    def order(self, *specs: str) -> "Query":
        return self._extend(*(("order", spec) for spec in specs))

    def skip(self, amount: Any) -> "Query":
        return self._extend(("skip", str(_as_int(amount, "SKIP"))))

    def limit(self, amount: Any) -> "Query":
        return self._extend(("limit", str(_as_int(amount, "LIMIT"))))

    def with_(self, *items: str) -> "Query":
        return self._extend(("with", ", ".join(items)))

    def set(self, updates: Any) -> "Query":
        if isinstance(updates, str):
            return self._extend(("set", updates))
        if not isinstance(updates, dict):
            raise InvalidArgument(f"Unsupported SET argument: {updates!r}")

        params = dict(self._params)
        assignments = []
        for var, values in updates.items():
            for prop, value in values.items():
                lhs = f"{var}.{prop}"
                place_holder = self._register_place_holder(
                    _place_holder_base(lhs), params
                )
                params[place_holder] = value
                assignments.append(("set", f"{lhs} = ${place_holder}"))
        return Query(self._clauses + tuple(assignments), params)

    def delete(self, *items: str) -> "Query":
        return self._extend(("delete", ", ".join(items)))

    def create(self, *patterns: str) -> "Query":
        return self._extend(*(("create", pattern) for pattern in patterns))

    def return_(self, *items: str) -> "Query":
        return self._extend(("return", ", ".join(items)))

    def params(self, **params: Any) -> "Query":
        return self._extend(params=params)

    # inspection

    @property
    def clauses(self) -> tuple[tuple[str, str], ...]:
        return self._clauses

    @property
    def parameters(self) -> dict[str, Any]:
        return dict(self._params)

    def _segments(self) -> list[list[tuple[str, str]]]:
        segments: list[list[tuple[str, str]]] = [[]]
        for kind, text in self._clauses:
            segments[-1].append((kind, text))
            if kind == "with":
                segments.append([])
        return segments

    @property
    def is_paginated(self) -> bool:
        """True when the last segment carries ORDER BY, SKIP or LIMIT."""
        return any(
            kind in ("order", "skip", "limit") for kind, _ in self._segments()[-1]
        )

    def seal_before(self, kind: str) -> "Query":
        """
        Return a query to which a ``kind`` clause can be added without being
        rendered ahead of clauses already in the last segment. SKIP and LIMIT
        also seal when the segment already has one, so neither is replaced.
        """
        rank = _CLAUSE_RANK[kind]
        for existing, _ in self._segments()[-1]:
            if _CLAUSE_RANK.get(existing, -1) > rank or (
                existing == kind and kind in _SINGLE_VALUED
            ):
                return self.with_("*")
        return self

    @staticmethod
    def _render_segment(segment: list[tuple[str, str]]) -> list[str]:
        by_kind: dict[str, list[str]] = {}
        for kind, text in segment:
            by_kind.setdefault(kind, []).append(text)

        parts = [f"MATCH {pattern}" for pattern in by_kind.get("match", [])]
        if by_kind.get("where"):
            # a filter opening a sealed segment hangs off its own WITH
            keyword = "WHERE" if parts else "WITH * WHERE"
            parts.append(f"{keyword} " + " AND ".join(by_kind["where"]))
        parts.extend(
            f"OPTIONAL MATCH {pattern}" for pattern in by_kind.get("optional_match", [])
        )
        parts.extend(f"CREATE {pattern}" for pattern in by_kind.get("create", []))
        if by_kind.get("set"):
            parts.append("SET " + ", ".join(by_kind["set"]))
        if by_kind.get("delete"):
            parts.append("DELETE " + ", ".join(by_kind["delete"]))

        # a segment ends with either its WITH or the final RETURN
        projection = by_kind.get("with") or by_kind.get("return")
        if projection:
            keyword = "WITH" if "with" in by_kind else "RETURN"
            parts.append(f"{keyword} {projection[-1]}")
        if by_kind.get("order"):
            parts.append("ORDER BY " + ", ".join(by_kind["order"]))
        if by_kind.get("skip"):
            parts.append(f"SKIP {by_kind['skip'][-1]}")
        if by_kind.get("limit"):
            parts.append(f"LIMIT {by_kind['limit'][-1]}")
        return parts

    def to_cypher(self) -> str:
        parts: list[str] = []
        for segment in self._segments():
            parts.extend(self._render_segment(segment))
        return " ".join(parts)

    def __str__(self) -> str:
        return self.to_cypher()

    def __repr__(self) -> str:
        return f"<Query {self.to_cypher()!r} {self._params!r}>"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Query):
            return NotImplemented
        return self._clauses == other._clauses and self._params == other._params

    def __hash__(self) -> int:
        return hash(self._clauses)
