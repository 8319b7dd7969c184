"""
Terminal operations: the calls that compile a chain and read results.

None of them changes the receiving chain; each compiles a derived query.
"""

from typing import TYPE_CHECKING, Any, Iterator, Optional

from neochain.constants import DISTINCT
from neochain.exceptions import InvalidArgument
from neochain.query import Query

if TYPE_CHECKING:
    from neochain.chain import Chain


class ChainMethods:
    def _run(self, query: Query, resolve_objects: bool = True) -> list:
        results, _ = self._db.cypher_query(
            query.to_cypher(), query.parameters, resolve_objects=resolve_objects
        )
        return results or []

    def count(self, distinct: Optional[str] = None, target: Optional[str] = None) -> int:
        """
        Number of matched rows, optionally ``count(DISTINCT target)``.

        :param distinct: None or ``"distinct"``
        :param target: variable to count, the root variable by default
        """
        if distinct not in (None, DISTINCT):
            raise InvalidArgument(
                f"count() accepts '{DISTINCT}' or None as a parameter, got {distinct!r}"
            )
        target = target or self._query_var
        query = self.query()
        if query.is_paginated:
            query = query.with_("*")
        expression = f"count(DISTINCT {target})" if distinct else f"count({target})"
        rows = self._run(query.return_(f"{expression} AS count"), resolve_objects=False)
        return rows[0][0] if rows else 0

    size = count

    def __len__(self) -> int:
        return self.count()

    def _first_or_last(self, descending: bool, target: Optional[str]) -> Any:
        target = target or self._query_var
        order = f"id({target}) DESC" if descending else f"id({target})"
        results = self.order_by(order).limit(1).pluck(target)
        return results[0] if results else None

    def first(self, target: Optional[str] = None) -> Any:
        """The matched entity with the lowest internal id, or None."""
        return self._first_or_last(False, target)

    def last(self, target: Optional[str] = None) -> Any:
        """The matched entity with the highest internal id, or None."""
        return self._first_or_last(True, target)

    def exists(self, condition: Any = None, target: Optional[str] = None) -> bool:
        """
        Whether the chain matches anything.

        ``condition`` narrows the check: an integer is an internal id of the
        target, a one-key dict is a filter like the ones ``where`` accepts.
        """
        target = target or self._query_var
        if condition is None:
            chain = self
        elif isinstance(condition, int) and not isinstance(condition, bool):
            chain = self.where(lambda _var: {f"id({target})": condition})
        elif isinstance(condition, dict) and len(condition) == 1:
            chain = self.where(condition)
        else:
            raise InvalidArgument(
                "exists() accepts an integer id, a single-key filter or None"
            )
        return chain.count(target=target) > 0

    def empty(self, condition: Any = None, target: Optional[str] = None) -> bool:
        return not self.exists(condition, target)

    def __bool__(self) -> bool:
        return self.exists()

    def includes(self, entity: Any, target: Optional[str] = None) -> bool:
        """
        Whether ``entity`` is among the matched rows.
        """
        if not hasattr(entity, "neo_id"):
            raise InvalidArgument(f"includes() expects a node entity, got {entity!r}")
        if entity.neo_id is None:
            raise InvalidArgument(f"includes() expects a saved entity, got {entity!r}")
        target = target or self._query_var
        identity_filter = self._model.identity_filter(target, entity.id)
        return self.where(lambda _var: identity_filter).count(target=target) > 0

    def __contains__(self, entity: Any) -> bool:
        return self.includes(entity)

    def pluck(self, *projections: str) -> list:
        """
        Project each matched row.

        With one projection returns a list of values, with several a list of
        tuples, e.g. ``pluck("result.name", "result.age")``.
        """
        if not projections:
            raise InvalidArgument("pluck() requires at least one projection")
        rows = self._run(self.query().return_(*projections))
        if len(projections) == 1:
            return [row[0] for row in rows]
        return [tuple(row) for row in rows]

    def all(self) -> list:
        """
        Every matched entity. Association chains read straight from an
        entity are cached on that entity until a mutation clears it.
        """
        if self._origin is not None and not self._links:
            cache = self._origin.association_cache
            name = self._association.name
            if name not in cache:
                cache[name] = self.pluck(self._query_var)
            return list(cache[name])
        return self.pluck(self._query_var)

    def __iter__(self) -> Iterator:
        return iter(self.all())

    def __getitem__(self, key: Any) -> Any:
        if isinstance(key, slice):
            if key.step not in (None, 1):
                raise InvalidArgument("Slicing with a step is not supported")
            start = key.start or 0
            if start < 0 or (key.stop is not None and key.stop < 0):
                raise InvalidArgument("Negative slicing is not supported")
            chain: "Chain" = self
            if start:
                chain = chain.skip(start)
            if key.stop is not None:
                chain = chain.limit(max(key.stop - start, 0))
            return chain

        if isinstance(key, int) and not isinstance(key, bool):
            if key < 0:
                raise IndexError("Negative indexing is not supported")
            results = self.skip(key).limit(1).pluck(self._query_var)
            if not results:
                raise IndexError(f"Index {key} out of range")
            return results[0]

        raise TypeError(f"Chain indices must be integers or slices, not {type(key).__name__}")
