"""
Mass mutation: SET and DELETE over every row a chain matches, in one statement.
"""

import logging
from typing import Any, Iterable, Optional

from neo4j.exceptions import Neo4jError

from neochain.exceptions import (
    BackendIntegrityError,
    ConfigurationError,
    InvalidArgument,
    NeochainException,
)
from neochain.util import _rel_helper, labelled

logger = logging.getLogger(__name__)


def _flatten(values: Any) -> Iterable[Any]:
    if isinstance(values, (list, tuple, set, frozenset)):
        for value in values:
            yield from _flatten(value)
    else:
        yield values


class MassUpdatingMethods:
    def _require_association(self, action: str) -> None:
        if self._association is None:
            raise ConfigurationError(
                f"{action}() needs a chain built from an association"
            )

    def _clear_origin_cache(self) -> None:
        if self._origin is not None and hasattr(self._origin, "clear_association_cache"):
            self._origin.clear_association_cache()

    def _update_all_with_query(
        self, var: str, updates: Any, params: Optional[dict[str, Any]]
    ) -> int:
        if not isinstance(updates, (dict, str)):
            raise InvalidArgument(
                f"Invalid parameter type {type(updates).__name__} for `updates`."
            )
        query = self.query()
        if query.is_paginated:
            query = query.with_("*")
        if isinstance(updates, dict):
            query = query.set({var: updates})
        else:
            query = query.set(updates).params(**(params or {}))
        rows = self._run(query.return_(f"count({var}) AS count"), resolve_objects=False)
        return rows[0][0] if rows else 0

    def update_all(self, updates: Any, params: Optional[dict[str, Any]] = None) -> int:
        """
        Set properties on every matched node.

        :param updates: a dict of property values, or a raw SET body such as
            ``"result.score = result.score + $bonus"``
        :param params: parameters for a raw SET body, ignored for a dict
        :return: number of updated nodes
        """
        return self._update_all_with_query(self._query_var, updates, params)

    def update_all_rels(
        self, updates: Any, params: Optional[dict[str, Any]] = None
    ) -> int:
        """
        Same as :meth:`update_all`, against the relationship variable.
        """
        self._require_association("update_all_rels")
        return self._update_all_with_query(self.rel_var, updates, params)

    def delete_all(self, identifier: Optional[str] = None) -> None:
        """
        Delete every matched node together with its relationships. When
        ``identifier`` is omitted, the last link of the chain is deleted.
        """
        target = identifier or self._query_var
        query = self.query()
        try:
            self._run(
                query.with_(target)
                .optional_match(f"({target})-[{target}_rel]-()")
                .delete(f"{target}, {target}_rel"),
                resolve_objects=False,
            )
        except BackendIntegrityError as exc:
            logger.debug(
                "delete_all() on %s fell back to a plain DELETE: %s", target, exc
            )
            self._run(query.with_(target).delete(target), resolve_objects=False)
        self._clear_origin_cache()

    def delete_all_rels(self) -> None:
        """
        Delete the relationships of the last hop. Nothing happens unless the
        chain starts from a saved entity.
        """
        self._require_association("delete_all_rels")
        if self._origin is None or not self._origin.persisted:
            return
        query = self.query()
        if query.is_paginated:
            query = query.with_("*")
        self._run(query.delete(self.rel_var), resolve_objects=False)
        self._clear_origin_cache()

    def connect(self, node: Any) -> int:
        """
        Create the association relationship from every start node of the
        chain to ``node``.

        :return: number of relationships created
        """
        self._require_association("connect")
        if not isinstance(node, self._model):
            raise InvalidArgument(
                f"connect() expected a {self._model.__name__} node, got {node!r}"
            )
        if not node.persisted:
            raise InvalidArgument(f"Can't connect unsaved node {node!r}")

        start_var = self._association_chain_var
        target = self._query_var
        query = self._association_query_start(start_var)
        if query.is_paginated:
            query = query.with_("*")
        query = (
            query.match(labelled(target, self._model.__label__))
            .where({f"id({target})": node.neo_id})
            .create(
                _rel_helper(
                    lhs=start_var,
                    rhs=target,
                    ident=self.rel_var,
                    relation_type=self._association.definition["relation_type"],
                    direction=self._association.definition["direction"],
                )
            )
            .return_(f"count({self.rel_var}) AS count")
        )
        rows = self._run(query, resolve_objects=False)
        self._clear_origin_cache()
        return rows[0][0] if rows else 0

    def disconnect(self, node: Any) -> None:
        """
        Delete the relationship(s) between the chain's start and ``node``.
        """
        self._require_association("disconnect")
        query = self.match_to(node).query()
        if query.is_paginated:
            query = query.with_("*")
        self._run(query.delete(self.rel_var), resolve_objects=False)
        self._clear_origin_cache()

    def _idify(self, values: Any) -> dict[Any, Any]:
        """
        Key the requested entities by identity. Saved entities use their
        unique key, unsaved ones a ``tmp_<index>`` placeholder.
        """
        keyed: dict[Any, Any] = {}
        wanted = [value for value in _flatten(values) if value is not None and value != ""]
        for index, value in enumerate(wanted):
            if isinstance(value, (int, str)) and not isinstance(value, bool):
                identity = self._model.coerce_identity(value)
                entity = self._model.find(identity, db=self._db_override)
                if entity is None:
                    raise InvalidArgument(
                        f"No {self._model.__name__} found with identity {value!r}"
                    )
                keyed[identity] = entity
            else:
                key = value.id if value.persisted else f"tmp_{index}"
                keyed[key] = value
        return keyed

    def _create_relation_or_defer(self, node: Any) -> bool:
        origin = self._origin
        if not origin.persisted:
            logger.debug(
                "Not creating %s relationship to %r, %r is not saved",
                self._association.name,
                node,
                origin,
            )
            return False
        try:
            if not node.persisted:
                node.save(db=self._db_override)
            return self._association.create_relationship(origin, node, db=self._db)
        except (NeochainException, Neo4jError) as exc:
            logger.warning(
                "Skipped %s relationship from %r to %r: %s",
                self._association.name,
                origin,
                node,
                exc,
            )
            return False

    def _add_rels(self, keyed: dict[Any, Any], current_ids: list) -> list:
        return [
            node
            for key, node in keyed.items()
            if key not in current_ids and self._create_relation_or_defer(node)
        ]

    def _delete_rels_for_nodes(self, ids: list) -> None:
        if not ids:
            return
        dependent = self._association.dependent
        if callable(dependent):
            dependent(self._origin, self._association, ids)
        elif dependent:
            callback = getattr(self._origin, f"dependent_{dependent}_callback")
            callback(self._association, ids)
        else:
            self.match_to(ids).delete_all_rels()

    def replace_with(self, nodes: Any) -> list:
        """
        Make ``nodes`` the exact set of related nodes. Relationships to nodes
        that stay are left alone, missing ones are created (saving unsaved
        nodes first) and the rest are removed through the association's
        dependent policy.

        :param nodes: an entity, an identity, or nested lists of either
        :return: the newly related nodes followed by the ones that were
            already related
        """
        self._require_association("replace_with")
        if self._origin is None:
            raise ConfigurationError("replace_with() needs a chain started from an entity")

        keyed = self._idify(nodes)
        if self._origin.persisted:
            current_ids = self.pluck(self._model.identity_expression(self._query_var))
        else:
            current_ids = []

        added = self._add_rels(keyed, current_ids)
        self._delete_rels_for_nodes([i for i in current_ids if i not in keyed])
        self._clear_origin_cache()

        kept = [node for key, node in keyed.items() if key in current_ids]
        return added + kept
