"""
The lazy, chainable query builder.

A :class:`Chain` is an immutable list of links plus an optional association
context: the relationship definition it traverses and either the entity it
starts from (``professor.courses``) or the parent chain it extends
(``Professor.nodes.courses``). Nothing touches the database until one of the
terminal or mass-mutation methods is called.
"""

import functools
from typing import Any, Callable, Iterable, Optional

from neochain.chain_methods import ChainMethods
from neochain.constants import DEFAULT_VAR
from neochain.exceptions import InvalidArgument
from neochain.links import Deferred, Link, Literal, VariableNamespace, compile_link
from neochain.mass_updating import MassUpdatingMethods
from neochain.query import Query
from neochain.util import _rel_helper, labelled


def _as_argument(value: Any) -> Any:
    if callable(value):
        return Deferred(value)
    return Literal(value)


def _identity_of(target: Any) -> Any:
    if isinstance(target, (list, tuple, set, frozenset)):
        return [_identity_of(item) for item in target]
    if hasattr(target, "neo_id"):
        if not target.persisted:
            raise InvalidArgument(f"{target!r} is not saved and has no identity")
        return target.id
    return target


class Chain(ChainMethods, MassUpdatingMethods):
    """
    Lazy query over nodes of ``model``.

    Every builder method returns a new chain and leaves the receiver
    untouched, so chains can be branched and reused freely.
    """

    def __init__(
        self,
        model: type,
        association: Any = None,
        origin: Any = None,
        parent: Optional["Chain"] = None,
        var: Optional[str] = None,
        rel_var: Optional[str] = None,
        db: Any = None,
        links: Iterable[Link] = (),
    ) -> None:
        self._model = model
        self._association = association
        self._origin = origin
        self._parent = parent
        self._var = var
        self._rel_var = rel_var
        self._db_override = db
        self._links: tuple[Link, ...] = tuple(links)

    def _copy(self, **changes: Any) -> "Chain":
        clone = self.__class__.__new__(self.__class__)
        clone.__dict__.update(self.__dict__)
        clone.__dict__.update({f"_{key}": value for key, value in changes.items()})
        return clone

    def _append(self, *links: Link) -> "Chain":
        return self._copy(links=self._links + links)

    # introspection

    @property
    def model(self) -> type:
        return self._model

    @property
    def association(self) -> Any:
        return self._association

    @property
    def origin(self) -> Any:
        return self._origin

    @property
    def links(self) -> tuple[Link, ...]:
        return self._links

    @property
    def _db(self) -> Any:
        if self._db_override is not None:
            return self._db_override
        return self._model.get_db()

    @property
    def _chain_level(self) -> int:
        if self._parent is not None:
            return self._parent._chain_level + 1
        return 1

    @property
    def _query_var(self) -> str:
        return self._var or DEFAULT_VAR

    @property
    def rel_var(self) -> str:
        return self._rel_var or f"rel{self._chain_level - 1}"

    @property
    def _association_chain_var(self) -> str:
        if self._origin is not None:
            name = type(self._origin).__name__.lower()
            if self._origin.neo_id is None:
                return f"{name}_unsaved"
            return f"{name}{self._origin.neo_id}"
        if self._parent is not None and self._parent._var:
            return self._parent._var
        return f"node{self._chain_level}"

    def _association_query_start(self, var: str) -> Query:
        if self._origin is not None:
            return self._origin.query_as(var)
        if self._parent is not None:
            return self._parent.query_as(var)
        raise ValueError("Chain has neither an origin entity nor a parent chain")

    # extension calls

    def where(self, *conditions: Any, **filters: Any) -> "Chain":
        """
        Filter the chain.

        Positional conditions are structured filters (``dict``), raw Cypher
        predicates (``str``) or callables that receive the root variable.
        Keyword arguments form one structured filter, e.g.
        ``where(name="Bob", age__gte=18, professor=some_professor)``.
        """
        links = [Link("where", _as_argument(condition)) for condition in conditions]
        if filters:
            links.append(Link("where", Literal(dict(filters))))
        return self._append(*links)

    def order_by(self, *specs: Any) -> "Chain":
        return self._append(*(Link("order", _as_argument(spec)) for spec in specs))

    order = order_by

    def skip(self, amount: Any) -> "Chain":
        return self._append(Link("skip", _as_argument(amount)))

    offset = skip

    def limit(self, amount: Any) -> "Chain":
        return self._append(Link("limit", _as_argument(amount)))

    def match(self, *patterns: Any) -> "Chain":
        return self._append(*(Link("match", _as_argument(pattern)) for pattern in patterns))

    def match_to(self, target: Any) -> "Chain":
        """
        Narrow to one entity, one identity or a list of either, using the
        model's unique key.
        """
        model = self._model

        def condition(var: str) -> dict:
            return model.identity_filter(var, _identity_of(target))

        return self._append(Link("where", Deferred(condition)))

    def as_(self, var: str) -> "Chain":
        return self._copy(var=var)

    def rel_as(self, var: str) -> "Chain":
        return self._copy(rel_var=var)

    def using(self, db: Any) -> "Chain":
        """Run this chain, and chains derived from it, against ``db``."""
        return self._copy(db_override=db)

    def traverse(
        self, name: str, var: Optional[str] = None, rel_var: Optional[str] = None
    ) -> "Chain":
        association = self._model.relationship_definition(name)
        if association is None:
            raise AttributeError(
                f"{self._model.__name__} has no relationship named '{name}'"
            )
        return Chain(
            association.node_class,
            association=association,
            parent=self,
            var=var,
            rel_var=rel_var,
            db=self._db_override,
        )

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        model = self.__dict__.get("_model")
        if model is not None:
            if model.relationship_definition(name) is not None:
                return self.traverse(name)
            func: Optional[Callable] = model.resolve_scope(name)
            if func is not None:
                return functools.partial(func, self)
        raise AttributeError(
            f"'{self.__class__.__name__}' object has no attribute '{name}'"
        )

    # compilation

    def query_as(self, var: str) -> Query:
        return compile_chain(self, var)

    def query(self) -> Query:
        return compile_chain(self, self._query_var)

    def to_cypher(self) -> str:
        return self.query().to_cypher()

    def __repr__(self) -> str:
        association = f" via {self._association.name}" if self._association else ""
        return (
            f"<{self.__class__.__name__} {self._model.__name__}{association} "
            f"links={len(self._links)}>"
        )


def compile_chain(chain: Chain, var: str) -> Query:
    """
    Compile ``chain`` into a :class:`Query` whose primary node is bound to
    ``var``. The parent pattern is re-derived on every call.
    """
    model = chain._model
    association = chain._association

    if association is not None:
        chain_var = chain._association_chain_var
        # ORDER BY/SKIP/LIMIT of the parent must apply before the hop
        query = chain._association_query_start(chain_var).seal_before("match")
        query = query.match(
            _rel_helper(
                lhs=chain_var,
                rhs=f"{var}:`{model.__label__}`",
                ident=chain.rel_var,
                relation_type=association.definition["relation_type"],
                direction=association.definition["direction"],
            )
        )
    else:
        query = Query().match(labelled(var, model.__label__))

    namespace = VariableNamespace(var)
    for link in chain._links:
        for method, argument in compile_link(link, var, model, namespace):
            query = getattr(query.seal_before(method), method)(argument)
    return query
