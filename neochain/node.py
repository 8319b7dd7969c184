"""
A minimal, schemaless node model.

It gives chains the metadata they compile against (label, primary key,
relationship definitions, scopes) and the entities they start from.
"""

import functools
from typing import TYPE_CHECKING, Any, Callable, Optional

from neochain.database import Database, db
from neochain.exceptions import InvalidArgument
from neochain.query import Query
from neochain.relationship_manager import RelationshipDefinition
from neochain.util import classproperty, labelled

if TYPE_CHECKING:
    from neochain.chain import Chain


class scope:
    """
    Declares a reusable chain fragment on a model.

    The decorated function receives a chain as its first argument and
    returns a new one (or any value, for aggregate scopes)::

        class Course(StructuredNode):
            @scope
            def level(chain, num):
                return chain.where(level=num)

        Course.level(101)              # applied to Course.nodes
        professor.courses.level(101)   # applied to the association chain
    """

    def __init__(self, func: Callable) -> None:
        self.func = func
        functools.update_wrapper(self, func)

    def __get__(self, instance: Any, owner: type) -> Callable:
        return functools.partial(self.func, owner.nodes)


def _node_id(node: Any) -> int:
    # element ids look like "4:<database uuid>:<id>" on Neo4j 5
    tail = str(getattr(node, "element_id", "")).rsplit(":", 1)[-1]
    if tail.isdigit():
        return int(tail)
    return node.id


class NodeMeta(type):
    __label__: str

    def __new__(
        mcs: type, name: str, bases: tuple[type, ...], namespace: dict[str, Any]
    ) -> Any:
        cls: NodeMeta = type.__new__(mcs, name, bases, namespace)

        if hasattr(cls, "__abstract_node__"):
            delattr(cls, "__abstract_node__")
        else:
            for reserved in ("deleted", "id", "neo_id", "persisted", "nodes"):
                if reserved in namespace:
                    raise ValueError(
                        f"Property name '{reserved}' is not allowed as it conflicts with neochain internals."
                    )

            cls.__label__ = namespace.get("__label__", name)
            build_class_registry(cls)

        return cls


def build_class_registry(cls: Any) -> None:
    Database._NODE_CLASS_REGISTRY[frozenset(cls.inherited_labels())] = cls


NodeBase: type = NodeMeta("NodeBase", (), {"__abstract_node__": True})


class StructuredNode(NodeBase):
    """
    Base class for all node definitions to inherit from.

    If you want to create your own abstract classes set:
        __abstract_node__ = True
    """

    __abstract_node__ = True

    # property holding the unique key, None for the internal integer id
    __primary_key__: Optional[str] = None
    # execution collaborator, None for the module default
    __db__: Any = None

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self._neo_id: Optional[int] = None
        self._deleted = False
        self._association_cache: dict[str, Any] = {}

        # undefined properties are all welcome, the model is schemaless
        for name, value in kwargs.items():
            setattr(self, name, value)

    @property
    def __properties__(self) -> dict[str, Any]:
        return dict(
            (name, value)
            for name, value in vars(self).items()
            if not name.startswith("_") and not callable(value)
        )

    # identity

    @property
    def neo_id(self) -> Optional[int]:
        return self._neo_id

    @property
    def id(self) -> Any:
        """The value of the model's unique key."""
        if self.__primary_key__ is None:
            return self._neo_id
        return getattr(self, self.__primary_key__, None)

    @property
    def persisted(self) -> bool:
        return self._neo_id is not None and not self._deleted

    @property
    def deleted(self) -> bool:
        return self._deleted

    # class side

    @classproperty
    def nodes(cls) -> "Chain":
        """
        Returns a Chain over every node with this class's label.
        """
        from neochain.chain import Chain

        return Chain(cls)

    @classmethod
    def get_db(cls) -> Any:
        if cls.__db__ is not None:
            return cls.__db__
        return db

    @classmethod
    def inherited_labels(cls: Any) -> list[str]:
        """
        Return list of labels from nodes class hierarchy.

        :return: list
        """
        return [
            scls.__label__
            for scls in cls.mro()
            if hasattr(scls, "__label__") and not hasattr(scls, "__abstract_node__")
        ]

    @classmethod
    def defined_relationships(cls) -> dict[str, RelationshipDefinition]:
        rels: dict[str, RelationshipDefinition] = {}
        for baseclass in reversed(cls.__mro__):
            rels.update(
                (name, value)
                for name, value in vars(baseclass).items()
                if isinstance(value, RelationshipDefinition)
            )
        return rels

    @classmethod
    def relationship_definition(cls, key: str) -> Optional[RelationshipDefinition]:
        return cls.defined_relationships().get(key)

    @classmethod
    def has_one_relationship(cls, key: str) -> bool:
        definition = cls.relationship_definition(key)
        return definition is not None and definition.is_to_one

    @classmethod
    def relationship_direction(cls, key: str) -> Optional[int]:
        definition = cls.relationship_definition(key)
        if definition is None:
            return None
        return definition.definition["direction"]

    @classmethod
    def resolve_scope(cls, name: str) -> Optional[Callable]:
        for baseclass in cls.__mro__:
            value = vars(baseclass).get(name)
            if isinstance(value, scope):
                return value.func
        return None

    @classmethod
    def identity_expression(cls, var: str) -> str:
        if cls.__primary_key__ is None:
            return f"id({var})"
        return f"{var}.{cls.__primary_key__}"

    @classmethod
    def identity_filter(cls, var: str, value: Any) -> dict[str, Any]:
        if cls.__primary_key__ is None:
            return {f"id({var})": value}
        return {var: {cls.__primary_key__: value}}

    @classmethod
    def coerce_identity(cls, value: Any) -> Any:
        if cls.__primary_key__ is not None:
            return value
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise InvalidArgument(
                f"{value!r} is not a valid identity for {cls.__name__}"
            ) from exc

    @classmethod
    def find(cls, identity: Any, db: Any = None) -> Optional["StructuredNode"]:
        """
        Return the node with the given unique key value, or None.
        """
        return cls.nodes.using(db).match_to(identity).first()

    @classmethod
    def inflate(cls: Any, node: Any) -> Any:
        """
        Inflate a raw neo4j_driver node to a neochain node
        :param node:
        :return: node object
        """
        # support lazy loading
        if isinstance(node, (str, int)):
            snode = cls()
            snode._neo_id = int(node)
        else:
            snode = cls(**dict(node.items()))
            snode._neo_id = _node_id(node)

        return snode

    # instance side

    def _pre_action_check(self, action: str) -> None:
        if self._deleted:
            raise ValueError(
                f"{self.__class__.__name__}.{action}() attempted on deleted node"
            )
        if self._neo_id is None:
            raise ValueError(
                f"{self.__class__.__name__}.{action}() attempted on unsaved node"
            )

    def query_as(self, var: str) -> Query:
        """
        A query matching just this node under the variable ``var``.
        """
        return (
            Query()
            .match(labelled(var, self.__label__))
            .where({f"id({var})": self._neo_id})
        )

    def cypher(
        self, query: str, params: Optional[dict[str, Any]] = None, db: Any = None
    ) -> tuple[list, tuple[str, ...]]:
        """
        Execute a cypher query with the param 'self' pre-populated with the node's neo4j id.

        :param query: cypher query string
        :type: string
        :param params: query parameters
        :type: dict
        :return: tuple containing a list of query results, and the meta information as a tuple
        """
        self._pre_action_check("cypher")
        _params = {"self": self._neo_id}
        if params:
            _params.update(params)
        return (db or self.get_db()).cypher_query(query, _params)

    def save(self, db: Any = None) -> "StructuredNode":
        """
        Save the node to neo4j or raise an exception

        :return: the node instance
        """
        if self._deleted:
            raise ValueError(
                f"{self.__class__.__name__}.save() attempted on deleted node"
            )

        if self._neo_id is not None:
            # update
            self.cypher(
                "MATCH (n) WHERE id(n)=$self SET n += $props",
                {"props": self.__properties__},
                db=db,
            )
        else:
            # create
            labels = "".join(f":`{label}`" for label in self.inherited_labels())
            results, _ = (db or self.get_db()).cypher_query(
                f"CREATE (n{labels}) SET n = $props RETURN id(n)",
                {"props": self.__properties__},
            )
            self._neo_id = results[0][0]
        return self

    def delete(self, db: Any = None) -> bool:
        """
        Delete a node and its relationships

        :return: True
        """
        self.cypher("MATCH (self) WHERE id(self)=$self DETACH DELETE self", db=db)
        self._deleted = True
        self.clear_association_cache()
        return True

    @property
    def association_cache(self) -> dict[str, Any]:
        return self._association_cache

    def clear_association_cache(self) -> None:
        self._association_cache.clear()

    def dependent_delete_callback(
        self, association: RelationshipDefinition, ids: list
    ) -> None:
        """
        Dependent policy ``"delete"``: removes the related nodes, not just the
        relationships, when they are dropped from the association.
        """
        getattr(self, association.name).match_to(ids).delete_all()

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, StructuredNode):
            return False
        if self._neo_id is None or other._neo_id is None:
            return self is other
        return type(self) is type(other) and self._neo_id == other._neo_id

    def __ne__(self, other: Any) -> bool:
        return not self.__eq__(other)

    def __hash__(self) -> int:
        if self._neo_id is None:
            return id(self)
        return hash((type(self), self._neo_id))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self.__properties__}>"
