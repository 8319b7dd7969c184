import inspect
import sys
from importlib import import_module
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from neochain.util import EITHER, INCOMING, OUTGOING, _rel_helper, enumerate_traceback

if TYPE_CHECKING:
    from neochain.chain import Chain


class ZeroOrMore:
    """
    A relationship of zero or more nodes (the default)
    """

    description = "zero or more relationships"
    to_one = False


class OneOrMore:
    """
    A relationship to one or more nodes.
    """

    description = "one or more relationships"
    to_one = False


class ZeroOrOne:
    """
    A relationship to zero or one node.
    """

    description = "zero or one relationship"
    to_one = True


class One:
    """
    A relationship to exactly one node.
    """

    description = "one relationship"
    to_one = True


class RelationshipDefinition:
    """
    Declares an association on a :class:`~neochain.node.StructuredNode`.

    Accessed on the class it returns itself, so the model can read its
    metadata. Accessed on an instance it returns a
    :class:`~neochain.chain.Chain` over the related nodes of that instance.
    """

    def __init__(
        self,
        relation_type: str,
        cls_name: Union[str, type],
        direction: int,
        cardinality: type = ZeroOrMore,
        dependent: Union[str, Callable, None] = None,
    ) -> None:
        if not isinstance(cls_name, (str, type)):
            raise ValueError("Expected class name or class got " + repr(cls_name))

        current_frame = inspect.currentframe()

        frame_number = 3
        for i, frame in enumerate_traceback(current_frame):
            if cls_name in frame.f_globals:
                frame_number = i
                break
        self.module_name = sys._getframe(frame_number).f_globals["__name__"]
        if "__file__" in sys._getframe(frame_number).f_globals:
            self.module_file = sys._getframe(frame_number).f_globals["__file__"]
        self._raw_class = cls_name
        self.name: Optional[str] = None
        self.cardinality = cardinality
        self.dependent = dependent
        self.definition = {
            "relation_type": relation_type,
            "direction": direction,
        }

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def lookup_node_class(self) -> type:
        if not isinstance(self._raw_class, str):
            self.definition["node_class"] = self._raw_class
        else:
            name = self._raw_class
            if name.find(".") == -1:
                module = self.module_name
            else:
                module, _, name = name.rpartition(".")

            if module not in sys.modules:
                # __name__ is the namespace of the parent module for __init__.py files,
                # and the namespace of the current module for other .py files,
                # so relative names are resolved against the right package.
                if not hasattr(self, "module_file"):
                    raise ImportError(f"Couldn't lookup '{name}'")

                if "__init__.py" in self.module_file:
                    # e.g. myapp/__init__.py -[__name__]-> myapp
                    namespace = self.module_name
                else:
                    # e.g. myapp/models.py -[__name__]-> myapp.models
                    namespace = self.module_name.rpartition(".")[0]

                # load a module from a namespace (e.g. models from myapp)
                if module:
                    module = import_module(module, namespace).__name__
                # load the namespace itself (e.g. myapp)
                else:
                    module = import_module(namespace).__name__
            self.definition["node_class"] = getattr(sys.modules[module], name)
        return self.definition["node_class"]

    @property
    def node_class(self) -> type:
        if "node_class" not in self.definition:
            self.lookup_node_class()
        return self.definition["node_class"]

    @property
    def is_to_one(self) -> bool:
        return self.cardinality.to_one

    def __get__(self, instance: Any, owner: type) -> Union["RelationshipDefinition", "Chain"]:
        if instance is None:
            return self
        from neochain.chain import Chain

        return Chain(self.node_class, association=self, origin=instance)

    def create_relationship(self, origin: Any, other: Any, db: Any = None) -> bool:
        """
        Connect ``origin`` to ``other`` with this definition's type and
        direction. Both nodes must be saved. Returns True when the
        relationship exists afterwards.
        """
        if db is None:
            db = origin.get_db()
        rel = _rel_helper(
            lhs="us",
            rhs="them",
            ident="r",
            relation_type=self.definition["relation_type"],
            direction=self.definition["direction"],
        )
        q = (
            "MATCH (us) WHERE id(us)=$self "
            "MATCH (them) WHERE id(them)=$them "
            f"MERGE {rel} RETURN count(r)"
        )
        results, _ = db.cypher_query(q, {"self": origin.neo_id, "them": other.neo_id})
        return bool(results and results[0][0])

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} {self.name} "
            f"{self.definition['relation_type']} {self.cardinality.__name__}>"
        )


class RelationshipTo(RelationshipDefinition):
    def __init__(
        self,
        cls_name: Union[str, type],
        relation_type: str,
        cardinality: type = ZeroOrMore,
        dependent: Union[str, Callable, None] = None,
    ) -> None:
        super().__init__(
            relation_type, cls_name, OUTGOING, cardinality=cardinality, dependent=dependent
        )


class RelationshipFrom(RelationshipDefinition):
    def __init__(
        self,
        cls_name: Union[str, type],
        relation_type: str,
        cardinality: type = ZeroOrMore,
        dependent: Union[str, Callable, None] = None,
    ) -> None:
        super().__init__(
            relation_type, cls_name, INCOMING, cardinality=cardinality, dependent=dependent
        )


class Relationship(RelationshipDefinition):
    def __init__(
        self,
        cls_name: Union[str, type],
        relation_type: str,
        cardinality: type = ZeroOrMore,
        dependent: Union[str, Callable, None] = None,
    ) -> None:
        super().__init__(
            relation_type, cls_name, EITHER, cardinality=cardinality, dependent=dependent
        )
