from typing import Any


class NeochainException(Exception):
    """
    A base class that identifies all exceptions raised by :mod:`neochain`.
    """

    pass


class ConfigurationError(NeochainException):
    """
    An operation was invoked on a chain whose structure cannot support it.

    Example: `update_all_rels()` on a chain that has no relationship variable.
    """

    pass


class InvalidArgument(ValueError, NeochainException):
    """
    A terminal or mutation call received an argument of the wrong shape or type.
    """

    pass


class BackendIntegrityError(NeochainException):
    """
    The database rejected a statement because of the current shape of the data,
    e.g. deleting a node that still has relationships.
    """

    def __init__(self, msg: str, code: str | None = None):
        super().__init__(msg)
        self.message = msg
        self.code = code


class UniqueProperty(BackendIntegrityError):
    pass


class NodeClassNotDefined(NeochainException):
    """
    Raised when it is impossible to resolve a Neo4j driver Node to a
    data model object, usually because the module declaring the class
    has not been imported.
    """

    def __init__(self, db_node: Any, current_node_class_registry: dict[frozenset, Any]):
        self.db_node = db_node
        self.current_node_class_registry = current_node_class_registry

    def __str__(self) -> str:
        node_labels = ",".join(self.db_node.labels)
        registry = "\n".join(
            f"{','.join(labels)} --> {cls}"
            for labels, cls in self.current_node_class_registry.items()
        )
        return f"Node with labels {node_labels} does not resolve to any of the known objects\n{registry}\n"


__all__ = (
    NeochainException.__name__,
    ConfigurationError.__name__,
    InvalidArgument.__name__,
    BackendIntegrityError.__name__,
    UniqueProperty.__name__,
    NodeClassNotDefined.__name__,
)
