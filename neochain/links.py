"""
Links are the deferred steps of a chain.

Each ``Link`` records one call (``where``, ``order``, ``skip``, ``limit`` or
``match``) with an argument that is either a ``Literal`` value or a
``Deferred`` callable that needs the root variable before it can produce its
value. ``compile_link`` turns a link into the primitive ``(method, argument)``
pairs that are applied to a :class:`~neochain.query.Query`.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Union

from neochain.exceptions import InvalidArgument
from neochain.query import IN, IS_NOT_NULL, IS_NULL, REGEX, Comparison
from neochain.util import _rel_helper

LINK_METHODS = ("where", "order", "skip", "limit", "match")

_SPECIAL_OPERATOR_INSENSITIVE = "(?i)"

_REGEX_INSENSITIVE = _SPECIAL_OPERATOR_INSENSITIVE + "{}"
_REGEX_CONTAINS = ".*{}.*"
_REGEX_STARTSWITH = "{}.*"
_REGEX_ENDSWITH = ".*{}"

# regex operations that require escaping
_STRING_REGEX_OPERATOR_TABLE = {
    "iexact": _REGEX_INSENSITIVE,
    "contains": _REGEX_CONTAINS,
    "icontains": _SPECIAL_OPERATOR_INSENSITIVE + _REGEX_CONTAINS,
    "startswith": _REGEX_STARTSWITH,
    "istartswith": _SPECIAL_OPERATOR_INSENSITIVE + _REGEX_STARTSWITH,
    "endswith": _REGEX_ENDSWITH,
    "iendswith": _SPECIAL_OPERATOR_INSENSITIVE + _REGEX_ENDSWITH,
}
# regex operations that do not require escaping
_REGEX_OPERATOR_TABLE = {
    "iregex": _REGEX_INSENSITIVE,
    "regex": "{}",
}
# list all regex operations, these will require formatting of the value
_REGEX_OPERATOR_TABLE.update(_STRING_REGEX_OPERATOR_TABLE)

# list all supported operators
OPERATOR_TABLE = {
    "lt": "<",
    "gt": ">",
    "lte": "<=",
    "gte": ">=",
    "ne": "<>",
    "in": IN,
    "isnull": IS_NULL,
    "exact": "=",
}
OPERATOR_TABLE.update({key: REGEX for key in _REGEX_OPERATOR_TABLE})

_ORDER_SPEC = re.compile(r"^(-)?(\w+)(?:\s+(ASC|DESC))?$", re.IGNORECASE)


@dataclass(frozen=True)
class Literal:
    value: Any

    def resolve(self, var: str) -> Any:
        return self.value


@dataclass(frozen=True)
class Deferred:
    """A link argument computed from the root variable at compile time."""

    fn: Callable[[str], Any]

    def resolve(self, var: str) -> Any:
        return self.fn(var)


@dataclass(frozen=True)
class Link:
    method: str
    arg: Union[Literal, Deferred]

    def __post_init__(self) -> None:
        if self.method not in LINK_METHODS:
            raise InvalidArgument(f"Unknown link method '{self.method}'")


@dataclass
class VariableNamespace:
    """
    Hands out identifiers that cannot collide with the root variable or each
    other, e.g. ``result_professor1``.
    """

    root: str
    counter: int = field(default=0)

    def fresh(self, hint: str) -> str:
        self.counter += 1
        return f"{self.root}_{hint}{self.counter}"


def process_filter_value(key: str, operator_name: str, value: Any) -> Comparison:
    """
    Validate a ``prop__operator`` filter value and turn it into a
    :class:`Comparison`.
    """
    try:
        operator = OPERATOR_TABLE[operator_name]
    except KeyError:
        raise InvalidArgument(
            f"Unknown filter operator '{operator_name}' in '{key}'"
        ) from None

    if operator == IN:
        if not isinstance(value, (tuple, list)):
            raise InvalidArgument(
                f"Value must be a tuple or list for IN operation {key}={value}"
            )
        return Comparison(IN, list(value))

    if operator == IS_NULL:
        if not isinstance(value, bool):
            raise InvalidArgument(f"Value must be a bool for isnull operation on {key}")
        return Comparison(IS_NULL if value else IS_NOT_NULL)

    if operator_name in _REGEX_OPERATOR_TABLE:
        if not isinstance(value, str):
            raise InvalidArgument(f"Must be a string value for {key}")
        if operator_name in _STRING_REGEX_OPERATOR_TABLE:
            value = re.escape(value)
        return Comparison(REGEX, _REGEX_OPERATOR_TABLE[operator_name].format(value))

    return Comparison(operator, value)


def _relationship_identity(key: str, value: Any) -> int:
    identity = value.neo_id if hasattr(value, "neo_id") else value
    if isinstance(identity, bool) or not isinstance(identity, int):
        raise InvalidArgument(f"Invalid value for '{key}' condition")
    return identity


def _compile_filter(
    filters: dict, var: str, model: Any, namespace: VariableNamespace
) -> list[tuple[str, Any]]:
    clauses: list[tuple[str, Any]] = []
    for key, value in filters.items():
        if model.has_one_relationship(key):
            definition = model.relationship_definition(key).definition
            alias = namespace.fresh(key)
            identity = _relationship_identity(key, value)
            clauses.append(
                (
                    "match",
                    _rel_helper(
                        lhs=var,
                        rhs=alias,
                        relation_type=definition["relation_type"],
                        direction=definition["direction"],
                    ),
                )
            )
            clauses.append(("where", {f"id({alias})": identity}))
        elif "__" in key:
            prop, operator_name = key.rsplit("__", 1)
            clauses.append(
                ("where", {var: {prop: process_filter_value(key, operator_name, value)}})
            )
        else:
            clauses.append(("where", {var: {key: value}}))
    return clauses


def _compile_order(spec: Any, var: str) -> list[tuple[str, Any]]:
    if isinstance(spec, dict):
        return [
            ("order", f"{var}.{prop} {str(direction).upper()}")
            for prop, direction in spec.items()
        ]
    if isinstance(spec, str):
        found = _ORDER_SPEC.match(spec.strip())
        if found:
            descending, prop, direction = found.groups()
            if descending:
                return [("order", f"{var}.{prop} DESC")]
            if direction:
                return [("order", f"{var}.{prop} {direction.upper()}")]
            return [("order", f"{var}.{prop}")]
    return [("order", spec)]


def compile_link(
    link: Link, var: str, model: Any, namespace: VariableNamespace
) -> list[tuple[str, Any]]:
    """
    Compile one link against the root variable ``var``.

    :returns: ``(method, argument)`` pairs, in the order they must be applied.
    """
    if isinstance(link.arg, Deferred):
        # deferred arguments already know the variable they refer to
        return [(link.method, link.arg.resolve(var))]

    value = link.arg.value
    if link.method == "where" and isinstance(value, dict):
        return _compile_filter(value, var, model, namespace)
    if link.method == "order":
        return _compile_order(value, var)
    return [(link.method, value)]
