from types import FrameType
from typing import Any, Callable, Optional

OUTGOING, INCOMING, EITHER = 1, -1, 0


def classproperty(f: Callable) -> Any:
    class cpf:
        def __init__(self, getter: Callable) -> None:
            self.getter = getter

        def __get__(self, obj: Any, type: Optional[Any] = None) -> Any:
            return self.getter(type)

    return cpf(f)


def enumerate_traceback(initial_frame: Optional[FrameType] = None) -> Any:
    depth, frame = 0, initial_frame
    while frame is not None:
        yield depth, frame
        frame = frame.f_back
        depth += 1


def _rel_helper(
    lhs: str,
    rhs: str,
    ident: Optional[str] = None,
    relation_type: Optional[str] = None,
    direction: Optional[int] = None,
    **kwargs: Any,  # NOSONAR
) -> str:
    """
    Generate a relationship matching string, with specified parameters.
    Examples:
    relation_direction = OUTGOING: (lhs)-[relation_ident:relation_type]->(rhs)
    relation_direction = INCOMING: (lhs)<-[relation_ident:relation_type]-(rhs)
    relation_direction = EITHER: (lhs)-[relation_ident:relation_type]-(rhs)

    :param lhs: The left hand statement.
    :type lhs: str
    :param rhs: The right hand statement.
    :type rhs: str
    :param ident: A specific identity to name the relationship, or None.
    :type ident: str
    :param relation_type: None for all direct rels, * for all of any length, or a name of an explicit rel.
    :type relation_type: str
    :param direction: None or EITHER for all OUTGOING,INCOMING,EITHER. Otherwise OUTGOING or INCOMING.
    :returns: string
    """
    # relation_type is unspecified
    if relation_type is None:
        rel_def = f"[{ident}]" if ident else ""
    # all("*" wildcard) relation_type
    elif relation_type == "*":
        rel_def = "[*]"
    else:
        # explicit relation_type
        rel_def = f"[{ident if ident else ''}:`{relation_type}`]"

    if direction == OUTGOING:
        stmt = f"-{rel_def}->"
    elif direction == INCOMING:
        stmt = f"<-{rel_def}-"
    else:
        stmt = f"-{rel_def}-"

    # Make sure not to add parenthesis when they are already present
    if lhs[-1] != ")":
        lhs = f"({lhs})"
    if rhs[-1] != ")":
        rhs = f"({rhs})"

    return f"{lhs}{stmt}{rhs}"


def labelled(ident: str, label: str) -> str:
    """Node pattern for an identifier restricted to a label, e.g. (n:`Course`)."""
    return f"({ident}:`{label}`)"
