# pep8: noqa
from neochain._version import __version__
from neochain.chain import Chain, compile_chain
from neochain.config import NeochainConfig, get_config, reset_config, set_config
from neochain.constants import ACCESS_MODE_READ, ACCESS_MODE_WRITE, DISTINCT
from neochain.database import Database, db
from neochain.exceptions import *
from neochain.links import Deferred, Link, Literal
from neochain.node import StructuredNode, scope
from neochain.query import Comparison, Query
from neochain.relationship_manager import (
    One,
    OneOrMore,
    Relationship,
    RelationshipDefinition,
    RelationshipFrom,
    RelationshipTo,
    ZeroOrMore,
    ZeroOrOne,
)
from neochain.util import EITHER, INCOMING, OUTGOING

__license__ = "MIT"
__package__ = "neochain"
