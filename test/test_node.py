from unittest.mock import MagicMock

from neo4j.graph import Node
from pytest import raises

from neochain import (
    Database,
    InvalidArgument,
    RelationshipFrom,
    RelationshipTo,
    StructuredNode,
    ZeroOrOne,
    scope,
)


class Gardener(StructuredNode):
    plots = RelationshipTo("Plot", "TENDS")

    @scope
    def named(chain, name):
        return chain.where(name=name)


class Plot(StructuredNode):
    gardener = RelationshipFrom(Gardener, "TENDS", cardinality=ZeroOrOne)


class Seed(StructuredNode):
    __primary_key__ = "code"


class HeirloomSeed(Seed):
    pass


def test_label_and_registry():
    assert Gardener.__label__ == "Gardener"
    assert HeirloomSeed.inherited_labels() == ["HeirloomSeed", "Seed"]
    assert Database._NODE_CLASS_REGISTRY[frozenset(["Seed", "HeirloomSeed"])] is HeirloomSeed


def test_reserved_names_are_rejected():
    with raises(ValueError, match="not allowed"):

        class Broken(StructuredNode):
            nodes = 1


def test_abstract_nodes_are_not_registered():
    class Base(StructuredNode):
        __abstract_node__ = True

    class Concrete(Base):
        pass

    assert Concrete.inherited_labels() == ["Concrete"]
    assert frozenset(["Base"]) not in Database._NODE_CLASS_REGISTRY


def test_relationship_metadata():
    assert set(Gardener.defined_relationships()) == {"plots"}
    assert Gardener.relationship_definition("plots").node_class is Plot
    assert Gardener.relationship_definition("missing") is None
    assert Plot.has_one_relationship("gardener")
    assert not Gardener.has_one_relationship("plots")
    assert Gardener.relationship_direction("plots") == 1
    assert Plot.relationship_direction("gardener") == -1


def test_class_access_returns_the_definition():
    definition = Gardener.plots
    assert definition.name == "plots"
    assert definition.definition["relation_type"] == "TENDS"
    assert "TENDS" in repr(definition)


def test_identity_helpers_on_internal_id():
    assert Gardener.identity_expression("g") == "id(g)"
    assert Gardener.identity_filter("g", 4) == {"id(g)": 4}
    assert Gardener.coerce_identity("4") == 4
    with raises(InvalidArgument):
        Gardener.coerce_identity("four")


def test_identity_helpers_on_primary_key():
    assert Seed.identity_expression("s") == "s.code"
    assert Seed.identity_filter("s", "TOM-1") == {"s": {"code": "TOM-1"}}
    assert Seed.coerce_identity("TOM-1") == "TOM-1"

    seed = Seed.inflate(5)
    seed.code = "TOM-1"
    assert seed.id == "TOM-1"
    assert Seed.nodes.match_to(seed).to_cypher() == (
        "MATCH (result:`Seed`) WHERE result.code = $result_code_1"
    )


def test_inflate_lazy_and_from_driver_nodes():
    lazy = Gardener.inflate(7)
    assert lazy.neo_id == 7
    assert lazy.persisted

    raw = MagicMock(spec=Node)
    raw.items.return_value = [("name", "Ada")]
    raw.element_id = "4:0b1c:12"
    gardener = Gardener.inflate(raw)
    assert gardener.name == "Ada"
    assert gardener.neo_id == 12
    assert gardener.__properties__ == {"name": "Ada"}


def test_save_creates_then_updates(fake_db):
    gardener = Gardener(name="Ada")
    fake_db.respond([[3]])

    assert gardener.save() is gardener
    assert gardener.neo_id == 3
    assert fake_db.last_query == "CREATE (n:`Gardener`) SET n = $props RETURN id(n)"
    assert fake_db.last_params == {"props": {"name": "Ada"}}

    gardener.name = "Grace"
    gardener.save()
    assert fake_db.last_query == "MATCH (n) WHERE id(n)=$self SET n += $props"
    assert fake_db.last_params == {"self": 3, "props": {"name": "Grace"}}


def test_delete(fake_db):
    gardener = Gardener.inflate(3)
    gardener.association_cache["plots"] = []

    assert gardener.delete() is True
    assert fake_db.last_query == "MATCH (self) WHERE id(self)=$self DETACH DELETE self"
    assert gardener.deleted
    assert not gardener.persisted
    assert gardener.association_cache == {}

    with raises(ValueError):
        gardener.save()


def test_cypher_needs_a_saved_node(fake_db):
    with raises(ValueError, match="unsaved node"):
        Gardener().cypher("RETURN 1")


def test_query_as():
    assert Gardener.inflate(3).query_as("g").to_cypher() == (
        "MATCH (g:`Gardener`) WHERE id(g) = $id_g_1"
    )


def test_find(fake_db):
    gardener = Gardener.inflate(3)
    fake_db.respond([[gardener]])

    assert Gardener.find(3) == gardener
    assert fake_db.last_query == (
        "MATCH (result:`Gardener`) WHERE id(result) = $id_result_1 "
        "RETURN result ORDER BY id(result) LIMIT 1"
    )
    assert Gardener.find(4) is None


def test_scope_on_the_model():
    assert Gardener.named("Ada").to_cypher() == (
        "MATCH (result:`Gardener`) WHERE result.name = $result_name_1"
    )
    assert Gardener.resolve_scope("named") is not None
    assert Gardener.resolve_scope("plots") is None


def test_equality_and_hashing():
    assert Gardener.inflate(3) == Gardener.inflate(3)
    assert Gardener.inflate(3) != Plot.inflate(3)
    unsaved = Gardener()
    assert unsaved != Gardener()
    assert unsaved == unsaved
    assert len({Gardener.inflate(3), Gardener.inflate(3)}) == 1
