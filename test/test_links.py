from pytest import raises

from neochain import (
    Comparison,
    InvalidArgument,
    One,
    RelationshipFrom,
    RelationshipTo,
    StructuredNode,
)
from neochain.links import (
    Deferred,
    Link,
    Literal,
    VariableNamespace,
    compile_link,
    process_filter_value,
)


class Author(StructuredNode):
    books = RelationshipTo("Book", "WROTE")


class Book(StructuredNode):
    author = RelationshipFrom(Author, "WROTE", cardinality=One)
    readers = RelationshipFrom("Reader", "READ")


class Reader(StructuredNode):
    pass


def saved(cls, neo_id, **props):
    node = cls.inflate(neo_id)
    for key, value in props.items():
        setattr(node, key, value)
    return node


def compile_one(link, var="result"):
    return compile_link(link, var, Book, VariableNamespace(var))


def test_namespace_hands_out_fresh_names():
    namespace = VariableNamespace("result")
    assert namespace.fresh("author") == "result_author1"
    assert namespace.fresh("author") == "result_author2"
    assert VariableNamespace("node2").fresh("x") == "node2_x1"


def test_link_rejects_unknown_methods():
    with raises(InvalidArgument):
        Link("explode", Literal(1))


def test_deferred_receives_root_variable():
    link = Link("where", Deferred(lambda var: f"{var}.pages > 100"))
    assert compile_one(link, var="b") == [("where", "b.pages > 100")]


def test_structured_filter_is_namespaced_per_key():
    link = Link("where", Literal({"title": "Dune", "year": 1965}))
    assert compile_one(link) == [
        ("where", {"result": {"title": "Dune"}}),
        ("where", {"result": {"year": 1965}}),
    ]


def test_to_one_relationship_key_becomes_a_match_hop():
    author = saved(Author, 12)
    clauses = compile_one(Link("where", Literal({"author": author})))

    assert clauses == [
        ("match", "(result)<-[:`WROTE`]-(result_author1)"),
        ("where", {"id(result_author1)": 12}),
    ]
    # a bare integer identity works the same way
    assert compile_one(Link("where", Literal({"author": 12}))) == clauses


def test_to_one_relationship_requires_integer_identity():
    for bad in ("12", True, 1.5, None, Author()):
        with raises(InvalidArgument, match="Invalid value for 'author' condition"):
            compile_one(Link("where", Literal({"author": bad})))


def test_to_many_relationship_key_is_a_plain_property():
    assert compile_one(Link("where", Literal({"readers": 3}))) == [
        ("where", {"result": {"readers": 3}})
    ]


def test_operator_suffixes():
    clauses = compile_one(
        Link("where", Literal({"year__gte": 1960, "title__istartswith": "du."}))
    )
    assert clauses == [
        ("where", {"result": {"year": Comparison(">=", 1960)}}),
        ("where", {"result": {"title": Comparison("=~", "(?i)du\\..*")}}),
    ]


def test_process_filter_value():
    assert process_filter_value("x__in", "in", (1, 2)) == Comparison("IN", [1, 2])
    assert process_filter_value("x__isnull", "isnull", False) == Comparison("IS NOT NULL")
    assert process_filter_value("x__ne", "ne", 3) == Comparison("<>", 3)
    assert process_filter_value("x__regex", "regex", "a.*") == Comparison("=~", "a.*")
    assert process_filter_value("x__contains", "contains", "a+b") == Comparison(
        "=~", ".*a\\+b.*"
    )

    with raises(InvalidArgument):
        process_filter_value("x__in", "in", "abc")
    with raises(InvalidArgument):
        process_filter_value("x__isnull", "isnull", "yes")
    with raises(InvalidArgument):
        process_filter_value("x__contains", "contains", 5)
    with raises(InvalidArgument):
        process_filter_value("x__near", "near", 5)


def test_raw_where_passes_through():
    assert compile_one(Link("where", Literal("result.year > 1900"))) == [
        ("where", "result.year > 1900")
    ]


def test_order_specs_are_namespaced():
    assert compile_one(Link("order", Literal("title"))) == [("order", "result.title")]
    assert compile_one(Link("order", Literal("-year"))) == [("order", "result.year DESC")]
    assert compile_one(Link("order", Literal("year desc"))) == [
        ("order", "result.year DESC")
    ]
    assert compile_one(Link("order", Literal({"title": "asc", "year": "DESC"}))) == [
        ("order", "result.title ASC"),
        ("order", "result.year DESC"),
    ]


def test_unknown_order_shapes_pass_through():
    assert compile_one(Link("order", Literal("id(result) DESC"))) == [
        ("order", "id(result) DESC")
    ]


def test_pagination_and_match_pass_through():
    assert compile_one(Link("skip", Literal(5))) == [("skip", 5)]
    assert compile_one(Link("limit", Literal(2))) == [("limit", 2)]
    assert compile_one(Link("match", Literal("(result)-->(x)"))) == [
        ("match", "(result)-->(x)")
    ]
