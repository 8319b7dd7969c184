import os

import pytest

from neochain import StructuredNode, reset_config

NEO4J_BOLT_URL = os.environ.get("NEO4J_BOLT_URL")


class FakeDatabase:
    """
    Stands in for :class:`neochain.Database`.

    Every ``cypher_query`` call is recorded as ``(query, params)``. Responses
    queued with :meth:`respond` are replayed in order: a list of rows is
    returned, an exception instance is raised. With nothing queued the
    statement returns no rows.
    """

    def __init__(self):
        self.queries = []
        self.responses = []

    def respond(self, *responses):
        self.responses.extend(responses)

    def cypher_query(
        self,
        query,
        params=None,
        handle_unique=True,
        resolve_objects=False,
    ):
        self.queries.append((query, dict(params or {})))
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return [list(row) for row in response], ()
        return [], ()

    @property
    def last_query(self):
        return self.queries[-1][0]

    @property
    def last_params(self):
        return self.queries[-1][1]


@pytest.fixture
def fake_db(monkeypatch):
    database = FakeDatabase()
    monkeypatch.setattr(StructuredNode, "__db__", database)
    return database


@pytest.fixture(autouse=True)
def clean_config():
    reset_config()
    yield
    reset_config()


def pytest_collection_modifyitems(config, items):
    if NEO4J_BOLT_URL:
        return
    skip_integration = pytest.mark.skip(reason="NEO4J_BOLT_URL is not set")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: needs a running Neo4j reachable at NEO4J_BOLT_URL"
    )
