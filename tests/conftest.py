import json
from pathlib import Path

import pytest

from atprose_lexicon.schema import build_graph

FIXTURES = Path(__file__).resolve().parent / "fixtures"


def lexicon(doc_id, defs):
    return {"lexicon": 1, "id": doc_id, "defs": defs}


def record_def(properties, required=(), key="tid", **extra):
    payload = {"type": "object", "properties": properties, "required": list(required)}
    payload.update(extra)
    return {"type": "record", "key": key, "record": payload}


class FakeResolver:
    """Serves definitions from another graph and records every lookup."""

    def __init__(self, graph=None):
        self.graph = graph
        self.calls = []

    def __call__(self, document_id, name):
        self.calls.append((document_id, name))
        if self.graph is None:
            return None
        return self.graph.lookup(document_id, name)


@pytest.fixture
def fixtures_dir():
    return FIXTURES


@pytest.fixture
def post_document():
    return json.loads((FIXTURES / "dev.atprose.test.post.json").read_text(encoding="utf-8"))


@pytest.fixture
def post_graph(post_document):
    return build_graph([post_document])
