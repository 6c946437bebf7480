"""
Shared fixtures for the Diff Deletes test suite.

FakeSparqlImpl stands in for the triplestore: it records every query and
update, answers the deletes file lookup from a dictionary and can be told to
reject updates.
"""

import re
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
from rdflib import URIRef, Literal
from rdflib.namespace import XSD

# Add the parent directory to Python path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from diffdeletes.config.config_loader import DiffDeletesConfig
from diffdeletes.db.sparql_inf import SparqlBackendInterface, SparqlUpdateError
from diffdeletes.rdf.rdf_terms import Triple

_TRIPLE_LINE = re.compile(r'^\s*(<[^>]*>|_:\S+) <[^>]*> .* \.$')
_STRING_ANNOTATION = "^^<http://www.w3.org/2001/XMLSchema#string>"


class FakeSparqlImpl(SparqlBackendInterface):
    """In-memory SPARQL backend recording what the service sends."""

    def __init__(self, files: Optional[Dict[str, str]] = None,
                 fail_update: Optional[Callable[[str], bool]] = None):
        self.files = files or {}
        self.fail_update = fail_update
        self.queries: List[str] = []
        self.updates: List[str] = []
        self.closed = False

    async def execute_sparql_query(self, sparql_query: str) -> List[Dict[str, Any]]:
        self.queries.append(sparql_query)
        for task_uri, file_uri in self.files.items():
            if f"<{task_uri}>" in sparql_query:
                return [{'physicalFile': file_uri}]
        return []

    async def execute_sparql_update(self, sparql_update: str) -> None:
        self.updates.append(sparql_update)
        if self.fail_update is not None and self.fail_update(sparql_update):
            raise SparqlUpdateError("Virtuoso 37000 Error SP031: rejected", status=500, text="rejected")

    async def close(self) -> None:
        self.closed = True

    @property
    def delete_updates(self) -> List[str]:
        return [u for u in self.updates if u.lstrip().startswith("DELETE DATA")]

    @property
    def status_updates(self) -> List[str]:
        return [u for u in self.updates if "adms:status ?oldStatus" in u]

    @property
    def error_inserts(self) -> List[str]:
        return [u for u in self.updates if "INSERT DATA" in u]

    def delete_batch_sizes(self) -> List[int]:
        return [count_triple_lines(u) for u in self.delete_updates]


def count_triple_lines(update: str) -> int:
    """Number of distinct triples in an update; a string literal may be written in two forms."""
    return len({line.strip().replace(_STRING_ANNOTATION, "")
                for line in update.splitlines() if _TRIPLE_LINE.match(line)})


def make_triples(count: int, prefix: str = "http://data.example.org/id/") -> List[Triple]:
    """Distinct triples whose sorted order is their creation order."""
    return [
        Triple(URIRef(f"{prefix}s{i:05d}"), URIRef("http://purl.org/dc/terms/title"),
               Literal(f"title {i}", datatype=XSD.string))
        for i in range(count)
    ]


def write_turtle(path: Path, triples: List[Triple]) -> Path:
    from diffdeletes.rdf.rdf_terms import format_triple
    path.write_text("\n".join(format_triple(t) for t in triples) + "\n", encoding="utf-8")
    return path


def make_config(**sections) -> DiffDeletesConfig:
    """Create a config object without a file."""
    config = DiffDeletesConfig()
    config.config_data = sections
    config.config_path = "<programmatically created for tests>"
    return config


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    for name in ['DIFFDELETES_SPARQL_ENDPOINT', 'DIFFDELETES_TARGET_GRAPH', 'DIFFDELETES_ERROR_GRAPH',
                 'DIFFDELETES_MAX_BATCH_SIZE', 'DIFFDELETES_WRITE_ERRORS', 'DIFFDELETES_LOG_LEVEL',
                 'DIFFDELETES_CONFIG']:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_sparql():
    return FakeSparqlImpl()


@pytest.fixture
def task_uri():
    return "http://redpencil.data.gift/id/task/7f1e2c"


@pytest.fixture
def share_dir(tmp_path):
    share = tmp_path / "share"
    share.mkdir()
    return share
