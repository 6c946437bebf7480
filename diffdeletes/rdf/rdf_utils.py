"""
RDF Utilities for Diff Deletes

Provides utilities for locating and parsing the RDF files that hold the
triples to remove from the triplestore.
"""

import asyncio
import logging
import time
from enum import Enum
from pathlib import Path
from typing import List, Optional

from rdflib import Graph, BNode
from rdflib.exceptions import ParserError
from rdflib.plugins.parsers.notation3 import BadSyntax

from .rdf_terms import Triple

logger = logging.getLogger(__name__)


class RDFFormat(Enum):
    """Supported RDF formats for deletes files."""
    TURTLE = "turtle"
    N3 = "n3"
    NT = "nt"


_SUFFIX_TO_FORMAT = {
    '.ttl': RDFFormat.TURTLE,
    '.n3': RDFFormat.N3,
    '.nt': RDFFormat.NT,
}


class TripleSourceError(Exception):
    """Raised when a deletes file cannot be turned into a triple collection."""

    def __init__(self, message: str, file_path: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.file_path = file_path
        self.cause = cause


class TripleFileReadError(TripleSourceError):
    """The deletes file does not exist or cannot be read."""
    pass


class TripleParseError(TripleSourceError):
    """The deletes file is not valid Turtle."""
    pass


def share_uri_to_path(file_uri: str, share_prefix: str = 'share://', share_root: str = '/share/') -> str:
    """Map a physical file URI (``share://...``) to its location on disk.

    URIs that do not start with ``share_prefix`` are returned unchanged.
    """
    if file_uri.startswith(share_prefix):
        return share_root + file_uri[len(share_prefix):]
    return file_uri


def detect_rdf_format(file_path: str) -> RDFFormat:
    """Detect the RDF format from the file extension, Turtle by default."""
    return _SUFFIX_TO_FORMAT.get(Path(file_path).suffix.lower(), RDFFormat.TURTLE)


def parse_triples(content: str, format_type: RDFFormat = RDFFormat.TURTLE,
                  file_path: str = '<string>') -> List[Triple]:
    """Parse serialized RDF into an ordered triple collection.

    The collection is sorted on the N3 form of its terms so the order is the
    same for every parse of the same content.

    Raises:
        TripleParseError: If the content is not valid for ``format_type``
    """
    graph = Graph()
    try:
        graph.parse(data=content, format=format_type.value)
    except (BadSyntax, ParserError, SyntaxError, ValueError) as e:
        raise TripleParseError(f"Malformed {format_type.value} in {file_path}: {e}", file_path, e) from e

    triples = sorted((Triple.from_rdflib(t) for t in graph), key=Triple.sort_key)

    blank_node_count = sum(1 for t in triples if isinstance(t.subject, BNode) or isinstance(t.object, BNode))
    if blank_node_count > 0:
        logger.warning(f"{file_path} contains {blank_node_count} triples with blank nodes; "
                       f"these cannot be matched by a DELETE DATA request")

    return triples


def load_triples_file(file_path: str, format_type: Optional[RDFFormat] = None) -> List[Triple]:
    """Read and parse a deletes file.

    Args:
        file_path: Path to the RDF file on disk
        format_type: RDF format, detected from the extension if None

    Returns:
        Ordered list of triples in the file

    Raises:
        TripleFileReadError: If the file cannot be read
        TripleParseError: If the file cannot be parsed
    """
    start_time = time.time()
    format_type = format_type or detect_rdf_format(file_path)

    path = Path(file_path)
    if not path.is_file():
        raise TripleFileReadError(f"Deletes file does not exist: {file_path}", file_path)

    try:
        content = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise TripleFileReadError(f"Could not read deletes file {file_path}: {e}", file_path, e) from e

    triples = parse_triples(content, format_type, file_path)

    parsing_time_ms = (time.time() - start_time) * 1000
    logger.info(f"Parsed {len(triples)} triples from {file_path} in {parsing_time_ms:.1f} ms")
    return triples


async def async_load_triples_file(file_path: str, format_type: Optional[RDFFormat] = None) -> List[Triple]:
    """Async wrapper for load_triples_file.

    Parsing runs in a worker thread so other tasks keep making progress.
    """
    return await asyncio.to_thread(load_triples_file, file_path, format_type)
