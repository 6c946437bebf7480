"""
RDF Terms for Diff Deletes

Value types for the triples handled by the service and the canonical
serialization used when the triples are sent to the triplestore in
DELETE DATA requests.

Terms are plain rdflib terms (URIRef, Literal, BNode); rdflib already gives them
structural equality including datatype and language tag.
"""

from dataclasses import dataclass
from typing import Collection, List, Tuple

from rdflib import Namespace, URIRef, Literal
from rdflib.namespace import RDF, XSD
from rdflib.term import Identifier


# Namespaces used by the task model and error records
TASK = Namespace("http://redpencil.data.gift/vocabularies/tasks/")
ADMS = Namespace("http://www.w3.org/ns/adms#")
DCT = Namespace("http://purl.org/dc/terms/")
NFO = Namespace("http://www.semanticdesktop.org/ontologies/2007/03/22/nfo#")
NIE = Namespace("http://www.semanticdesktop.org/ontologies/2007/01/19/nie#")
MU = Namespace("http://mu.semte.ch/vocabularies/core/")
OSLC = Namespace("http://open-services.net/ns/core#")

SPARQL_PREFIXES = "\n".join([
    f"PREFIX rdf: <{RDF}>",
    f"PREFIX xsd: <{XSD}>",
    f"PREFIX task: <{TASK}>",
    f"PREFIX adms: <{ADMS}>",
    f"PREFIX dct: <{DCT}>",
    f"PREFIX nfo: <{NFO}>",
    f"PREFIX nie: <{NIE}>",
    f"PREFIX mu: <{MU}>",
    f"PREFIX oslc: <{OSLC}>",
])


@dataclass(frozen=True)
class Triple:
    """An immutable subject-predicate-object statement."""
    subject: Identifier
    predicate: Identifier
    object: Identifier

    @classmethod
    def from_rdflib(cls, triple: Tuple[Identifier, Identifier, Identifier]) -> "Triple":
        """Build a Triple from an rdflib (s, p, o) tuple."""
        s, p, o = triple
        return cls(s, p, o)

    def sort_key(self) -> Tuple[str, str, str]:
        """Key giving a stable, total order over triples."""
        return (self.subject.n3(), self.predicate.n3(), self.object.n3())

    def __str__(self) -> str:
        return format_triple(self)


def format_term(term: Identifier, explicit_datatypes: Collection[str] = (str(XSD.string), str(RDF.langString))) -> str:
    """
    Format an RDF term in its Turtle/SPARQL form for use in delete requests.

    Literals whose datatype is one of ``explicit_datatypes`` always carry the
    ``^^<datatype>`` annotation, even where a regular writer would drop it as
    redundant: the triplestore only matches such literals on delete when the
    annotation is present. A literal without datatype or language is an
    ``xsd:string``. Language tagged literals keep their tag.

    With no explicit datatypes this gives the form of a regular Turtle writer.

    Args:
        term: rdflib term to format
        explicit_datatypes: Datatype URIs to always write explicitly

    Returns:
        String representation of the term
    """
    if isinstance(term, Literal) and term.language is None:
        datatype = term.datatype if term.datatype is not None else XSD.string
        if str(datatype) in explicit_datatypes:
            return f"{Literal(str(term)).n3()}^^{URIRef(datatype).n3()}"
        if datatype == XSD.string:
            return Literal(str(term)).n3()
    return term.n3()


def format_triple(triple: Triple, explicit_datatypes: Collection[str] = (str(XSD.string), str(RDF.langString))) -> str:
    """
    Format a triple as ``<subject> <predicate> <object> .``

    Args:
        triple: Triple to format
        explicit_datatypes: Datatype URIs to always write explicitly on the object

    Returns:
        String representation of the triple
    """
    return (
        f"{format_term(triple.subject, explicit_datatypes)} "
        f"{format_term(triple.predicate, explicit_datatypes)} "
        f"{format_term(triple.object, explicit_datatypes)} ."
    )


def format_triple_forms(triple: Triple,
                        explicit_datatypes: Collection[str] = (str(XSD.string), str(RDF.langString))) -> List[str]:
    """
    All forms a triple is written in to delete it.

    The store may hold a string literal with or without its datatype
    annotation, and only matches the exact form on delete. Both the annotated
    form and the regular writer form are returned when they differ.
    """
    annotated = format_triple(triple, explicit_datatypes)
    regular = format_triple(triple, ())
    if regular == annotated:
        return [annotated]
    return [annotated, regular]
