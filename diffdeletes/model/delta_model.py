"""Delta Model Classes

Pydantic models for the delta notifications posted to the service by the
delta notifier: a list of changesets, each with inserted and deleted triples.
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class DeltaTerm(BaseModel):
    """An RDF term as it appears in a delta message."""
    type: str = Field(
        ...,
        description="Term type (uri, literal, typed-literal, bnode)"
    )
    value: str = Field(
        ...,
        description="Term value"
    )
    datatype: Optional[str] = Field(
        None,
        description="Datatype URI for typed literals"
    )


class DeltaTriple(BaseModel):
    """A triple in a delta message."""
    subject: DeltaTerm
    predicate: DeltaTerm
    object: DeltaTerm


class DeltaChangeset(BaseModel):
    """One changeset of a delta message."""
    inserts: List[DeltaTriple] = Field(
        default_factory=list,
        description="Triples inserted in the store"
    )
    deletes: List[DeltaTriple] = Field(
        default_factory=list,
        description="Triples deleted from the store"
    )


class DeltaResponse(BaseModel):
    """Acknowledgement returned for a delta message."""
    message: str = Field(
        ...,
        description="Acknowledgement message"
    )
    task_count: int = Field(
        0,
        description="Number of tasks scheduled for processing"
    )


def get_task_uris(changesets: List[DeltaChangeset], predicate: str, operation: str) -> List[str]:
    """Collect the subjects of inserted ``<task> <predicate> <operation>`` triples.

    Args:
        changesets: Changesets of a delta message
        predicate: Predicate linking a task to its operation
        operation: Operation marker URI of the tasks to pick up

    Returns:
        Task URIs in order of appearance, without duplicates
    """
    task_uris = []
    for changeset in changesets:
        for triple in changeset.inserts:
            if (triple.predicate.value == predicate
                    and triple.object.type == 'uri'
                    and triple.object.value == operation
                    and triple.subject.value not in task_uris):
                task_uris.append(triple.subject.value)
    return task_uris
