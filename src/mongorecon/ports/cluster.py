"""Port interfaces for the slice of the MongoDB client API mongorecon uses.

pymongo's MongoClient satisfies these protocols; tests substitute an
in-memory cluster.
"""

from collections.abc import Mapping
from typing import Any, Protocol


class CollectionPort(Protocol):
    """Protocol for reading documents from a collection."""

    def find_one(self, filter: Mapping[str, Any] | None = None) -> Mapping[str, Any] | None:
        """Return the first matching document, or None."""
        ...


class DatabasePort(Protocol):
    """Protocol for issuing commands against one database."""

    def command(self, command: Mapping[str, Any], *, check: bool = True) -> Mapping[str, Any]:
        """Run a database command and return its result document."""
        ...

    def __getitem__(self, name: str) -> CollectionPort:
        """Get a collection by name."""
        ...


class ClusterClientPort(Protocol):
    """Protocol for a connection to one cluster endpoint."""

    def __getitem__(self, name: str) -> DatabasePort:
        """Get a database by name."""
        ...

    def list_database_names(self) -> list[str]:
        """List databases; used to verify the connection."""
        ...

    def close(self) -> None:
        """Close the connection."""
        ...
