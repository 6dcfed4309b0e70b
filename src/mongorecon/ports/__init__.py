"""Port interfaces for mongorecon.

Ports define the contracts that adapters must implement. Reconcilers
depend only on these abstractions, not on pymongo directly.
"""

from mongorecon.ports.cluster import ClusterClientPort, CollectionPort, DatabasePort

__all__ = [
    "ClusterClientPort",
    "CollectionPort",
    "DatabasePort",
]
