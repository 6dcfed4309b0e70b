"""mongorecon - MongoDB cluster reconciliation.

Converges a live replica set / sharded cluster to a declarative
inventory: replica set membership, shard registration, collection
sharding, indexes and users.
"""

__version__ = "0.1.0"
