"""Replication of the canonical store to presentation replicas.

Message kinds on the wire (all encoded with :mod:`walletcore.codec`):

* ``{"kind": "state", "payload": <state tree>}`` sent once on attach.
* ``{"kind": "action", "payload": <action>}`` sent after each applied action.
* ``{"kind": "dispatch", "payload": <action>}`` received from a replica.
"""

from walletcore.replication.hub import ReplicaChannel, ReplicationHub
from walletcore.replication.mirror import LoopbackChannel, ReplicaMirror

__all__ = [
    "LoopbackChannel",
    "ReplicaChannel",
    "ReplicaMirror",
    "ReplicationHub",
]
