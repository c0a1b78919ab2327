"""Entity contract and the concrete entity types."""

from doccache.domain.entities.base import Entity, embedded
from doccache.domain.entities.server import COLLECTION_SERVERS, Server
from doccache.domain.entities.server_member import (
    COLLECTION_SERVER_MEMBERS,
    ServerMember,
)

__all__ = [
    "COLLECTION_SERVERS",
    "COLLECTION_SERVER_MEMBERS",
    "Entity",
    "Server",
    "ServerMember",
    "embedded",
]
