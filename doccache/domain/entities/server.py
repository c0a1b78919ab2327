"""Server entity: a single Discord guild (colloquially a server).

Indexes: { discord_id: 1 }
"""

from pydantic import Field

from doccache.domain.entities.base import Entity

COLLECTION_SERVERS = "servers"


class Server(Entity):
    """Discord guild, looked up by its Discord snowflake."""

    discord_id: str = Field(min_length=1)
