"""ServerMember entity: a member of one Discord guild.

Members sharing a Discord user account are separate entities (one per guild).
Ownership is a belongs-to relationship through Discord IDs; the owner and
secondary owners can be pulled in as embeddable views by aggregation.

Indexes: { discord_user_id: 1 }, { discord_server_id: 1 }, { discord_member_id: 1 }
"""

from __future__ import annotations

from pydantic import Field

from doccache.domain.entities.base import Entity, embedded

COLLECTION_SERVER_MEMBERS = "server_members"


class ServerMember(Entity):
    """Guild member with optional owner and secondary owners."""

    discord_user_id: str = Field(min_length=1)
    discord_server_id: str = Field(min_length=1)
    discord_member_id: str = Field(min_length=1)

    # Belongs-to
    owner_discord_id: str | None = None
    sec_owner_discord_ids: list[str] = Field(default_factory=list)

    # Embeddables
    owner: ServerMember | None = embedded()
    sec_owners: list[ServerMember] = embedded(many=True)
