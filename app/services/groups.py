"""
Group Service — Create a group together with its members.

A group is two writes (groups, then group_members). If the member
insert fails, the just-created group row is deleted before the error
propagates, so a group is never left without members.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class GroupCreateError(Exception):
    """The group or its members could not be written."""


def create_group(
    client,
    name: str,
    member_ids: list[str],
    description: Optional[str] = None,
    created_by: Optional[str] = None,
) -> str:
    """
    Insert a group and one group_members row per member.

    Returns the new group id.

    Raises:
        GroupCreateError: Either insert failed. Nothing is left behind.
    """
    values = {"name": name}
    if description is not None:
        values["description"] = description
    if created_by is not None:
        values["created_by"] = created_by

    try:
        inserted = client.table("groups").insert(values).execute()
    except Exception as exc:
        raise GroupCreateError(f"Failed to create group: {exc}") from exc
    if not inserted.data:
        raise GroupCreateError("Failed to create group: no data returned from database")
    group_id = inserted.data[0]["id"]

    try:
        client.table("group_members").insert([
            {"group_id": group_id, "user_id": uid, "role": "member"}
            for uid in member_ids
        ]).execute()
    except Exception as exc:
        logger.error("Adding members to group %s failed; removing the group", group_id)
        delete_group(client, group_id)
        raise GroupCreateError(f"Failed to add members to group: {exc}") from exc

    return group_id


def delete_group(client, group_id: str) -> None:
    """Remove a group and its memberships. Failures are logged, not raised."""
    try:
        client.table("group_members").delete().eq("group_id", group_id).execute()
        client.table("groups").delete().eq("id", group_id).execute()
    except Exception as exc:
        logger.error("Failed to remove group %s: %s", group_id, exc)


def load_member_profiles(client, group_ids: list[str]) -> dict[str, list[dict]]:
    """Map each group id to its members' public profile fields."""
    if not group_ids:
        return {}
    members = (
        client.table("group_members")
        .select("group_id, user_id, role")
        .in_("group_id", group_ids)
        .execute()
    ).data or []

    user_ids = sorted({m["user_id"] for m in members})
    profiles = {}
    if user_ids:
        rows = (
            client.table("profiles")
            .select("id, full_name, avatar_url, city")
            .in_("id", user_ids)
            .execute()
        ).data or []
        profiles = {p["id"]: p for p in rows}

    by_group: dict[str, list[dict]] = {gid: [] for gid in group_ids}
    for m in members:
        profile = profiles.get(m["user_id"], {})
        by_group.setdefault(m["group_id"], []).append({
            "user_id": m["user_id"],
            "role": m.get("role") or "member",
            "full_name": profile.get("full_name"),
            "avatar_url": profile.get("avatar_url"),
            "city": profile.get("city"),
        })
    return by_group
