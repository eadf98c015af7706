"""CDN URL helpers."""

from __future__ import annotations

from typing import Literal

CDN_BASE_URL = "https://cdn.discordapp.com"

# Number of default embed avatars
DEFAULT_AVATAR_COUNT = 6

AvatarExtension = Literal["webp", "png", "gif", "jpeg"]


def avatar_url(
    user_id: str,
    avatar_hash: str | None = None,
    *,
    extension: AvatarExtension = "png",
    size: int = 512,
    force_static: bool = False,
) -> str:
    """
    Build the avatar URL for a user.

    Users without a custom avatar get one of the default embed avatars,
    chosen from the snowflake ID. Animated hashes (``a_`` prefix) are
    served as GIF unless ``force_static`` is set.
    """
    if not avatar_hash:
        index = (int(user_id) >> 22) % DEFAULT_AVATAR_COUNT
        return f"{CDN_BASE_URL}/embed/avatars/{index}.png"

    if avatar_hash.startswith("a_") and not force_static:
        extension = "gif"

    return f"{CDN_BASE_URL}/avatars/{user_id}/{avatar_hash}.{extension}?size={size}"
