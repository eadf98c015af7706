"""
Rich Presence builder.

Provides a chainable API that validates and truncates fields before
producing an Activity payload.
"""

from __future__ import annotations

from datetime import datetime

from discordrpc.ipc.protocol import ActivityType
from discordrpc.models import (
    Activity,
    ActivityAssets,
    ActivityButton,
    ActivityParty,
    ActivitySecrets,
    ActivityTimestamps,
)

MAX_BUTTONS = 2
MAX_STRING_LENGTH = 128
MAX_BUTTON_LABEL_LENGTH = 32

# STREAMING is not accepted by SET_ACTIVITY
VALID_ACTIVITY_TYPES: frozenset[ActivityType] = frozenset(
    {
        ActivityType.PLAYING,
        ActivityType.LISTENING,
        ActivityType.WATCHING,
        ActivityType.COMPETING,
    }
)


def _truncate(value: str, max_length: int) -> str:
    return value[:max_length]


def _epoch_ms(value: int | float | datetime) -> int:
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    return int(value)


class PresenceBuilder:
    """
    Fluent builder for Rich Presence activities.

    Example:
        activity = (
            PresenceBuilder()
            .set_details("Playing ranked")
            .set_state("In queue")
            .set_start_timestamp(datetime.now())
            .set_large_image("rank_icon", "Diamond III")
            .set_party("party-123", 2, 5)
            .add_button("Join Game", "https://example.com/join")
            .build()
        )
    """

    def __init__(self) -> None:
        self._activity = Activity()

    def set_type(self, activity_type: ActivityType | int) -> PresenceBuilder:
        """
        Set the activity type.

        Raises:
            ValueError: For STREAMING or unknown types
        """
        try:
            resolved = ActivityType(activity_type)
        except ValueError as e:
            raise ValueError(f"Unknown activity type: {activity_type}") from e
        if resolved not in VALID_ACTIVITY_TYPES:
            raise ValueError(
                f"Invalid activity type for SET_ACTIVITY: {int(resolved)}. "
                "Only Playing (0), Listening (2), Watching (3), and Competing (5) are supported."
            )
        self._activity.type = resolved
        return self

    def set_details(self, details: str) -> PresenceBuilder:
        """Set the top-line text (max 128 characters)."""
        self._activity.details = _truncate(details, MAX_STRING_LENGTH)
        return self

    def set_details_url(self, url: str) -> PresenceBuilder:
        self._activity.details_url = url
        return self

    def set_state(self, state: str) -> PresenceBuilder:
        """Set the second-line text (max 128 characters)."""
        self._activity.state = _truncate(state, MAX_STRING_LENGTH)
        return self

    def set_state_url(self, url: str) -> PresenceBuilder:
        self._activity.state_url = url
        return self

    def set_timestamps(self, timestamps: ActivityTimestamps) -> PresenceBuilder:
        self._activity.timestamps = timestamps
        return self

    def set_start_timestamp(self, when: int | float | datetime) -> PresenceBuilder:
        """Set the start timestamp (shows elapsed time)."""
        current = self._activity.timestamps or ActivityTimestamps()
        self._activity.timestamps = current.model_copy(update={"start": _epoch_ms(when)})
        return self

    def set_end_timestamp(self, when: int | float | datetime) -> PresenceBuilder:
        """Set the end timestamp (shows remaining time)."""
        current = self._activity.timestamps or ActivityTimestamps()
        self._activity.timestamps = current.model_copy(update={"end": _epoch_ms(when)})
        return self

    def set_assets(self, assets: ActivityAssets) -> PresenceBuilder:
        self._activity.assets = assets
        return self

    def set_large_image(
        self, key: str, text: str | None = None, url: str | None = None
    ) -> PresenceBuilder:
        """Set the large image with optional hover text and link."""
        current = self._activity.assets or ActivityAssets()
        self._activity.assets = current.model_copy(
            update={"large_image": key, "large_text": text, "large_url": url}
        )
        return self

    def set_small_image(
        self, key: str, text: str | None = None, url: str | None = None
    ) -> PresenceBuilder:
        """Set the small image with optional hover text and link."""
        current = self._activity.assets or ActivityAssets()
        self._activity.assets = current.model_copy(
            update={"small_image": key, "small_text": text, "small_url": url}
        )
        return self

    def set_party(self, party_id: str, current_size: int, max_size: int) -> PresenceBuilder:
        """
        Set the party information.

        Raises:
            ValueError: If the sizes are inconsistent
        """
        if current_size < 0 or max_size < 1 or current_size > max_size:
            raise ValueError(f"Invalid party size: {current_size}/{max_size}")
        self._activity.party = ActivityParty(id=party_id, size=(current_size, max_size))
        return self

    def set_party_raw(self, party: ActivityParty) -> PresenceBuilder:
        self._activity.party = party
        return self

    def set_secrets(self, secrets: ActivitySecrets) -> PresenceBuilder:
        self._activity.secrets = secrets
        return self

    def set_instance(self, instance: bool) -> PresenceBuilder:
        self._activity.instance = instance
        return self

    def set_buttons(self, buttons: list[ActivityButton]) -> PresenceBuilder:
        """
        Replace all buttons.

        Raises:
            ValueError: If more than two buttons are given
        """
        if len(buttons) > MAX_BUTTONS:
            raise ValueError(f"Maximum of {MAX_BUTTONS} buttons allowed, got {len(buttons)}.")
        self._activity.buttons = [
            ActivityButton(label=_truncate(b.label, MAX_BUTTON_LABEL_LENGTH), url=b.url)
            for b in buttons
        ]
        return self

    def add_button(self, label: str, url: str) -> PresenceBuilder:
        """
        Append a button (label max 32 characters).

        Raises:
            ValueError: If two buttons are already set
        """
        buttons = list(self._activity.buttons or [])
        if len(buttons) >= MAX_BUTTONS:
            raise ValueError(f"Maximum of {MAX_BUTTONS} buttons allowed.")
        buttons.append(ActivityButton(label=_truncate(label, MAX_BUTTON_LABEL_LENGTH), url=url))
        self._activity.buttons = buttons
        return self

    def build(self) -> Activity:
        """Return a copy of the activity built so far."""
        return self._activity.model_copy(deep=True)

    def to_json(self) -> str:
        """JSON representation of the payload (for debugging)."""
        return self._activity.model_dump_json(exclude_none=True, indent=2)
