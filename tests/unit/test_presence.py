"""
Unit tests for PresenceBuilder.

Tests:
- Field setters and truncation
- Validation of type, party and buttons
- Payload serialization
"""

import json
from datetime import datetime, timezone

import pytest

from discordrpc.ipc import ActivityType
from discordrpc.models import ActivityAssets, ActivityButton, ActivitySecrets
from discordrpc.presence import MAX_STRING_LENGTH, PresenceBuilder


class TestPresenceBuilder:
    """Tests for PresenceBuilder."""

    def test_empty_build(self) -> None:
        """An empty builder should serialize to an empty object."""
        assert PresenceBuilder().build().to_payload() == {}

    def test_full_activity(self) -> None:
        """Chained setters should produce the complete payload."""
        activity = (
            PresenceBuilder()
            .set_type(ActivityType.COMPETING)
            .set_details("Playing ranked")
            .set_state("In queue")
            .set_start_timestamp(1_700_000_000_000)
            .set_end_timestamp(1_700_000_600_000)
            .set_large_image("rank_icon", "Diamond III")
            .set_small_image("class_icon", "Mage")
            .set_party("party-123", 2, 5)
            .set_secrets(ActivitySecrets(join="join-secret"))
            .set_instance(True)
            .add_button("Join Game", "https://example.com/join")
            .build()
        )

        assert activity.to_payload() == {
            "type": 5,
            "details": "Playing ranked",
            "state": "In queue",
            "timestamps": {"start": 1_700_000_000_000, "end": 1_700_000_600_000},
            "assets": {
                "large_image": "rank_icon",
                "large_text": "Diamond III",
                "small_image": "class_icon",
                "small_text": "Mage",
            },
            "party": {"id": "party-123", "size": [2, 5]},
            "secrets": {"join": "join-secret"},
            "instance": True,
            "buttons": [{"label": "Join Game", "url": "https://example.com/join"}],
        }

    def test_strings_are_truncated(self) -> None:
        """Details and state should be cut to 128 characters."""
        activity = PresenceBuilder().set_details("d" * 200).set_state("s" * 129).build()
        assert len(activity.details) == MAX_STRING_LENGTH
        assert len(activity.state) == MAX_STRING_LENGTH

    def test_button_label_truncated(self) -> None:
        activity = PresenceBuilder().add_button("x" * 40, "https://example.com").build()
        assert activity.buttons[0].label == "x" * 32

    def test_datetime_timestamp(self) -> None:
        """datetime values should be converted to epoch milliseconds."""
        when = datetime(2024, 1, 1, tzinfo=timezone.utc)
        activity = PresenceBuilder().set_start_timestamp(when).build()
        assert activity.timestamps.start == 1_704_067_200_000

    def test_streaming_type_rejected(self) -> None:
        with pytest.raises(ValueError):
            PresenceBuilder().set_type(ActivityType.STREAMING)

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValueError):
            PresenceBuilder().set_type(4)

    def test_type_from_int(self) -> None:
        activity = PresenceBuilder().set_type(2).build()
        assert activity.type is ActivityType.LISTENING

    @pytest.mark.parametrize("current, maximum", [(3, 2), (-1, 4), (0, 0)])
    def test_invalid_party_size(self, current: int, maximum: int) -> None:
        with pytest.raises(ValueError):
            PresenceBuilder().set_party("p", current, maximum)

    def test_third_button_rejected(self) -> None:
        """At most two buttons should be accepted."""
        builder = PresenceBuilder().add_button("a", "https://a").add_button("b", "https://b")
        with pytest.raises(ValueError):
            builder.add_button("c", "https://c")

    def test_set_buttons_limit(self) -> None:
        buttons = [ActivityButton(label=str(i), url="https://example.com") for i in range(3)]
        with pytest.raises(ValueError):
            PresenceBuilder().set_buttons(buttons)

    def test_image_setters_keep_other_image(self) -> None:
        """Setting the small image should not reset the large one."""
        activity = (
            PresenceBuilder()
            .set_assets(ActivityAssets(large_image="big"))
            .set_small_image("small")
            .build()
        )
        assert activity.assets.large_image == "big"
        assert activity.assets.small_image == "small"

    def test_build_returns_copy(self) -> None:
        """Later builder changes should not affect built activities."""
        builder = PresenceBuilder().set_state("first")
        activity = builder.build()
        builder.set_state("second")
        assert activity.state == "first"

    def test_to_json(self) -> None:
        data = json.loads(PresenceBuilder().set_state("In menus").to_json())
        assert data == {"state": "In menus"}
