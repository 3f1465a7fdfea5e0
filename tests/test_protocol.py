"""Tests for decoding client frames into intents."""

import pytest

from remote_volume.protocol import (
    AdjustVolume,
    DecodeError,
    GetState,
    Mute,
    SetVolume,
    ToggleMute,
    Unmute,
    UnknownActionError,
    decode,
)


class TestDecode:
    def test_set_volume(self) -> None:
        assert decode('{"action": "setVolume", "value": 42}') == SetVolume(42)

    def test_adjust_directions(self) -> None:
        assert decode('{"action": "increaseVolume", "value": 5}') == AdjustVolume(5, +1)
        assert decode('{"action": "decreaseVolume", "value": 5}') == AdjustVolume(5, -1)

    def test_mute_family(self) -> None:
        assert decode('{"action": "mute"}') == Mute()
        assert decode('{"action": "unmute"}') == Unmute()
        assert decode('{"action": "toggleMute"}') == ToggleMute()

    def test_state_queries(self) -> None:
        assert decode('{"action": "getState"}') == GetState()
        assert decode('{"action": "isMuted"}') == GetState()

    def test_bytes_frame(self) -> None:
        assert decode(b'{"action": "mute"}') == Mute()

    def test_integral_float_value_accepted(self) -> None:
        assert decode('{"action": "setVolume", "value": 30.0}') == SetVolume(30)

    def test_unknown_action(self) -> None:
        with pytest.raises(UnknownActionError) as exc_info:
            decode('{"action": "bogus"}')
        assert str(exc_info.value) == "Unknown action"
        assert exc_info.value.action == "bogus"

    def test_unknown_action_is_decode_error(self) -> None:
        with pytest.raises(DecodeError):
            decode('{"action": "bogus"}')

    def test_not_json(self) -> None:
        with pytest.raises(DecodeError, match="invalid JSON"):
            decode("{not json")

    def test_not_an_object(self) -> None:
        with pytest.raises(DecodeError, match="JSON object"):
            decode("[1, 2, 3]")

    def test_missing_action(self) -> None:
        with pytest.raises(DecodeError, match="action"):
            decode('{"value": 3}')

    def test_missing_value(self) -> None:
        with pytest.raises(DecodeError, match="requires an integer 'value'"):
            decode('{"action": "setVolume"}')

    def test_non_integer_value(self) -> None:
        with pytest.raises(DecodeError, match="value"):
            decode('{"action": "setVolume", "value": "loud"}')

    def test_numeric_string_value_rejected(self) -> None:
        with pytest.raises(DecodeError, match="value must be an integer"):
            decode('{"action": "setVolume", "value": "50"}')

    def test_boolean_value_rejected(self) -> None:
        with pytest.raises(DecodeError, match="value must be an integer"):
            decode('{"action": "increaseVolume", "value": true}')

    def test_fractional_value_rejected(self) -> None:
        with pytest.raises(DecodeError, match="invalid value"):
            decode('{"action": "setVolume", "value": 50.5}')

    def test_invalid_utf8(self) -> None:
        with pytest.raises(DecodeError, match="UTF-8"):
            decode(b"\xff\xfe")
