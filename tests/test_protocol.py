"""Tests for the session protocol codec."""
import json
import random

import pytest

from peerplay.network.errors import ProtocolDecodeError
from peerplay.network.protocol import (
    MessageType, StartGame, UpdateCounter, decode, encode,
    msg_start_game, msg_update_counter,
)


class TestEncoding:
    """Test message serialization."""

    def test_start_game_wire_format(self):
        """startGame is a bare action tag."""
        assert json.loads(encode(StartGame())) == {'action': 'startGame'}

    def test_update_counter_wire_format(self):
        """updateCounter carries counterValue."""
        assert json.loads(encode(UpdateCounter(7))) == {'action': 'updateCounter', 'counterValue': 7}

    def test_builders_match_encode(self):
        assert msg_start_game() == encode(StartGame())
        assert msg_update_counter(3) == encode(UpdateCounter(3))

    def test_message_types(self):
        assert StartGame().type == MessageType.START_GAME
        assert UpdateCounter(0).type == MessageType.UPDATE_COUNTER

    def test_negative_counter_rejected(self):
        """Counter values are never negative."""
        with pytest.raises(ValueError):
            UpdateCounter(-1)

    @pytest.mark.parametrize('message', [StartGame(), UpdateCounter(0), UpdateCounter(2 ** 40)])
    def test_round_trip(self, message):
        assert decode(encode(message)) == message


class TestDecoding:
    """Test payload parsing and rejection of bad input."""

    def test_extra_keys_are_ignored(self):
        """Payloads from peers that send extra keys still decode."""
        data = json.dumps({'action': 'updateCounter', 'counterValue': 4, 'extra': True}).encode()
        assert decode(data) == UpdateCounter(4)

    def test_unknown_action_is_ignored(self):
        """Unknown tags decode to None instead of failing."""
        assert decode(b'{"action": "chat", "text": "hi"}') is None

    @pytest.mark.parametrize('data', [
        b'',
        b'not json',
        b'\xff\xfe\x00',
        b'[1, 2, 3]',
        b'"startGame"',
        b'{}',
        b'{"action": 5}',
        b'{"action": "updateCounter"}',
        b'{"action": "updateCounter", "counterValue": "3"}',
        b'{"action": "updateCounter", "counterValue": 1.5}',
        b'{"action": "updateCounter", "counterValue": -2}',
        b'{"action": "updateCounter", "counterValue": true}',
        b'{"action": "updateCounter", "counterValue": null}',
        b'[' * 100000,
    ])
    def test_malformed_payload_raises_decode_error(self, data):
        with pytest.raises(ProtocolDecodeError):
            decode(data)

    def test_truncated_payloads_never_crash(self):
        """Every prefix of a valid payload decodes or raises ProtocolDecodeError."""
        data = encode(UpdateCounter(12345))
        for end in range(len(data)):
            try:
                decode(data[:end])
            except ProtocolDecodeError:
                pass

    def test_random_bytes_never_crash(self):
        rng = random.Random(1234)
        for _ in range(500):
            data = bytes(rng.randrange(256) for _ in range(rng.randrange(1, 40)))
            try:
                result = decode(data)
            except ProtocolDecodeError:
                continue
            assert result is None or isinstance(result, (StartGame, UpdateCounter))
