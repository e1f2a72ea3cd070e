from __future__ import annotations

import pytest

from monitorswitch.core.errors import ProtocolError
from monitorswitch.transports.ddc_packets import build_get_vcp, build_set_vcp, parse_get_vcp_reply


def _reply(code: int, maximum: int, current: int, opcode: int = 0x02) -> bytes:
    return bytes([0x6E, 0x88, opcode, 0x00, code, 0x00, maximum >> 8, maximum & 0xFF, current >> 8, current & 0xFF, 0x00])


def test_set_vcp_packet_layout() -> None:
    packet = build_set_vcp(0x10, 0x0150)
    assert packet == bytes([0x51, 0x84, 0x10, 0x01, 0x50, 0x6E ^ 0x10 ^ 0x01 ^ 0x50])


def test_set_vcp_checksum_for_input_switch() -> None:
    packet = build_set_vcp(0x60, 0x11)
    assert packet[:5] == bytes([0x51, 0x84, 0x60, 0x00, 0x11])
    assert packet[5] == 0x6E ^ 0x60 ^ 0x00 ^ 0x11


def test_get_vcp_packet_layout() -> None:
    assert build_get_vcp(0x12) == bytes([0x51, 0x82, 0x12, 0x6E ^ 0x12])


def test_builders_reject_out_of_range_values() -> None:
    with pytest.raises(ValueError):
        build_set_vcp(0x100, 1)
    with pytest.raises(ValueError):
        build_set_vcp(0x10, 0x10000)
    with pytest.raises(ValueError):
        build_get_vcp(-1)


def test_parse_reply_reads_current_and_max() -> None:
    reading = parse_get_vcp_reply(_reply(0x10, 100, 75), 0x10)
    assert reading.current == 75
    assert reading.maximum == 100


def test_parse_reply_uses_both_bytes() -> None:
    reading = parse_get_vcp_reply(_reply(0x62, 0x0102, 0x0201), 0x62)
    assert reading.maximum == 0x0102
    assert reading.current == 0x0201


def test_parse_reply_rejects_wrong_opcode() -> None:
    with pytest.raises(ProtocolError):
        parse_get_vcp_reply(_reply(0x10, 100, 75, opcode=0x03), 0x10)


def test_parse_reply_rejects_feature_mismatch() -> None:
    with pytest.raises(ProtocolError):
        parse_get_vcp_reply(_reply(0x12, 100, 75), 0x10)


def test_parse_reply_rejects_short_reply() -> None:
    with pytest.raises(ProtocolError):
        parse_get_vcp_reply(_reply(0x10, 100, 75)[:6], 0x10)
