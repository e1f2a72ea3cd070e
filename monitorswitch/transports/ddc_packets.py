"""DDC/CI VCP packet encoding and reply validation.

Packets are laid out for an I2C write to the display at 7-bit address 0x37:

    set VCP:  51 84 <code> <hi> <lo> <chk>
    get VCP:  51 82 <code> <chk>
    reply:    <addr> <len> 02 <result> <code> <type> <max hi> <max lo> <cur hi> <cur lo> <chk>

The checksum byte is 0x6E XORed with the feature code and value bytes.
"""

from __future__ import annotations

from monitorswitch.core.errors import ProtocolError
from monitorswitch.core.model import VCPReading

DDC_ADDRESS = 0x37
HOST_ADDRESS = 0x51
SET_VCP_OPCODE = 0x84
GET_VCP_OPCODE = 0x82
GET_VCP_REPLY_OPCODE = 0x02
GET_VCP_REPLY_LENGTH = 11
MIN_REPLY_DELAY_NS = 30_000_000
CHECKSUM_SEED = 0x6E


def _checked_code(code: int) -> int:
    if not 0 <= code <= 0xFF:
        raise ValueError(f"VCP code {code} does not fit in one byte")
    return code


def build_set_vcp(code: int, value: int) -> bytes:
    _checked_code(code)
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"VCP value {value} does not fit in 16 bits")
    high = (value >> 8) & 0xFF
    low = value & 0xFF
    checksum = CHECKSUM_SEED ^ code ^ high ^ low
    return bytes([HOST_ADDRESS, SET_VCP_OPCODE, code, high, low, checksum])


def build_get_vcp(code: int) -> bytes:
    _checked_code(code)
    return bytes([HOST_ADDRESS, GET_VCP_OPCODE, code, CHECKSUM_SEED ^ code])


def parse_get_vcp_reply(reply: bytes, code: int) -> VCPReading:
    """Validate a get-VCP reply and return its current/max values.

    Mismatched opcode or feature echo is a hard failure; no recovery is
    attempted.
    """
    if len(reply) < 10:
        raise ProtocolError(f"DDC reply too short: {len(reply)} bytes")
    if reply[2] != GET_VCP_REPLY_OPCODE:
        raise ProtocolError(f"unexpected DDC reply opcode 0x{reply[2]:02X}")
    if reply[4] != code:
        raise ProtocolError(
            f"DDC reply is for feature 0x{reply[4]:02X}, expected 0x{code:02X}"
        )
    maximum = (reply[6] << 8) | reply[7]
    current = (reply[8] << 8) | reply[9]
    return VCPReading(current=current, maximum=maximum)
