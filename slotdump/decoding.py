"""Rendering of 32-byte storage words as the types a user can pick."""

from __future__ import annotations

WORD = 32


def format_slot(key: bytes) -> str:
    """Return a slot key as 0x-prefixed lowercase hex."""
    return "0x" + key.hex()


def hex_to_ascii(hex_string: str) -> str:
    """Turn a hex string into characters, one per byte, dropping line breaks."""
    raw = bytes.fromhex(hex_string)
    text = raw.decode("latin-1")
    return text.replace("\r", "").replace("\n", "")


def _word(data: bytes, offset: int) -> int:
    if offset + WORD > len(data):
        raise ValueError("ABI data too short")
    return int.from_bytes(data[offset : offset + WORD], "big")


def decode_abi_string(data: bytes) -> str:
    """Decode ABI-encoded data holding a single dynamic string."""
    offset = _word(data, 0)
    length = _word(data, offset)
    start = offset + WORD
    if start + length > len(data):
        raise ValueError("ABI string exceeds data")
    return data[start : start + length].decode("utf-8", errors="replace")


def decode_value(value: bytes, type_index: int) -> str:
    """Render a storage word as the type at ``type_index`` of the decode types."""
    hex_value = value.hex()
    if type_index == 0:
        return "0x" + hex_value
    if type_index == 1:
        return "true" if any(value) else "false"
    if type_index == 2:
        return "0x" + hex_value[24:]
    if type_index == 3:
        try:
            return decode_abi_string(value)
        except ValueError:
            return hex_to_ascii(hex_value)
    if type_index == 4:
        return str(int.from_bytes(value, "big"))
    return "decoding error"