"""Packet-filter FEC configuration, negotiation and XOR parity groups.

FEC is configured with a string such as
``"fec,cols:10,rows:5,layout:staircase,arq:onreq"``. FEC packets are data
packets with message number 0 whose payload starts with a 4-byte header
(group index, XOR of encryption flags, XOR of lengths) followed by the XOR
parity of the group's payloads.
"""

from __future__ import annotations

import enum
import logging
import re
import struct
from dataclasses import dataclass, field

from ..seq import SeqNo

logger = logging.getLogger(__name__)

SRT_CMD_FILTER = 7
"""Handshake extension type carrying the packet filter configuration."""

SRT_MSGNO_CONTROL = 0
"""Message number identifying FEC control packets."""

FEC_HEADER_SIZE = 4
"""Size of the FEC payload header in bytes."""

FEC_GROUP_ROW = -1
"""Group index of row FEC packets (sent as 0xFF)."""

_UNSIGNED = re.compile(r"\+?\d+")
_SIGNED = re.compile(r"[+-]?\d+")
_LE_WORD = struct.Struct("<I")


class FecConfigError(ValueError):
    """An FEC configuration string is invalid or the two sides disagree."""


class FecLayout(enum.Enum):
    """How column groups are laid out over the FEC matrix."""

    EVEN = "even"
    STAIRCASE = "staircase"

    def __str__(self) -> str:
        return self.value


class ArqMode(enum.Enum):
    """How retransmission requests interact with FEC."""

    ALWAYS = "always"
    ONREQ = "onreq"
    NEVER = "never"

    def __str__(self) -> str:
        return self.value


@dataclass
class FecConfig:
    """FEC filter parameters: ``cols`` is the row group size, ``rows`` the column group size."""

    cols: int = 10
    rows: int = 1
    layout: FecLayout = FecLayout.STAIRCASE
    arq: ArqMode = ArqMode.ONREQ

    @classmethod
    def parse(cls, config_str: str) -> FecConfig:
        """Parse a ``fec,key:value,...`` string; raises FecConfigError when invalid."""
        trimmed = config_str.strip()
        if not trimmed:
            raise FecConfigError("empty config string")

        head, sep, rest = trimmed.partition(",")
        if head.strip() != "fec":
            raise FecConfigError(f"config must start with 'fec', got '{head}'")

        config = cls()
        if not sep:
            return config

        for raw_param in rest.split(","):
            param = raw_param.strip()
            if not param:
                continue
            key, colon, value = param.partition(":")
            if not colon:
                raise FecConfigError(f"invalid parameter '{param}', expected key:value")
            key, value = key.strip(), value.strip()

            if key == "cols":
                if not _UNSIGNED.fullmatch(value):
                    raise FecConfigError(f"invalid cols value: '{value}'")
                config.cols = int(value)
                if config.cols == 0:
                    raise FecConfigError("cols must be >= 1")
            elif key == "rows":
                # A negative row count means column-only in other
                # implementations; only its magnitude matters here.
                if not _SIGNED.fullmatch(value):
                    raise FecConfigError(f"invalid rows value: '{value}'")
                config.rows = abs(int(value))
                if config.rows == 0:
                    raise FecConfigError("rows must be >= 1")
            elif key == "layout":
                try:
                    config.layout = FecLayout(value)
                except ValueError:
                    raise FecConfigError(
                        f"invalid layout: '{value}', expected 'even' or 'staircase'"
                    ) from None
            elif key == "arq":
                try:
                    config.arq = ArqMode(value)
                except ValueError:
                    raise FecConfigError(
                        f"invalid arq: '{value}', expected 'always', 'onreq', or 'never'"
                    ) from None
            else:
                logger.debug("FEC config: ignoring unknown parameter '%s'", key)

        return config

    def to_config_string(self) -> str:
        """Format as a ``fec,...`` configuration string."""
        return f"fec,cols:{self.cols},rows:{self.rows},layout:{self.layout},arq:{self.arq}"

    def __str__(self) -> str:
        return self.to_config_string()

    def is_2d(self) -> bool:
        """True when both row and column protection are in use."""
        return self.rows > 1

    def matrix_size(self) -> int:
        """Number of data packets in one complete FEC matrix."""
        return self.cols * self.rows

    def column_base_offset(self, col_index: int) -> int:
        """Offset in the matrix of the first packet of column ``col_index``."""
        if self.layout is FecLayout.EVEN:
            return col_index
        matrix = self.matrix_size()
        if matrix == 0:
            return 0
        return (col_index * (1 + self.cols)) % matrix


def serialize_filter_extension(config: str) -> list[int]:
    """Encode a filter string as handshake extension words, header word first.

    The string is null-padded to a multiple of four bytes and packed into
    little-endian words; an empty string yields no words.
    """
    if not config:
        return []
    data = config.encode("utf-8")
    data += b"\x00" * (-len(data) % 4)
    size_words = len(data) // 4
    header = ((SRT_CMD_FILTER << 16) | size_words) & 0xFFFF_FFFF
    return [header] + [word for (word,) in _LE_WORD.iter_unpack(data)]


def parse_filter_extension(ext_data: list[int]) -> str:
    """Decode extension data words (without the header word) back to a filter string."""
    data = b"".join(_LE_WORD.pack(word & 0xFFFF_FFFF) for word in ext_data)
    return data.rstrip(b"\x00").decode("utf-8", errors="replace")


def negotiate_filter(local: str, peer: str) -> str:
    """Agree on a filter string between the two sides.

    If only one side configured a filter it is used as given. If both did,
    cols, rows and layout must match, and the stricter ARQ mode wins.
    Raises FecConfigError on invalid or conflicting configurations.
    """
    local_empty = not local.strip()
    peer_empty = not peer.strip()

    if local_empty and peer_empty:
        return ""
    if local_empty:
        FecConfig.parse(peer)
        return peer
    if peer_empty:
        FecConfig.parse(local)
        return local

    local_cfg = FecConfig.parse(local)
    peer_cfg = FecConfig.parse(peer)

    if local_cfg.cols != peer_cfg.cols:
        raise FecConfigError(
            f"FEC cols mismatch: local={local_cfg.cols} peer={peer_cfg.cols}"
        )
    if local_cfg.rows != peer_cfg.rows:
        raise FecConfigError(
            f"FEC rows mismatch: local={local_cfg.rows} peer={peer_cfg.rows}"
        )
    if local_cfg.layout != peer_cfg.layout:
        raise FecConfigError(
            f"FEC layout mismatch: local={local_cfg.layout} peer={peer_cfg.layout}"
        )

    modes = {local_cfg.arq, peer_cfg.arq}
    if ArqMode.NEVER in modes:
        arq = ArqMode.NEVER
    elif ArqMode.ONREQ in modes:
        arq = ArqMode.ONREQ
    else:
        arq = ArqMode.ALWAYS

    return FecConfig(local_cfg.cols, local_cfg.rows, local_cfg.layout, arq).to_config_string()


def xor_into(dst: bytearray, src: bytes) -> None:
    """XOR ``src`` into ``dst`` in place, zero-extending ``dst`` if it is shorter."""
    if len(dst) < len(src):
        dst.extend(bytes(len(src) - len(dst)))
    for i, byte in enumerate(src):
        dst[i] ^= byte


@dataclass
class FecGroup:
    """Recovery state of one FEC group: which members arrived and their XOR parity."""

    base_seq: SeqNo
    group_size: int
    received: list[bool] = field(init=False)
    parity: bytearray = field(init=False, default_factory=bytearray)
    fec_received: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        self.received = [False] * self.group_size

    def on_data_packet(self, index: int, payload: bytes) -> None:
        """Record member ``index``; out-of-range indices and duplicates are ignored."""
        if not 0 <= index < self.group_size or self.received[index]:
            return
        self.received[index] = True
        xor_into(self.parity, payload)

    def on_fec_packet(self, payload: bytes) -> None:
        """Record the group's FEC parity payload."""
        self.fec_received = True
        xor_into(self.parity, payload)

    def can_recover(self) -> int | None:
        """Index of the single missing member if it can be rebuilt, else None."""
        if not self.fec_received:
            return None
        missing = [i for i, got in enumerate(self.received) if not got]
        return missing[0] if len(missing) == 1 else None

    def recover(self) -> bytes | None:
        """The rebuilt payload of the missing member, or None if not recoverable."""
        if self.can_recover() is None:
            return None
        return bytes(self.parity)

    def missing_count(self) -> int:
        """Number of members not yet received."""
        return self.received.count(False)

    def is_complete(self) -> bool:
        """True when every member has been received."""
        return all(self.received)