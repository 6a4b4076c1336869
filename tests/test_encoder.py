import struct

from srtproto.fec.encoder import FecEncoder, FecPacketData
from srtproto.fec.filter import (
    FEC_HEADER_SIZE,
    ArqMode,
    FecConfig,
    FecLayout,
    xor_into,
)
from srtproto.seq import SeqNo


def _config(cols, rows, layout=FecLayout.EVEN):
    return FecConfig(cols=cols, rows=rows, layout=layout, arq=ArqMode.ONREQ)


def test_row_fec_generation():
    encoder = FecEncoder(_config(3, 1))

    assert encoder.on_data_packet(SeqNo(0), 100, 0, b"aaaa") == []
    assert encoder.on_data_packet(SeqNo(1), 200, 0, b"bbbb") == []
    fec = encoder.on_data_packet(SeqNo(2), 300, 0, b"cccc")
    assert len(fec) == 1

    pkt = fec[0]
    assert isinstance(pkt, FecPacketData)
    assert pkt.seq_no == SeqNo(2)
    assert pkt.timestamp == 100 ^ 200 ^ 300
    assert len(pkt.payload) >= FEC_HEADER_SIZE
    assert pkt.payload[0] == 0xFF


def test_row_fec_header_fields():
    encoder = FecEncoder(_config(3, 1))
    encoder.on_data_packet(SeqNo(0), 100, 1, b"aaaa")
    encoder.on_data_packet(SeqNo(1), 200, 2, b"bb")
    fec = encoder.on_data_packet(SeqNo(2), 300, 1, b"cccc")
    payload = fec[0].payload
    assert payload[1] == 1 ^ 2 ^ 1
    (length,) = struct.unpack(">H", payload[2:4])
    assert length == 4 ^ 2 ^ 4
    assert len(payload) == FEC_HEADER_SIZE + 4


def test_row_fec_recovery():
    encoder = FecEncoder(_config(3, 1))
    pkt0, pkt1, pkt2 = b"Hello!!!", b"FEC test", b"Recovery"

    encoder.on_data_packet(SeqNo(0), 100, 0, pkt0)
    encoder.on_data_packet(SeqNo(1), 200, 0, pkt1)
    fec = encoder.on_data_packet(SeqNo(2), 300, 0, pkt2)
    assert len(fec) == 1

    recovered = bytearray(fec[0].payload[FEC_HEADER_SIZE:])
    xor_into(recovered, pkt0)
    xor_into(recovered, pkt2)
    assert bytes(recovered[: len(pkt1)]) == pkt1


def test_row_group_resets_between_rows():
    encoder = FecEncoder(_config(2, 1))
    encoder.on_data_packet(SeqNo(0), 1, 0, b"xx")
    first = encoder.on_data_packet(SeqNo(1), 2, 0, b"yy")
    encoder.on_data_packet(SeqNo(2), 1, 0, b"xx")
    second = encoder.on_data_packet(SeqNo(3), 2, 0, b"yy")
    assert first[0].payload == second[0].payload
    assert first[0].timestamp == second[0].timestamp
    assert second[0].seq_no == SeqNo(3)


def test_2d_fec_generation():
    encoder = FecEncoder(_config(3, 2))
    total = 0
    for i in range(6):
        payload = f"pkt{i:04}".encode()
        total += len(encoder.on_data_packet(SeqNo(i), (i + 1) * 100, 0, payload))
    assert total == 5


def test_2d_column_fec_indices():
    encoder = FecEncoder(_config(3, 2))
    emitted = []
    for i in range(6):
        emitted.extend(encoder.on_data_packet(SeqNo(i), 0, 0, b"data"))
    column_indices = sorted(p.payload[0] for p in emitted if p.payload[0] != 0xFF)
    assert column_indices == [0, 1, 2]
    column_seqs = sorted(p.seq_no.value for p in emitted if p.payload[0] != 0xFF)
    assert column_seqs == [3, 4, 5]


def test_column_index_even():
    encoder = FecEncoder(_config(4, 3))
    assert encoder.column_index_for_packet(0) == 0
    assert encoder.column_index_for_packet(1) == 1
    assert encoder.column_index_for_packet(2) == 2
    assert encoder.column_index_for_packet(3) == 3
    assert encoder.column_index_for_packet(4) == 0
    assert encoder.column_index_for_packet(5) == 1


def test_column_index_staircase_bases():
    config = _config(5, 4, FecLayout.STAIRCASE)
    encoder = FecEncoder(config)
    for col in range(config.cols):
        assert encoder.column_index_for_packet(config.column_base_offset(col)) == col


def test_column_index_staircase_each_column_gets_rows_slots():
    config = _config(5, 4, FecLayout.STAIRCASE)
    encoder = FecEncoder(config)
    counts = [0] * config.cols
    for pos in range(config.matrix_size()):
        counts[encoder.column_index_for_packet(pos)] += 1
    assert counts == [config.rows] * config.cols