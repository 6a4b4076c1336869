# srtproto

Protocol logic for SRT (Secure Reliable Transport), with no sockets and no
event loop. It provides the arithmetic, bookkeeping and forward error
correction that an SRT transport needs. You supply the I/O.

## Modules

- `srtproto.seq.SeqNo` is a 31-bit sequence number that wraps. It has
  `increment`, `decrement`, `add`, `diff`, `is_after` and `is_before`, plus
  `SeqNo.offset(start, end)` for the forward distance between two numbers.
- `srtproto.msg.MsgNo` is a 26-bit message number. Zero is reserved, so
  `MsgNo(0)` becomes 1 and `increment` skips 0 when it wraps.
- `srtproto.ack.AckState` holds ACK sequence numbers, `last_ack` and
  `last_data_ack`, and decides when a light ACK or a full ACK is due.
- `srtproto.timer` provides `PeriodicTimer` and `SrtTimers`.
  - `SrtTimers` runs the ACK, NAK and keep-alive timers.
  - It keeps the smoothed RTT and its variance (`update_rtt`), and computes
    the NAK and expiration intervals.
  - It tracks expiry with `on_response_received` and `is_expired`.
  - Its clock returns monotonic seconds.
- `srtproto.tsbpd.TsbpdTime` maps 32-bit sender timestamps to local
  delivery times in nanoseconds. It has `delivery_time`, `is_ready`,
  `time_until_ready` and `is_too_late`, and takes clock-drift samples
  through `update_drift`.
- `srtproto.window` provides two timing windows:
  - `AckWindow` gives the RTT between sending an ACK and receiving its
    ACKACK.
  - `PktTimeWindow` estimates the receive rate (`recv_speed`) and the link
    bandwidth from probe packets (`bandwidth`).
- `srtproto.fec.filter` handles packet filter configuration and parity:
  - `FecConfig.parse` reads filter strings such as
    `"fec,cols:10,rows:5,layout:staircase,arq:onreq"` and raises
    `FecConfigError` for invalid strings.
  - `negotiate_filter` combines the local and peer settings.
  - `serialize_filter_extension` and `parse_filter_extension` convert a
    filter string to and from handshake extension words.
  - `xor_into` and `FecGroup` do the XOR parity work.
- `srtproto.fec.encoder.FecEncoder` returns `FecPacketData` items. It emits
  one for each completed row and, in 2D mode, one for each completed column.
- `srtproto.fec.decoder.FecDecoder` takes data and FEC packets and returns
  `RecoveredPacket`s. In 2D mode it also uses packets rebuilt in one
  dimension to recover packets in the other (cascade recovery).
  - `on_fec_packet` returns a `FecDecodeResult`. Its `uncoverable` list
    holds losses that only retransmission can repair.
  - `cleanup_old_groups` drops groups that are already acknowledged.
- `srtproto.fec.recv_group.RecvGroup` is the state of one receive group.

All durations are returned as `datetime.timedelta`. Every class that reads
the time accepts a `clock` callable, so tests can drive it.

## Example

```python
from srtproto.seq import SeqNo
from srtproto.fec.filter import FecConfig
from srtproto.fec.encoder import FecEncoder
from srtproto.fec.decoder import FecDecoder

config = FecConfig.parse("fec,cols:3,rows:1,layout:even")
encoder = FecEncoder(config)
decoder = FecDecoder(config, SeqNo(0))

packets = [b"pkt00000", b"pkt00001", b"pkt00002"]
fec = []
for i, payload in enumerate(packets):
    fec += encoder.on_data_packet(SeqNo(i), (i + 1) * 100, 0, payload)

decoder.on_data_packet(SeqNo(0), 100, 0, packets[0])
decoder.on_data_packet(SeqNo(2), 300, 0, packets[2])
result = decoder.on_fec_packet(fec[0].seq_no, fec[0].payload)
print(result.recovered[0].seq_no, result.recovered[0].payload)  # 1 b'pkt00001'
```

## What it does not do

- It does not read or write SRT packet headers, handshakes or control
  packet bodies (ACK, NAK, drop request).
- It has no connection state machine, no sockets and no encryption.
- It provides no command-line tools.

Framing packets on the wire and driving a connection are left to the code
that uses this package.

## Running the tests

```
pip install -e .[test]
pytest
```