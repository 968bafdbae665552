# ubxlink

ubxlink talks to u-blox GNSS receivers over the UBX binary protocol. It
frames and checks UBX packets, decodes them into message objects, hands
them to subscribed callbacks, picks out NMEA sentences sent on the same
link, and sends configuration messages while waiting for the receiver's
ACK or NACK.

## Installation

```
pip install ubxlink
```

Serial connections use `pyserial`, which is installed with the package.
TCP and UDP connections use only the standard library.

## Layout

- `ubxlink.checksum`: the UBX checksum. `calculate_checksum(data)` returns
  the pair `(ck_a, ck_b)`; `checksum_value(data)` returns them as one
  16-bit value, as read little-endian from the wire.
- `ubxlink.messages`: message registration and payload encoding
  (`declare_message`, `add_key`, `can_decode`, `serialized_length`,
  `encode`, `decode`) and the framing `Options` (sync bytes, header and
  checksum lengths).
- `ubxlink.framing`: `Reader` finds UBX packets in a byte buffer and keeps
  the bytes between them; `Writer` wraps payloads in a header and checksum.
- `ubxlink.gnss`: `Gnss`, the set of constellation names a receiver
  supports.
- `ubxlink.callback`: `CallbackHandler` and `CallbackHandlers` dispatch
  decoded messages and NMEA sentences and let a caller wait for a message.
- `ubxlink.connection`: `AsyncWorker` reads a transport on a background
  thread; `open_serial`, `open_tcp` and `open_udp` open a transport.
- `ubxlink.acks`: `AckMessage`, `UpdSosAckMessage` and `AckTracker`, which
  records ACK, NACK and UPD-SOS backup replies and waits for a given one.
- `ubxlink.gps`: `Gps`, the receiver front end that ties the rest together.

## Message types

A message type is a dataclass with a `FORMAT` class attribute: a `struct`
format string (no byte-order prefix, little-endian is implied) whose items
map in order onto the dataclass fields. Types with a variable layout may
instead provide a `to_payload()` method and a `from_payload(payload)`
classmethod. `declare_message` binds a type to its class and message IDs
and sets `CLASS_ID` and `MESSAGE_ID` on it; `add_key` lets one type decode
further IDs, as `AckMessage` does for both ACK-ACK and ACK-NAK.

```python
from dataclasses import dataclass

from ubxlink.messages import declare_message, decode, encode


@declare_message(0x06, 0x08)
@dataclass
class CfgRate:
    FORMAT = "HHH"

    meas_rate: int = 1000
    nav_rate: int = 1
    time_ref: int = 1


payload = encode(CfgRate())
assert decode(CfgRate, payload) == CfgRate()
```

`decode` ignores bytes past the fixed layout and raises `ValueError` for a
payload that is too short.

## Framing

A UBX packet is two sync bytes (`0xB5 0x62`), a class ID, a message ID, a
little-endian 16-bit payload length, the payload, and a two-byte checksum
computed over everything from the class ID to the end of the payload.

```python
from ubxlink.framing import Reader, Writer

writer = Writer(2056)
frame = writer.write(CfgRate())                # IDs taken from the type
writer.write_payload(b"\x01", 0x06, 0x00)      # poll CFG-PRT for UART1

reader = Reader(bytes_from_device)
while reader.search() != reader.end and reader.found():
    message = reader.read(CfgRate)             # None if IDs or checksum don't match
    ...
print(reader.extra_data)                       # bytes outside UBX packets
```

`search` moves past the current packet and on to the next sync bytes.
`Writer` raises `WriterOverflowError` when a frame does not fit in the space
it was given.

## Talking to a receiver

```python
import logging

from ubxlink.gps import Gps

with Gps(1, logging.getLogger("gps")) as gps:
    gps.initialize_serial("/dev/ttyACM0", 115200)

    gps.subscribe_nmea(lambda sentence: print(sentence, end=""))
    gps.subscribe(MyNavMessage, handle_nav, 1)   # set the output rate, then subscribe

    if not gps.configure(CfgRate(), True):
        print("receiver did not acknowledge the configuration")
```

- `initialize_serial(port, baudrate)` opens the port and steps the host
  side's baud rate through 4800 … 460800 until it reaches `baudrate`,
  raising `ConnectionError` if it cannot (unless
  `set_config_on_startup(False)` was called). It does not send any port
  configuration to the receiver.
- `initialize_tcp(host, port)` and `initialize_udp(host, port)` connect over
  the network instead; failures raise `ConnectionError`.
- `configure(message, wait)` encodes and sends a message and, when `wait` is
  true, returns whether the matching ACK arrived within `ack_timeout`
  (one second by default).
- `set_rate(class_id, message_id, rate)` sends a CFG-MSG rate request.
- `poll(class_id, message_id, payload)` sends a poll request;
  `poll_message(message_type, payload, timeout)` polls and returns the
  reply, and `read(message_type, timeout)` waits for the next message of a
  type. Both return `None` on timeout.
- `subscribe_id` registers a callback for a type shared by several message
  IDs.
- `send_rtcm(data)` forwards raw RTCM correction data, and
  `set_raw_data_callback` receives every chunk of bytes read.
- `is_initialized()` and `is_configured()` report the link state.

If `set_save_on_shutdown(True)` was called, `close` stops the receiver
(CFG-RST) and asks it to back up its battery-backed RAM to flash (UPD-SOS)
before the connection is dropped.

## What is not included

The package defines only the messages it needs itself (ACK, UPD-SOS, and
the CFG-MSG, CFG-RST and UPD-SOS commands used by `Gps`); navigation,
configuration and sensor message types are yours to declare. It has no
command-line program, no higher-level configuration helpers (port,
navigation rate, GNSS, time mode and the like) and does not publish or
store data anywhere: decoded messages go only to the callbacks you
subscribe.

## Running the tests

```
pip install ubxlink[test]
pytest
```