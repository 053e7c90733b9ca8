from conftest import FakeSerial

from armada.transport import LineAssembler, LoopbackTransport, WireTransport


def test_assembler_splits_on_cr_and_lf():
    asm = LineAssembler(32)
    assert asm.feed(b"A 1 2\r\nR 3 4 M\n") == ["A 1 2", "R 3 4 M"]


def test_assembler_handles_partial_lines():
    asm = LineAssembler(32)
    assert asm.feed(b"READY 1") == []
    assert asm.feed(b"23\r") == ["READY 123"]


def test_assembler_truncates_overlong_line():
    asm = LineAssembler(8)
    lines = asm.feed(b"READY 123456\n")
    # capacity includes the terminator, so seven characters survive
    assert lines == ["READY 1"]
    assert asm.dropped == 5


def test_assembler_reset_discards_partial():
    asm = LineAssembler(32)
    asm.feed(b"A 1")
    asm.reset()
    assert asm.feed(b" 2\n") == [" 2"]


def test_wire_transport_writes_crlf():
    port = FakeSerial()
    wire = WireTransport(port)
    wire.send_line("A 1 2")
    assert bytes(port.tx) == b"A 1 2\r\n"


def test_wire_transport_drains_everything_waiting():
    port = FakeSerial()
    wire = WireTransport(port)
    assert wire.poll_lines() == []
    port.feed(b"A 1 2\r\nA 3 4\r\nR 5")
    assert wire.poll_lines() == ["A 1 2", "A 3 4"]
    assert port.in_waiting == 0
    port.feed(b" 6 H\r\n")
    assert wire.poll_lines() == ["R 5 6 H"]


def test_loopback_delivers_one_line_per_poll():
    loop = LoopbackTransport(4)
    loop.push("R 1 1 M")
    loop.push("A 2 2")
    assert loop.poll_lines() == ["R 1 1 M"]
    assert loop.poll_lines() == ["A 2 2"]
    assert loop.poll_lines() == []


def test_loopback_drops_when_full():
    loop = LoopbackTransport(4)
    assert all(loop.push(f"A {i} 0") for i in range(4))
    assert loop.push("A 9 9") is False
    assert len(loop) == 4
    loop.reset()
    assert len(loop) == 0


def test_loopback_hands_outgoing_lines_to_peer():
    seen = []
    loop = LoopbackTransport(4, on_send=seen.append)
    loop.send_line("READY 7")
    assert seen == ["READY 7"]
