"""
Handshake Register Module.

Single-entry elastic buffer between two valid/ready interfaces.  Holds at
most one in-flight item and decouples the producer from the consumer
without a combinational path from in_valid to out_valid.

Uses valid/ready handshaking:
  - Upstream:   in_valid (in)  / in_ready (out)
  - Downstream: out_valid (out) / out_ready (in)

A transfer on an edge happens on a clock edge where valid & ready.
in_ready is high when the register is empty, or when it is full and the
consumer takes the stored item in the same cycle.  On a simultaneous
in/out transfer out_data still shows the stored (old) payload for the
whole cycle and the new payload lands on the clock edge.

Reset is taken from the sync domain; under HandshakeTop the domain uses
an asynchronous reset, which empties the register immediately and wins
over any transfer in the same cycle.

Latency: 1 cycle.  Throughput: 1 item/cycle when out_ready stays high.
"""

from amaranth import *


DEFAULT_DATA_WIDTH = 32


class HandshakeRegister(Elaboratable):
    """
    Handshake Register.

    Parameters
    ----------
    data_width : int
        Payload width in bits (default 32).  Must be positive.

    Ports -- upstream
    -----------------
    in_valid  : Signal(), in
    in_data   : Signal(data_width), in
    in_ready  : Signal(), out  -- ~occupied | out_fire

    Ports -- downstream
    -------------------
    out_valid : Signal(), out  -- occupied
    out_data  : Signal(data_width), out
    out_ready : Signal(), in

    Ports -- status
    ---------------
    in_fire   : Signal(), out  -- in_valid & in_ready this cycle, not in reset
    out_fire  : Signal(), out  -- out_valid & out_ready this cycle
    """

    def __init__(self, data_width=DEFAULT_DATA_WIDTH):
        if (isinstance(data_width, bool) or not isinstance(data_width, int)
                or data_width <= 0):
            raise ValueError(
                f"data_width must be a positive integer, got {data_width!r}")
        self.data_width = data_width

        # Upstream side
        self.in_valid = Signal()
        self.in_data  = Signal(data_width)
        self.in_ready = Signal()

        # Downstream side
        self.out_valid = Signal()
        self.out_data  = Signal(data_width)
        self.out_ready = Signal()

        # Status strobes
        self.in_fire  = Signal()
        self.out_fire = Signal()

    def elaborate(self, platform):
        m = Module()

        # Cell state: valid bit + payload.  The payload is not reset; it is
        # only meaningful while occupied.
        occupied = Signal()
        payload  = Signal(self.data_width, reset_less=True)

        # Outputs depend only on the registered state and this cycle's
        # inputs, never on the value being written this cycle.
        m.d.comb += [
            self.out_fire.eq(occupied & self.out_ready),
            self.in_ready.eq(~occupied | self.out_fire),
            # Reset overrides the capture, so no in_fire while it is held
            self.in_fire.eq(self.in_valid & self.in_ready & ~ResetSignal()),
            self.out_valid.eq(occupied),
            self.out_data.eq(payload),
        ]

        # --- State update (synchronous) ---
        with m.If(self.in_fire):
            # Covers both the empty load and the full overwrite
            # (simultaneous out_fire); the old payload leaves this cycle.
            m.d.sync += [
                occupied.eq(1),
                payload.eq(self.in_data),
            ]
        with m.Elif(self.out_fire):
            # Drain; payload retained but no longer observed
            m.d.sync += occupied.eq(0)

        return m
