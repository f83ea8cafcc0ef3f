"""
Handshake Register Top-Level Module.

Owns the sync clock domain and gives it an asynchronous reset, then
instantiates the HandshakeRegister inside it:

    rst ──────────────┐ (async)
                      ▼
    in_valid/in_data ──► HandshakeRegister ──► out_valid/out_data
    in_ready ◄────────                     ◄── out_ready

In simulation drive `clk` with sim.add_clock() and `rst` from a
testbench.  On a platform the clock comes from the platform's default
clock resource.

Running this file writes handshake_register.v:

    python src/hardware/top.py [data_width]
"""

import sys

from amaranth import *

from modules.handshake_register import HandshakeRegister, DEFAULT_DATA_WIDTH


class HandshakeTop(Elaboratable):
    def __init__(self, data_width=DEFAULT_DATA_WIDTH):
        self.reg = HandshakeRegister(data_width=data_width)

        self.cd_sync = ClockDomain("sync", async_reset=True)
        self.clk = self.cd_sync.clk
        self.rst = self.cd_sync.rst

    def elaborate(self, platform):
        m = Module()

        m.domains.sync = self.cd_sync
        m.submodules.reg = self.reg

        # ── Platform clock ───────────────────────────────────────────────
        if platform is not None:
            clk = platform.request(platform.default_clk)
            m.d.comb += self.cd_sync.clk.eq(clk.i)

        return m

    def ports(self):
        reg = self.reg
        return [
            self.clk, self.rst,
            reg.in_valid, reg.in_data, reg.in_ready,
            reg.out_valid, reg.out_data, reg.out_ready,
        ]


if __name__ == "__main__":
    from amaranth.back import verilog

    width = int(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_DATA_WIDTH
    top = HandshakeTop(data_width=width)
    with open("handshake_register.v", "w") as f:
        f.write(verilog.convert(top, name="handshake_register", ports=top.ports()))
    print(f"Wrote handshake_register.v (data_width={width})")
