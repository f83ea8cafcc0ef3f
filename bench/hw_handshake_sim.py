"""
Hardware Handshake Register simulation bridge.

Drives HandshakeTop in the Amaranth simulator with seeded random traffic
and runs the Python model in lockstep.  Every tick the gateware's edge
signals are compared against the model's before the clock edge; the
first disagreement raises RuntimeError.  Reset pulses from the traffic
generator are applied on the asynchronous rst input between ticks; held
resets keep rst high across a clock edge and step the model with
reset=True.
"""

import sys
import os

# Add hardware source to path
_hw_dir = os.path.join(os.path.dirname(__file__), "..", "src", "hardware")
if _hw_dir not in sys.path:
    sys.path.insert(0, _hw_dir)

from amaranth.sim import Simulator

from top import HandshakeTop

from .handshake_model import HandshakeRegisterModel
from .protocol_monitor import ProtocolMonitor
from .traffic import TrafficConfig, TrafficCounters, TrafficGenerator

CLOCK_PERIOD = 1e-8   # 100 MHz
RESET_PULSE = 1e-9    # well inside the low half of the clock


class HWHandshakeSimulator:
    """Run random traffic through the gateware and the model in lockstep."""

    def __init__(self, cfg: TrafficConfig, verbose=False, vcd_path=None):
        self.cfg = cfg
        self.verbose = verbose
        self.vcd_path = vcd_path
        self.counters = TrafficCounters()
        self.model = HandshakeRegisterModel(cfg.data_width)
        self.monitor = ProtocolMonitor(strict=True)

    def run(self):
        """Run the full trace in simulation. Returns (counters, monitor)."""
        dut = HandshakeTop(data_width=self.cfg.data_width)
        sim = Simulator(dut)
        sim.add_clock(CLOCK_PERIOD)

        async def testbench(ctx):
            await self._run_traffic(ctx, dut)

        sim.add_testbench(testbench)

        if self.vcd_path:
            with sim.write_vcd(self.vcd_path):
                sim.run()
        else:
            sim.run()

        return self.counters, self.monitor

    # ── Per-tick helpers ──────────────────────────────────────────────────

    @staticmethod
    async def _pulse_reset(ctx, dut):
        """Assert and release the asynchronous reset between clock edges."""
        ctx.set(dut.rst, 1)
        await ctx.delay(RESET_PULSE)
        ctx.set(dut.rst, 0)

    @staticmethod
    def _sample(ctx, reg):
        return {
            "in_ready": bool(ctx.get(reg.in_ready)),
            "out_valid": bool(ctx.get(reg.out_valid)),
            "out_data": ctx.get(reg.out_data),
            "in_fire": bool(ctx.get(reg.in_fire)),
            "out_fire": bool(ctx.get(reg.out_fire)),
        }

    def _compare(self, tick, hw, sw):
        for name in ("in_ready", "out_valid", "in_fire", "out_fire"):
            if hw[name] != getattr(sw, name):
                raise RuntimeError(
                    f"tick {tick}: {name} HW={int(hw[name])} "
                    f"model={int(getattr(sw, name))}")
        # out_data only matters while out_valid
        if sw.out_valid and hw["out_data"] != sw.out_data:
            raise RuntimeError(
                f"tick {tick}: out_data HW=0x{hw['out_data']:X} "
                f"model=0x{sw.out_data:X}")

    # ── Main loop ─────────────────────────────────────────────────────────

    async def _run_traffic(self, ctx, dut):
        reg = dut.reg
        gen = TrafficGenerator(self.cfg)
        model = self.model
        monitor = self.monitor

        for tick, stim in enumerate(gen.ticks()):
            if stim.reset:
                await self._pulse_reset(ctx, dut)
                model.reset()
                monitor.reset()
                if self.verbose:
                    print(f"  tick {tick}: async reset")

            ctx.set(reg.in_valid, stim.in_valid)
            ctx.set(reg.in_data, stim.in_data)
            ctx.set(reg.out_ready, stim.out_ready)

            if stim.hold_reset:
                # Held across the coming edge; the cell reads as empty now
                ctx.set(dut.rst, 1)
                await ctx.delay(RESET_PULSE)
                if self.verbose:
                    print(f"  tick {tick}: reset held across edge")

            hw = self._sample(ctx, reg)
            occupied = model.occupied and not stim.hold_reset
            sw = model.step(stim.in_valid, stim.in_data, stim.out_ready,
                            reset=stim.hold_reset)
            self._compare(tick, hw, sw)

            monitor.observe_model(stim.in_valid, stim.in_data, stim.out_ready,
                                  sw, occupied=occupied, reset=stim.hold_reset)
            gen.update(sw.in_fire)
            self.counters.record(stim, sw.in_ready, sw.out_valid,
                                 sw.in_fire, sw.out_fire)

            await ctx.tick()
            if stim.hold_reset:
                ctx.set(dut.rst, 0)

        if self.verbose:
            c = self.counters
            print(f"  HW sim: {c.ticks} ticks, {c.in_fires} in, "
                  f"{c.out_fires} out, {c.resets} resets, "
                  f"{c.reset_holds} held resets")
