"""
valid/ready protocol monitor and transfer scoreboard.

Watches the upstream and downstream edges of a handshake register (or a
chain of them) tick by tick and flags:

  - upstream withdrawing in_valid before its item was accepted
  - upstream changing in_data while stalled
  - out_valid asserted while the cell is empty
  - in_ready not equal to ~occupied | out_ready
  - an item delivered downstream that was never accepted upstream, or
    delivered out of order (loss / duplication / reordering)

The register cannot detect collaborator violations from its own state,
so this lives in the verification harness only.  In strict mode the first
violation raises ProtocolViolation; otherwise violations are collected.
"""

from collections import deque


class ProtocolViolation(RuntimeError):
    def __init__(self, tick, rule, detail):
        self.tick = tick
        self.rule = rule
        self.detail = detail
        super().__init__(f"tick {tick}: {rule}: {detail}")


# Rule names
VALID_WITHDRAWN = "in_valid withdrawn"
DATA_UNSTABLE = "in_data unstable"
SPURIOUS_VALID = "spurious out_valid"
READY_MISMATCH = "in_ready mismatch"
UNEXPECTED_ITEM = "unexpected item"
WRONG_ITEM = "wrong item"


class ProtocolMonitor:
    def __init__(self, strict=True):
        self.strict = strict
        self.violations = []
        self.accepted = []
        self.delivered = []
        self._pending = deque()
        self._stalled_offer = None   # in_data of an offer not yet accepted
        self.tick = 0

    @property
    def in_flight(self):
        return len(self._pending)

    def _flag(self, rule, detail):
        if self.strict:
            raise ProtocolViolation(self.tick, rule, detail)
        self.violations.append(str(ProtocolViolation(self.tick, rule, detail)))

    def observe(self, in_valid, in_data, in_ready,
                out_valid, out_data, out_ready,
                occupied=None, reset=False):
        """Record one tick of edge signals, sampled before the clock edge.

        reset marks a tick with reset held across the edge: nothing
        transfers on it and anything in flight is discarded.
        """
        in_fire = bool(in_valid and in_ready) and not reset
        out_fire = bool(out_valid and out_ready) and not reset

        # ── Upstream stability ───────────────────────────────────────────
        if self._stalled_offer is not None:
            if not in_valid:
                self._flag(VALID_WITHDRAWN,
                           f"offer 0x{self._stalled_offer:X} dropped before transfer")
            elif in_data != self._stalled_offer:
                self._flag(DATA_UNSTABLE,
                           f"0x{self._stalled_offer:X} -> 0x{in_data:X} while stalled")

        # ── Register outputs against its own state ───────────────────────
        if occupied is not None:
            if out_valid and not occupied:
                self._flag(SPURIOUS_VALID, "out_valid high with empty cell")
            expected_ready = (not occupied) or bool(out_ready)
            if bool(in_ready) != expected_ready:
                self._flag(READY_MISMATCH,
                           f"in_ready={int(bool(in_ready))}, occupied={int(occupied)}, "
                           f"out_ready={int(bool(out_ready))}")

        # ── Scoreboard (drain before fill: the delivered item is the old one)
        if out_fire:
            self.delivered.append(out_data)
            if not self._pending:
                self._flag(UNEXPECTED_ITEM,
                           f"delivered 0x{out_data:X} with nothing in flight")
            else:
                expected = self._pending.popleft()
                if out_data != expected:
                    self._flag(WRONG_ITEM,
                               f"expected 0x{expected:X}, delivered 0x{out_data:X}")
        if in_fire:
            self.accepted.append(in_data)
            self._pending.append(in_data)

        if reset:
            # Reset legitimately discards whatever was in flight
            self._pending.clear()
            self._stalled_offer = None
        elif in_valid and not in_fire:
            self._stalled_offer = in_data
        else:
            self._stalled_offer = None

        self.tick += 1
        return in_fire, out_fire

    def observe_model(self, in_valid, in_data, out_ready, outputs,
                      occupied=None, reset=False):
        """observe() with the register outputs taken from a TickOutputs."""
        return self.observe(in_valid, in_data, outputs.in_ready,
                            outputs.out_valid, outputs.out_data, out_ready,
                            occupied=occupied, reset=reset)

    def reset(self):
        """Asynchronous reset seen between ticks."""
        self._pending.clear()
        self._stalled_offer = None
