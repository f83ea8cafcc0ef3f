"""
Seeded random traffic for the Handshake Register.

The producer follows the valid/ready rules: once it raises in_valid it
holds in_valid and in_data until the item is accepted.  The consumer
toggles out_ready freely.  Optional resets come two ways: a pulse on the
asynchronous reset between ticks, or reset held across a tick's clock
edge.

The generator is reactive: call next_tick() for the stimulus of a tick,
then update(in_fire) with what the register did on that tick.
"""

import random
from dataclasses import dataclass


@dataclass
class TrafficConfig:
    ticks: int = 1000
    seed: int = 0
    data_width: int = 32
    in_valid_prob: float = 0.5
    out_ready_prob: float = 0.5
    reset_prob: float = 0.0
    reset_hold_prob: float = 0.0
    stages: int = 1


@dataclass
class TickStimulus:
    in_valid: bool
    in_data: int
    out_ready: bool
    reset: bool = False        # async reset pulse before this tick
    hold_reset: bool = False   # reset held across this tick's clock edge


@dataclass
class TrafficCounters:
    ticks: int = 0
    in_fires: int = 0
    out_fires: int = 0
    both_fires: int = 0     # simultaneous in/out transfer (overwrite)
    stall_ticks: int = 0    # in_valid held but in_ready low
    resets: int = 0
    reset_holds: int = 0
    occupied_ticks: int = 0

    def record(self, stim, in_ready, out_valid, in_fire, out_fire):
        self.ticks += 1
        self.in_fires += int(in_fire)
        self.out_fires += int(out_fire)
        self.both_fires += int(in_fire and out_fire)
        self.stall_ticks += int(stim.in_valid and not in_ready)
        self.resets += int(stim.reset)
        self.reset_holds += int(stim.hold_reset)
        self.occupied_ticks += int(out_valid)


def validate_config(cfg: TrafficConfig) -> list:
    """Check a traffic config. Returns list of error strings."""
    errors = []

    if not isinstance(cfg.data_width, int) or cfg.data_width <= 0:
        errors.append(f"data_width must be positive: {cfg.data_width}")
    if cfg.ticks < 0:
        errors.append(f"ticks must be >= 0: {cfg.ticks}")
    if cfg.stages < 1:
        errors.append(f"stages must be >= 1: {cfg.stages}")

    for name in ("in_valid_prob", "out_ready_prob", "reset_prob",
                 "reset_hold_prob"):
        p = getattr(cfg, name)
        if not 0.0 <= p <= 1.0:
            errors.append(f"{name} must be within [0, 1]: {p}")

    return errors


class TrafficGenerator:
    def __init__(self, cfg: TrafficConfig):
        self.cfg = cfg
        self.rng = random.Random(cfg.seed)
        self._offer = None   # in_data held until accepted

    def next_tick(self):
        rng = self.rng
        cfg = self.cfg

        reset = cfg.reset_prob > 0 and rng.random() < cfg.reset_prob
        hold_reset = (cfg.reset_hold_prob > 0
                      and rng.random() < cfg.reset_hold_prob)
        if self._offer is None and rng.random() < cfg.in_valid_prob:
            self._offer = rng.getrandbits(cfg.data_width)
        out_ready = rng.random() < cfg.out_ready_prob

        return TickStimulus(
            in_valid=self._offer is not None,
            in_data=self._offer if self._offer is not None else 0,
            out_ready=out_ready,
            reset=reset,
            hold_reset=hold_reset,
        )

    def update(self, in_fire):
        if in_fire:
            self._offer = None

    def ticks(self):
        for _ in range(self.cfg.ticks):
            yield self.next_tick()
