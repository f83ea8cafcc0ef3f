"""
Chain of Handshake Register models wired output-to-input.

Each stage owns its state.  Stages only talk through the edge signals of
the current tick: stage i's out_valid/out_data feed stage i+1's
in_valid/in_data, and stage i+1's in_ready feeds stage i's out_ready.

Per tick every stage is evaluated from its pre-tick state first, and
only then does every stage commit, so the result does not depend on the
order in which stages are visited.
"""

from dataclasses import dataclass

from .handshake_model import (
    DEFAULT_DATA_WIDTH, EMPTY, HandshakeRegisterModel, next_state,
)


@dataclass(frozen=True)
class ChainTickOutputs:
    in_ready: bool
    out_valid: bool
    out_data: int
    in_fire: bool
    out_fire: bool
    stages: tuple = ()   # TickOutputs per stage


class RegisterChain:
    """N independent HandshakeRegisterModel stages in series."""

    def __init__(self, stages: int = 2, data_width: int = DEFAULT_DATA_WIDTH):
        if isinstance(stages, bool) or not isinstance(stages, int) or stages < 1:
            raise ValueError(f"stages must be >= 1, got {stages!r}")
        self.data_width = data_width
        self.stages = [HandshakeRegisterModel(data_width) for _ in range(stages)]

    def __len__(self):
        return len(self.stages)

    @property
    def occupancy(self):
        return sum(1 for s in self.stages if s.occupied)

    def step(self, in_valid, in_data, out_ready, reset=False):
        # Reset empties every stage at once
        states = [EMPTY if reset else s.state for s in self.stages]
        n = len(states)

        # Readies ripple sink -> source; in_ready never depends on in_valid
        out_readies = [False] * n
        ready = bool(out_ready)
        for i in reversed(range(n)):
            out_readies[i] = ready
            ready = next_state(states[i], False, 0, ready)[0].in_ready

        # Valids/data flow source -> sink from registered state only
        results = []
        valid, data = bool(in_valid), in_data
        for i in range(n):
            outputs, new_state = next_state(
                states[i], valid, data, out_readies[i], reset)
            results.append((outputs, new_state))
            valid, data = outputs.out_valid, outputs.out_data

        first, last = results[0][0], results[-1][0]
        if first.in_fire:
            self.stages[0].check_data(in_data)

        # Commit every stage after all have been evaluated
        for stage, (_, new_state) in zip(self.stages, results):
            stage.commit(new_state)

        return ChainTickOutputs(
            in_ready=first.in_ready,
            out_valid=last.out_valid,
            out_data=last.out_data,
            in_fire=first.in_fire,
            out_fire=last.out_fire,
            stages=tuple(outputs for outputs, _ in results),
        )

    def reset(self):
        for stage in self.stages:
            stage.reset()
