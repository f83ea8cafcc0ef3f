"""
Cycle-accurate Python model of the Handshake Register.

Golden reference for the Amaranth gateware in
src/hardware/modules/handshake_register.py.  The cell is a tagged
variant, Empty() or Full(payload), so there is no payload to speak of
while the register is empty.

One call to step() is one clock edge: outputs are computed from the
state entering the tick, then the post-tick state is committed in a
single assignment.
"""

from dataclasses import dataclass

DEFAULT_DATA_WIDTH = 32


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Full:
    payload: int


EMPTY = Empty()


@dataclass(frozen=True)
class EdgeSignals:
    """valid/ready/data seen on one handshake edge during one tick."""
    valid: bool
    ready: bool
    data: int = 0   # don't-care unless valid

    @property
    def fire(self):
        return self.valid and self.ready


@dataclass(frozen=True)
class TickOutputs:
    in_ready: bool
    out_valid: bool
    out_data: int    # don't-care unless out_valid
    in_fire: bool
    out_fire: bool

    def upstream(self, in_valid, in_data):
        return EdgeSignals(valid=in_valid, ready=self.in_ready, data=in_data)

    def downstream(self, out_ready):
        return EdgeSignals(valid=self.out_valid, ready=out_ready,
                           data=self.out_data)


def check_data_width(data_width):
    if (isinstance(data_width, bool) or not isinstance(data_width, int)
            or data_width <= 0):
        raise ValueError(
            f"data_width must be a positive integer, got {data_width!r}")


def next_state(state, in_valid, in_data, out_ready, reset=False):
    """Pure transition function. Returns (outputs, next_state).

    Reset empties the cell at once, so the tick's outputs are those of an
    empty cell and nothing is captured or delivered.
    """
    if reset:
        state = EMPTY
    occupied = isinstance(state, Full)
    out_fire = occupied and bool(out_ready)
    in_ready = (not occupied) or out_fire
    in_fire = bool(in_valid) and in_ready and not reset
    out_data = state.payload if occupied else 0

    outputs = TickOutputs(
        in_ready=in_ready,
        out_valid=occupied,
        out_data=out_data,
        in_fire=in_fire,
        out_fire=out_fire,
    )

    if reset:
        new_state = EMPTY
    elif in_fire:
        new_state = Full(in_data)
    elif out_fire:
        new_state = EMPTY
    else:
        new_state = state

    return outputs, new_state


class HandshakeRegisterModel:
    """Software model of a single HandshakeRegister instance."""

    def __init__(self, data_width: int = DEFAULT_DATA_WIDTH):
        check_data_width(data_width)
        self.data_width = data_width
        self.data_mask = (1 << data_width) - 1
        self._state = EMPTY
        self.ticks = 0

    @property
    def state(self):
        return self._state

    @property
    def occupied(self):
        return isinstance(self._state, Full)

    @property
    def payload(self):
        """Stored payload, or None when empty."""
        return self._state.payload if self.occupied else None

    def outputs(self, in_valid=False, out_ready=False):
        """Combinational outputs for the current state. Does not mutate."""
        return next_state(self._state, in_valid, 0, out_ready)[0]

    def step(self, in_valid, in_data, out_ready, reset=False):
        """Advance one tick. Returns the outputs observed during the tick."""
        outputs, new_state = next_state(
            self._state, in_valid, in_data, out_ready, reset)
        if outputs.in_fire:
            self.check_data(in_data)
        self.commit(new_state)
        return outputs

    def commit(self, new_state):
        """Load the post-tick state computed by next_state()."""
        self._state = new_state
        self.ticks += 1

    def reset(self):
        """Asynchronous reset: empty the cell immediately, between ticks."""
        self._state = EMPTY

    def check_data(self, data):
        if not isinstance(data, int) or data < 0 or data > self.data_mask:
            raise ValueError(
                f"in_data {data!r} does not fit in {self.data_width} bits")

    def __repr__(self):
        return (f"HandshakeRegisterModel(data_width={self.data_width}, "
                f"state={self._state!r})")
