"""
Tests for the Python Handshake Register model.

Verifies:
  1. Starts Empty; out_valid=0, in_ready=1.
  2. in_ready for all four (occupied, out_ready) combinations.
  3. Overwrite on simultaneous in/out transfer.
  4. Backpressure holds the payload for N ticks.
  5. Continuous flow: N transfers in N ticks.
  6. Reset (synchronous step and asynchronous) always yields Empty.
  7. No loss / duplication on random traffic.
  8. Configuration and data-width errors.
"""

import sys, os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

import random

import pytest

from bench.handshake_model import (
    EMPTY, Empty, Full, HandshakeRegisterModel, next_state,
)


def make_full(payload, data_width=32):
    model = HandshakeRegisterModel(data_width)
    model.step(in_valid=True, in_data=payload, out_ready=False)
    assert model.state == Full(payload)
    return model


def test_starts_empty():
    model = HandshakeRegisterModel()
    assert model.state == EMPTY
    assert not model.occupied
    assert model.payload is None
    out = model.outputs(in_valid=True, out_ready=False)
    assert out.in_ready and not out.out_valid and not out.out_fire
    assert out.in_fire


@pytest.mark.parametrize("occupied", [False, True])
@pytest.mark.parametrize("out_ready", [False, True])
def test_ready_correctness(occupied, out_ready):
    model = make_full(7) if occupied else HandshakeRegisterModel()
    out = model.outputs(in_valid=False, out_ready=out_ready)
    assert out.in_ready == ((not occupied) or (occupied and out_ready))
    assert out.out_valid == occupied
    assert out.out_fire == (occupied and out_ready)


def test_outputs_do_not_mutate():
    model = make_full(3)
    model.outputs(in_valid=True, out_ready=True)
    assert model.state == Full(3)
    assert model.ticks == 1


def test_overwrite_on_simultaneous_fire():
    model = make_full(0xA)
    out = model.step(in_valid=True, in_data=0xB, out_ready=True)
    assert out.in_fire and out.out_fire
    assert out.out_data == 0xA
    assert model.state == Full(0xB)


def test_backpressure_holds_data():
    model = make_full(0xA)
    for n in range(10):
        out = model.step(in_valid=n % 2 == 0, in_data=0xF0 + n, out_ready=False)
        assert out.out_valid and out.out_data == 0xA
        assert not out.in_ready and not out.in_fire
        assert model.state == Full(0xA)


def test_continuous_flow():
    model = HandshakeRegisterModel()
    sent = list(range(20))
    received = []
    in_fires = 0
    for data in sent:
        out = model.step(in_valid=True, in_data=data, out_ready=True)
        in_fires += out.in_fire
        if out.out_fire:
            received.append(out.out_data)
    out = model.step(in_valid=False, in_data=0, out_ready=True)
    received.append(out.out_data)

    assert in_fires == len(sent)
    assert received == sent
    assert model.state == EMPTY


def test_drain_clears_payload():
    model = make_full(9)
    out = model.step(in_valid=False, in_data=0, out_ready=True)
    assert out.out_fire and out.out_data == 9
    assert model.state == Empty()
    assert model.payload is None


@pytest.mark.parametrize("start_full", [False, True])
@pytest.mark.parametrize("in_valid", [False, True])
@pytest.mark.parametrize("out_ready", [False, True])
def test_reset_dominates(start_full, in_valid, out_ready):
    model = make_full(5) if start_full else HandshakeRegisterModel()
    out = model.step(in_valid=in_valid, in_data=6, out_ready=out_ready,
                     reset=True)
    # Reset empties the cell at once, so nothing transfers on this tick
    assert not out.out_valid
    assert out.in_ready
    assert not out.in_fire
    assert not out.out_fire
    assert model.state == EMPTY
    # No spurious valid on the tick after reset is released
    out = model.step(in_valid=False, in_data=0, out_ready=False)
    assert not out.out_valid


def test_reset_discards_overwrite():
    model = make_full(0xA)
    out = model.step(in_valid=True, in_data=0xB, out_ready=True, reset=True)
    assert (out.in_fire, out.out_fire) == (False, False)
    assert model.state == EMPTY
    assert model.ticks == 2


def test_commit_loads_state():
    model = HandshakeRegisterModel(8)
    outputs, new_state = next_state(model.state, True, 0x5A, False)
    assert outputs.in_fire
    model.commit(new_state)
    assert model.state == Full(0x5A)
    assert model.ticks == 1


def test_async_reset():
    model = make_full(5)
    model.reset()
    assert not model.occupied
    model.reset()
    assert not model.occupied
    assert not model.outputs().out_valid


def test_no_loss_or_duplication():
    rng = random.Random(1234)
    model = HandshakeRegisterModel(data_width=8)
    accepted, delivered = [], []
    offer = None
    for _ in range(5000):
        if offer is None and rng.random() < 0.6:
            offer = rng.getrandbits(8)
        out_ready = rng.random() < 0.4
        out = model.step(in_valid=offer is not None,
                         in_data=offer if offer is not None else 0,
                         out_ready=out_ready)
        if out.out_fire:
            delivered.append(out.out_data)
        if out.in_fire:
            accepted.append(offer)
            offer = None

    # At most the one stored item is still in flight
    assert accepted[:len(delivered)] == delivered
    assert len(accepted) - len(delivered) == int(model.occupied)


def test_next_state_is_pure():
    state = Full(1)
    outputs, new_state = next_state(state, True, 2, True)
    assert state == Full(1)
    assert new_state == Full(2)
    assert outputs.out_data == 1


@pytest.mark.parametrize("width", [0, -1, 2.0, "32", True])
def test_invalid_width(width):
    with pytest.raises(ValueError):
        HandshakeRegisterModel(width)


def test_data_out_of_range():
    model = HandshakeRegisterModel(data_width=4)
    with pytest.raises(ValueError):
        model.step(in_valid=True, in_data=16, out_ready=False)
    assert model.state == EMPTY
    assert model.ticks == 0

    # Don't-care data is never checked when nothing is captured
    model.step(in_valid=False, in_data=-1, out_ready=False)
    model.step(in_valid=True, in_data=15, out_ready=False)
    model.step(in_valid=True, in_data=99, out_ready=False)  # stalled, not captured
    assert model.state == Full(15)
