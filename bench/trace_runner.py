"""
Traffic runner CLI: push seeded random valid/ready traffic through the
software model, the gateware simulation, or both.

Usage:
  python -m bench.trace_runner --mode sw_only --ticks 10000 --seed 1
  python -m bench.trace_runner --mode hw_sim --ticks 2000 --reset-prob 0.01
  python -m bench.trace_runner --mode both --reset-hold-prob 0.02
  python -m bench.trace_runner --mode both --out-ready-prob 0.2
  python -m bench.trace_runner --mode sw_only --stages 4
"""

import argparse
import json
import os
import sys
import time
from dataclasses import asdict

from .protocol_monitor import ProtocolMonitor
from .register_chain import RegisterChain
from .traffic import TrafficConfig, TrafficCounters, TrafficGenerator, validate_config

RESULTS_DIR = os.path.join(os.path.dirname(__file__), "results")


def run_sw_only(cfg: TrafficConfig, verbose=False):
    """Run the traffic through the Python model. Returns dict of results."""
    chain = RegisterChain(stages=cfg.stages, data_width=cfg.data_width)
    monitor = ProtocolMonitor(strict=True)
    counters = TrafficCounters()
    gen = TrafficGenerator(cfg)

    t0 = time.perf_counter()
    for stim in gen.ticks():
        if stim.reset:
            chain.reset()
            monitor.reset()

        # The ready rule is only defined per register, so check it on one stage
        occupied = None
        if len(chain) == 1:
            occupied = chain.stages[0].occupied and not stim.hold_reset
        out = chain.step(stim.in_valid, stim.in_data, stim.out_ready,
                         reset=stim.hold_reset)
        monitor.observe(stim.in_valid, stim.in_data, out.in_ready,
                        out.out_valid, out.out_data, stim.out_ready,
                        occupied=occupied, reset=stim.hold_reset)
        gen.update(out.in_fire)
        counters.record(stim, out.in_ready, out.out_valid,
                        out.in_fire, out.out_fire)
    elapsed = time.perf_counter() - t0

    if verbose:
        print(f"  SW model: {len(chain)} stage(s), {chain.occupancy} item(s) left in flight")

    result = {"mode": "sw_only", "time_s": round(elapsed, 6)}
    result.update(asdict(counters))
    result["in_flight"] = monitor.in_flight
    return result


def run_hw_sim(cfg: TrafficConfig, verbose=False, vcd_path=None):
    """Run the traffic through the gateware in Amaranth simulation."""
    from .hw_handshake_sim import HWHandshakeSimulator

    sim = HWHandshakeSimulator(cfg, verbose=verbose, vcd_path=vcd_path)
    t0 = time.perf_counter()
    counters, monitor = sim.run()
    elapsed = time.perf_counter() - t0

    result = {"mode": "hw_sim", "sim_time_s": round(elapsed, 3)}
    result.update(asdict(counters))
    result["in_flight"] = monitor.in_flight
    return result


def print_summary_table(results):
    """Print a summary table to stdout."""
    print()
    print(f"{'Mode':<8} {'Ticks':>7} {'In':>7} {'Out':>7} {'Both':>6} "
          f"{'Stall':>7} {'Rst':>5} {'Util':>6} {'Time(s)':>10}")
    print("-" * 72)
    for r in results:
        if r.get("error"):
            print(f"{r['mode']:<8} ERROR: {r['error']}")
            continue
        util = r["out_fires"] / r["ticks"] if r["ticks"] else 0.0
        elapsed = r.get("time_s", r.get("sim_time_s", 0.0))
        print(f"{r['mode']:<8} {r['ticks']:>7} {r['in_fires']:>7} "
              f"{r['out_fires']:>7} {r['both_fires']:>6} "
              f"{r['stall_ticks']:>7} {r['resets'] + r['reset_holds']:>5} "
              f"{util:>6.2f} "
              f"{elapsed:>10.4f}")
    print()


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Run random valid/ready traffic through the handshake register")
    parser.add_argument("--mode", choices=["sw_only", "hw_sim", "both"],
                        default="sw_only",
                        help="Run mode (default: sw_only)")
    parser.add_argument("--ticks", type=int, default=1000,
                        help="Number of clock ticks (default: 1000)")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--data-width", type=int, default=32,
                        help="Payload width in bits (default: 32)")
    parser.add_argument("--in-valid-prob", type=float, default=0.5,
                        help="Chance the producer starts a new offer on an idle tick")
    parser.add_argument("--out-ready-prob", type=float, default=0.5,
                        help="Chance the consumer is ready on a tick")
    parser.add_argument("--reset-prob", type=float, default=0.0,
                        help="Chance of an async reset pulse before a tick")
    parser.add_argument("--reset-hold-prob", type=float, default=0.0,
                        help="Chance of reset being held across a tick's clock edge")
    parser.add_argument("--stages", type=int, default=1,
                        help="Registers in series (sw_only only, default: 1)")
    parser.add_argument("--vcd", default=None,
                        help="Write a VCD of the hw_sim run to this path")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    cfg = TrafficConfig(
        ticks=args.ticks,
        seed=args.seed,
        data_width=args.data_width,
        in_valid_prob=args.in_valid_prob,
        out_ready_prob=args.out_ready_prob,
        reset_prob=args.reset_prob,
        reset_hold_prob=args.reset_hold_prob,
        stages=args.stages,
    )
    errors = validate_config(cfg)
    if cfg.stages > 1 and args.mode != "sw_only":
        errors.append("--stages > 1 is only supported with --mode sw_only")
    if errors:
        for e in errors:
            print(f"Error: {e}")
        sys.exit(1)

    print(f"Running {cfg.ticks} ticks (mode={args.mode}, seed={cfg.seed}, "
          f"width={cfg.data_width})")

    runs = {
        "sw_only": [run_sw_only],
        "hw_sim": [run_hw_sim],
        "both": [run_sw_only, run_hw_sim],
    }[args.mode]

    results = []
    for run in runs:
        name = run.__name__[len("run_"):]
        print(f"  {name} ...", end=" ", flush=True)
        try:
            if run is run_hw_sim:
                result = run(cfg, verbose=args.verbose, vcd_path=args.vcd)
            else:
                result = run(cfg, verbose=args.verbose)
            results.append(result)
            print(f"{result['in_fires']} in / {result['out_fires']} out")
        except RuntimeError as e:
            # ProtocolViolation and HW/model mismatches
            print(f"ERROR: {e}")
            results.append({"mode": name, "error": str(e)})

    print_summary_table(results)

    # Save results
    os.makedirs(RESULTS_DIR, exist_ok=True)
    ts = time.strftime("%Y%m%d_%H%M%S")
    out_path = os.path.join(RESULTS_DIR, f"{args.mode}_seed{cfg.seed}_{ts}.json")
    with open(out_path, "w") as f:
        json.dump({
            "config": asdict(cfg),
            "mode": args.mode,
            "results": results,
        }, f, indent=2)
    print(f"Results saved to {out_path}")

    if any(r.get("error") for r in results):
        sys.exit(1)


if __name__ == "__main__":
    main()
