#!/usr/bin/env python3
"""
READONCE v1.0 CLI - Command Line Interface

Drives canned stimulus schedules through the cell models and prints the
observed outputs.

Usage:
    readonce scenario basis
    readonce scenario wrong-basis
    readonce scenario rearm
    readonce lfsr --seed 0xA5 --ticks 255
    readonce pair --basis-a 2 --basis-b 2
    readonce chain --cells 3
    readonce entangled --basis-a 1 --basis-b 3
"""

import argparse
import json
import sys

from .core import DEFAULT_SEED, emit_receipt
from .obfuscation import byte_entropy, period, stream
from .orchestrator import (
    CellGroupOrchestrator,
    alice_bob_pair,
    entangled_pair,
    linked_chain,
)

RESET = {"*": {"reset": True}}


def _out_row(tick: int, out: dict) -> dict:
    return {
        "tick": tick,
        "value_out": f"0x{out['value_out']:02X}",
        "output_enable": out["output_enable"],
        "pad_enable": out["pad_enable"],
        "fuse_fire": out["fuse_fire"],
    }


def _single(variant: str, seed: int) -> CellGroupOrchestrator:
    group = CellGroupOrchestrator("scenario")
    group.add("cell", variant, seed)
    return group


def scenario_basis(seed: int = DEFAULT_SEED) -> dict:
    """Init 0x3C/basis 01, matching read, then a repeat read."""
    group = _single("basis", seed)
    group.run([RESET, {"cell": {"init": True, "payload": {"secret": 0x3C, "basis": 0b01}}}])
    rows = []
    for _ in range(2):
        out = group.tick({"cell": {"read": True, "credentials": {"basis": 0b01}}})
        rows.append(_out_row(group.tick_count - 1, out["cell"]))
    return {
        "scenario": "basis",
        "ticks": rows,
        "first_read_disclosed": rows[0]["value_out"] == "0x3C" and rows[0]["output_enable"],
        "second_read_disclosed": bool(rows[1]["output_enable"]),
        "summary": group.trace.summary(),
    }


def scenario_wrong_basis(seed: int = DEFAULT_SEED) -> dict:
    """Init 0xAA/basis 10, read with basis 00, then read with basis 10."""
    group = _single("basis", seed)
    group.run([RESET, {"cell": {"init": True, "payload": {"secret": 0xAA, "basis": 0b10}}}])
    wrong = group.tick({"cell": {"read": True, "credentials": {"basis": 0b00}}})["cell"]
    collapsed_after_wrong = group.cells["cell"].collapsed
    right = group.tick({"cell": {"read": True, "credentials": {"basis": 0b10}}})["cell"]
    return {
        "scenario": "wrong-basis",
        "ticks": [_out_row(2, wrong), _out_row(3, right)],
        "collapsed_after_wrong_read": collapsed_after_wrong,
        "secret_leaked": wrong["output_enable"] or right["output_enable"],
        "summary": group.trace.summary(),
    }


def scenario_rearm(seed: int = DEFAULT_SEED) -> dict:
    """fuse_blow, then init a fresh secret and read it with the right basis."""
    group = _single("basis", seed)
    group.run([
        RESET,
        {"cell": {"init": True, "payload": {"secret": 0x11, "basis": 0b11}}},
        {"cell": {"fuse_blow": True}},
        {"cell": {"init": True, "payload": {"secret": 0x22, "basis": 0b11}}},
    ])
    cell = group.cells["cell"]
    rearmed = {"alive": cell.alive, "collapsed": cell.collapsed, "fused": cell.fused}
    out = group.tick({"cell": {"read": True, "credentials": {"basis": 0b11}}})["cell"]
    return {
        "scenario": "rearm",
        "after_init": rearmed,
        "read": {**_out_row(4, out), "granted": out["granted"]},
        "muted": not out["pad_enable"],
        "summary": group.trace.summary(),
    }


SCENARIOS = {
    "basis": scenario_basis,
    "wrong-basis": scenario_wrong_basis,
    "rearm": scenario_rearm,
}


def cmd_scenario(args):
    """Run one canned scenario."""
    print(f"Running scenario {args.name}...")
    result = SCENARIOS[args.name](seed=args.seed)
    for row in result.get("ticks", []):
        print(f"  tick {row['tick']}: value_out={row['value_out']} "
              f"output_enable={row['output_enable']} fuse_fire={row['fuse_fire']}")
    print(f"  Read-once held: {result['summary']['read_once']}")
    emit_receipt("scenario_run", {"scenario": args.name, "summary": result["summary"]})
    return result


def cmd_lfsr(args):
    """Inspect the obfuscation feed."""
    samples = stream(args.seed, args.ticks)
    result = {
        "module": "obfuscation",
        "seed": f"0x{args.seed:02X}",
        "ticks": args.ticks,
        "period": period(args.seed),
        "zero_reached": bool((samples == 0).any()),
        "distinct": int(len(set(samples.tolist()))),
        "entropy_bits": round(byte_entropy(samples), 4),
        "head": [f"0x{int(s):02X}" for s in samples[:8]],
    }
    print(f"  Period: {result['period']}")
    print(f"  Zero reached: {result['zero_reached']}")
    print(f"  Entropy: {result['entropy_bits']} bits")
    return result


def cmd_pair(args):
    """Alice/Bob pair behind a matching relay with a shared read strobe."""
    group = alice_bob_pair()
    group.run([
        RESET,
        {
            "alice": {"init": True, "payload": {"secret": args.secret_a, "basis": args.basis_a}},
            "bob": {"init": True, "payload": {"secret": args.secret_b, "basis": args.basis_b}},
        },
    ])
    out = group.tick({"*": {"read": True}})
    result = {
        "topology": "alice_bob",
        "grant_read": out["alice"]["granted"],
        "alice": _out_row(2, out["alice"]),
        "bob": _out_row(2, out["bob"]),
        "snapshot": group.snapshot(),
        "summary": group.trace.summary(),
    }
    print(f"  Relay grant: {result['grant_read']}")
    print(f"  Alice disclosed: {out['alice']['output_enable']}  Bob disclosed: {out['bob']['output_enable']}")
    emit_receipt("scenario_run", {"scenario": "pair", "summary": result["summary"]})
    return result


def cmd_chain(args):
    """Collapse the head of a linked chain and watch it propagate."""
    group = linked_chain(args.cells)
    init = {cid: {"init": True, "payload": {"secret": 0x40 + i, "basis": 0}}
            for i, cid in enumerate(group.cells)}
    group.run([RESET, init, {"c0": {"read": True, "credentials": {"basis": 0}}}])
    group.run([{} for _ in range(args.cells)])
    collapse = group.trace.summary()["collapse_tick"]
    result = {
        "topology": "chain",
        "cells": args.cells,
        "collapse_tick": collapse,
        "summary": group.trace.summary(),
    }
    for cid, t in collapse.items():
        print(f"  {cid}: collapsed at tick {t}")
    emit_receipt("scenario_run", {"scenario": "chain", "summary": result["summary"]})
    return result


def cmd_entangled(args):
    """Simultaneous reads on both ports of an entangled pair."""
    group = entangled_pair()
    group.run([RESET, {"pair": {"init": True, "payload": {"secret": args.secret, "basis": args.basis}}}])
    out = group.tick({"pair": {
        "read_a": True,
        "read_b": True,
        "credentials_a": {"basis": args.basis_a},
        "credentials_b": {"basis": args.basis_b},
    }})["pair"]
    result = {
        "topology": "entangled",
        "a": _out_row(2, {**out["a"], "fuse_fire": out["fuse_fire"]}),
        "b": _out_row(2, {**out["b"], "fuse_fire": out["fuse_fire"]}),
        "collapsed": group.cells["pair"].collapsed,
        "summary": group.trace.summary(),
    }
    print(f"  Port A disclosed: {out['a']['output_enable']}  Port B disclosed: {out['b']['output_enable']}")
    emit_receipt("scenario_run", {"scenario": "entangled", "summary": result["summary"]})
    return result


def _byte(text: str) -> int:
    return int(text, 0)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="readonce",
        description="READONCE v1.0 CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version="READONCE CLI v1.0")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # scenario
    sc_parser = subparsers.add_parser("scenario", help="Run a canned scenario")
    sc_parser.add_argument("name", choices=sorted(SCENARIOS))
    sc_parser.add_argument("--seed", type=_byte, default=DEFAULT_SEED,
                           help="LFSR seed for the cell")

    # lfsr
    lfsr_parser = subparsers.add_parser("lfsr", help="Inspect the obfuscation feed")
    lfsr_parser.add_argument("--seed", type=_byte, default=DEFAULT_SEED)
    lfsr_parser.add_argument("--ticks", type=int, default=255)

    # pair
    pair_parser = subparsers.add_parser("pair", help="Alice/Bob relayed pair")
    pair_parser.add_argument("--secret-a", type=_byte, default=0x5A)
    pair_parser.add_argument("--secret-b", type=_byte, default=0xC3)
    pair_parser.add_argument("--basis-a", type=int, default=1)
    pair_parser.add_argument("--basis-b", type=int, default=1)

    # chain
    chain_parser = subparsers.add_parser("chain", help="Linked peer chain")
    chain_parser.add_argument("--cells", type=int, default=3)

    # entangled
    ent_parser = subparsers.add_parser("entangled", help="Entangled two-port cell")
    ent_parser.add_argument("--secret", type=_byte, default=0x3C)
    ent_parser.add_argument("--basis", type=int, default=1)
    ent_parser.add_argument("--basis-a", type=int, default=1)
    ent_parser.add_argument("--basis-b", type=int, default=2)

    return parser


COMMANDS = {
    "scenario": cmd_scenario,
    "lfsr": cmd_lfsr,
    "pair": cmd_pair,
    "chain": cmd_chain,
    "entangled": cmd_entangled,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        parser.print_help()
        sys.exit(1)

    result = COMMANDS[args.command](args)

    # Print JSON result
    print("\n--- Result ---")
    print(json.dumps(result, indent=2, default=str))
    return result


if __name__ == "__main__":
    main()
