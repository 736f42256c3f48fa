#!/usr/bin/env python3

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ldf_engine.config import PoolLDFConfig, load_pool_config
from ldf_engine.core.ldf import query, resolve
from ldf_engine.core.swap_math import SwapInput, active_balances, compute_swap
from ldf_engine.kernels.python.tick_math import get_sqrt_price_at_tick, round_tick_single
from ldf_engine.state.ldf_state import UNINITIALIZED_STATE


def _state_arg(value: str) -> bytes:
    if not value:
        return UNINITIALIZED_STATE
    raw = bytes.fromhex(value[2:] if value.startswith("0x") else value)
    if len(raw) != 32:
        raise SystemExit("--state must be 32 bytes of hex")
    return raw


def _quote_query(cfg: PoolLDFConfig, args: argparse.Namespace) -> dict:
    rounded_tick = round_tick_single(args.tick, cfg.tick_spacing)
    res = query(
        cfg.kind,
        rounded_tick,
        twap_tick=args.twap_tick,
        tick_spacing=cfg.tick_spacing,
        ldf_params=cfg.ldf_params,
        ldf_state=_state_arg(args.state),
    )
    return {
        "rounded_tick": rounded_tick,
        "liquidity_density_x96": res.liquidity_density_x96,
        "cumulative_amount0_density_x96": res.cumulative_amount0_density_x96,
        "cumulative_amount1_density_x96": res.cumulative_amount1_density_x96,
        "new_ldf_state": "0x" + res.new_ldf_state.hex(),
        "should_surge": res.should_surge,
    }


def _quote_swap(cfg: PoolLDFConfig, args: argparse.Namespace) -> dict:
    state = _state_arg(args.state)
    sqrt_price = args.sqrt_price if args.sqrt_price else get_sqrt_price_at_tick(args.tick)
    ldf = resolve(cfg.kind, cfg.ldf_params, state, tick_spacing=cfg.tick_spacing, twap_tick=args.twap_tick)
    balance0, balance1 = active_balances(ldf, sqrt_price, args.tick, args.liquidity)
    inp = SwapInput(
        kind=cfg.kind,
        ldf_params=cfg.ldf_params,
        ldf_state=state,
        tick_spacing=cfg.tick_spacing,
        twap_tick=args.twap_tick,
        total_liquidity=args.liquidity,
        sqrt_price_x96=sqrt_price,
        current_tick=args.tick,
        balance0=balance0,
        balance1=balance1,
    )
    res = compute_swap(inp, zero_for_one=not args.one_for_zero, exact_in=not args.exact_out, amount=args.amount)
    return {
        "balance0": balance0,
        "balance1": balance1,
        "success": res.success,
        "hit_boundary": res.hit_boundary,
        "input_amount": res.input_amount,
        "output_amount": res.output_amount,
        "updated_sqrt_price_x96": res.updated_sqrt_price_x96,
        "updated_tick": res.updated_tick,
        "new_ldf_state": "0x" + res.new_ldf_state.hex(),
        "should_surge": res.should_surge,
    }


def main() -> int:
    ap = argparse.ArgumentParser(description="Quote densities and swaps for an LDF pool config")
    ap.add_argument("--config", required=True, help="pool config YAML")
    ap.add_argument("--twap-tick", type=int, default=None, help="reference tick for dynamic shift modes")
    ap.add_argument("--state", type=str, default="", help="persisted LDF state (hex)")
    ap.add_argument("--verbose", action="store_true")
    sub = ap.add_subparsers(dest="command", required=True)

    q = sub.add_parser("query", help="density and cumulative amounts at a tick")
    q.add_argument("--tick", type=int, required=True)

    sw = sub.add_parser("swap", help="execute a swap against the implied active balances")
    sw.add_argument("--tick", type=int, required=True)
    sw.add_argument("--sqrt-price", type=int, default=0, help="Q96 sqrt price (default: price at --tick)")
    sw.add_argument("--liquidity", type=int, required=True)
    sw.add_argument("--amount", type=int, required=True)
    sw.add_argument("--one-for-zero", action="store_true")
    sw.add_argument("--exact-out", action="store_true")

    args = ap.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    cfg = load_pool_config(args.config)
    if cfg.is_dynamic and args.twap_tick is None:
        raise SystemExit("--twap-tick is required for a dynamic shift mode")

    if args.command == "query":
        report = _quote_query(cfg, args)
    else:
        if args.liquidity <= 0 or args.amount <= 0:
            raise SystemExit("--liquidity and --amount must be positive")
        report = _quote_swap(cfg, args)

    report["kind"] = cfg.kind.value
    print(json.dumps(report, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
