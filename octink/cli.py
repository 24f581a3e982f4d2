# octink/cli.py
"""Command-line entry point: ``octink run | render | bars``."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .app import open_transport, render_once, run, show_bars
from .config import load_config, with_overrides
from .controller import DisplayController
from .errors import ConfigError, OctinkError, TransportError
from .log import parse_level, setup_logging

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="octink",
                                description="Composite art generator for a 5.65\" ACeP e-paper panel")
    p.add_argument("-c", "--config", default=None, help="YAML config file.")
    p.add_argument("--seed", type=int, default=None, help="RNG seed (repeatable output).")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR.")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("run", help="Generate forever and drive the panel.")
    where = sp.add_mutually_exclusive_group()
    where.add_argument("--sim", dest="display", action="store_const", const="sim",
                       help="Simulated panel with a preview window.")
    where.add_argument("--epd", dest="display", action="store_const", const="epd",
                       help="Real panel over SPI.")
    sp.add_argument("--no-window", action="store_true", help="Simulated panel without a window.")
    sp.add_argument("--no-bars", action="store_true", help="Skip the startup colour bars.")
    sp.add_argument("--cycles", type=int, default=None, help="Stop after N cycles.")

    sp = sub.add_parser("render", help="Write one composite and its dithered preview, no panel.")
    sp.add_argument("--out", default=None, help="Output directory.")

    sp = sub.add_parser("bars", help="Show the colour-bar test pattern.")
    sp.add_argument("--sim", dest="display", action="store_const", const="sim")
    sp.add_argument("--epd", dest="display", action="store_const", const="epd")
    sp.add_argument("--pause", type=float, default=1.0, help="Seconds per offset.")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        setup_logging()
        log.error("[cli] %s", e)
        return 2
    cfg = with_overrides(cfg, seed=args.seed, log_level=args.log_level,
                         display=getattr(args, "display", None),
                         output_dir=getattr(args, "out", None))
    if getattr(args, "no_window", False):
        cfg = with_overrides(cfg, sim_window=False)
    if getattr(args, "no_bars", False):
        cfg = with_overrides(cfg, startup_bars=False)
    setup_logging(parse_level(cfg.log_level), cfg.log_file)

    try:
        if args.cmd == "render":
            render_once(cfg)
        elif args.cmd == "bars":
            with open_transport(cfg) as transport, DisplayController(transport) as ctl:
                show_bars(ctl, pause=args.pause)
        else:
            run(cfg, max_cycles=args.cycles)
    except KeyboardInterrupt:
        log.info("[cli] interrupted")
        return 130
    except TransportError as e:
        log.error("[cli] panel failure: %s", e)
        return 3
    except OctinkError as e:
        log.error("[cli] %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
