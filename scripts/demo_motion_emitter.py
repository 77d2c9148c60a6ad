#!/usr/bin/env python3
"""Emit demo accelerometer lines for the detection feed's motion port.

Pipe the output into a pseudo-terminal, e.g.
``socat -d -d pty,raw,echo=0 pty,raw,echo=0`` and point ``--motion-port``
at the other end.
"""

from __future__ import annotations

import argparse
import json
import math
import sys
import time


def _format_line(fmt: str, ax: float, ay: float, az: float, beta: float) -> str:
    if fmt == "json":
        return json.dumps(
            {
                "acceleration": {"x": ax, "y": ay, "z": az},
                "rotation": {"alpha": 0.0, "beta": beta, "gamma": 0.0},
            }
        )
    if fmt == "kv":
        return f"ax={ax:.3f},ay={ay:.3f},az={az:.3f},beta={beta:.1f}"
    return f"{ax:.3f},{ay:.3f},{az:.3f},0.0,{beta:.1f},0.0"


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit demo accelerometer samples.")
    parser.add_argument("--format", choices=("csv", "kv", "json"), default="csv")
    parser.add_argument("--rate", type=float, default=20.0, help="Lines per second.")
    parser.add_argument(
        "--peak",
        type=float,
        default=6.0,
        help="Peak acceleration of the periodic shake (m/s^2).",
    )
    parser.add_argument("--count", type=int, default=0, help="Stop after N lines (0 = forever).")
    args = parser.parse_args()

    period = 1.0 / max(args.rate, 0.1)
    sent = 0
    try:
        while not args.count or sent < args.count:
            phase = sent * period
            # Shake for one second out of every four.
            shaking = (phase % 4.0) < 1.0
            amplitude = args.peak if shaking else 0.1
            ax = amplitude * math.sin(2.0 * math.pi * 3.0 * phase)
            ay = amplitude * 0.5 * math.cos(2.0 * math.pi * 3.0 * phase)
            line = _format_line(args.format, ax, ay, 0.0, 10.0 * math.sin(phase))
            sys.stdout.write(line + "\n")
            sys.stdout.flush()
            sent += 1
            time.sleep(period)
    except (KeyboardInterrupt, BrokenPipeError):
        pass


if __name__ == "__main__":
    main()
