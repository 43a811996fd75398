"""Read expressions from stdin and report evaluation throughput.

Each line is compiled once, bound with ``a=1, b=2, c=3, d=4`` and then
evaluated ``--trials`` times. An empty line (or end of input) stops the run.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import TextIO

from _bench_utils import calls_per_second, host_metadata, percentile, time_calls

from rpn_expr import try_compile

DEFAULT_BINDINGS = {"a": 1.0, "b": 2.0, "c": 3.0, "d": 4.0}


def run_line(text: str, *, trials: int, samples: int = 1) -> dict[str, object]:
    compiled = try_compile(text)
    if not compiled.ok:
        return {"source": text, "error": str(compiled.error)}
    expr = compiled.expression
    for name, value in DEFAULT_BINDINGS.items():
        expr.set(name, value)
    rates: list[float] = []
    result = None
    for _ in range(max(1, samples)):
        result, elapsed = time_calls(expr.evaluate, trials)
        rates.append(calls_per_second(trials, elapsed))
    return {
        "source": text,
        "result": result,
        "calls_per_second": percentile(rates, 0.5),
    }


def run_stream(stream: TextIO, out: TextIO, *, trials: int, samples: int = 1, as_json: bool = False) -> list[dict[str, object]]:
    rows: list[dict[str, object]] = []
    for raw in stream:
        text = raw.rstrip("\r\n")
        if text == "":
            break
        row = run_line(text, trials=trials, samples=samples)
        rows.append(row)
        if as_json:
            continue
        if "error" in row:
            print(row["error"], file=out)
            continue
        print(row["result"], file=out)
        print(f"{row['calls_per_second']:.0f} calculations per second", file=out)
    if as_json:
        json.dump({"host": host_metadata(), "rows": rows}, out, indent=2)
        out.write("\n")
    return rows


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--trials", type=int, default=10_000, help="evaluations per expression")
    parser.add_argument("--samples", type=int, default=1, help="timing samples per expression (median reported)")
    parser.add_argument("--json", action="store_true", help="emit a JSON report instead of text")
    args = parser.parse_args()
    rows = run_stream(sys.stdin, sys.stdout, trials=args.trials, samples=args.samples, as_json=args.json)
    return 1 if any("error" in row for row in rows) else 0


if __name__ == "__main__":
    raise SystemExit(main())
