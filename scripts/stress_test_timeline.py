#!/usr/bin/env python3
"""Stress test harness for the fightline timeline.

This is intentionally NOT a pytest test: it's a repeatable load runner that
builds large synthetic fights, annotates them and reports timing + memory.

Usage examples:
  python scripts/stress_test_timeline.py --iterations 20
  python scripts/stress_test_timeline.py --scenario late --items 20000
  python scripts/stress_test_timeline.py --scenario all --json-out /tmp/stress.json
"""

from __future__ import annotations

import argparse
import json
import random
import statistics
import sys
import time
import tracemalloc
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Dict, List

# Allow running directly without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from fightline.config import Config  # noqa: E402
from fightline.core.action_data import ActionTable  # noqa: E402
from fightline.core.annotations import Severity  # noqa: E402
from fightline.core.engine import FightAnalysis  # noqa: E402
from fightline.core.models import FightSession, Group, ItemContent  # noqa: E402
from fightline.core.sinks import MemorySink  # noqa: E402
from fightline.core.timeline import Timeline  # noqa: E402

START = 10_000_000
GCD_MS = 2500
SEVERITIES = list(Severity)

ACTIONS = ActionTable.from_records(
    [{"id": 100 + i, "name": f"Spell {i}", "castTime": 2.0, "onGcd": True} for i in range(8)]
    + [{"id": 200 + i, "name": f"Ability {i}", "onGcd": False} for i in range(12)]
)


@dataclass(frozen=True)
class RunResult:
    scenario: str
    ok: bool
    seconds: float
    peak_kib: float
    items: int
    unresolved: int
    error: str | None = None


def _session(items: int) -> FightSession:
    return FightSession(fight_id=1, start_time=START, end_time=START + items * GCD_MS + GCD_MS)


def _offsets(items: int) -> List[int]:
    return [i * GCD_MS for i in range(items)]


def _annotate(timeline: Timeline, rng: random.Random, offsets: List[int], count: int) -> None:
    for _ in range(count):
        offset = rng.choice(offsets)
        severity = rng.choice(SEVERITIES)
        timeline.annotate(severity, START + offset, f"{severity.value} at {offset}")


def _fill_lanes(timeline: Timeline, offsets: List[int], lanes: int) -> None:
    groups = [timeline.add_group(Group(f"lane-{i}", content=f"Lane {i}")) for i in range(lanes)]
    for i, offset in enumerate(offsets):
        timeline.add_item_at(
            START + offset,
            ItemContent(icon=None, alt=f"#{i}"),
            START + offset + 2000,
            group=groups[i % lanes],
        )


def scenario_dense(rng: random.Random, items: int) -> Timeline:
    # Every annotation lands on an existing item.
    offsets = _offsets(items)
    timeline = Timeline(_session(items))
    _fill_lanes(timeline, offsets, lanes=4)
    _annotate(timeline, rng, offsets, count=items // 2)
    return timeline


def scenario_late(rng: random.Random, items: int) -> Timeline:
    # Annotations arrive first and are replayed at finalize.
    offsets = _offsets(items)
    timeline = Timeline(_session(items))
    _annotate(timeline, rng, offsets, count=items // 2)
    _fill_lanes(timeline, offsets, lanes=4)
    return timeline


def scenario_orphans(rng: random.Random, items: int) -> Timeline:
    # Annotations between items never match.
    offsets = _offsets(items)
    timeline = Timeline(_session(items))
    _fill_lanes(timeline, offsets, lanes=1)
    _annotate(timeline, rng, [o + GCD_MS // 2 for o in offsets], count=items // 2)
    return timeline


def scenario_nested(rng: random.Random, items: int) -> Timeline:
    offsets = _offsets(items)
    timeline = Timeline(_session(items))
    root = timeline.add_group(Group("root", content="Root"))
    for i in range(64):
        timeline.attach_to_group(root.id, Group(f"child-{i}"))
    _fill_lanes(timeline, offsets, lanes=16)
    _annotate(timeline, rng, offsets, count=items // 4)
    return timeline


SCENARIOS: Dict[str, Callable[[random.Random, int], Timeline]] = {
    "dense": scenario_dense,
    "late": scenario_late,
    "orphans": scenario_orphans,
    "nested": scenario_nested,
}


def _synthetic_events(rng: random.Random, items: int) -> List[dict]:
    events = []
    for offset in _offsets(items):
        events.append({"type": "cast", "timestamp": START + offset, "ability": {"guid": rng.randrange(100, 108)}})
        if rng.random() < 0.5:
            events.append({
                "type": "cast",
                "timestamp": START + offset + 1200,
                "ability": {"guid": rng.randrange(200, 212)},
            })
    return events


def run_timeline(scenario: str, rng: random.Random, items: int) -> RunResult:
    tracemalloc.start()
    start = time.perf_counter()
    try:
        timeline = SCENARIOS[scenario](rng, items)
        report = timeline.render(MemorySink())
        ok, err = True, None
        total = len(timeline.view_model()["items"])
        unresolved = report.unresolved
    except Exception as e:
        ok, err, total, unresolved = False, f"{type(e).__name__}: {e}", 0, 0
    seconds = time.perf_counter() - start
    _, peak = tracemalloc.get_traced_memory()
    tracemalloc.stop()
    return RunResult(scenario, ok, seconds, peak / 1024.0, total, unresolved, err)


def run_pipeline(analysis: FightAnalysis, rng: random.Random, items: int) -> RunResult:
    events = _synthetic_events(rng, items)
    annotations = [
        {"severity": rng.choice(SEVERITIES).value, "timestamp": ev["timestamp"], "message": "check"}
        for ev in rng.sample(events, k=min(len(events), items // 4))
    ]
    tracemalloc.start()
    start = time.perf_counter()
    try:
        report = analysis.run(_session(items), events, annotations)
        ok, err = True, None
        total = len(report["view_model"]["items"])
        unresolved = sum(v["unresolved"] for v in report["finalize"].values())
    except Exception as e:
        ok, err, total, unresolved = False, f"{type(e).__name__}: {e}", 0, 0
    seconds = time.perf_counter() - start
    _, peak = tracemalloc.get_traced_memory()
    tracemalloc.stop()
    return RunResult("pipeline", ok, seconds, peak / 1024.0, total, unresolved, err)


def _p95(values: List[float]) -> float:
    return sorted(values)[int(0.95 * (len(values) - 1))] if len(values) > 1 else values[0]


def summarize(results: List[RunResult]) -> Dict[str, Dict[str, float]]:
    by_s: Dict[str, List[RunResult]] = {}
    for r in results:
        by_s.setdefault(r.scenario, []).append(r)

    summary: Dict[str, Dict[str, float]] = {}
    for name, rows in by_s.items():
        secs = [r.seconds for r in rows]
        peaks = [r.peak_kib for r in rows]
        summary[name] = {
            "runs": float(len(rows)),
            "ok_rate": sum(1 for r in rows if r.ok) / max(1, len(rows)),
            "p50_s": statistics.median(secs),
            "p95_s": _p95(secs),
            "p50_peak_kib": statistics.median(peaks),
            "p95_peak_kib": _p95(peaks),
            "items": float(rows[-1].items),
        }
    return summary


def main() -> int:
    parser = argparse.ArgumentParser(description="fightline timeline stress runner")
    parser.add_argument("--iterations", type=int, default=10, help="Runs per scenario")
    parser.add_argument(
        "--scenario",
        choices=["all", "pipeline", *sorted(SCENARIOS.keys())],
        default="all",
        help="Scenario to run",
    )
    parser.add_argument("--items", type=int, default=5000, help="Items per synthetic fight")
    parser.add_argument("--seed", type=int, default=1337)
    parser.add_argument(
        "--json-out", type=str, default="", help="Write detailed results to JSON file"
    )
    args = parser.parse_args()

    rng = random.Random(args.seed)
    if args.scenario == "all":
        names = [*sorted(SCENARIOS.keys()), "pipeline"]
    else:
        names = [args.scenario]

    config = Config()
    # Keep stress predictable.
    config.set("enable_logging", False)
    config.set("plugin_dirs", [])
    analysis = FightAnalysis(config, actions=ACTIONS)

    results: List[RunResult] = []
    started = time.perf_counter()
    for name in names:
        for _ in range(args.iterations):
            if name == "pipeline":
                results.append(run_pipeline(analysis, rng, args.items))
            else:
                results.append(run_timeline(name, rng, args.items))
    total_s = time.perf_counter() - started

    print("\nfightline stress summary")
    print(f"iterations={args.iterations} items={args.items} seed={args.seed}")
    print(f"total_seconds={total_s:.3f}")
    print("\nscenario\truns\tok_rate\tp50_s\tp95_s\tp50_peak_kib\tp95_peak_kib\titems")
    summary = summarize(results)
    for name in names:
        s = summary[name]
        print(
            f"{name}\t{int(s['runs'])}\t{s['ok_rate']:.2f}\t{s['p50_s']:.4f}\t{s['p95_s']:.4f}\t"
            f"{s['p50_peak_kib']:.1f}\t{s['p95_peak_kib']:.1f}\t{int(s['items'])}"
        )

    failures = [r for r in results if not r.ok]
    if failures:
        print(f"\nfailures={len(failures)}")
        for r in failures[:10]:
            print(f"  {r.scenario}: {r.error}")

    if args.json_out:
        out = Path(args.json_out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(
            json.dumps(
                {"summary": summary, "results": [asdict(r) for r in results]}, indent=2
            )
        )
        print(f"\nWrote {out}")

    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
