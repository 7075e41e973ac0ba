from vecgrep import types as t, vector

PERCENTILES = (50, 90, 95, 99, 99.9, 99.99)


class Distribution:
    """Every score observed in a run, for the end-of-run percentile summary.

    Holds the full sample, so it is only fed in batch mode.
    """

    def __init__(self):
        self._scores: list[float] = []

    def observe(self, score: float) -> None:
        self._scores.append(float(score))

    def observe_many(self, scores) -> None:
        self._scores.extend(float(s) for s in scores)

    def __len__(self) -> int:
        return len(self._scores)

    def summary(self) -> t.Summary | None:
        if not self._scores:
            return None
        ordered = sorted(self._scores)
        p50, p90, p95, p99, p999, p9999 = (vector.percentile(ordered, p) for p in PERCENTILES)
        return t.Summary(
            count=len(ordered), min=ordered[0], p50=p50, p90=p90, p95=p95,
            p99=p99, p999=p999, p9999=p9999, max=ordered[-1],
        )


def format_summary(s: t.Summary) -> list[str]:
    return [
        f"overall distribution (all lines): min {s.min:.3f}  p50 {s.p50:.3f}  p90 {s.p90:.3f}"
        f"  p95 {s.p95:.3f}  p99 {s.p99:.3f}  p99.9 {s.p999:.3f}  max {s.max:.3f}",
        f"suggested thresholds for top k% lines: 5%→{s.p95:.3f}  1%→{s.p99:.3f}"
        f"  0.1%→{s.p999:.3f}  0.01%→{s.p9999:.3f}",
    ]
