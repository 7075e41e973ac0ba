from dataclasses import dataclass


def threshold_matches(scores, threshold: float) -> set[int]:
    return {i for i, s in enumerate(scores) if s >= threshold}


def top_matches(scores, n: int) -> list[int]:
    """Indices of the `n` best scores, best first; ties go to the earlier line."""
    n = min(n, len(scores))
    if n <= 0:
        return []
    ranked = sorted(range(len(scores)), key=lambda i: (-scores[i], i))
    return ranked[:n]


@dataclass
class Selection:
    matches: set[int]
    threshold: float | None = None
    top: int | None = None
    ranked: list[int] | None = None
    min_selected: float | None = None

    def __contains__(self, index: int) -> bool:
        return index in self.matches

    def __len__(self) -> int:
        return len(self.matches)

    def describe(self) -> str:
        if self.top is not None:
            return (f"selected top {len(self.matches)} lines by similarity "
                    f"(min selected score {self.min_selected:.3f})")
        if not self.matches:
            return f"no matches above threshold {self.threshold:.2f}"
        return f"matches: {len(self.matches)} (threshold {self.threshold:.2f})"


def by_threshold(scores, threshold: float) -> Selection:
    return Selection(matches=threshold_matches(scores, threshold), threshold=threshold)


def by_rank(scores, n: int) -> Selection:
    ranked = top_matches(scores, n)
    min_selected = float(scores[ranked[-1]]) if ranked else 0.0
    return Selection(matches=set(ranked), ranked=ranked, top=n, min_selected=min_selected)
