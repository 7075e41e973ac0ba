from collections import deque

from vecgrep import types as t


def windows(matches, before: int, after: int, total: int) -> list[tuple[int, int]]:
    """Per-match `[i - before, i + after]` ranges, clamped to `[0, total - 1]`."""
    out = []
    for i in sorted(matches):
        if 0 <= i < total:
            out.append((max(i - before, 0), min(i + after, total - 1)))
    return out


def merge(spans: list[tuple[int, int]], matches=()) -> list[t.Block]:
    """Combine overlapping or touching spans into sorted, disjoint blocks."""
    merged: list[list[int]] = []
    for start, end in sorted(spans):
        if merged and merged[-1][1] + 1 >= start:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])
    ordered = sorted(matches)
    return [
        t.Block(start=s, end=e, matches=tuple(m for m in ordered if s <= m <= e))
        for s, e in merged
    ]


def blocks(matches, before: int, after: int, total: int) -> list[t.Block]:
    return merge(windows(matches, before, after, total), matches)


class StreamContext:
    """Context assembly over an unbounded stream of scored lines.

    Lines come in with strictly increasing indices. A line is final once it
    is known to fall inside some match window, or once line `index + before`
    has been seen without a match in range. Undecided lines wait in a buffer
    of at most `before + 1` entries. Finalized output is returned in input
    order, with SEPARATOR between non-adjacent blocks.
    """

    def __init__(self, before: int = 0, after: int = 0):
        if before < 0 or after < 0:
            raise ValueError("context sizes must be non-negative")
        self.before = before
        self.after = after
        self._pending: deque[t.ScoredLine] = deque()
        self._matches: deque[int] = deque()
        self._last_seen = -1
        self._last_emitted: int | None = None

    @property
    def watermark(self) -> int:
        """Lines below this index can no longer be pulled into a later window."""
        return self._last_seen - self.before + 1

    def __len__(self) -> int:
        return len(self._pending)

    def push(self, scored: t.ScoredLine) -> list:
        if scored.index <= self._last_seen:
            raise ValueError(f"line {scored.index} arrived after line {self._last_seen}")
        self._last_seen = scored.index
        if scored.is_match:
            self._matches.append(scored.index)
        self._pending.append(scored)
        return self._drain(final=False)

    def flush(self) -> list:
        return self._drain(final=True)

    def _in_window(self, index: int) -> bool:
        lo, hi = index - self.after, index + self.before
        while self._matches and self._matches[0] < lo:
            self._matches.popleft()
        return any(lo <= m <= hi for m in self._matches)

    def _drain(self, final: bool) -> list:
        out = []
        while self._pending:
            head = self._pending[0]
            if self._in_window(head.index):
                self._pending.popleft()
                if self._last_emitted is not None and head.index != self._last_emitted + 1:
                    out.append(t.SEPARATOR)
                out.append(head)
                self._last_emitted = head.index
            elif final or head.index < self.watermark:
                self._pending.popleft()
            else:
                break
        return out
