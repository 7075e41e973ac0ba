from typing import TextIO

from vecgrep import types as t

SEPARATOR_LINE = "--"


class Printer:
    """Writes emitted lines grep-style: match scores as a tab-separated suffix."""

    def __init__(self, out: TextIO, hide_scores: bool = False, flush: bool = False):
        self._out = out
        self.hide_scores = hide_scores
        self.flush = flush
        self.printed = 0
        self.separators = 0

    def format(self, scored: t.ScoredLine) -> str:
        if scored.is_match and not self.hide_scores:
            return f"{scored.text}\t[{scored.score:.3f}]"
        return scored.text

    def _write(self, record: str) -> None:
        # one write per record so an interrupted run never leaves half a line
        self._out.write(record + "\n")
        if self.flush:
            self._out.flush()

    def line(self, scored: t.ScoredLine) -> None:
        self._write(self.format(scored))
        self.printed += 1

    def separator(self) -> None:
        self._write(SEPARATOR_LINE)
        self.separators += 1

    def emit(self, items) -> None:
        for item in items:
            if item is t.SEPARATOR:
                self.separator()
            else:
                self.line(item)

    def blocks(self, blocks: list[t.Block], scored: list[t.ScoredLine]) -> None:
        for n, block in enumerate(blocks):
            if n > 0:
                self.separator()
            for i in range(block.start, block.end + 1):
                self.line(scored[i])
