from dataclasses import dataclass


@dataclass(frozen=True)
class Line:
    index: int
    text: str


@dataclass(frozen=True)
class ScoredLine:
    line: Line
    score: float
    is_match: bool = False

    @property
    def index(self) -> int:
        return self.line.index

    @property
    def text(self) -> str:
        return self.line.text


@dataclass(frozen=True)
class Block:
    start: int
    end: int
    matches: tuple[int, ...] = ()

    def __len__(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class Summary:
    count: int
    min: float
    p50: float
    p90: float
    p95: float
    p99: float
    p999: float
    p9999: float
    max: float


@dataclass
class Stats:
    lines: int = 0
    matches: int = 0
    printed: int = 0
    blocks: int = 0
    summary: Summary | None = None


class _Separator:
    def __repr__(self) -> str:
        return "SEPARATOR"


SEPARATOR = _Separator()
