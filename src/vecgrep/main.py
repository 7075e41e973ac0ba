import sys
from concurrent.futures import ThreadPoolExecutor
from typing import TextIO

import numpy as np

from vecgrep import context, embed, output, runtime, selector, stats, types as t, vector

STREAM_HINT = (
    "reading from stdin until EOF. For endless inputs (e.g., tail -f), "
    "use --stream to process incrementally"
)


def _chomp(raw: str) -> str:
    if raw.endswith("\n"):
        raw = raw[:-1]
        if raw.endswith("\r"):
            raw = raw[:-1]
    return raw


def read_lines(stdin: TextIO) -> list[str]:
    return [_chomp(raw) for raw in stdin]


def _prefetch(fn, batches):
    """Yields fn(batch) for each batch, computing the next one in the background."""
    batches = iter(batches)
    pool = ThreadPoolExecutor(max_workers=1)
    try:
        first = next(batches, None)
        pending = pool.submit(fn, first) if first is not None else None
        while pending is not None:
            upcoming = next(batches, None)
            current = pending
            pending = pool.submit(fn, upcoming) if upcoming is not None else None
            yield current.result()
    except BaseException:
        # Ctrl-C or a failed batch: drop queued work instead of waiting on it
        pool.shutdown(wait=False, cancel_futures=True)
        raise
    pool.shutdown()


def _score_vectors(vecs, count: int, query_vec: np.ndarray) -> np.ndarray:
    if len(vecs) != count:
        raise embed.EmbeddingError(f"embedder returned {len(vecs)} vectors for {count} lines")
    try:
        return vector.cosine_scores(vecs, query_vec)
    except ValueError as exc:
        raise embed.EmbeddingError(f"malformed embeddings: {exc}") from exc


def score_lines(embedder: embed.Embedder, texts: list[str], query_vec: np.ndarray,
                batch_size: int = runtime.DEFAULT_BATCH_SIZE) -> np.ndarray:
    """Cosine score of every text against the query, embedding in batches.

    Blank lines are never sent to the model and score 0.
    """
    scores = np.zeros(len(texts), dtype=np.float32)
    positions = [i for i, text in enumerate(texts) if text.strip()]
    groups = [positions[k:k + batch_size] for k in range(0, len(positions), batch_size)]
    batches = ([texts[i] for i in group] for group in groups)
    for group, vecs in zip(groups, _prefetch(embedder.embed_batch, batches)):
        scores[group] = _score_vectors(vecs, len(group), query_vec)
    return scores


def score_line(embedder: embed.Embedder, text: str, query_vec: np.ndarray) -> float:
    if not text.strip():
        return 0.0
    return float(_score_vectors(embedder.embed_batch([text]), 1, query_vec)[0])


def run_batch(
    query_vec: np.ndarray, embedder: embed.Embedder, config: runtime.Config,
    threshold: float | None, stdin: TextIO, stdout: TextIO, stderr: TextIO,
) -> t.Stats:
    texts = read_lines(stdin)
    scores = score_lines(embedder, texts, query_vec, config.batch_size)

    distribution = stats.Distribution()
    distribution.observe_many(scores)

    if config.top is not None:
        selection = selector.by_rank(scores, config.top)
    else:
        selection = selector.by_threshold(scores, threshold)

    scored = [
        t.ScoredLine(t.Line(i, text), float(score), i in selection)
        for i, (text, score) in enumerate(zip(texts, scores))
    ]
    blocks = context.blocks(selection.matches, config.before, config.after, len(texts))

    printer = output.Printer(stdout, hide_scores=config.hide_scores)
    printer.blocks(blocks, scored)
    stdout.flush()

    summary = distribution.summary()
    print(selection.describe(), file=stderr)
    if summary is not None:
        for line in stats.format_summary(summary):
            print(line, file=stderr)

    return t.Stats(lines=len(texts), matches=len(selection), printed=printer.printed,
                   blocks=len(blocks), summary=summary)


def run_stream(
    query_vec: np.ndarray, embedder: embed.Embedder, config: runtime.Config,
    threshold: float, stdin: TextIO, stdout: TextIO,
) -> t.Stats:
    assembler = context.StreamContext(before=config.before, after=config.after)
    printer = output.Printer(stdout, hide_scores=config.hide_scores, flush=True)
    count = matches = 0
    for index, raw in enumerate(stdin):
        text = _chomp(raw)
        score = score_line(embedder, text, query_vec)
        is_match = score >= threshold
        matches += is_match
        count += 1
        printer.emit(assembler.push(t.ScoredLine(t.Line(index, text), score, is_match)))
    printer.emit(assembler.flush())
    return t.Stats(lines=count, matches=matches, printed=printer.printed,
                   blocks=printer.separators + (1 if printer.printed else 0))


def run(
    config: runtime.Config, embedder: embed.Embedder | None = None,
    stdin: TextIO | None = None, stdout: TextIO | None = None, stderr: TextIO | None = None,
) -> t.Stats:
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    runtime.validate(config)
    threshold = runtime.effective_threshold(config, stderr)

    if embedder is not None:
        return _dispatch(config, embedder, threshold, stdin, stdout, stderr)
    embedder = embed.load(config.model_id, config.cache_dir)
    try:
        return _dispatch(config, embedder, threshold, stdin, stdout, stderr)
    finally:
        embedder.close()


def _dispatch(config, embedder, threshold, stdin, stdout, stderr) -> t.Stats:
    query_vec = vector.normalize(embedder.embed(config.query))

    if config.stream:
        return run_stream(query_vec, embedder, config, threshold, stdin, stdout)

    if not stdin.isatty():
        print(STREAM_HINT, file=stderr)
    return run_batch(query_vec, embedder, config, threshold, stdin, stdout, stderr)
