import argparse
import os
import sys
from importlib import metadata
from pathlib import Path

import dotenv
dotenv.load_dotenv()


def _version() -> str:
    try:
        return metadata.version("vecgrep")
    except metadata.PackageNotFoundError:
        return "unknown"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vecgrep",
        description="Semantic grep: print stdin lines that mean something close to QUERY",
    )
    parser.add_argument("query", help="Query string to search for semantically similar lines")
    parser.add_argument("-t", "--threshold", type=float, default=None,
                        help="Similarity threshold; lines scoring below it are filtered out (default: 0.6)")
    parser.add_argument("-A", dest="after", type=int, default=None, metavar="NUM",
                        help="Lines of context to show after each match")
    parser.add_argument("-B", dest="before", type=int, default=None, metavar="NUM",
                        help="Lines of context to show before each match")
    parser.add_argument("-C", dest="context", type=int, default=None, metavar="NUM",
                        help="Lines of context before and after each match")
    parser.add_argument("-m", "--model", default=None,
                        help="Hugging Face model id or local path, or ollama:<name> (env: VECGREP_MODEL)")
    parser.add_argument("--hide-scores", action="store_true", help="Hide the similarity score of matching lines")
    parser.add_argument("--top", type=int, default=None, metavar="N",
                        help="Print the N most similar lines instead of using a threshold (not with --stream)")
    parser.add_argument("--batch-size", type=int, default=1024, help="Lines per embedding batch")
    parser.add_argument("--stream", action="store_true",
                        help="Process and print incrementally, for inputs that never end")
    parser.add_argument("--cache-dir", type=Path, default=None, help="Where downloaded models are kept")
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    return parser


def config_from_args(args: argparse.Namespace):
    from vecgrep import runtime

    ctx = args.context or 0
    return runtime.Config(
        query=args.query,
        threshold=args.threshold,
        before=args.before if args.before is not None else ctx,
        after=args.after if args.after is not None else ctx,
        model_id=runtime.resolve_model(args.model),
        hide_scores=args.hide_scores,
        batch_size=args.batch_size,
        stream=args.stream,
        top=args.top,
        cache_dir=args.cache_dir,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    from vecgrep import embed, runtime

    config = runtime.require(config_from_args(args))

    for stream in (sys.stdin, sys.stdout):
        if hasattr(stream, "reconfigure"):
            stream.reconfigure(encoding="utf-8")

    from vecgrep import main as pipeline
    try:
        pipeline.run(config)
    except embed.EmbeddingError as exc:
        print(f"vecgrep: error: {exc}", file=sys.stderr)
        return 1
    except BrokenPipeError:
        # downstream closed early (e.g. `| head`); keep what was written
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return 1
    except (OSError, UnicodeDecodeError) as exc:
        print(f"vecgrep: error: i/o failure: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
