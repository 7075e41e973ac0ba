import math
import os
import sys
from dataclasses import dataclass
from pathlib import Path

DEFAULT_MODEL = "minishlab/potion-base-8M"
DEFAULT_THRESHOLD = 0.6
DEFAULT_BATCH_SIZE = 1024
MODEL_ENV = "VECGREP_MODEL"

CACHE_DIR = Path(os.environ.get("VECGREP_CACHE_DIR", Path.home() / ".cache" / "vecgrep"))
OLLAMA_URL = os.environ.get("VECGREP_OLLAMA_URL", "http://localhost:11434")


class ConfigError(ValueError):
    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


@dataclass
class Config:
    query: str
    threshold: float | None = None
    before: int = 0
    after: int = 0
    model_id: str = DEFAULT_MODEL
    hide_scores: bool = False
    batch_size: int = DEFAULT_BATCH_SIZE
    stream: bool = False
    top: int | None = None
    cache_dir: Path | None = None


def cache_dir() -> Path:
    CACHE_DIR.mkdir(parents=True, exist_ok=True)
    return CACHE_DIR


def resolve_model(flag: str | None = None, environ=None) -> str:
    """Model id from the flag, then $VECGREP_MODEL, then the built-in default."""
    env = os.environ if environ is None else environ
    if flag:
        return flag
    return env.get(MODEL_ENV) or DEFAULT_MODEL


def check(config: Config) -> list[str]:
    errors = []

    if not config.query.strip():
        errors.append("query must not be empty")

    if config.stream and config.top is not None:
        errors.append("--top needs the whole input and cannot be combined with --stream")

    if config.top is not None and config.top < 1:
        errors.append(f"--top must be at least 1, got {config.top}")

    if config.before < 0:
        errors.append(f"-B must be non-negative, got {config.before}")

    if config.after < 0:
        errors.append(f"-A must be non-negative, got {config.after}")

    if config.batch_size < 1:
        errors.append(f"--batch-size must be at least 1, got {config.batch_size}")

    if config.threshold is not None and (
        not math.isfinite(config.threshold) or not -1.0 <= config.threshold <= 1.0
    ):
        errors.append(f"--threshold must be within [-1, 1], got {config.threshold}")

    if not config.model_id:
        errors.append("model id must not be empty")

    return errors


def validate(config: Config) -> Config:
    errors = check(config)
    if errors:
        raise ConfigError(errors)
    return config


def require(config: Config) -> Config:
    try:
        return validate(config)
    except ConfigError as exc:
        print("Invalid configuration:", file=sys.stderr)
        for e in exc.errors:
            print(f"  - {e}", file=sys.stderr)
        sys.exit(2)


def effective_threshold(config: Config, stderr=None) -> float | None:
    """Threshold in force for the run; None when --top does the selecting.

    --top always wins. An explicit --threshold alongside it is reported and
    ignored.
    """
    if config.top is not None:
        if config.threshold is not None:
            print("vecgrep: warning: --threshold is ignored when --top is given",
                  file=stderr or sys.stderr)
        return None
    return DEFAULT_THRESHOLD if config.threshold is None else config.threshold
