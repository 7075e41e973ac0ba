import io
import pathlib

import dotenv
import pytest

dotenv.load_dotenv(pathlib.Path(__file__).parent.parent / ".env")

TOPICS = [
    {"server", "crashed", "crash", "shutdown", "error", "failure", "fatal", "exception"},
    {"user", "logged", "login", "logout", "session"},
    {"disk", "full", "space", "quota"},
]


class FakeEmbedder:
    """Counts topic keywords per dimension; everything else lands in the last one."""

    def __init__(self):
        self.calls: list[list[str]] = []
        self.closed = False

    def embed(self, text: str) -> list[float]:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        vecs = []
        for text in texts:
            vec = [0.0] * (len(TOPICS) + 1)
            for word in text.lower().split():
                for dim, topic in enumerate(TOPICS):
                    if word in topic:
                        vec[dim] += 1.0
                        break
                else:
                    vec[-1] += 1.0
            vecs.append(vec)
        return vecs

    def close(self) -> None:
        self.closed = True


class TtyStringIO(io.StringIO):
    def isatty(self) -> bool:
        return True


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def log_lines():
    return [
        "boot sequence started",
        "user logged in",
        "server crashed with error 123",
        "fatal exception in server",
        "user logged out",
        "disk full on /var",
        "weather is nice today",
        "server shutdown error",
        "user session expired",
        "all good",
    ]
