from typing import Protocol, runtime_checkable

import httpx

from vecgrep import runtime

OLLAMA_PREFIX = "ollama:"


class EmbeddingError(RuntimeError):
    pass


@runtime_checkable
class Embedder(Protocol):
    def embed(self, text: str) -> list[float]: ...

    def embed_batch(self, texts: list[str]) -> list[list[float]]: ...

    def close(self) -> None: ...

class StaticModelEmbedder:
    """Sentence embeddings from a Hugging Face model via sentence-transformers.

    The model is loaded on first use so that configuration errors surface
    before the (slow) download.
    """

    def __init__(self, model_id: str = runtime.DEFAULT_MODEL, cache_dir=None, model=None):
        self.model_id = model_id
        self._cache_dir = cache_dir
        self._model = model

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            folder = self._cache_dir or runtime.cache_dir()
            try:
                self._model = SentenceTransformer(self.model_id, cache_folder=str(folder))
            except Exception as exc:
                raise EmbeddingError(f"failed to load model '{self.model_id}': {exc}") from exc
        return self._model

    def embed(self, text: str) -> list[float]:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        model = self.model
        try:
            vecs = model.encode(list(texts), batch_size=len(texts), show_progress_bar=False,
                                convert_to_numpy=True)
        except Exception as exc:
            raise EmbeddingError(f"model '{self.model_id}' failed to embed: {exc}") from exc
        return vecs.tolist()

    def close(self) -> None:
        self._model = None


class OllamaEmbedder:
    def __init__(self, model: str, url: str | None = None, client: httpx.Client | None = None):
        self.model = model
        self.url = url or runtime.OLLAMA_URL
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=120)

    def __enter__(self) -> "OllamaEmbedder":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def embed(self, text: str) -> list[float]:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            resp = self._client.post(
                f"{self.url}/api/embed",
                json={"model": self.model, "input": list(texts)},
            )
            resp.raise_for_status()
            vecs = resp.json()["embeddings"]
        except httpx.HTTPError as exc:
            raise EmbeddingError(f"Ollama at {self.url} failed to embed with '{self.model}': {exc}") from exc
        except (KeyError, ValueError) as exc:
            raise EmbeddingError(f"unexpected response from Ollama at {self.url}: {exc}") from exc
        if len(vecs) != len(texts):
            raise EmbeddingError(f"Ollama returned {len(vecs)} embeddings for {len(texts)} lines")
        return vecs


def load(model_id: str, cache_dir=None) -> Embedder:
    if model_id.startswith(OLLAMA_PREFIX):
        return OllamaEmbedder(model_id[len(OLLAMA_PREFIX):])
    return StaticModelEmbedder(model_id, cache_dir=cache_dir)
