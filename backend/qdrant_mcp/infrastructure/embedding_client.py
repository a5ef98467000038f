"""FastEmbed Client - local embedding model behind the EmbeddingProvider protocol.

Invariants:
    - The model is loaded once, lazily, under a lock (concurrent first calls load it once)
    - Inference runs in a worker thread; the event loop is never blocked
    - embed_batch returns exactly one vector per input text, in input order
    - Every vector has the configured dimensionality, else EmbeddingError
    - All failures leave this module as EmbeddingError
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from fastembed import TextEmbedding

from qdrant_mcp.core.errors import EmbeddingError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


class FastEmbedClient:
    """Generates embeddings with fastembed's TextEmbedding."""

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        dimensions: int | None = None,
        model_factory: Callable[[str], Any] | None = None,
    ):
        self.model_name = model_name
        self.dimensions = dimensions
        self._model_factory = model_factory or _load_text_embedding
        self._model: Any = None
        self._init_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._model is not None

    async def init(self) -> None:
        """Load the model if it is not loaded yet."""
        if self._model is not None:
            return
        async with self._init_lock:
            if self._model is not None:
                return
            logger.info(f"Initializing FastEmbed with model: {self.model_name}")
            try:
                self._model = await asyncio.to_thread(
                    self._model_factory, self.model_name,
                )
            except Exception as e:
                logger.error(f"FastEmbed initialization failed: {e}", exc_info=True)
                raise EmbeddingError(
                    f"Embedding model '{self.model_name}' failed to load: {e}",
                ) from e
            logger.info("FastEmbed initialization complete")

    async def embed(self, text: str) -> list[float]:
        """Embedding vector for a single text."""
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embedding vectors for several texts in one model call."""
        if not texts:
            return []
        await self.init()
        try:
            vectors = await asyncio.to_thread(self._run_model, list(texts))
        except Exception as e:
            logger.error(f"Error generating embeddings: {e}", exc_info=True)
            raise EmbeddingError(f"Embedding generation failed: {e}") from e
        self._check_vectors(vectors, expected_count=len(texts))
        return vectors

    def _run_model(self, texts: list[str]) -> list[list[float]]:
        # fastembed yields numpy arrays lazily; materialise inside the worker thread
        return [_to_float_list(v) for v in self._model.embed(texts)]

    def _check_vectors(
        self, vectors: list[list[float]], expected_count: int,
    ) -> None:
        if len(vectors) != expected_count:
            raise EmbeddingError(
                f"Embedding model returned {len(vectors)} vectors "
                f"for {expected_count} texts",
            )
        if self.dimensions is None:
            return
        for vector in vectors:
            if len(vector) != self.dimensions:
                raise EmbeddingError(
                    f"Embedding dimensionality {len(vector)} does not match "
                    f"configured vector size {self.dimensions}",
                )


def _load_text_embedding(model_name: str) -> TextEmbedding:
    return TextEmbedding(model_name=model_name)


def _to_float_list(vector: Any) -> list[float]:
    if hasattr(vector, "tolist"):
        vector = vector.tolist()
    return [float(x) for x in vector]
