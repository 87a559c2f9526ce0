import asyncio
from abc import abstractmethod

import numpy as np

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions.errors import EmbeddingError, InitializationError, ServiceError
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    """Embedding generator: turns text into unit-length vectors of a fixed size.

    The underlying model is loaded once per client, lazily on the first embed
    call or eagerly via do_initialize(). Concurrent first callers share a
    single load. A failed load is not remembered: the next call tries again.
    """

    request_error_class = EmbeddingError

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and embedding config
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=self._get_default_model())
        self.embed_dimension = helper_config.get_int_val(f"{self.get_client_type().upper()}_DIMENSION", default=384, minimum=1)
        self.embed_distance = helper_config.get_string_val(f"{self.get_client_type().upper()}_DISTANCE", default="Cosine")

        # lifecycle: uninitialized -> ready, one-way
        self._ready = False
        self._init_task: asyncio.Task | None = None

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def is_ready(self) -> bool:
        """Returns True once the model has been loaded successfully."""
        return self._ready

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    @abstractmethod
    def _get_default_model(self) -> str:
        """
        Returns the model used when EMBED_MODEL is not set.
        """
        pass

    ##########################################
    ############ MODEL BACKEND ###############
    ##########################################

    @abstractmethod
    async def _load_model(self) -> int:
        """Load (or verify) the model. Called at most once concurrently.

        Returns:
            int: The vector dimension the model produces.

        Raises:
            Exception: Any failure; it is wrapped into InitializationError.
        """
        pass

    @abstractmethod
    async def _embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Run the loaded model over the texts.

        Args:
            texts (list[str]): The texts to embed; never empty.

        Returns:
            list[list[float]]: One mean-pooled vector per text, in input order.
        """
        pass

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def do_initialize(self) -> None:
        """Load the model if it is not loaded yet.

        Concurrent callers await the same load. The shared load is shielded,
        so a cancelled caller does not abort it for the others.

        Raises:
            InitializationError: If the model could not be loaded.
        """
        if self._ready:
            return
        if self._init_task is None:
            self._init_task = asyncio.create_task(self._run_initialization())
        await asyncio.shield(self._init_task)

    async def _run_initialization(self) -> None:
        self.logging.info("Loading embedding model '%s' via engine '%s'...", self.embed_model, self.get_engine_name())
        try:
            dimension = await self._load_model()
            if dimension != self.embed_dimension:
                raise InitializationError(
                    f"Embedding model '{self.embed_model}' produces {dimension}-dimensional vectors, "
                    f"but EMBED_DIMENSION is {self.embed_dimension}."
                )
            self._ready = True
        except InitializationError as exc:
            self.logging.error("Embedding model initialisation failed: %s", exc)
            raise
        except Exception as exc:
            self.logging.error("Embedding model '%s' could not be loaded: %s", self.embed_model, exc)
            raise InitializationError(f"Embedding model '{self.embed_model}' could not be loaded: {exc}") from exc
        finally:
            self._init_task = None
        self.logging.info("Embedding model '%s' ready (dim=%d).", self.embed_model, self.embed_dimension)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Embed one or more texts and return L2-normalised vectors.

        Empty text is accepted; the model produces a degenerate embedding for
        it. An all-zero vector is returned unchanged instead of being divided
        by zero.

        Args:
            texts (list[str] | str): One or more texts to embed.

        Returns:
            list[list[float]]: Unit-length vectors in the same order as the inputs.

        Raises:
            InitializationError: If the model is not available.
            EmbeddingError: If the model call fails or returns malformed vectors.
        """
        texts = [texts] if isinstance(texts, str) else list(texts)
        if not texts:
            return []
        await self.do_initialize()

        try:
            vectors = await self._embed_texts(texts)
        except ServiceError:
            raise
        except Exception as exc:
            self.logging.error("Embedding %d text(s) failed: %s", len(texts), exc)
            raise EmbeddingError(f"Embedding failed: {exc}") from exc

        if len(vectors) != len(texts):
            raise EmbeddingError(f"Embedding backend returned {len(vectors)} vectors for {len(texts)} texts.")
        return [self._normalize(vector) for vector in vectors]

    async def embed_text(self, text: str) -> list[float]:
        """Embed a single text. See do_embed()."""
        return (await self.do_embed([text]))[0]

    ##########################################
    ################# OTHER ##################
    ##########################################

    def _normalize(self, vector) -> list[float]:
        arr = np.asarray(vector, dtype=np.float64)
        if arr.ndim != 1 or arr.shape[0] != self.embed_dimension:
            raise EmbeddingError(
                f"Embedding has shape {arr.shape}, expected ({self.embed_dimension},)."
            )
        if not np.all(np.isfinite(arr)):
            raise EmbeddingError("Embedding contains non-finite values.")
        norm = np.linalg.norm(arr)
        if norm == 0:
            return arr.tolist()
        return (arr / norm).tolist()
