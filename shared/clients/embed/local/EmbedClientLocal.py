import asyncio

from sentence_transformers import SentenceTransformer

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientLocal(EmbedClientInterface):
    """In-process feature-extraction model via sentence-transformers.

    sentence-transformers applies mean pooling over the token embeddings
    (the pooling module shipped with all-MiniLM-L6-v2, and the default for
    plain transformer checkpoints). Model loading and encoding are CPU-bound
    and run in worker threads.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._device = self.get_config_val("DEVICE", default="cpu", val_type="string")
        self._model: SentenceTransformer | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Local"

    def _get_default_model(self) -> str:
        return "sentence-transformers/all-MiniLM-L6-v2"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="DEVICE", val_type="string", default="cpu"),
        ]

    ##########################################
    ############ MODEL BACKEND ###############
    ##########################################

    async def _load_model(self) -> int:
        self._model = await asyncio.to_thread(SentenceTransformer, self.embed_model, device=self._device)
        return int(self._model.get_sentence_embedding_dimension())

    async def _embed_texts(self, texts: list[str]) -> list[list[float]]:
        vectors = await asyncio.to_thread(
            self._model.encode,
            texts,
            normalize_embeddings=True,
            convert_to_numpy=True,
            show_progress_bar=False,
        )
        return vectors.tolist()
