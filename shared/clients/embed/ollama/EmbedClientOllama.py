from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOllama(EmbedClientInterface):
    """Remote feature-extraction model served by Ollama."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_default_model(self) -> str:
        # 384-dim MiniLM build published in the Ollama library
        return "all-minilm"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default="")
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        # root on ollama
        return ""

    def _get_endpoint_embedding(self) -> str:
        return "/api/embed"

    def _get_endpoint_model_details(self) -> str:
        # model name goes in the body
        return "/api/show"

    ##########################################
    ############ MODEL BACKEND ###############
    ##########################################

    async def _load_model(self) -> int:
        response = await self.do_request(
            method="POST",
            json={"model": self.embed_model},
            endpoint=self._get_endpoint_model_details(),
            raise_on_error=True,
        )
        return self.parse_response(response, self.extract_vector_size_from_model_info)

    async def _embed_texts(self, texts: list[str]) -> list[list[float]]:
        response = await self.do_request(
            method="POST",
            json={"model": self.embed_model, "input": texts},
            endpoint=self._get_endpoint_embedding(),
            raise_on_error=True,
        )
        return self.parse_response(response, self.extract_embeddings_from_response)

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_vector_size_from_model_info(self, model_info: dict) -> int:
        """Read the embedding length from an /api/show response.

        Raises:
            ValueError: If no "<arch>.embedding_length" entry is present.
        """
        details: dict = model_info.get("model_info", {})
        for key, value in details.items():
            if key.endswith(".embedding_length"):
                return int(value)
        raise ValueError(f"Could not determine embedding vector size for model {self.embed_model}")

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from an Ollama /api/embed response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in input order.

        Raises:
            ValueError: If the response does not contain valid embeddings.
        """
        embeddings = response_data.get("embeddings")
        if not embeddings or not embeddings[0]:
            raise ValueError(
                "Ollama response does not contain valid embeddings. "
                f"Response keys: {list(response_data.keys())}"
            )
        return embeddings
