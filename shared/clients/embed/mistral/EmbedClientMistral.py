from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientMistral(EmbedClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.mistral.ai", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Mistral"

    def _get_default_model(self) -> str:
        return "mistral-embed"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.mistral.ai"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def get_endpoint_embedding(self) -> str:
        return "/v1/embeddings"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a Mistral /v1/embeddings response.

        Items carry their input position in "index"; they are sorted on it so
        the result lines up with the request order.

        Raises:
            ValueError: If the response does not contain a data list of embeddings.
        """
        data = response_data.get("data")
        if not isinstance(data, list):
            raise ValueError(
                "Mistral response does not contain valid embeddings. "
                f"Response keys: {list(response_data.keys())}"
            )
        items = sorted(enumerate(data), key=lambda pair: (pair[1].get("index", pair[0]), pair[0]))
        vectors: list[list[float]] = []
        for _, item in items:
            embedding = item.get("embedding")
            if not isinstance(embedding, list):
                raise ValueError("Mistral response item is missing its 'embedding' list.")
            vectors.append(embedding)
        return vectors
