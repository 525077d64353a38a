from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.errors import EmbeddingCountMismatchError, ProviderError
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and embedding config
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=self._get_default_model())
        self.embed_dimension = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_DIMENSION", default=1024))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "embed"

    @abstractmethod
    def _get_default_model(self) -> str:
        """
        Returns the model used when EMBED_MODEL is not set.
        """
        pass

    def get_dimension(self) -> int:
        """
        Returns the configured vector dimension. Every point stored in the
        collection must have a vector of exactly this length.
        """
        return self.embed_dimension

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests (e.g. "/api/embed").
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Response format differs by backend:
        - Ollama /api/embed: {"embeddings": [[...], [...]]}  — already ordered
        - Mistral / OpenAI-compatible: {"data": [{"embedding": [...], "index": 0}]} — needs sorting

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            ValueError: If the response does not have the expected shape.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Embed a batch of texts in a single provider call.

        Blank inputs are dropped before the call, so the result is 1:1 with the
        non-blank inputs in their original order. Batching is left to the caller.

        Args:
            texts (list[str] | str): One or more texts to embed.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the non-blank inputs.

        Raises:
            ProviderError: If the HTTP request fails or the response does not contain valid embeddings.
            EmbeddingCountMismatchError: If the provider returns a different number of vectors.
        """
        texts = [texts] if isinstance(texts, str) else texts
        inputs = [t.strip() for t in texts if t and t.strip()]
        if not inputs:
            return []

        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_embedding(),
            json=self.get_embed_payload(inputs),
            raise_on_error=True,
        )
        try:
            vectors = self.extract_embeddings_from_response(response.json())
        except ValueError as exc:
            self.logging.error("Malformed embedding response from %s: %s", self.get_provider_label(), exc)
            raise ProviderError(self.get_provider_label(), response.status_code, str(exc)) from exc
        if len(vectors) != len(inputs):
            self.logging.error(
                "Embedding response from %s returned %d vectors for %d inputs.",
                self.get_provider_label(), len(vectors), len(inputs),
            )
            raise EmbeddingCountMismatchError(expected=len(inputs), got=len(vectors))
        return vectors
