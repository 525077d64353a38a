from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.clients.llm.models.ChatCompletion import ChatCompletion, decode_chat_completion
from shared.errors import ProviderError
from shared.helper.HelperConfig import HelperConfig


class LLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # chat / completion config
        self.chat_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_CHAT_MODEL", default=self._get_default_chat_model())

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    @abstractmethod
    def _get_default_chat_model(self) -> str:
        """Returns the model used when LLM_CHAT_MODEL is not set."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/api/chat")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, messages: list[dict], temperature: float) -> dict:
        """Build the backend-specific request body for a chat/completion request.

        Args:
            messages (list[dict]): OpenAI-format messages
                (e.g. [{"role": "user", "content": "..."}]).
            temperature (float): Sampling temperature.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat(self, messages: list[dict], temperature: float = 0.2) -> ChatCompletion:
        """Send a chat/completion request and return the decoded reply.

        Args:
            messages (list[dict]): OpenAI-format messages.
            temperature (float): Sampling temperature.

        Returns:
            ChatCompletion: Reply text and usage tokens.

        Raises:
            ProviderError: If the HTTP request fails or the response does not contain a reply.
        """
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_chat(),
            json=self.get_chat_payload(messages, temperature),
            raise_on_error=True,
        )
        try:
            return decode_chat_completion(response.json())
        except ValueError as exc:
            self.logging.error("Malformed chat response from %s: %s", self.get_provider_label(), exc)
            raise ProviderError(self.get_provider_label(), response.status_code, str(exc)) from exc
