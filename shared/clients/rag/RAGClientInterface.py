from abc import abstractmethod
from typing import Any

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.SearchHit import SearchHit
from shared.errors import CollectionDimensionMismatchError, ProviderError
from shared.helper.HelperConfig import HelperConfig
from shared.models.search import Classification


class RAGClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    @abstractmethod
    def get_collection_name(self) -> str:
        """
        Returns the name of the target collection.
        """
        pass

    @abstractmethod
    def recreate_on_mismatch(self) -> bool:
        """
        Returns whether a collection with the wrong vector size may be dropped and rebuilt.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_collection(self) -> str:
        """
        Returns the endpoint path used to describe, create and delete the collection
        (e.g. "/collections/my_col").
        """
        pass

    @abstractmethod
    def _get_endpoint_points(self) -> str:
        """
        Returns the endpoint path for points upsert requests (e.g. "/collections/my_col/points").
        """
        pass

    @abstractmethod
    def _get_endpoint_search(self) -> str:
        """
        Returns the endpoint path for similarity search requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self) -> str:
        """
        Returns the endpoint path for deleting points by filter.
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_create_collection_payload(self, dimension: int) -> dict:
        """
        Builds the backend-specific body for creating a cosine-distance collection.
        """
        pass

    @abstractmethod
    def get_search_payload(
        self,
        vector: list[float],
        limit: int,
        score_threshold: float | None = None,
        soft_filter: Classification | None = None,
    ) -> dict:
        """
        Builds the backend-specific body for a similarity search.

        Args:
            vector (list[float]): The query vector.
            limit (int): Maximum number of hits.
            score_threshold (float | None): Similarity floor, hits below it are discarded.
            soft_filter (Classification | None): Tags to match-any on the format/phase payload fields.

        Returns:
            dict: The payload for the search request.
        """
        pass

    @abstractmethod
    def get_delete_document_payload(self, doc_id: str, from_chunk_index: int = 0) -> dict:
        """
        Builds the backend-specific body deleting the chunks of a document whose
        chunk_index is >= from_chunk_index.
        """
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_collection_vector_size(self, raw_response: dict) -> int | None:
        """
        Extracts the configured vector size from a describe-collection response.

        Returns:
            int | None: The vector size, or None if the response does not carry one.
        """
        pass

    @abstractmethod
    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        """
        Extracts the hits from a raw search response, in backend order.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_describe_collection(self) -> tuple[bool, int | None]:
        """Fetch existence and vector size of the collection.

        Returns:
            tuple[bool, int | None]: (exists, vector size or None if it could not be read).

        Raises:
            ProviderError: On any status other than 200 or 404.
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_collection())
        if resp.status_code == 404:
            return False, None
        if resp.status_code != 200:
            raise ProviderError(self.get_provider_label(), resp.status_code, resp.text)
        return True, self.extract_collection_vector_size(resp.json())

    async def do_create_collection(self, dimension: int) -> None:
        """Create the collection with the given vector size and cosine distance."""
        await self.do_request(
            method="PUT",
            json=self.get_create_collection_payload(dimension),
            endpoint=self._get_endpoint_collection(),
            raise_on_error=True,
        )
        self.logging.info("Collection %r created with vector size %d.", self.get_collection_name(), dimension)

    async def do_delete_collection(self) -> None:
        """Delete the collection and every point it holds."""
        await self.do_request(method="DELETE", endpoint=self._get_endpoint_collection(), raise_on_error=True)
        self.logging.info("Collection %r deleted.", self.get_collection_name())

    async def do_ensure_collection(self, dimension: int) -> bool:
        """Make sure the collection exists with the given vector size.

        A missing collection is created. A collection with a different vector
        size is dropped and recreated empty, losing all of its points; callers
        must re-ingest afterwards. When rebuilding is disabled, the mismatch
        raises instead.

        Args:
            dimension (int): The expected vector size.

        Returns:
            bool: True if the collection was created or recreated, False if it already matched.

        Raises:
            CollectionDimensionMismatchError: On a size mismatch when rebuilding is disabled.
            ProviderError: If any backend request fails.
        """
        exists, current = await self.do_describe_collection()
        if not exists:
            await self.do_create_collection(dimension)
            return True
        if current is not None and int(current) == int(dimension):
            self.logging.debug("Collection %r already has vector size %d.", self.get_collection_name(), dimension)
            return False

        if not self.recreate_on_mismatch():
            raise CollectionDimensionMismatchError(self.get_collection_name(), current, dimension)
        self.logging.warning(
            "Vector size mismatch: current=%s, expected=%d. Recreating collection %r, existing points are lost.",
            current, dimension, self.get_collection_name(),
        )
        await self.do_delete_collection()
        await self.do_create_collection(dimension)
        return True

    async def do_upsert_points(self, points: list[dict[str, Any]]) -> None:
        """Upsert points and wait until the backend has persisted them.

        Inserts new points or replaces existing ones with the same id.

        Args:
            points (list[dict[str, Any]]): Points with "id", "vector" and "payload".

        Raises:
            ProviderError: If the upsert fails. Nothing is retried.
        """
        await self.do_request(
            method="PUT",
            json={"points": points},
            params={"wait": "true"},
            endpoint=self._get_endpoint_points(),
            raise_on_error=True,
        )

    async def do_delete_document_chunks(self, doc_id: str, from_chunk_index: int = 0) -> None:
        """Delete the chunks of a document with chunk_index >= from_chunk_index.

        Args:
            doc_id (str): The document identifier.
            from_chunk_index (int): First chunk index to delete.
        """
        await self.do_request(
            method="POST",
            json=self.get_delete_document_payload(doc_id, from_chunk_index),
            params={"wait": "true"},
            endpoint=self._get_endpoint_delete_points(),
            raise_on_error=True,
        )

    async def do_search(
        self,
        vector: list[float],
        limit: int,
        score_threshold: float | None = None,
        soft_filter: Classification | None = None,
    ) -> list[SearchHit]:
        """Run a nearest-neighbour search.

        Returns:
            list[SearchHit]: Hits in backend order (descending similarity).

        Raises:
            ProviderError: If the request fails or the hits cannot be parsed.
        """
        resp = await self.do_request(
            method="POST",
            json=self.get_search_payload(vector, limit, score_threshold, soft_filter),
            endpoint=self._get_endpoint_search(),
            raise_on_error=True,
        )
        try:
            return self.extract_search_hits(resp.json())
        except (ValueError, KeyError, TypeError) as exc:
            self.logging.error("Malformed search response from %s: %s", self.get_provider_label(), exc)
            raise ProviderError(self.get_provider_label(), resp.status_code, str(exc)) from exc
