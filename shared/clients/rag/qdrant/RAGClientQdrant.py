from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.SearchHit import SearchHit
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.search import Classification


class RAGClientQdrant(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="http://localhost:6333", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default="rulebooks", val_type="string")
        self._recreate_on_mismatch = self.get_config_val("RECREATE_ON_MISMATCH", default=True, val_type="bool")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    def get_collection_name(self) -> str:
        return self._collection_name

    def recreate_on_mismatch(self) -> bool:
        return self._recreate_on_mismatch

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="http://localhost:6333"),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default="rulebooks"),
            EnvConfig(env_key="RECREATE_ON_MISMATCH", val_type="bool", default=True),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_collection(self) -> str:
        return f"/collections/{self._collection_name}"

    def _get_endpoint_points(self) -> str:
        return f"/collections/{self._collection_name}/points"

    def _get_endpoint_search(self) -> str:
        return f"/collections/{self._collection_name}/points/search"

    def _get_endpoint_delete_points(self) -> str:
        return f"/collections/{self._collection_name}/points/delete"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_create_collection_payload(self, dimension: int) -> dict:
        return {"vectors": {"size": dimension, "distance": "Cosine"}}

    def get_search_payload(
        self,
        vector: list[float],
        limit: int,
        score_threshold: float | None = None,
        soft_filter: Classification | None = None,
    ) -> dict:
        payload: dict = {"vector": vector, "limit": limit, "with_payload": True}
        if score_threshold is not None:
            payload["score_threshold"] = score_threshold
        if soft_filter is not None and not soft_filter.is_empty():
            # match-any on either tag family
            should: list[dict] = []
            if soft_filter.format:
                should.append({"key": "format", "match": {"any": soft_filter.format}})
            if soft_filter.phase:
                should.append({"key": "phase", "match": {"any": soft_filter.phase}})
            payload["filter"] = {"should": should}
        return payload

    def get_delete_document_payload(self, doc_id: str, from_chunk_index: int = 0) -> dict:
        must: list[dict] = [{"key": "doc_id", "match": {"value": doc_id}}]
        if from_chunk_index > 0:
            must.append({"key": "chunk_index", "range": {"gte": from_chunk_index}})
        return {"filter": {"must": must}}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_collection_vector_size(self, raw_response: dict) -> int | None:
        # single vector: {"size": n, ...}; named vectors: {"name": {"size": n, ...}}
        vectors = (
            raw_response.get("result", {})
            .get("config", {})
            .get("params", {})
            .get("vectors")
        )
        if isinstance(vectors, dict):
            if "size" in vectors:
                return int(vectors["size"])
            for params in vectors.values():
                if isinstance(params, dict) and "size" in params:
                    return int(params["size"])
        return None

    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        return [
            SearchHit(id=hit["id"], score=float(hit["score"]), payload=hit.get("payload") or {})
            for hit in raw_response.get("result", [])
        ]
