from pydantic import BaseModel

from shared.clients.rag.models.VectorPoint import VectorPoint


class SearchHit(BaseModel):
    """A point returned by a similarity search, with its raw similarity score.

    Attributes:
        id:      Point identifier in the vector index.
        score:   Similarity reported by the backend (cosine).
        payload: The stored chunk metadata.
    """

    id: int | str
    score: float
    payload: VectorPoint


class RescoredHit(SearchHit):
    """A SearchHit after soft boosts and bonuses were applied.

    Attributes:
        adjusted_score: Score used for final ordering; ``score`` keeps the original similarity.
    """

    adjusted_score: float
