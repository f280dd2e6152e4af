import logging

from qdrant_client import QdrantClient

from qdrant_client.http.models import (
    Distance,
    VectorParams,
    PayloadSchemaType,
)

from qbank.config import (
    QDRANT_URL,
    QDRANT_API_KEY,
    QDRANT_COLLECTION,
)

logger = logging.getLogger(__name__)


class QdrantVectorDB:
    """
    Thin Qdrant client wrapper.

    Owns collection bootstrap only; reads and writes live in
    QdrantCorpusStore.
    """

    def __init__(
        self,
        dim: int,
        client: QdrantClient = None,
        collection: str = QDRANT_COLLECTION,
    ):

        self._dim = dim

        self._client = client or QdrantClient(
            url=QDRANT_URL,
            api_key=QDRANT_API_KEY,
            timeout=60.0,
        )

        self._collection = collection

        self._ensure_collection()

        logger.info(
            "Qdrant client initialized",
            extra={
                "collection": self._collection,
                "dimension": dim,
            },
        )


    @property
    def client(self) -> QdrantClient:
        return self._client


    @property
    def collection(self) -> str:
        return self._collection


    def _ensure_collection(self):
        """
        Ensures the collection exists with a keyword index on subject_id.

        Every corpus read filters on subject_id.
        """

        collections = self._client.get_collections().collections

        exists = any(
            c.name == self._collection
            for c in collections
        )

        if not exists:

            self._client.create_collection(
                collection_name=self._collection,
                vectors_config=VectorParams(
                    size=self._dim,
                    distance=Distance.COSINE,
                ),
            )

            logger.info(
                "Qdrant collection created",
                extra={"collection": self._collection},
            )

        try:

            self._client.create_payload_index(
                collection_name=self._collection,
                field_name="subject_id",
                field_schema=PayloadSchemaType.KEYWORD,
            )

        except Exception as e:
            # Qdrant rejects re-creating an existing index
            logger.debug(
                "Payload index already exists or skipped",
                extra={"error": str(e)},
            )


    def health_check(self):

        return self._client.get_collections()
