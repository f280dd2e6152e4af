# tests/test_embedder.py
from unittest.mock import Mock

import pytest

from qbank.errors import EmbeddingUnavailableError
from qbank.memory.embedder import Embedder


def openai_client(vectors):
    client = Mock()
    client.embeddings.create.return_value = Mock(
        data=[Mock(embedding=v) for v in vectors]
    )
    return client


class TestOpenAIEmbedder:

    def test_embed_returns_list(self):
        client = openai_client([[0.1] * 1536])

        vector = Embedder(provider="openai", client=client).embed("Define work.")

        assert vector == [0.1] * 1536
        client.embeddings.create.assert_called_once()
        assert client.embeddings.create.call_args.kwargs["input"] == ["Define work."]

    def test_is_callable(self):
        embedder = Embedder(provider="openai", client=openai_client([[0.2] * 1536]))

        assert embedder("Define power.") == [0.2] * 1536

    def test_provider_error_is_wrapped(self):
        client = Mock()
        client.embeddings.create.side_effect = TimeoutError("read timeout")

        with pytest.raises(EmbeddingUnavailableError):
            Embedder(provider="openai", client=client).embed("Define work.")

    def test_wrong_dimension(self):
        embedder = Embedder(provider="openai", client=openai_client([[0.1] * 10]))

        with pytest.raises(EmbeddingUnavailableError):
            embedder.embed("Define work.")

    def test_empty_text(self):
        client = openai_client([])

        with pytest.raises(EmbeddingUnavailableError):
            Embedder(provider="openai", client=client).embed("  ")

        client.embeddings.create.assert_not_called()

    def test_batches(self):
        client = Mock()
        client.embeddings.create.side_effect = lambda model, input: Mock(
            data=[Mock(embedding=[1.0] * 1536) for _ in input]
        )

        vectors = Embedder(provider="openai", client=client).embed_many(
            [f"q{i}" for i in range(5)], batch_size=2
        )

        assert len(vectors) == 5
        assert client.embeddings.create.call_count == 3


class TestGeminiEmbedder:

    def test_embed(self):
        client = Mock()
        client.embed_content.return_value = {"embedding": [0.5] * 768}

        embedder = Embedder(provider="gemini", client=client)

        assert embedder.get_dimension() == 768
        assert embedder.embed("Define work.") == [0.5] * 768


class TestConfiguration:

    def test_unsupported_provider(self):
        with pytest.raises(ValueError):
            Embedder(provider="cohere", client=Mock())

    def test_health_check(self):
        health = Embedder(provider="openai", client=Mock()).health_check()

        assert health["provider"] == "openai"
        assert health["dimension"] == 1536
