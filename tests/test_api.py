"""
API tests: FastAPI TestClient with the agent and vector store swapped through
app.dependency_overrides. No OpenAI, Milvus, or OpenAQ access.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from ecolab.core.dependencies import get_agent, get_vector_store
from ecolab.core.errors import GeoQueryValidationError, ServiceUnavailableError, UpstreamClientError
from ecolab.main import app
from ecolab.schemas.chat import ChatResponse, Passage, ToolInvocation


class FakeAgent:
    def __init__(self, response: ChatResponse | None = None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.questions: list[str] = []

    def answer(self, question: str) -> ChatResponse:
        self.questions.append(question)
        if self.error is not None:
            raise self.error
        return self.response


class FakeSources:
    def __init__(self, sources: list[str] | None = None, error: Exception | None = None) -> None:
        self.sources = sources or []
        self.error = error

    def list_sources(self) -> list[str]:
        if self.error is not None:
            raise self.error
        return self.sources

    def count(self) -> int:
        return 3 * len(self.sources)


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


def _use_agent(agent: FakeAgent) -> FakeAgent:
    app.dependency_overrides[get_agent] = lambda: agent
    return agent


class TestSystem:
    def test_health(self, client: TestClient) -> None:
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json() == {"ok": True}

    def test_root(self, client: TestClient) -> None:
        assert client.get("/").status_code == 200


class TestChat:
    """Tests for POST /chat."""

    def test_answer_with_tool_and_passages(self, client: TestClient) -> None:
        agent = _use_agent(
            FakeAgent(
                ChatResponse(
                    answer="PM2.5 in Paris is 12 µg/m³ (Source 1).",
                    passages=[Passage(id="pm25.md#0", text="Guideline is 5 µg/m³", score=0.2)],
                    tool=ToolInvocation(name="get_air_quality_latest", args={"parameter": "pm25"}),
                )
            )
        )

        r = client.post("/chat", json={"message": "PM2.5 in Paris?"})

        assert r.status_code == 200
        data = r.json()
        assert data["answer"] == "PM2.5 in Paris is 12 µg/m³ (Source 1)."
        assert data["tool"] == {"name": "get_air_quality_latest", "args": {"parameter": "pm25"}}
        assert data["passages"][0]["id"] == "pm25.md#0"
        assert agent.questions == ["PM2.5 in Paris?"]

    def test_no_tool_is_null(self, client: TestClient) -> None:
        _use_agent(FakeAgent(ChatResponse(answer="PM2.5 is fine particulate matter.")))

        data = client.post("/chat", json={"message": "What is PM2.5?"}).json()

        assert data["tool"] is None
        assert data["passages"] == []

    @pytest.mark.parametrize("body", [{}, {"message": 5}, {"message": None}, {"message": ""}, {"message": "   "}, ["hi"]])
    def test_invalid_body_is_400(self, client: TestClient, body: object) -> None:
        agent = _use_agent(FakeAgent(ChatResponse(answer="unused")))

        r = client.post("/chat", json=body)

        assert r.status_code == 400
        assert r.json()["detail"] == "Body must include { message: string }"
        assert agent.questions == []

    def test_non_json_body_is_400(self, client: TestClient) -> None:
        _use_agent(FakeAgent(ChatResponse(answer="unused")))

        r = client.post("/chat", content=b"not json", headers={"Content-Type": "application/json"})

        assert r.status_code == 400

    def test_unexpected_failure_is_500_without_internals(self, client: TestClient) -> None:
        _use_agent(FakeAgent(error=RuntimeError("milvus socket closed")))

        r = client.post("/chat", json={"message": "hi"})

        assert r.status_code == 500
        assert r.json() == {"detail": "Internal error"}

    def test_internal_value_error_is_500_without_message(self, client: TestClient) -> None:
        _use_agent(FakeAgent(error=ValueError("cannot convert float NaN to integer")))

        r = client.post("/chat", json={"message": "PM2.5 near Paris?"})

        assert r.status_code == 500
        assert r.json() == {"detail": "Internal error"}

    def test_geo_validation_error_is_400(self, client: TestClient) -> None:
        _use_agent(FakeAgent(error=GeoQueryValidationError("use either bbox OR latitude+longitude")))

        r = client.post("/chat", json={"message": "PM2.5 near Paris?"})

        assert r.status_code == 400
        assert "bbox" in r.json()["detail"]

    def test_provider_rejection_is_502(self, client: TestClient) -> None:
        _use_agent(FakeAgent(error=UpstreamClientError(401, "invalid api key")))

        r = client.post("/chat", json={"message": "PM2.5 in Paris?"})

        assert r.status_code == 502
        assert "401" in r.json()["detail"]

    def test_missing_collaborator_is_503(self, client: TestClient) -> None:
        _use_agent(FakeAgent(error=ServiceUnavailableError("OPENAQ_API_KEY must be set in .env")))

        r = client.post("/chat", json={"message": "PM2.5 in Paris?"})

        assert r.status_code == 503
        assert r.json()["detail"] == "OPENAQ_API_KEY must be set in .env"

    def test_dependency_failure_is_503(self, client: TestClient) -> None:
        def broken_agent():
            raise ServiceUnavailableError("OPENAI_API_KEY must be set in .env")

        app.dependency_overrides[get_agent] = broken_agent

        r = client.post("/chat", json={"message": "hi"})

        assert r.status_code == 503
        assert r.json() == {"detail": "OPENAI_API_KEY must be set in .env"}


class TestSources:
    def test_lists_sources(self, client: TestClient) -> None:
        app.dependency_overrides[get_vector_store] = lambda: FakeSources(["no2.md", "pm25.md"])

        assert client.get("/sources").json() == {"sources": ["no2.md", "pm25.md"], "chunks": 6}

    def test_store_failure_degrades_to_empty(self, client: TestClient) -> None:
        app.dependency_overrides[get_vector_store] = lambda: FakeSources(error=RuntimeError("down"))

        assert client.get("/sources").json() == {"sources": [], "chunks": 0}


class TestLifespan:
    def test_shutdown_closes_built_openaq_client(self) -> None:
        with patch("ecolab.main.get_air_quality_service") as get_service:
            get_service.cache_info.return_value.currsize = 1
            with TestClient(app):
                pass

        get_service.return_value.close.assert_called_once()

    def test_shutdown_skips_unbuilt_client(self) -> None:
        with patch("ecolab.main.get_air_quality_service") as get_service:
            get_service.cache_info.return_value.currsize = 0
            with TestClient(app):
                pass

        get_service.assert_not_called()
