"""Tests for modelmesh.compiler.yaml_loader."""

from pathlib import Path

import pytest

from modelmesh.compiler import load_models, load_pipeline, resolve_env_vars
from modelmesh.kernel.domain.dag import resolve_plan
from modelmesh.kernel.domain.models import ModelStatus, ModelType
from modelmesh.kernel.exceptions import ConfigurationError, CycleDetectedError

CATALOG = """
models:
  - id: sentiment
    name: Sentiment classifier
    endpoint: https://models.test/sentiment
    credential: ${SENTIMENT_TOKEN}
    model_type: tabular
    cost_per_unit: 0.002
    tags: [text, classification]
    input_schema:
      type: object
      required: [text]
  - id: summarizer
    name: Summarizer
    endpoint: ${SUMMARIZER_URL:https://models.test/summarize}
    model_type: llm
    latency_ms: ${SUMMARIZER_LATENCY:250}
    status: online
"""

PIPELINE = """
id: review-triage
name: Review triage
description: Classify then summarize
nodes:
  - id: classify
    model_id: sentiment
  - id: summarize
    model_id: summarizer
    depends_on: [classify]
    config:
      timeout_ms: 5000
      inputs:
        max_words: 50
  - id: report
    model_id: summarizer
edges:
  - source: summarize
    target: report
    source_port: text
    target_port: summary
"""


@pytest.fixture
def catalog_file(tmp_path: Path) -> Path:
    path = tmp_path / "catalog.yaml"
    path.write_text(CATALOG)
    return path


@pytest.fixture
def pipeline_file(tmp_path: Path) -> Path:
    path = tmp_path / "pipeline.yaml"
    path.write_text(PIPELINE)
    return path


class TestLoadModels:
    def test_catalog(self, catalog_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SENTIMENT_TOKEN", "sk-from-env")
        monkeypatch.delenv("SUMMARIZER_URL", raising=False)
        monkeypatch.delenv("SUMMARIZER_LATENCY", raising=False)

        sentiment, summarizer = load_models(catalog_file)

        assert sentiment.bearer_token() == "sk-from-env"
        assert sentiment.model_type == ModelType.TABULAR
        assert sentiment.tags == frozenset({"text", "classification"})
        assert sentiment.input_schema == {"type": "object", "required": ["text"]}
        assert summarizer.endpoint == "https://models.test/summarize"
        assert summarizer.latency_ms == 250
        assert summarizer.status == ModelStatus.ONLINE

    def test_numeric_credential_stays_a_string(
        self, catalog_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SENTIMENT_TOKEN", "12345")

        sentiment, _ = load_models(catalog_file)

        assert sentiment.bearer_token() == "12345"

    def test_missing_variable(self, catalog_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SENTIMENT_TOKEN", raising=False)

        with pytest.raises(ConfigurationError, match="SENTIMENT_TOKEN"):
            load_models(catalog_file)

    @pytest.mark.parametrize(
        ("content", "message"),
        [
            ("models: nope\n", "'models' list"),
            ("models:\n  - id: x\n", "models\\[0\\]"),
            ("models:\n  - {id: a, name: A, endpoint: 'https://a.test'}\n"
             "  - {id: a, name: B, endpoint: 'https://b.test'}\n", "duplicate"),
            ("models: [\n", "invalid YAML"),
        ],
    )
    def test_invalid_catalogs(self, tmp_path: Path, content: str, message: str) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(content)

        with pytest.raises(ConfigurationError, match=message):
            load_models(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_models(tmp_path / "absent.yaml")


class TestLoadPipeline:
    def test_pipeline(self, pipeline_file: Path) -> None:
        graph = load_pipeline(pipeline_file)

        assert graph.id == "review-triage"
        assert graph.description == "Classify then summarize"
        assert [node.id for node in graph.nodes] == ["classify", "summarize", "report"]
        assert graph.node("summarize").policy_overrides() == {"timeout_ms": 5000.0}
        assert graph.node("summarize").static_inputs() == {"max_words": 50}
        assert graph.predecessors("summarize") == ["classify"]
        [port_edge] = graph.incoming("report")
        assert (port_edge.source_port, port_edge.target_port) == ("text", "summary")
        assert resolve_plan(graph).levels == (("classify",), ("summarize",), ("report",))

    def test_structural_problems_surface_at_resolution(self, tmp_path: Path) -> None:
        path = tmp_path / "cycle.yaml"
        path.write_text(
            "id: loop\nnodes:\n"
            "  - {id: a, model_id: m, depends_on: [b]}\n"
            "  - {id: b, model_id: m, depends_on: a}\n"
        )

        graph = load_pipeline(path)

        with pytest.raises(CycleDetectedError):
            resolve_plan(graph)

    @pytest.mark.parametrize(
        "content",
        ["- just\n- a list\n", "id: x\nnodes: {}\n", "id: x\nnodes:\n  - {id: a}\n"],
    )
    def test_invalid_pipelines(self, tmp_path: Path, content: str) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(content)

        with pytest.raises(ConfigurationError):
            load_pipeline(path)


class TestResolveEnvVars:
    def test_nested_structures(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REGION", "eu")
        monkeypatch.setenv("RETRIES", "3")

        resolved = resolve_env_vars({
            "url": "https://${REGION}.models.test",
            "retries": "${RETRIES}",
            "flags": ["${MODELMESH_TEST_UNSET_FLAG:false}", "plain"],
        })

        assert resolved == {
            "url": "https://eu.models.test",
            "retries": 3,
            "flags": [False, "plain"],
        }

    def test_non_strings_pass_through(self) -> None:
        assert resolve_env_vars(42) == 42
        assert resolve_env_vars(None) is None


class TestShippedExamples:
    EXAMPLES = Path(__file__).parents[3] / "examples"

    def test_catalog_loads(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MODELMESH_EXAMPLE_BASE_URL", raising=False)
        monkeypatch.delenv("SENTIMENT_TOKEN", raising=False)

        models = {model.id: model for model in load_models(self.EXAMPLES / "catalog.yaml")}

        assert set(models) == {"sentiment", "reply-drafter"}
        assert models["sentiment"].endpoint == "http://localhost:8080/sentiment"
        assert models["sentiment"].bearer_token() is None
        assert models["reply-drafter"].security_policy.value == "org-only"

    def test_pipeline_plans(self) -> None:
        graph = load_pipeline(self.EXAMPLES / "review_triage.yaml")

        assert resolve_plan(graph).levels == (("classify",), ("draft",))
        assert graph.node("draft").static_inputs() == {"tone": "friendly"}
