# tests/test_public_api.py
import modelmesh

EXPECTED = {
 "PipelineOrchestrator","Invoker","InvocationPolicy","InvocationResult","InvocationOutcome",
 "InMemoryModelDirectory","InMemoryExecutionStore","JsonlExecutionStore","HttpClientDriver",
 "ModelDirectory","ExecutionStore",
 "ModelMetadata","ModelStatus","ModelType","SecurityPolicy","TokenUsage",
 "PipelineGraph","PipelineNode","PipelineEdge","ExecutionPlan","resolve_plan",
 "ExecutionRecord","ExecutionSummary","Invocation","InvocationStatus","RunStatus","ErrorInfo",
 "ModelMeshError","ConfigurationError","ErrorKind","GraphError","CycleDetectedError",
 "DanglingEdgeError","DuplicateNodeError","DuplicateModelError","ModelNotFoundError",
 "InvocationError",
 "ModelMeshConfig","load_config","load_models","load_pipeline",
 "configure_logging","get_logger","find_violation","validate",
}

def test_public_api_matches_dunder_all():
    assert hasattr(modelmesh, "__all__")
    assert set(modelmesh.__all__) == EXPECTED

def test_public_names_resolve():
    for name in modelmesh.__all__:
        assert getattr(modelmesh, name) is not None
