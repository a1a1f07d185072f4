import json

import pytest
import requests

from nodeflow.nodes.registry import get_registry
from tests.conftest import LLM_URL, TRIGGER_URL, FakeResponse

API_URL = "http://api.test/items"


def test_registry_knows_every_kind():
    assert sorted(get_registry().list_node_types()) == ["api", "function", "llm", "trigger", "utility"]


def test_trigger_posts_node_id_and_timestamp(workflow, make_executor, session):
    workflow.add_node("trigger", node_id="t1", config={"method": "POST", "path": "/hook"})

    results = make_executor().run(workflow)

    call = session.calls_to(TRIGGER_URL)[0]
    assert call["method"] == "POST"
    assert call["params"] == {"triggerNodeId": "t1"}
    assert call["json"]["triggerNodeId"] == "t1"
    assert call["json"]["timestamp"].endswith("Z")
    assert call["json"]["simulatedData"]["path"] == "/hook"
    assert call["timeout"] == 5.0
    assert results["t1"]["success"] is True
    assert results["t1"]["triggerNodeId"] == "t1"


def test_trigger_failure_status(workflow, make_executor, session):
    session.route(TRIGGER_URL, FakeResponse(503, "down", reason="Service Unavailable"))
    workflow.add_node("trigger", node_id="t1")

    results = make_executor().run(workflow)

    assert results["t1"]["success"] is False
    assert results["t1"]["error"].startswith("Trigger failed: 503")


def test_trigger_network_error(workflow, make_executor, session):
    def unreachable(call):
        raise requests.ConnectionError("connection refused")

    session.route(TRIGGER_URL, unreachable)
    workflow.add_node("trigger", node_id="t1")

    results = make_executor().run(workflow)

    assert results["t1"] == {"success": False, "error": "Trigger failed: connection refused"}


def test_function_round_trip(workflow, make_executor):
    workflow.add_node("function", node_id="src", config={"code": 'return {"value": 5}'})
    workflow.add_node("function", node_id="double",
                      config={"code": 'return {"result": input["value"] * 2}'})
    workflow.add_edge("src", "double")

    results = make_executor().run(workflow)

    assert results["double"] == {
        "success": True,
        "data": {"result": 10},
        "inputData": {"value": 5},
    }


def test_function_default_code_returns_input(workflow, make_executor):
    workflow.add_node("function", node_id="src", config={"code": 'return {"a": 1}'})
    workflow.add_node("function", node_id="echo", config={"code": ""})
    workflow.add_edge("src", "echo")

    results = make_executor().run(workflow)

    assert results["echo"]["data"] == {"a": 1}


def test_function_error_becomes_envelope(workflow, make_executor):
    workflow.add_node("function", node_id="bad", config={"code": "return 1 / 0"})

    results = make_executor().run(workflow)

    assert results["bad"]["success"] is False
    assert "division by zero" in results["bad"]["error"]


def test_function_honors_input_mappings(workflow, make_executor):
    workflow.add_node("function", node_id="src",
                      config={"code": 'return {"user": {"name": "Ann"}, "noise": 1}'})
    workflow.add_node("function", node_id="greet", config={
        "code": 'return "Hi " + input["who"]',
        "inputMappings": [{"sourceNode": "src", "sourcePath": "user.name", "targetPath": "who"}],
    })
    workflow.add_edge("src", "greet")

    results = make_executor().run(workflow)

    assert results["greet"]["data"] == "Hi Ann"
    assert results["greet"]["inputData"] == {"who": "Ann"}


def test_api_get_success_parses_json(workflow, make_executor, session):
    session.route(API_URL, FakeResponse(200, {"items": [1, 2]}))
    workflow.add_node("api", node_id="api", config={"url": API_URL, "method": "GET"})

    results = make_executor().run(workflow)

    assert results["api"] == {
        "success": True,
        "data": {"items": [1, 2]},
        "inputData": {},
        "statusCode": 200,
    }
    call = session.calls_to(API_URL)[0]
    assert "data" not in call


def test_api_get_non_2xx_is_failure_with_status(workflow, make_executor, session):
    session.route(API_URL, FakeResponse(404, "missing", reason="Not Found"))
    workflow.add_node("api", node_id="api", config={"url": API_URL, "method": "GET"})

    results = make_executor().run(workflow)

    envelope = results["api"]
    assert envelope["success"] is False
    assert "404" in envelope["error"]
    assert "missing" in envelope["error"]
    assert envelope["url"] == API_URL
    assert envelope["method"] == "GET"


def test_api_text_response_kept_raw(workflow, make_executor, session):
    session.route(API_URL, FakeResponse(200, "plain text"))
    workflow.add_node("api", node_id="api", config={"url": API_URL})

    results = make_executor().run(workflow)

    assert results["api"]["data"] == "plain text"


def test_api_post_renders_headers_and_body(workflow, make_executor, session):
    session.route(API_URL, FakeResponse(201, {"created": True}))
    workflow.add_node("function", node_id="src", config={"code": 'return {"title": "Hello", "token": "abc"}'})
    workflow.add_node("api", node_id="api", config={
        "url": API_URL,
        "method": "POST",
        "headers": '{"Authorization": "Bearer {{input.token}}"}',
        "bodyTemplate": '{"name": "{{input.title}}"}',
    })
    workflow.add_edge("src", "api")

    results = make_executor().run(workflow)

    call = session.calls_to(API_URL)[0]
    assert call["method"] == "POST"
    assert call["headers"]["Authorization"] == "Bearer abc"
    assert call["headers"]["Content-Type"] == "application/json"
    assert json.loads(call["data"]) == {"name": "Hello"}
    assert results["api"]["statusCode"] == 201
    assert results["api"]["inputData"] == {"title": "Hello", "token": "abc"}


def test_api_post_without_template_sends_input(workflow, make_executor, session):
    session.route(API_URL, FakeResponse(200, {}))
    workflow.add_node("function", node_id="src", config={"code": 'return {"a": 1}'})
    workflow.add_node("api", node_id="api", config={"url": API_URL, "method": "PUT"})
    workflow.add_edge("src", "api")

    make_executor().run(workflow)

    assert json.loads(session.calls_to(API_URL)[0]["data"]) == {"a": 1}


def test_api_post_with_empty_input_sends_empty_object(workflow, make_executor, session):
    session.route(API_URL, FakeResponse(200, ""))
    workflow.add_node("api", node_id="api", config={"url": API_URL, "method": "POST"})

    results = make_executor().run(workflow)

    call = session.calls_to(API_URL)[0]
    assert call["data"] == "{}"
    assert call["headers"]["Content-Type"] == "application/json"
    assert results["api"]["data"] == {}


@pytest.mark.parametrize("template, sent", [
    ("{}", "{}"),
    ("[]", "[]"),
    ("null", None),
    ("0", None),
    ('""', None),
])
def test_api_rendered_body_emptiness(workflow, make_executor, session, template, sent):
    session.route(API_URL, FakeResponse(200, {}))
    workflow.add_node("api", node_id="api",
                      config={"url": API_URL, "method": "POST", "bodyTemplate": template})

    make_executor().run(workflow)

    call = session.calls_to(API_URL)[0]
    assert call.get("data") == sent
    assert ("Content-Type" in call["headers"]) == (sent is not None)


def test_api_invalid_headers_are_ignored(workflow, make_executor, session):
    session.route(API_URL, FakeResponse(200, {}))
    workflow.add_node("api", node_id="api", config={"url": API_URL, "headers": "not json"})

    results = make_executor().run(workflow)

    assert results["api"]["success"] is True
    assert session.calls_to(API_URL)[0]["headers"] == {}


def test_api_headers_stored_as_object(workflow, make_executor, session):
    session.route(API_URL, FakeResponse(200, {}))
    workflow.add_node("api", node_id="api", config={
        "url": API_URL,
        "headers": {"X-Trace": "abc", "X-Retry": 2},
    })

    results = make_executor().run(workflow)

    assert results["api"]["success"] is True
    assert session.calls_to(API_URL)[0]["headers"] == {"X-Trace": "abc", "X-Retry": "2"}


def test_api_body_template_stored_as_object(workflow, make_executor, session):
    session.route(API_URL, FakeResponse(200, {}))
    workflow.add_node("api", node_id="api", config={
        "url": API_URL,
        "method": "POST",
        "bodyTemplate": {"fixed": True},
    })

    results = make_executor().run(workflow)

    assert results["api"]["success"] is True
    assert json.loads(session.calls_to(API_URL)[0]["data"]) == {"fixed": True}


def test_utility_envelope(workflow, make_executor):
    workflow.add_node("function", node_id="src", config={"code": 'return {"v": 1}'})
    workflow.add_node("utility", node_id="util",
                      config={"operation": "filter", "parameters": '{"min": 2}'})
    workflow.add_edge("src", "util")

    results = make_executor().run(workflow)

    assert results["util"] == {
        "success": True,
        "data": {
            "operation": "filter",
            "parameters": {"min": 2},
            "inputData": {"v": 1},
            "result": "Utility operation 'filter' completed successfully",
        },
    }


def test_utility_invalid_parameters(workflow, make_executor):
    workflow.add_node("utility", node_id="util", config={"operation": "x", "parameters": "{bad"})

    results = make_executor().run(workflow)

    assert results["util"]["success"] is False
    assert results["util"]["error"]


def test_llm_renders_prompt_and_returns_response(workflow, make_executor, session):
    reply = {
        "success": True,
        "data": {"processed_text": "Summary", "model_used": "gemini-1.5-flash"},
    }
    session.route(LLM_URL, FakeResponse(200, reply))
    workflow.add_node("function", node_id="src", config={"code": 'return {"topic": "sales"}'})
    workflow.add_node("llm", node_id="llm", config={
        "prompt": "Summarize {{input.topic}} for {{input.region}}",
        "model": "gemini-1.5-flash",
    })
    workflow.add_edge("src", "llm")

    results = make_executor().run(workflow)

    payload = session.calls_to(LLM_URL)[0]["json"]
    assert payload == {
        "inputData": {"topic": "sales"},
        "prompt": "Summarize sales for {{input.region}}",
        "model": "gemini-1.5-flash",
    }
    assert results["llm"] == reply


def test_llm_failure_status(workflow, make_executor, session):
    session.route(LLM_URL, FakeResponse(500, {"success": False}, reason="Internal Server Error"))
    workflow.add_node("llm", node_id="llm")

    results = make_executor().run(workflow)

    assert results["llm"]["success"] is False
    assert results["llm"]["error"].startswith("LLM processing failed: 500")


def test_node_state_tracks_outcome(workflow, make_executor):
    ok = workflow.add_node("function", node_id="ok", config={"code": "return 1"})
    bad = workflow.add_node("function", node_id="bad", config={"code": "return 1 / 0"})
    workflow.add_edge("ok", "bad")

    make_executor().run(workflow)

    assert ok.get_state() == "completed"
    assert bad.get_state() == "failed"
    assert "division" in bad.get_error()
