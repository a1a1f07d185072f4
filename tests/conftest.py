import json
from collections import defaultdict

import pytest

from nodeflow.engine.executor import WorkflowExecutor
from nodeflow.utils.config import CollaboratorConfig, ExecutionConfig
from nodeflow.workflows.graph import Workflow

TRIGGER_URL = "http://collab.test/functions/v1/http-trigger"
LLM_URL = "http://collab.test/functions/v1/llm-processor"


class FakeResponse:
    def __init__(self, status_code=200, body=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        if body is None:
            self.text = ""
        elif isinstance(body, str):
            self.text = body
        else:
            self.text = json.dumps(body)

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Stands in for requests.Session; routes by URL to canned responses"""

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.counts = defaultdict(int)
        self.closed = False

    def route(self, url, handler):
        """handler: FakeResponse or callable(call_dict) -> FakeResponse"""
        self.routes[url] = handler

    def request(self, method, url, timeout=None, **kwargs):
        call = {"method": method, "url": url, "timeout": timeout, **kwargs}
        self.calls.append(call)
        self.counts[url] += 1
        handler = self.routes.get(url)
        if handler is None:
            return FakeResponse(404, "not found", reason="Not Found")
        if callable(handler):
            return handler(call)
        return handler

    def calls_to(self, url):
        return [call for call in self.calls if call["url"] == url]

    def close(self):
        self.closed = True


def trigger_ok(call):
    return FakeResponse(200, {
        "success": True,
        "message": "HTTP trigger executed successfully",
        "data": {"body": call.get("json")},
        "triggerNodeId": call["params"]["triggerNodeId"],
    })


@pytest.fixture
def session():
    fake = FakeSession()
    fake.route(TRIGGER_URL, trigger_ok)
    return fake


@pytest.fixture
def collaborators():
    return CollaboratorConfig(trigger_url=TRIGGER_URL, llm_url=LLM_URL)


@pytest.fixture
def make_executor(session, collaborators):
    def factory(**kwargs):
        return WorkflowExecutor(
            collaborators=collaborators,
            settings=ExecutionConfig(node_timeout=5.0, code_time_budget=2.0),
            session=session,
            **kwargs
        )
    return factory


@pytest.fixture
def workflow():
    return Workflow()
