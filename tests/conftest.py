# tests/conftest.py

import pytest
import requests
from fastapi.testclient import TestClient

from gradedesk.api import GradeApiClient, GradedeskRestAPI
from gradedesk.config import ClientConfig
from gradedesk.persistence import create_sample_registry
from gradedesk.services import GradeSession

SEMESTER = "2024-2025-1"
TEST_BASE_URL = "http://testserver"


class CountingHttp:
    """Wraps an HTTP session, counting calls and optionally failing them."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = 0
        self.down = False

    def get(self, url, **kwargs):
        return self._send(self.inner.get, url, **kwargs)

    def post(self, url, **kwargs):
        return self._send(self.inner.post, url, **kwargs)

    def close(self):
        pass

    def _send(self, method, url, **kwargs):
        self.calls += 1
        if self.down:
            raise requests.ConnectionError("connection refused")
        return method(url, **kwargs)


@pytest.fixture
def registry():
    return create_sample_registry()


@pytest.fixture
def rest_api(registry):
    return GradedeskRestAPI(registry)


@pytest.fixture
def backend(rest_api):
    return TestClient(rest_api.app)


@pytest.fixture
def http(backend):
    return CountingHttp(backend)


@pytest.fixture
def api_client(http):
    return GradeApiClient(ClientConfig(base_url=TEST_BASE_URL), session=http)


@pytest.fixture
def session(api_client):
    grade_session = GradeSession(api_client, semester=SEMESTER)
    yield grade_session
    grade_session.close()
