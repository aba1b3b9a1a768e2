"""Fixtures for AWS client tests.

Provides factory-as-fixture pattern for creating configurable fake boto3 clients
used across AWS client unit tests.
"""

from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from infrastructure.clients.aws import AWSClients
from infrastructure.configuration.integrations.aws import AwsSettings


class FakePaginator:
    """Fake boto3 paginator that yields provided pages."""

    def __init__(self, pages):
        self._pages = list(pages)
        self.kwargs: Dict[str, Any] = {}

    def paginate(self, **kwargs):
        """Yield pages in sequence."""
        self.kwargs = kwargs
        for page in self._pages:
            yield page


class FakeClient:
    """Configurable fake boto3 client for unit tests.

    Supports:
    - Paginated responses via `get_paginator()`
    - API method responses via `__getattr__` lookup
    - Both static and callable response configurations
    - Recording of every call in `calls`
    """

    def __init__(
        self,
        paginated_pages: Optional[List[Dict[str, Any]]] = None,
        api_responses: Optional[Dict[str, Any]] = None,
    ):
        self._paginated_pages = paginated_pages or []
        self._api_responses = api_responses or {}
        self.calls: List[tuple] = []

    def get_paginator(self, *args, **kwargs):
        """Return a paginator for the given method name."""
        if not self._paginated_pages:
            raise AttributeError("No paginator available")
        return FakePaginator(self._paginated_pages)

    def __getattr__(self, name: str):
        """Provide callable for API methods that returns configured responses."""
        if name.startswith("_") or name not in self._api_responses:
            raise AttributeError(name)
        resp = self._api_responses[name]

        def _call(*_args, **_kwargs):
            self.calls.append((name, _kwargs))
            if callable(resp):
                return resp(**_kwargs)
            return resp

        return _call


@pytest.fixture
def make_fake_client():
    """Factory fixture for creating configurable fake boto3 clients.

    Usage:
        def test_something(monkeypatch, make_fake_client):
            client = make_fake_client(api_responses={"get_item": {...}})
            monkeypatch.setattr(executor, "get_boto3_client", lambda *a, **k: client)
    """

    def _factory(
        paginated_pages: Optional[List[Dict[str, Any]]] = None,
        api_responses: Optional[Dict[str, Any]] = None,
    ) -> FakeClient:
        return FakeClient(paginated_pages=paginated_pages, api_responses=api_responses)

    return _factory


@pytest.fixture
def mock_aws_settings():
    """Fixture providing a mock AwsSettings instance for testing AWSClients.

    Tests can further customize this mock as needed:
        def test_something(mock_aws_settings):
            mock_aws_settings.AWS_REGION = "us-west-2"
    """
    settings = MagicMock(spec=AwsSettings)
    settings.AWS_REGION = "us-east-1"
    settings.ENDPOINT_URL = None
    settings.MAX_API_RETRIES = 3
    return settings


@pytest.fixture
def aws_factory(mock_aws_settings):
    """Provide an AWSClients instance for unit tests.

    Tests that need to customize boto3 behavior monkeypatch
    `infrastructure.clients.aws.executor.get_boto3_client` to return fake
    clients.
    """
    return AWSClients(aws_settings=mock_aws_settings)


@pytest.fixture
def no_sleep(monkeypatch):
    """Skip throttling backoff sleeps and record requested delays."""
    from infrastructure.clients.aws import executor

    delays: List[float] = []
    monkeypatch.setattr(executor.time, "sleep", delays.append)
    return delays
