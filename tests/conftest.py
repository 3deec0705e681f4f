"""
Pytest configuration and shared fixtures.

Provides in-memory stand-ins for the async collections, change streams
and cursors the mirror talks to, so tests need no running database.
"""

import asyncio
from collections import deque
from typing import Any

import pytest
from prometheus_client import CollectorRegistry

from anonymization import create_customer_pipeline
from utils.metrics import ReplicationMetrics


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")


def apply_set(document: dict, fields: dict) -> None:
    """Apply a ``$set`` document, following dotted paths into sub-documents."""
    for path, value in fields.items():
        *parents, leaf = path.split(".")
        node = document
        for parent in parents:
            node = node.setdefault(parent, {})
        node[leaf] = value


class FakeTargetCollection:
    """Records bulk writes and applies their upserts to an in-memory dict."""

    def __init__(self, name: str = "customers_anonymised"):
        self.name = name
        self.documents: dict[Any, dict] = {}
        self.bulk_calls: list[dict] = []
        self.errors: deque = deque()
        self.on_write = None

    async def bulk_write(self, operations, ordered=True):
        self.bulk_calls.append({"operations": list(operations), "ordered": ordered})

        if self.on_write is not None:
            self.on_write()

        if self.errors:
            raise self.errors.popleft()

        for op in operations:
            document_id = op._filter["_id"]
            document = self.documents.setdefault(document_id, {"_id": document_id})
            apply_set(document, op._doc["$set"])

    @property
    def written_ids(self) -> list:
        return [
            op._filter["_id"]
            for call in self.bulk_calls
            for op in call["operations"]
        ]


class FakeChangeStream:
    """
    Change stream replaying queued events.

    Each queued item is either an event dict, an exception to raise from
    ``try_next``, or None for an empty poll. Once the queue is empty,
    ``idle`` callbacks run one per poll; running out of them fails the
    test instead of spinning forever.
    """

    def __init__(self, events=(), idle=()):
        self.events = deque(events)
        self.idle = deque(idle)
        self.resume_token = None
        self.closed = False

    async def try_next(self):
        await asyncio.sleep(0)

        if self.events:
            item = self.events.popleft()
            if isinstance(item, BaseException):
                raise item
            if item is not None:
                self.resume_token = item["_id"]
            return item

        if not self.idle:
            raise AssertionError("change stream polled with nothing left to do")

        self.idle.popleft()()
        return None

    async def close(self):
        self.closed = True


class FakeCursor:
    """Async cursor over a list of records."""

    def __init__(self, records):
        self._records = iter(list(records))
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            return next(self._records)
        except StopIteration:
            raise StopAsyncIteration from None

    async def close(self):
        self.closed = True


class FakeSourceCollection:
    """
    Source collection handing out queued change streams and a cursor.

    ``streams`` may hold exceptions, which ``watch`` raises in turn.
    """

    def __init__(self, name: str = "customers", streams=(), records=()):
        self.name = name
        self.streams = deque(streams)
        self.records = list(records)
        self.watch_calls: list[dict] = []
        self.cursors: list[FakeCursor] = []

    async def watch(self, pipeline=None, **kwargs):
        self.watch_calls.append(kwargs)

        item = self.streams.popleft()
        if isinstance(item, BaseException):
            raise item
        return item

    def find(self, *args, **kwargs):
        cursor = FakeCursor(self.records)
        self.cursors.append(cursor)
        return cursor


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def insert_event(token: str, record: dict) -> dict:
    return {
        "_id": {"_data": token},
        "operationType": "insert",
        "documentKey": {"_id": record["_id"]},
        "fullDocument": record,
    }


def update_event(token: str, document_id, updated_fields) -> dict:
    return {
        "_id": {"_data": token},
        "operationType": "update",
        "documentKey": {"_id": document_id},
        "updateDescription": {
            "updatedFields": updated_fields,
            "removedFields": [],
            "truncatedArrays": [],
        },
    }


@pytest.fixture
def pipeline():
    """Customer anonymization pipeline."""
    return create_customer_pipeline()


@pytest.fixture
def metrics():
    """Replication metrics bound to a throwaway registry."""
    return ReplicationMetrics(registry=CollectorRegistry())


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def customer() -> dict:
    """A complete customer record."""
    return {
        "_id": "c-1",
        "firstName": "Jane",
        "lastName": "Doe",
        "email": "jane.doe@example.com",
        "address": {
            "line1": "1 Main Street",
            "line2": "Flat 2",
            "postcode": "SW1A 1AA",
            "city": "London",
            "state": "Greater London",
            "country": "UK",
        },
        "createdAt": "2024-01-01T00:00:00Z",
    }
