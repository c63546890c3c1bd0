"""Shared fixtures for unit tests."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from s3_bucket_operator.config import ReconcilerSettings
from s3_bucket_operator.exceptions import ConflictError, DeadlineExceeded, NotFoundError
from s3_bucket_operator.services.aws.models import RequestPayer, VersioningMode


class FakeS3Provider:
    """In-memory S3Provider.

    ``failures`` maps a method name to an exception (raised every time) or a
    list of exceptions (raised one per call until exhausted).
    ``visible_after`` delays how many bucket_exists checks a new bucket
    needs before it shows up.
    """

    def __init__(self) -> None:
        self.buckets: dict[str, dict[str, Any]] = {}
        self.objects: dict[str, list[dict[str, str]]] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.failures: dict[str, Any] = {}
        self.visible_after = 0
        self._checks = 0

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        failure = self.failures.get(method)
        if isinstance(failure, list):
            if failure:
                raise failure.pop(0)
        elif failure is not None:
            raise failure

    def called(self, method: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    def add_bucket(self, name: str, region: str = "us-east-1", **config: Any) -> dict[str, Any]:
        bucket = {
            "region": region,
            "acl": "private",
            "policy": None,
            "cors": frozenset(),
            "website": None,
            "versioning": VersioningMode.UNSET,
            "accelerate": None,
            "request_payer": RequestPayer.BUCKET_OWNER,
            "logging": None,
            "lifecycle": frozenset(),
            "replication": None,
            "encryption": frozenset(),
            "tags": {},
        }
        bucket.update(config)
        self.buckets[name] = bucket
        return bucket

    def _bucket(self, name: str) -> dict[str, Any]:
        if name not in self.buckets:
            raise NotFoundError(f"bucket {name} does not exist")
        return self.buckets[name]

    def bucket_exists(self, name: str) -> bool:
        self._record("bucket_exists", name)
        if name in self.buckets and self._checks < self.visible_after:
            self._checks += 1
            return False
        return name in self.buckets

    def create_bucket(self, name: str, region: str, acl: str | None = None) -> None:
        self._record("create_bucket", name, region, acl)
        if name in self.buckets:
            raise ConflictError(f"bucket {name} already exists", code="BucketAlreadyExists")
        self._checks = 0
        self.add_bucket(name, region=region or "us-east-1", acl=acl or "private")

    def delete_bucket(self, name: str) -> None:
        self._record("delete_bucket", name)
        self._bucket(name)
        if self.objects.get(name):
            raise ConflictError(f"bucket {name} is not empty", code="BucketNotEmpty")
        del self.buckets[name]

    def empty_bucket(
        self,
        name: str,
        deadline: float | None = None,
        clock: Callable[[], float] | None = None,
    ) -> int:
        self._record("empty_bucket", name, deadline)
        if deadline is not None and clock is not None and clock() >= deadline:
            raise DeadlineExceeded(f"deadline passed while emptying bucket {name}")
        removed = len(self.objects.get(name, []))
        self.objects[name] = []
        return removed

    def get_bucket_region(self, name: str) -> str:
        self._record("get_bucket_region", name)
        return self._bucket(name)["region"]

    def _getter(self, method: str, key: str) -> Callable[[str], Any]:
        def get(name: str) -> Any:
            self._record(method, name)
            return self._bucket(name)[key]

        return get

    def _setter(self, method: str, key: str) -> Callable[[str, Any], None]:
        def put(name: str, value: Any) -> None:
            self._record(method, name, value)
            self._bucket(name)[key] = value

        return put

    def _deleter(self, method: str, key: str, empty: Any) -> Callable[[str], None]:
        def delete(name: str) -> None:
            self._record(method, name)
            self._bucket(name)[key] = empty

        return delete

    def __getattr__(self, attr: str) -> Any:
        resources = {
            "acl": ("acl", None),
            "policy": ("policy", None),
            "cors": ("cors", frozenset()),
            "website": ("website", None),
            "versioning": ("versioning", None),
            "accelerate": ("accelerate", None),
            "request_payment": ("request_payer", None),
            "logging": ("logging", None),
            "lifecycle": ("lifecycle", frozenset()),
            "replication": ("replication", None),
            "encryption": ("encryption", frozenset()),
            "tags": ("tags", {}),
        }
        for verb in ("get", "put", "delete"):
            prefix = f"{verb}_bucket_"
            if attr.startswith(prefix) and attr[len(prefix):] in resources:
                key, empty = resources[attr[len(prefix):]]
                if verb == "get":
                    return self._getter(attr, key)
                if verb == "put":
                    return self._setter(attr, key)
                return self._deleter(attr, key, empty)
        raise AttributeError(attr)


class FakeClock:
    """Monotonic clock that only moves when something sleeps."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_provider() -> FakeS3Provider:
    """In-memory S3 provider."""
    return FakeS3Provider()


@pytest.fixture
def clock() -> FakeClock:
    """Fake monotonic clock."""
    return FakeClock()


@pytest.fixture
def settings() -> ReconcilerSettings:
    """Small bounds so retry tests stay fast."""
    return ReconcilerSettings(
        max_attempts=4,
        retry_base_delay=1.0,
        retry_max_delay=8.0,
        existence_timeout=60.0,
        drain_timeout=600.0,
    )
