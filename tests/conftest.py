import pytest
from google.api_core.exceptions import ServiceUnavailable


class FakeBlob:
    def __init__(self, objects, name, fail=False):
        self.objects = objects
        self.name = name
        self.fail = fail

    def exists(self, client=None):
        return self.name in self.objects

    def download_as_text(self):
        if self.fail:
            raise ServiceUnavailable("storage down")
        return self.objects[self.name]

    def upload_from_string(self, data, content_type=None):
        if self.fail:
            raise ServiceUnavailable("storage down")
        self.objects[self.name] = data


class FakeBucket:
    def __init__(self, objects, fail):
        self.objects = objects
        self.fail = fail

    def blob(self, name):
        return FakeBlob(self.objects, name, self.fail)


class FakeClient:
    """Just enough of google.cloud.storage.Client for text objects."""

    def __init__(self, fail=False):
        self.buckets = {}
        self.fail = fail

    def bucket(self, name):
        return FakeBucket(self.buckets.setdefault(name, {}), self.fail)


@pytest.fixture
def gcs():
    return FakeClient()


@pytest.fixture
def failing_gcs():
    return FakeClient(fail=True)
