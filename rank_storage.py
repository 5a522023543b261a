import os
from typing import Iterable, List, Sequence, Tuple

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage

from link_graph import RecordParseError, parse_page_id

GCS_SCHEME = "gs://"

PROJECT_ID = (
    os.environ.get("GOOGLE_CLOUD_PROJECT")
    or os.environ.get("PROJECT_ID")
    or None
)

# API failures, missing credentials, undecodable object text
GCS_ERRORS = (GoogleAPIError, GoogleAuthError, UnicodeDecodeError)

_storage_client = None


class StorageError(RuntimeError):
    pass


def _client(client=None):
    global _storage_client
    if client is not None:
        return client
    if _storage_client is None:
        _storage_client = storage.Client(project=PROJECT_ID)
    return _storage_client


def split_gcs_uri(uri: str) -> Tuple[str, str]:
    path = uri[len(GCS_SCHEME):]
    bucket, _, obj = path.partition("/")
    if not bucket or not obj:
        raise StorageError(f"expected gs://<bucket>/<object>, got {uri!r}")
    return bucket, obj


def read_lines(location: str, client=None) -> List[str]:
    if location.startswith(GCS_SCHEME):
        bucket_name, obj_name = split_gcs_uri(location)
        try:
            gcs = _client(client)
            blob = gcs.bucket(bucket_name).blob(obj_name)
            if not blob.exists(gcs):
                raise StorageError(f"{location}: object not found")
            return blob.download_as_text().splitlines()
        except GCS_ERRORS as e:
            raise StorageError(f"{location}: {e}") from e

    try:
        with open(location, "r", encoding="utf-8") as f:
            return f.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise StorageError(f"{location}: {e}") from e


def write_lines(location: str, lines: Iterable[str], client=None) -> None:
    content = "".join(f"{line}\n" for line in lines)

    if location.startswith(GCS_SCHEME):
        bucket_name, obj_name = split_gcs_uri(location)
        try:
            blob = _client(client).bucket(bucket_name).blob(obj_name)
            blob.upload_from_string(content, content_type="text/plain; charset=utf-8")
        except GCS_ERRORS as e:
            raise StorageError(f"{location}: {e}") from e
        return

    try:
        with open(location, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise StorageError(f"{location}: {e}") from e


def write_perplexity(location: str, trace: Sequence[float], client=None) -> None:
    write_lines(location, (repr(p) for p in trace), client)


def write_scores(location: str, scores: Iterable[Tuple[int, float]], client=None) -> None:
    write_lines(location, (f"{pid} {rank!r}" for pid, rank in scores), client)


def read_scores(location: str, client=None) -> List[Tuple[int, float]]:
    """Inverse of write_scores: one "<pageId> <rank>" pair per line."""
    scores = []
    for line_no, line in enumerate(read_lines(location, client), start=1):
        parts = line.split()
        if not parts:
            continue
        if len(parts) != 2:
            raise RecordParseError(
                line_no, line, field="score line",
                reason=f"expected '<pageId> <rank>', got {len(parts)} fields",
            )
        pid = parse_page_id(parts[0], line_no, line)
        try:
            rank = float(parts[1])
        except ValueError:
            raise RecordParseError(line_no, parts[1], line, field="rank") from None
        scores.append((pid, rank))
    return scores
