import pytest
from google.auth.exceptions import DefaultCredentialsError

import rank_storage
from link_graph import LinkGraph, RecordParseError
from pagerank import initialize, run_pagerank
from rank_storage import (
    StorageError,
    read_lines,
    read_scores,
    split_gcs_uri,
    write_lines,
    write_perplexity,
    write_scores,
)


def test_local_lines_round_trip(tmp_path):
    path = str(tmp_path / "out.txt")
    write_lines(path, ["a", "b c"])
    assert read_lines(path) == ["a", "b c"]


def test_missing_local_file(tmp_path):
    with pytest.raises(StorageError):
        read_lines(str(tmp_path / "nope.dat"))


def test_unwritable_local_path(tmp_path):
    with pytest.raises(StorageError):
        write_lines(str(tmp_path / "no" / "such" / "dir.out"), ["1"])


def test_perplexity_lines_in_order(tmp_path):
    path = str(tmp_path / "perplexity.out")
    write_perplexity(path, [183811.0, 79669.9, 86267.7])
    assert read_lines(path) == ["183811.0", "79669.9", "86267.7"]


def test_scores_round_trip(tmp_path):
    graph = LinkGraph.load([(1, [2, 3]), (2, [3, 4]), (5, [1])])
    result = run_pagerank(initialize(graph))
    path = str(tmp_path / "pr_scores.out")

    write_scores(path, result.scores())

    assert read_scores(path) == result.scores()
    assert [pid for pid, _ in read_scores(path)] == [1, 2, 3, 4, 5]


def test_split_gcs_uri():
    assert split_gcs_uri("gs://bucket/dir/file.dat") == ("bucket", "dir/file.dat")
    with pytest.raises(StorageError):
        split_gcs_uri("gs://bucket")


def test_gcs_round_trip(gcs):
    write_scores("gs://ranks/out/pr_scores.out", [(1, 0.25), (2, 0.75)], gcs)

    assert gcs.buckets["ranks"]["out/pr_scores.out"] == "1 0.25\n2 0.75\n"
    assert read_scores("gs://ranks/out/pr_scores.out", gcs) == [(1, 0.25), (2, 0.75)]


def test_gcs_missing_object(gcs):
    with pytest.raises(StorageError):
        read_lines("gs://ranks/missing.dat", gcs)


def test_gcs_errors_become_storage_errors(failing_gcs):
    with pytest.raises(StorageError):
        write_lines("gs://ranks/x.out", ["1"], failing_gcs)

    failing_gcs.buckets["ranks"] = {"x.dat": "1 2\n"}
    with pytest.raises(StorageError):
        read_lines("gs://ranks/x.dat", failing_gcs)


def test_default_client_is_reused(monkeypatch, gcs):
    monkeypatch.setattr(rank_storage, "_storage_client", gcs)
    write_lines("gs://ranks/a.out", ["1"])
    assert gcs.buckets["ranks"]["a.out"] == "1\n"


def test_read_scores_names_bad_field(tmp_path):
    path = tmp_path / "bad.out"
    path.write_text("1 0.5\n2 abc\n")
    with pytest.raises(RecordParseError) as exc:
        read_scores(str(path))
    assert exc.value.field == "rank"
    assert str(exc.value).startswith("line 2: invalid rank 'abc'")


def test_read_scores_wrong_field_count(tmp_path):
    path = tmp_path / "bad.out"
    path.write_text("1 0.5\n2 0.25 extra\n")
    with pytest.raises(RecordParseError) as exc:
        read_scores(str(path))
    assert exc.value.line_no == 2
    assert "expected '<pageId> <rank>', got 3 fields" in str(exc.value)


def test_undecodable_local_file(tmp_path):
    path = tmp_path / "links.dat"
    path.write_bytes(b"1 2\n\xff\xfe\x00\x81\n")
    with pytest.raises(StorageError):
        read_lines(str(path))


def _no_credentials(*args, **kwargs):
    raise DefaultCredentialsError("no default credentials")


def test_missing_credentials_become_storage_errors(monkeypatch):
    monkeypatch.setattr(rank_storage, "_storage_client", None)
    monkeypatch.setattr(rank_storage.storage, "Client", _no_credentials)

    with pytest.raises(StorageError):
        write_lines("gs://ranks/a.out", ["1"])
    with pytest.raises(StorageError):
        read_lines("gs://ranks/a.dat")
