# File: tests/test_store.py
import json
from datetime import datetime, timezone

import pytest

from wayback_archiver.errors import StoreLoadError
from wayback_archiver.models import ArchiveFailure, ArchiveSuccess, ErrorKind
from wayback_archiver.store import (
    ResultStore,
    load_store,
    merge_stores,
    store_from_dict,
    store_to_dict,
)

from .conftest import success

LATER = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def failure(url, reason=ErrorKind.REJECTED, attempts=1):
    return ArchiveFailure(url, reason, attempts, "HTTP 403", failed_at=LATER)


def test_insert_same_url_keeps_single_entry():
    store = ResultStore()
    store.insert(success("a.com"))
    store.insert(failure("a.com"))

    assert len(store) == 1
    assert isinstance(store.get("a.com"), ArchiveFailure)


def test_merge_last_write_wins_and_keeps_order():
    existing = ResultStore([success("a.com"), success("b.com"), success("c.com")])
    incoming = ResultStore([success("d.com", LATER), success("b.com", LATER)])

    merged = merge_stores(existing, incoming)

    assert merged.urls() == ["a.com", "b.com", "c.com", "d.com"]
    assert merged.get("b.com").archived_at == LATER
    assert merged.get("a.com") == existing.get("a.com")
    # inputs are not mutated
    assert len(existing) == 3


def test_merge_is_idempotent():
    existing = ResultStore([success("a.com")])
    incoming = ResultStore([success("a.com", LATER), success("b.com", LATER)])

    once = merge_stores(existing, incoming)
    twice = merge_stores(once, incoming)

    assert once == twice
    assert len(twice) == 2


def test_reordered_follows_given_order():
    store = ResultStore([success("c.com"), success("a.com"), success("b.com")])
    assert store.reordered(["a.com", "b.com"]).urls() == ["a.com", "b.com", "c.com"]


def test_dict_round_trip():
    store = ResultStore(
        [
            success("a.com"),
            ArchiveSuccess("b.com", "https://web.archive.org/web/20010101000000/b.com", LATER, True),
            failure("c.com", ErrorKind.CANCELLED, attempts=0),
        ]
    )
    data = json.loads(json.dumps(store_to_dict(store)))

    assert store_from_dict(data) == store
    assert data["c.com"]["url"] is None
    assert data["c.com"]["error"] == "cancelled"


def test_load_missing_file_gives_empty_store(tmp_path):
    store = load_store(tmp_path / "absent.json")
    assert len(store) == 0


def test_load_missing_file_strict(tmp_path):
    with pytest.raises(StoreLoadError):
        load_store(tmp_path / "absent.json", missing_ok=False)


@pytest.mark.parametrize(
    "content",
    [
        "not json at all",
        "",
        "[1, 2, 3]",
        json.dumps({"a.com": {"url": "x"}}),
        json.dumps({"a.com": {"url": None, "last_archived": "yesterday"}}),
    ],
)
def test_load_unparseable_raises(tmp_path, content):
    path = tmp_path / "store.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(StoreLoadError):
        load_store(path)


def test_load_legacy_format(tmp_path):
    path = tmp_path / "legacy.json"
    path.write_text(
        json.dumps(
            {
                "https://example.com": {
                    "url": "https://web.archive.org/web/20210304050607/https://example.com",
                    "last_archived": "2021-03-04T05:06:07.123456",
                },
                "https://broken.example": {
                    "url": None,
                    "last_archived": "2021-03-04T05:06:07",
                },
            }
        ),
        encoding="utf-8",
    )

    store = load_store(path)

    ok = store.get("https://example.com")
    assert isinstance(ok, ArchiveSuccess)
    assert ok.archived_at.tzinfo is not None
    assert ok.archived_at.year == 2021
    broken = store.get("https://broken.example")
    assert isinstance(broken, ArchiveFailure)
    assert broken.reason is ErrorKind.UNKNOWN


def test_loaded_keys_are_normalized_before_merge(tmp_path):
    path = tmp_path / "store.json"
    record = {
        "url": "https://web.archive.org/web/20210304050607/a.com",
        "last_archived": "2021-03-04T05:06:07Z",
    }
    path.write_text(json.dumps({"a.com\r": record, " b.com ": record}), encoding="utf-8")

    prior = load_store(path)
    merged = merge_stores(prior, ResultStore([success("a.com", LATER)]))

    assert prior.urls() == ["a.com", "b.com"]
    assert merged.urls() == ["a.com", "b.com"]
    assert merged.get("a.com").archived_at == LATER


def test_duplicate_keys_after_normalization_keep_last_record():
    store = store_from_dict(
        {
            "a.com ": {"url": None, "last_archived": "2021-01-01T00:00:00Z", "error": "rejected"},
            "a.com": {
                "url": "https://web.archive.org/web/20220101000000/a.com",
                "last_archived": "2022-01-01T00:00:00Z",
            },
        }
    )

    assert len(store) == 1
    assert isinstance(store.get("a.com"), ArchiveSuccess)
