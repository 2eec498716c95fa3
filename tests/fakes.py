"""
In-memory stand-ins for the DynamoDB and S3 stores.

InMemoryKeyedStore honours the KeyedStore contract: conditional updates and
increments never create rows, queries come back in SK order and batch
deletes can be told to leave keys unprocessed.
"""

import copy
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from annotation_blocks.common_libraries.errors import NotFoundError, StoreFailureError
from annotation_blocks.common_libraries.keyed_store import (
    BATCH_WRITE_LIMIT,
    KeyedStore,
    StoreKey,
    make_key,
)
from annotation_blocks.common_libraries.object_store import ObjectStore


class InMemoryKeyedStore(KeyedStore):
    def __init__(self):
        self.items: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.calls: List[Tuple[str, tuple]] = []

        # Failure injection
        self.failing_increments: Set[Tuple[str, str, str]] = set()
        self.failing_query_prefixes: Set[str] = set()
        self.stubborn_keys: Set[Tuple[str, str]] = set()
        self.unprocessed_rounds = 0

    # -- helpers -----------------------------------------------------------

    def row(self, pk: str, sk: str) -> Optional[Dict[str, Any]]:
        return self.items.get((pk, sk))

    def count_calls(self, op: str) -> int:
        return sum(1 for name, _ in self.calls if name == op)

    # -- contract ----------------------------------------------------------

    def get(self, pk, sk):
        self.calls.append(("get", (pk, sk)))
        item = self.items.get((pk, sk))
        return copy.deepcopy(item) if item is not None else None

    def put(self, pk, sk, fields):
        self.calls.append(("put", (pk, sk)))
        item = {k: v for k, v in fields.items() if v is not None}
        item.update(make_key(pk, sk))
        self.items[(pk, sk)] = item

    def update(self, pk, sk, fields, require_existing=True):
        self.calls.append(("update", (pk, sk, tuple(fields))))
        item = self.items.get((pk, sk))
        if item is None:
            if require_existing:
                raise NotFoundError(f"Item {pk}/{sk} not found")
            item = make_key(pk, sk)
            self.items[(pk, sk)] = item
        item.update(fields)
        return copy.deepcopy(item)

    def increment(self, pk, sk, field, delta):
        self.calls.append(("increment", (pk, sk, field, delta)))
        if (pk, sk, field) in self.failing_increments:
            raise StoreFailureError(f"Injected failure incrementing {field}")
        item = self.items.get((pk, sk))
        if item is None:
            raise NotFoundError(f"Item {pk}/{sk} not found")
        item[field] = item.get(field, 0) + delta
        return copy.deepcopy(item)

    def delete(self, pk, sk):
        self.calls.append(("delete", (pk, sk)))
        return self.items.pop((pk, sk), None)

    def query(self, pk, sk_prefix):
        self.calls.append(("query", (pk, sk_prefix)))
        if sk_prefix in self.failing_query_prefixes:
            raise StoreFailureError(f"Injected failure querying {sk_prefix}")
        matches = [
            copy.deepcopy(item)
            for (item_pk, item_sk), item in self.items.items()
            if item_pk == pk and item_sk.startswith(sk_prefix)
        ]
        return sorted(matches, key=lambda item: item["SK"])

    def batch_delete(self, keys: List[StoreKey]) -> List[StoreKey]:
        self.calls.append(("batch_delete", (len(keys),)))
        if len(keys) > BATCH_WRITE_LIMIT:
            raise ValueError("batch too large")

        if self.unprocessed_rounds > 0:
            self.unprocessed_rounds -= 1
            return list(keys)

        unprocessed = []
        for key in keys:
            marker = (key["PK"], key["SK"])
            if marker in self.stubborn_keys:
                unprocessed.append(key)
            else:
                self.items.pop(marker, None)
        return unprocessed


class FakeObjectStore(ObjectStore):
    def __init__(self, keys: Iterable[str] = (), page_size: int = 2):
        self.objects: Set[str] = set(keys)
        self.page_size = page_size
        self.fail = False
        self.failing_keys: Set[str] = set()

    def list_by_prefix(self, prefix: str) -> Iterator[List[str]]:
        if self.fail:
            raise StoreFailureError("Injected S3 failure")
        matching = sorted(key for key in self.objects if key.startswith(prefix))
        for start in range(0, len(matching), self.page_size):
            yield matching[start : start + self.page_size]

    def delete_many(self, keys: Iterable[str]) -> int:
        keys = list(keys)
        if self.failing_keys.intersection(keys):
            raise StoreFailureError("Injected S3 delete failure")
        for key in keys:
            self.objects.discard(key)
        return len(keys)
