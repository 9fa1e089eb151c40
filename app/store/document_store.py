"""Storage gateway: a key-value/document store addressed by (pk, sk).

Every persisted item lives under a composite key: a partition key (``pk``)
that groups related items, and a sort key (``sk``) that orders them within
the partition.  Callers never see rows or tables, only plain dicts whose
``pk``/``sk`` entries are the key and whose other entries are attributes.

Secondary indexes are attribute pairs.  An item that carries ``gsi1pk`` and
``gsi1sk`` is visible through ``query_items(..., index="gsi1")`` under that
alternate key; items without them are simply absent from the index.

Multi-item writes go through ``transact_write``: every operation commits or
none does.  An ``Update`` may carry ``expected`` attribute values; if any of
them no longer match when the transaction runs, the whole transaction is
rejected with TransactionConflict.

Two implementations satisfy the DocumentStore Protocol:
  InMemoryDocumentStore: tests and local dev (this module)
  PgDocumentStore:       PostgreSQL via SQLAlchemy (pg_document_store.py)
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

Item = dict[str, Any]

INDEXES = ("gsi1", "gsi2")

# DynamoDB-style ceiling; the lesson repository uses at most two.
MAX_TRANSACT_ITEMS = 25


class StoreError(Exception):
    """The store could not complete an operation."""


class TransactionConflict(StoreError):
    """A conditional transaction was rejected; nothing was written."""


@dataclass(frozen=True, slots=True)
class Put:
    """Create or fully replace one item."""

    pk: str
    sk: str
    attributes: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class Update:
    """Create or partially update one item.

    set:       attributes written unconditionally.
    if_absent: attributes written only when the item lacks them.
    expected:  attribute values the stored item must hold for the
               transaction to commit.  ``None`` means "attribute absent"
               (which an absent item satisfies).
    """

    pk: str
    sk: str
    set: Mapping[str, Any]
    if_absent: Mapping[str, Any] = field(default_factory=dict)
    expected: Mapping[str, Any] = field(default_factory=dict)


WriteOp = Put | Update


@runtime_checkable
class DocumentStore(Protocol):
    async def get_item(self, pk: str, sk: str) -> Item | None: ...

    async def put_item(self, pk: str, sk: str, attributes: Mapping[str, Any]) -> None: ...

    async def query_items(
        self,
        pk: str,
        *,
        sk_prefix: str = "",
        index: str | None = None,
        filter: Mapping[str, Any] | None = None,
        limit: int | None = None,
        forward: bool = True,
    ) -> list[Item]: ...

    async def transact_write(self, ops: Sequence[WriteOp]) -> None: ...

    async def ping(self) -> None: ...


def check_transaction(ops: Sequence[WriteOp]) -> None:
    """Reject transactions the store contract does not allow."""
    if not ops:
        raise StoreError("transaction must contain at least one operation")
    if len(ops) > MAX_TRANSACT_ITEMS:
        raise StoreError(
            f"transaction exceeds {MAX_TRANSACT_ITEMS} operations (got {len(ops)})"
        )
    keys = [(op.pk, op.sk) for op in ops]
    if len(set(keys)) != len(keys):
        raise StoreError("transaction touches the same item more than once")


def check_index(index: str | None) -> None:
    if index is not None and index not in INDEXES:
        raise StoreError(f"unknown index {index!r}")


def expectations_hold(current: Mapping[str, Any] | None, expected: Mapping[str, Any]) -> bool:
    for name, value in expected.items():
        actual = None if current is None else current.get(name)
        if actual != value:
            return False
    return True


def apply_update(current: Mapping[str, Any] | None, op: Update) -> Item:
    """Return the attributes an Update leaves behind (without pk/sk)."""
    merged: Item = dict(current or {})
    merged.pop("pk", None)
    merged.pop("sk", None)
    for name, value in op.if_absent.items():
        if merged.get(name) is None:
            merged[name] = value
    merged.update(op.set)
    return merged


class InMemoryDocumentStore:
    """Dict-backed store for tests and local dev.

    Items are deep-copied on the way in and out so callers can never
    mutate stored state through a returned dict.
    """

    def __init__(self) -> None:
        self._items: dict[tuple[str, str], Item] = {}

    async def get_item(self, pk: str, sk: str) -> Item | None:
        item = self._items.get((pk, sk))
        return copy.deepcopy(item) if item is not None else None

    async def put_item(self, pk: str, sk: str, attributes: Mapping[str, Any]) -> None:
        self._put(pk, sk, attributes)

    async def query_items(
        self,
        pk: str,
        *,
        sk_prefix: str = "",
        index: str | None = None,
        filter: Mapping[str, Any] | None = None,
        limit: int | None = None,
        forward: bool = True,
    ) -> list[Item]:
        check_index(index)
        pk_attr, sk_attr = ("pk", "sk") if index is None else (f"{index}pk", f"{index}sk")

        matches = [
            item
            for item in self._items.values()
            if item.get(pk_attr) == pk
            and isinstance(item.get(sk_attr), str)
            and item[sk_attr].startswith(sk_prefix)
        ]
        matches.sort(key=lambda i: (i[sk_attr], i["sk"]), reverse=not forward)

        if filter:
            matches = [i for i in matches if expectations_hold(i, filter)]
        if limit is not None:
            matches = matches[:limit]
        return [copy.deepcopy(i) for i in matches]

    async def transact_write(self, ops: Sequence[WriteOp]) -> None:
        check_transaction(ops)

        # Validate every condition before touching anything: all or nothing.
        for op in ops:
            if isinstance(op, Update) and not expectations_hold(
                self._items.get((op.pk, op.sk)), op.expected
            ):
                raise TransactionConflict(
                    f"condition failed on pk={op.pk!r} sk={op.sk!r}"
                )

        for op in ops:
            if isinstance(op, Put):
                self._put(op.pk, op.sk, op.attributes)
            else:
                self._put(op.pk, op.sk, apply_update(self._items.get((op.pk, op.sk)), op))

    async def ping(self) -> None:
        return None

    def _put(self, pk: str, sk: str, attributes: Mapping[str, Any]) -> None:
        item = copy.deepcopy(dict(attributes))
        item["pk"] = pk
        item["sk"] = sk
        self._items[(pk, sk)] = item
