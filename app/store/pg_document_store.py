"""PostgreSQL implementation of DocumentStore."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import select, text
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.tables import ItemRow
from app.store.document_store import (
    INDEXES,
    Item,
    Put,
    StoreError,
    TransactionConflict,
    Update,
    WriteOp,
    apply_update,
    check_index,
    check_transaction,
    expectations_hold,
)

_INDEX_COLUMNS = tuple(f"{index}{part}" for index in INDEXES for part in ("pk", "sk"))


class PgDocumentStore:
    """Satisfies the DocumentStore Protocol using one JSONB-backed table.

    Each call runs in its own session.  transact_write locks the rows it
    updates (SELECT ... FOR UPDATE) so condition checks and writes see the
    same state, and rolls everything back if any condition fails.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_item(self, pk: str, sk: str) -> Item | None:
        async with self._session_factory() as session:
            row = await session.get(ItemRow, (pk, sk))
            return _row_to_item(row) if row is not None else None

    async def put_item(self, pk: str, sk: str, attributes: Mapping[str, Any]) -> None:
        async with self._session_factory() as session, session.begin():
            await _upsert(session, pk, sk, attributes)

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
        if index is None:
            pk_col, sk_col = ItemRow.pk, ItemRow.sk
        else:
            pk_col = getattr(ItemRow, f"{index}pk")
            sk_col = getattr(ItemRow, f"{index}sk")

        stmt = select(ItemRow).where(pk_col == pk)
        if sk_prefix:
            stmt = stmt.where(sk_col.startswith(sk_prefix, autoescape=True))
        if filter:
            # JSONB containment: {"lesson_id": "l1"} matches on type and value.
            stmt = stmt.where(ItemRow.data.contains(dict(filter)))
        order = (sk_col.asc(), ItemRow.sk.asc()) if forward else (sk_col.desc(), ItemRow.sk.desc())
        stmt = stmt.order_by(*order)
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_row_to_item(r) for r in rows]

    async def transact_write(self, ops: Sequence[WriteOp]) -> None:
        check_transaction(ops)
        try:
            async with self._session_factory() as session, session.begin():
                for op in ops:
                    if isinstance(op, Put):
                        await _upsert(session, op.pk, op.sk, op.attributes)
                    else:
                        await _apply(session, op)
        except IntegrityError as exc:
            # Two transactions inserted the same new item concurrently.
            raise TransactionConflict(str(exc.orig)) from exc

    async def ping(self) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StoreError("database unreachable") from exc


async def _apply(session: AsyncSession, op: Update) -> None:
    stmt = (
        select(ItemRow)
        .where(ItemRow.pk == op.pk, ItemRow.sk == op.sk)
        .with_for_update()
    )
    row = (await session.execute(stmt)).scalar_one_or_none()
    current = row.data if row is not None else None
    if not expectations_hold(current, op.expected):
        raise TransactionConflict(f"condition failed on pk={op.pk!r} sk={op.sk!r}")

    attributes = apply_update(current, op)
    if row is None:
        session.add(ItemRow(pk=op.pk, sk=op.sk, data=attributes, **_index_values(attributes)))
    else:
        row.data = attributes
        for name, value in _index_values(attributes).items():
            setattr(row, name, value)
    await session.flush()


async def _upsert(session: AsyncSession, pk: str, sk: str, attributes: Mapping[str, Any]) -> None:
    data = {k: v for k, v in attributes.items() if k not in ("pk", "sk")}
    values = {"pk": pk, "sk": sk, "data": data, **_index_values(data)}
    stmt = insert(ItemRow).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[ItemRow.pk, ItemRow.sk],
        set_={k: stmt.excluded[k] for k in values if k not in ("pk", "sk")},
    )
    await session.execute(stmt)


def _index_values(attributes: Mapping[str, Any]) -> dict[str, str | None]:
    return {name: attributes.get(name) for name in _INDEX_COLUMNS}


def _row_to_item(row: ItemRow) -> Item:
    item = dict(row.data)
    item["pk"] = row.pk
    item["sk"] = row.sk
    return item
