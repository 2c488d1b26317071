"""
Document store adapter.

Exposes the small set of primitives the services are allowed to use
against the four collections (``User``, ``Blog``, ``Comment``,
``Notification``).  Every counter change is a single
``UPDATE ... SET col = col + :delta`` statement so concurrent requests
never lose increments; nothing here reads a value, changes it in Python
and writes it back.

Filters are keyword equalities on mapped attributes, optionally combined
with extra SQLAlchemy criteria for the few queries that need more (tag
membership, case-insensitive substring match).

All methods flush but never commit: the transaction belongs to the
caller (``get_db`` in the HTTP layer).
"""
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, TypeVar

from sqlalchemy import ColumnElement, delete, exists, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import load_only, selectinload

from blogsphere.errors import DuplicateKeyError, StoreError
from blogsphere.models import PUSH_TARGETS

logger = logging.getLogger(__name__)

M = TypeVar("M")


# SQLSTATE for unique_violation; SQLite reports it through the error name.
_UNIQUE_VIOLATION = "23505"
_SQLITE_UNIQUE = ("SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY")


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == _UNIQUE_VIOLATION
    name = getattr(orig, "sqlite_errorname", None)
    if name:
        return name in _SQLITE_UNIQUE
    return "UNIQUE constraint failed" in str(orig)


def integrity_error(exc: IntegrityError) -> StoreError:
    """
    Translate an IntegrityError.  Unique-index violations become
    ``DuplicateKeyError``; anything else (foreign keys, checks, NOT NULL)
    is a backend failure.  The driver text stays in the log and on
    ``__cause__``, never in the error detail.
    """
    if is_unique_violation(exc):
        logger.debug("Unique violation: %s", exc.orig)
        return DuplicateKeyError()
    logger.warning("Integrity failure: %s", exc.orig)
    return StoreError()


class DocumentStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ------------------------------------------------------------------
    # Filter helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _where(model: type, criteria: Iterable[ColumnElement], equals: Mapping[str, Any]) -> list:
        clauses = list(criteria)
        for name, value in equals.items():
            column = getattr(model, name)
            clauses.append(column.is_(None) if value is None else column == value)
        return clauses

    async def _execute(self, statement):
        try:
            return await self.session.execute(statement)
        except IntegrityError as exc:
            raise integrity_error(exc) from exc
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_one(
        self,
        model: type[M],
        *criteria: ColumnElement,
        load: Sequence[str] = (),
        **equals: Any,
    ) -> M | None:
        """Return the first document matching the filter, or None."""
        rows = await self.find(model, *criteria, limit=1, load=load, **equals)
        return rows[0] if rows else None

    async def find(
        self,
        model: type[M],
        *criteria: ColumnElement,
        sort: Sequence[ColumnElement] = (),
        skip: int = 0,
        limit: int | None = None,
        projection: Sequence[str] | None = None,
        load: Sequence[str] = (),
        **equals: Any,
    ) -> list[M]:
        """
        Return documents matching the filter.

        *sort* takes ordering expressions (``Blog.total_reads.desc()``),
        *projection* restricts the loaded columns and *load* names
        relationships to eager-load with ``selectinload``.
        """
        q = select(model).where(*self._where(model, criteria, equals))
        if projection:
            q = q.options(load_only(*[getattr(model, name) for name in projection]))
        if load:
            # noload relationships on instances already in the identity map
            # count as loaded (empty); repopulate them.
            q = q.options(*[selectinload(getattr(model, name)) for name in load])
            q = q.execution_options(populate_existing=True)
        if sort:
            q = q.order_by(*sort)
        if skip:
            q = q.offset(skip)
        if limit is not None:
            q = q.limit(limit)
        result = await self._execute(q)
        return list(result.scalars().unique().all())

    async def count(self, model: type, *criteria: ColumnElement, **equals: Any) -> int:
        q = select(func.count()).select_from(model).where(*self._where(model, criteria, equals))
        return (await self._execute(q)).scalar_one()

    async def exists(self, model: type, *criteria: ColumnElement, **equals: Any) -> bool:
        q = select(exists().where(*self._where(model, criteria, equals)))
        return bool((await self._execute(q)).scalar())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, document: M) -> M:
        """
        Persist a new document and return it with its generated id.

        The flush runs inside a SAVEPOINT so a unique-index violation is
        reported as ``DuplicateKeyError`` without poisoning the caller's
        transaction.
        """
        try:
            async with self.session.begin_nested():
                self.session.add(document)
        except IntegrityError as exc:
            logger.debug("Insert into %s failed", type(document).__name__)
            raise integrity_error(exc) from exc
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        return document

    async def atomic_update(
        self,
        model: type[M],
        *criteria: ColumnElement,
        set: Mapping[str, Any] | None = None,
        inc: Mapping[str, int] | None = None,
        push: Mapping[str, int] | None = None,
        **equals: Any,
    ) -> M | None:
        """
        Apply *set* / *inc* to the single document matching the filter
        and append each id in *push* to the named reference sequence.

        Returns the refreshed document, or None when nothing matched (in
        which case nothing is pushed either).
        """
        values: dict[str, Any] = dict(set or {})
        for name, delta in (inc or {}).items():
            values[name] = getattr(model, name) + delta

        where = self._where(model, criteria, equals)
        if values:
            stmt = (
                update(model)
                .where(*where)
                .values(**values)
                .returning(model.id)
                .execution_options(synchronize_session=False)
            )
            doc_id = (await self._execute(stmt)).scalar_one_or_none()
        else:
            doc_id = (await self._execute(select(model.id).where(*where).limit(1))).scalar_one_or_none()
        if doc_id is None:
            return None

        for attribute, member_id in (push or {}).items():
            table, owner_col, member_col = PUSH_TARGETS[(model, attribute)]
            await self._execute(insert(table).values({owner_col: doc_id, member_col: member_id}))

        try:
            document = await self.session.get(model, doc_id)
            # The instance may already sit in the identity map with stale
            # values; reload only what this statement changed.
            if values:
                await self.session.refresh(document, attribute_names=list(values))
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        return document

    async def flush(self) -> None:
        """Write pending changes made directly on loaded documents."""
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise integrity_error(exc) from exc
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    async def atomic_delete(self, model: type[M], *criteria: ColumnElement, **equals: Any) -> M | None:
        """
        Delete the first document matching the filter.

        Returns the deleted document only when this call removed the row;
        a concurrent delete of the same row yields None.
        """
        document = await self.find_one(model, *criteria, **equals)
        if document is None:
            return None
        stmt = (
            delete(model)
            .where(model.id == document.id)
            .execution_options(synchronize_session=False)
        )
        result = await self._execute(stmt)
        if result.rowcount == 0:
            return None
        self.session.expunge(document)
        return document
