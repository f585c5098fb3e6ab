"""SQLAlchemy-backed identity store and its units of work."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from storelink.adapters.sqlalchemy.mappings import start_mappers
from storelink.adapters.sqlalchemy.migrations import upgrade_head
from storelink.adapters.sqlalchemy.repositories import (
    SqlAlchemyCustomerRepository,
    SqlAlchemyVoucherApplicationRepository,
    SqlAlchemyVoucherRepository,
)
from storelink.config import get_database_config
from storelink.domain.errors import ConstraintViolation
from storelink.domain.ports import StoreRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the identity store is used before it was opened or after it was closed."""


class IdentityStore:
    """Handle on the identity store database.

    Open it once at process start, hand it to whatever needs units of work and
    close it at shutdown. Nothing here is module-global; two stores can coexist.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine: Engine | None = engine
        self._session_factory: sessionmaker[Session] | None = sessionmaker(
            bind=engine, expire_on_commit=False
        )

    @classmethod
    def open(
        cls,
        *,
        engine: Engine | None = None,
        database_uri: str | None = None,
        migrate: bool = True,
    ) -> IdentityStore:
        """Create the engine, configure mappers and bring the schema to head."""

        resolved_engine = engine or create_engine(
            database_uri or get_database_config().uri, future=True
        )
        start_mappers()
        if migrate:
            upgrade_head(engine=resolved_engine)
        log.info("Opened identity store at %s", resolved_engine.url.render_as_string())
        return cls(resolved_engine)

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StartupError("Identity store is closed")
        return self._engine

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            raise StartupError("Identity store is closed")
        return self._session_factory

    def unit_of_work(self) -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(self.session_factory)

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None

    def __enter__(self) -> IdentityStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        self.close()
        return False


class SqlAlchemyUnitOfWork:
    """One session, one transaction."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory
        self._session: Session | None = None
        self._repositories: StoreRepositories | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self.session = self.session_factory()
        self._repositories = StoreRepositories(
            customers=SqlAlchemyCustomerRepository(self.session),
            vouchers=SqlAlchemyVoucherRepository(self.session),
            applications=SqlAlchemyVoucherApplicationRepository(self.session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        self._repositories = None
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            log.debug("Commit rejected by a unique constraint: %s", exc.orig)
            raise ConstraintViolation(str(exc.orig)) from exc

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> StoreRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


if TYPE_CHECKING:
    from storelink.domain.ports import UnitOfWork

    _uow_check: UnitOfWork = SqlAlchemyUnitOfWork(sessionmaker())
