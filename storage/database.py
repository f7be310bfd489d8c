"""
Database setup and connection management for the node tree.

This module handles:
- SQLAlchemy engine creation
- Session management
- Connection pooling configuration
- Database initialization (tables and root node)
"""

from sqlalchemy import create_engine, inspect, pool, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import SQLAlchemyError
import os
import threading
from typing import Generator, Optional
import logging

from storage.models import Base
from storage.repository import NodeRepository
from storage.session import SqlTreeSession

logger = logging.getLogger(__name__)

import dotenv

dotenv.load_dotenv()


class DatabaseConfig:
    """Configuration for database connections"""

    def __init__(self, connection_string: Optional[str] = None):
        self.connection_string = connection_string or os.getenv(
            "ACCESSROLES_DATABASE_URL",
            "sqlite:///./accessroles.db"
        )

        # Connection pooling (ignored for SQLite)
        self.pool_size = int(os.getenv("DB_POOL_SIZE", "10"))
        self.max_overflow = int(os.getenv("DB_MAX_OVERFLOW", "20"))
        self.pool_recycle = int(os.getenv("DB_POOL_RECYCLE", "1500"))

        # Echo SQL for debugging (set False in production)
        self.echo = os.getenv("DB_ECHO", "False").lower() == "true"

        logger.info(f"Tree database config: pool_size={self.pool_size}, max_overflow={self.max_overflow}")

    @property
    def is_sqlite(self) -> bool:
        return self.connection_string.lower().startswith("sqlite")

    @property
    def is_in_memory(self) -> bool:
        url = self.connection_string.lower()
        return self.is_sqlite and (":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite://"))


class DatabaseManager:
    """
    Manages database connections and session lifecycle.

    Usage:
        DatabaseManager.initialize()
        tree = DatabaseManager.open_tree_session()
        try:
            ...
            tree.save()
        finally:
            tree.logout()
    """

    _engine = None
    _SessionLocal = None
    # Held by the open tree session when every session shares one connection
    _session_lock = None

    @classmethod
    def initialize(cls, config: DatabaseConfig = None):
        """
        Initialize database engine and session factory, create tables and
        the root node.
        """
        if cls._engine is not None:
            logger.warning("DatabaseManager already initialized")
            return

        if config is None:
            config = DatabaseConfig()

        logger.info("Initializing tree database...")
        cls._engine = cls._create_engine(config)
        cls._session_lock = threading.Lock() if config.is_in_memory else None
        cls._SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=cls._engine,
            expire_on_commit=False
        )

        cls.create_tables()
        cls._ensure_root()
        logger.info("Tree database initialized successfully")

    @classmethod
    def _create_engine(cls, config: DatabaseConfig):
        """Create SQLAlchemy engine with pooling"""
        if config.is_in_memory:
            # One shared connection, usable from FastAPI's worker threads.
            # It is also one shared transaction, so tree sessions are
            # serialized through _session_lock.
            return create_engine(
                config.connection_string,
                echo=config.echo,
                connect_args={"check_same_thread": False},
                poolclass=pool.StaticPool
            )
        if config.is_sqlite:
            return create_engine(
                config.connection_string,
                echo=config.echo,
                connect_args={"check_same_thread": False}
            )
        return create_engine(
            config.connection_string,
            poolclass=pool.QueuePool,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_recycle=config.pool_recycle,
            pool_pre_ping=True,
            echo=config.echo
        )

    @classmethod
    def create_tables(cls):
        """
        Create all tables if they don't exist (IDEMPOTENT)
        """
        if cls._engine is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        try:
            existing_tables = set(inspect(cls._engine).get_table_names())
            Base.metadata.create_all(bind=cls._engine, checkfirst=True)
            for table_name in Base.metadata.tables:
                if table_name in existing_tables:
                    logger.info(f"Table already exists: {table_name}")
                else:
                    logger.info(f"Created table: {table_name}")
        except SQLAlchemyError as e:
            logger.error(f"Error creating tables: {e}")
            raise

    @classmethod
    def _ensure_root(cls):
        session = cls._SessionLocal()
        try:
            NodeRepository.ensure_root(session)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to create root node: {e}")
            raise
        finally:
            session.close()

    @classmethod
    def drop_tables(cls):
        """
        Drop all tables. USE WITH CAUTION (for testing only).
        """
        if cls._engine is None:
            raise RuntimeError("Database not initialized")

        logger.warning("DROPPING ALL TREE TABLES - THIS IS DESTRUCTIVE")
        Base.metadata.drop_all(bind=cls._engine)

    @classmethod
    def dispose(cls):
        """Dispose the engine and forget the session factory."""
        if cls._engine is not None:
            cls._engine.dispose()
        cls._engine = None
        cls._SessionLocal = None
        cls._session_lock = None

    @classmethod
    def open_tree_session(cls) -> SqlTreeSession:
        """
        Open a new unit of work. The caller must logout() it.

        For an in-memory database this blocks until the previously opened
        session has logged out.
        """
        if cls._SessionLocal is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        lock = cls._session_lock
        if lock is None:
            return SqlTreeSession(cls._SessionLocal())

        lock.acquire()
        try:
            return SqlTreeSession(cls._SessionLocal(), on_logout=lock.release)
        except Exception:
            lock.release()
            raise

    @classmethod
    def get_tree_session(cls) -> Generator[SqlTreeSession, None, None]:
        """
        FastAPI dependency for getting a tree session.

        Nothing is committed automatically: writes call tree.save().
        Unsaved changes are discarded when the session is logged out.

        Usage in FastAPI:

        @router.post("/...")
        async def endpoint(tree: SqlTreeSession = Depends(DatabaseManager.get_tree_session)):
            ...
        """
        tree = cls.open_tree_session()
        try:
            yield tree
        finally:
            tree.logout()

    @classmethod
    def health_check(cls) -> bool:
        """Check if database is healthy"""
        try:
            if cls._SessionLocal is None:
                return False

            tree = cls.open_tree_session()
            try:
                tree.db.execute(text("SELECT 1"))
            finally:
                tree.logout()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False

    @classmethod
    def get_engine(cls):
        """Get the SQLAlchemy engine (for migrations, admin tasks)"""
        if cls._engine is None:
            raise RuntimeError("Database not initialized")
        return cls._engine
