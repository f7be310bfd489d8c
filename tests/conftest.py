"""Pytest configuration and fixtures for the access roles test suite."""

import pytest
from loguru import logger
from sqlalchemy import create_engine, pool
from sqlalchemy.orm import sessionmaker

from accessroles.constants import (ACL_NODE, ASSIGNABLE_MIXIN, ASSIGNMENT_NODE,
                                   PRINCIPAL_PROPERTY, ROLE_PROPERTY)
from accessroles.provider import RbaclAccessRolesProvider
from storage.models import Base
from storage.repository import NodeRepository
from storage.session import SqlTreeSession


@pytest.fixture
def db_session():
    """Fresh in-memory SQLite database with an initialized root node."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=pool.StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = SessionLocal()
    NodeRepository.ensure_root(session)
    session.commit()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def tree(db_session):
    return SqlTreeSession(db_session)


@pytest.fixture
def provider():
    return RbaclAccessRolesProvider()


@pytest.fixture
def log_records():
    """Capture loguru records emitted during the test."""
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="TRACE")
    yield records
    logger.remove(handler_id)


def add_raw_assignment(node, principal, roles):
    """
    Write an assignment record without going through the provider, so tests
    can build containers the provider itself would never write.
    """
    if not node.is_node_type(ASSIGNABLE_MIXIN):
        node.add_mixin(ASSIGNABLE_MIXIN)
    acl = node.get_node(ACL_NODE) if node.has_node(ACL_NODE) else node.add_node(ACL_NODE)
    record = acl.add_node(ASSIGNMENT_NODE)
    if principal is not None:
        record.set_property(PRINCIPAL_PROPERTY, principal)
    if roles is not None:
        record.set_property(ROLE_PROPERTY, list(roles))
    return record


@pytest.fixture
def raw_assignment():
    return add_raw_assignment
