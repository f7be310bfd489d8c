"""
Database models for the node tree.

This module defines SQLAlchemy ORM models for a hierarchical tree of nodes
with structural markers (mixins) and string / string-list properties.
Role assignments are stored with these same primitives.

Models:
- TreeNode: A node of the tree (root has no parent)
- NodeProperty: A named property of a node
"""

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Integer, JSON, String,
    UniqueConstraint,
)
from sqlalchemy.orm import backref, declarative_base, relationship
from datetime import datetime

Base = declarative_base()


class TreeNode(Base):
    """
    A node of the hierarchical tree.

    Attributes:
        id: Surrogate key; children are ordered by it
        parent_id: Parent node (NULL only for the root)
        name: Last path segment ("" for the root)
        path: Absolute path, unique ("/a/b", same-name siblings get "[n]")
        mixins: Structural markers, e.g. ["rbacl:assignable"]
        created_at: When the node was created
        updated_at: Last change to the node row

    Relationships:
        parent: Parent TreeNode
        children: Child TreeNodes, removed together with this node
        properties: NodeProperty rows, removed together with this node
    """

    __tablename__ = "tree_nodes"

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        doc="Node identifier"
    )

    parent_id = Column(
        Integer,
        ForeignKey("tree_nodes.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        doc="Parent node"
    )

    name = Column(
        String(255),
        nullable=False,
        default="",
        doc="Node name"
    )

    path = Column(
        String(2048),
        nullable=False,
        unique=True,
        doc="Absolute node path"
    )

    mixins = Column(
        JSON,
        nullable=False,
        default=lambda: [],
        doc="Structural markers"
    )

    created_at = Column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        nullable=False
    )

    updated_at = Column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    children = relationship(
        "TreeNode",
        cascade="all, delete-orphan",
        order_by="TreeNode.id",
        backref=backref("parent", remote_side=[id]),
        doc="Child nodes"
    )

    properties = relationship(
        "NodeProperty",
        back_populates="node",
        cascade="all, delete-orphan",
        doc="Node properties"
    )

    __table_args__ = (
        # Index for: child lookup by name
        Index('idx_parent_name', parent_id, name),
    )

    def __repr__(self):
        return f"<TreeNode(id={self.id}, path='{self.path}')>"

    def to_dict(self):
        return {
            'id': self.id,
            'parent_id': self.parent_id,
            'name': self.name,
            'path': self.path,
            'mixins': list(self.mixins or []),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class NodeProperty(Base):
    """
    A named property of a node.

    Single-valued properties are stored as a one-element list with
    multiple=False.
    """

    __tablename__ = "node_properties"

    id = Column(Integer, primary_key=True, autoincrement=True)

    node_id = Column(
        Integer,
        ForeignKey("tree_nodes.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name = Column(String(255), nullable=False)

    values = Column(
        JSON,
        nullable=False,
        default=lambda: [],
        doc="Ordered string values"
    )

    multiple = Column(Boolean, nullable=False, default=False)

    node = relationship("TreeNode", back_populates="properties")

    __table_args__ = (
        UniqueConstraint('node_id', 'name', name='uq_node_property'),
    )

    def __repr__(self):
        return f"<NodeProperty(node_id={self.node_id}, name='{self.name}', values={self.values})>"

