from storage.database import DatabaseConfig, DatabaseManager
from storage.models import Base, NodeProperty, TreeNode
from storage.repository import NodeRepository, PropertyRepository
from storage.session import SqlNode, SqlTreeSession

__all__ = ['Base', 'DatabaseConfig', 'DatabaseManager', 'NodeProperty',
           'NodeRepository', 'PropertyRepository', 'SqlNode', 'SqlTreeSession',
           'TreeNode']
