"""
Estrategias de backup para los distintos motores
"""
from .base_strategy import BackupStrategy
from .mariadb_strategy import MariaDBBackupStrategy
from .postgresql_strategy import PostgreSQLBackupStrategy
from .mongodb_strategy import MongoDBBackupStrategy
from .redis_strategy import RedisBackupStrategy

__all__ = [
    'BackupStrategy',
    'MariaDBBackupStrategy',
    'PostgreSQLBackupStrategy',
    'MongoDBBackupStrategy',
    'RedisBackupStrategy'
]
