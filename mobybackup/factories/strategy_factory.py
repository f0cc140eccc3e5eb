"""
Factory para crear estrategias de backup
"""
from typing import Optional
from ..models import BackupSettings, EngineKind
from ..runner import CommandRunner
from ..strategies.base_strategy import BackupStrategy
from ..strategies.mariadb_strategy import MariaDBBackupStrategy
from ..strategies.postgresql_strategy import PostgreSQLBackupStrategy
from ..strategies.mongodb_strategy import MongoDBBackupStrategy
from ..strategies.redis_strategy import RedisBackupStrategy


class BackupStrategyFactory:
    """Factory para crear estrategias de backup (Factory Pattern)"""

    # Mapeo de motores a estrategias
    _strategies = {
        EngineKind.MARIADB: MariaDBBackupStrategy,
        EngineKind.POSTGRES: PostgreSQLBackupStrategy,
        EngineKind.MONGODB: MongoDBBackupStrategy,
        EngineKind.REDIS: RedisBackupStrategy,
    }

    @classmethod
    def create(cls, engine: EngineKind, runner: CommandRunner,
               settings: BackupSettings) -> Optional[BackupStrategy]:
        """
        Crea una estrategia de backup según el motor

        Args:
            engine: Motor del servicio
            runner: Ejecutor de comandos
            settings: Configuración de backups

        Returns:
            Instancia de BackupStrategy o None si el motor no es soportado
        """
        strategy_class = cls._strategies.get(engine)
        if strategy_class:
            return strategy_class(runner, settings)
        return None

    @classmethod
    def register_strategy(cls, engine: EngineKind, strategy_class: type):
        """
        Registra una nueva estrategia (permite extender sin modificar - Open/Closed)
        """
        cls._strategies[engine] = strategy_class

    @classmethod
    def get_supported_engines(cls) -> list:
        """Motores soportados, en orden de ejecución"""
        return sorted(cls._strategies.keys(), key=lambda engine: engine.order)
