"""
Estrategia de backup para MariaDB/MySQL
"""
from pathlib import Path
from .base_strategy import BackupStrategy, credential_env
from ..models import EngineKind, ServiceDescriptor


class MariaDBBackupStrategy(BackupStrategy):
    """Estrategia de backup para MariaDB/MySQL"""

    engine = EngineKind.MARIADB
    artifact_suffix = ".sql"

    def build_command(self, service: ServiceDescriptor) -> list:
        """Volcado lógico de todas las bases con consistencia transaccional"""
        return [
            'mysqldump',
            '-u', service.user or 'root',
            '--single-transaction',  # Consistencia sin bloquear InnoDB
            '--routines',            # Incluir procedures y functions
            '--triggers',            # Incluir triggers
            '--all-databases',
        ]

    def backup(self, service, output_file: Path, timestamp, cancellation=None):
        """
        Ejecuta mysqldump dentro del servicio

        La contraseña viaja en MYSQL_PWD, nunca en la línea de comandos del volcado.
        """
        self._run_dump(
            service,
            self.build_command(service),
            output_file,
            env=credential_env('MYSQL_PWD', service.password),
            cancellation=cancellation
        )
