"""
Estrategia de backup para PostgreSQL
"""
from pathlib import Path
from .base_strategy import BackupStrategy, credential_env
from ..models import EngineKind, ServiceDescriptor


class PostgreSQLBackupStrategy(BackupStrategy):
    """Estrategia de backup para PostgreSQL"""

    engine = EngineKind.POSTGRES
    artifact_suffix = ".sql"

    def build_command(self, service: ServiceDescriptor) -> list:
        return [
            'pg_dump',
            '-U', service.user,
            '-d', service.database or service.user,
            '--no-password',
            '--clean',               # Incluir DROP statements
            '--no-acl',              # No incluir comandos de privilegios
            '--no-owner',            # Restaurable sin roles previos
        ]

    def backup(self, service, output_file: Path, timestamp, cancellation=None):
        """Ejecuta pg_dump dentro del servicio"""
        self._run_dump(
            service,
            self.build_command(service),
            output_file,
            env=credential_env('PGPASSWORD', service.password),
            cancellation=cancellation
        )
