"""
Estrategia de backup para Redis
"""
import time
from pathlib import Path
from typing import Dict, Optional
from .base_strategy import BackupStrategy, credential_env
from ..exceptions import DumpFailed, RunCancelled
from ..models import EngineKind, ServiceDescriptor
from ..runner import Cancellation, CommandResult


class RedisBackupStrategy(BackupStrategy):
    """
    Estrategia de backup para Redis

    Lanza BGSAVE y sondea LASTSAVE / INFO persistence hasta que el snapshot
    nuevo está completo, con un tiempo límite. Después copia el archivo RDB.
    """

    engine = EngineKind.REDIS
    artifact_suffix = ".rdb"

    def backup(self, service, output_file: Path, timestamp, cancellation=None):
        previous_save = self._last_save(service, cancellation)

        started = self._start_save(service, cancellation)
        self._wait_for_save(service, previous_save, started, cancellation)

        copied = self.runner.copy_from(service.name, self.settings.redis_dump_path, output_file,
                                       cancellation=cancellation)
        if not copied.ok:
            raise DumpFailed(service.name,
                             f"no se pudo copiar {self.settings.redis_dump_path}: {copied.error_text()}")

    def _wait_for_save(self, service: ServiceDescriptor, previous_save: int,
                       started: bool = False, cancellation: Optional[Cancellation] = None):
        """
        Espera a que termine el guardado en segundo plano

        El guardado se da por terminado cuando INFO ya no lo marca en curso y
        además lo lanzamos nosotros, se vio en curso o LASTSAVE avanzó. LASTSAVE
        tiene resolución de segundos y puede no cambiar en guardados rápidos.

        Raises:
            DumpFailed: Si el guardado falla o supera redis_save_timeout
            RunCancelled: Si la ejecución se cancela durante la espera
        """
        timeout = self.settings.redis_save_timeout
        interval = self.settings.redis_poll_interval
        deadline = time.monotonic() + timeout
        saw_in_progress = False

        while True:
            info = self._persistence_info(service, cancellation)
            in_progress = info.get('rdb_bgsave_in_progress') == '1'
            saw_in_progress = saw_in_progress or in_progress

            if not in_progress:
                last_save = self._last_save(service, cancellation)
                if started or saw_in_progress or last_save > previous_save:
                    if info.get('rdb_last_bgsave_status', 'ok') != 'ok':
                        raise DumpFailed(service.name, "BGSAVE terminó con error")
                    self.logger.info(f"Snapshot de {service.name} completado")
                    return

            if time.monotonic() >= deadline:
                raise DumpFailed(service.name, f"BGSAVE no terminó en {timeout:g}s")

            if cancellation is not None:
                if cancellation.wait(interval):
                    raise RunCancelled(f"Espera de BGSAVE cancelada en {service.name}")
            else:
                time.sleep(interval)

    def _start_save(self, service: ServiceDescriptor, cancellation=None) -> bool:
        """
        Lanza BGSAVE

        Returns:
            True si este BGSAVE inició el guardado, False si ya había uno en curso

        Raises:
            DumpFailed: Si redis rechaza el comando
        """
        result = self._redis_result(service, 'BGSAVE', cancellation=cancellation)
        # redis-cli puede salir con código distinto de cero ante una respuesta de error
        reply = (result.stdout.strip() or result.stderr.strip())
        if 'in progress' in reply.lower():
            self.logger.info(f"Ya había un guardado en curso en {service.name}, esperando a que termine")
            return False
        if not result.ok or self._is_error(reply):
            raise DumpFailed(service.name, f"BGSAVE rechazado: {reply or result.error_text()}")
        return reply.lower().startswith('background saving started')

    def _last_save(self, service: ServiceDescriptor, cancellation=None) -> int:
        reply = self._redis(service, 'LASTSAVE', cancellation=cancellation)
        try:
            return int(reply.split()[-1])
        except (ValueError, IndexError):
            raise DumpFailed(service.name, f"respuesta inesperada de LASTSAVE: {reply!r}")

    def _persistence_info(self, service: ServiceDescriptor, cancellation=None) -> Dict[str, str]:
        reply = self._redis(service, 'INFO', 'persistence', cancellation=cancellation)
        info = {}
        for line in reply.splitlines():
            if ':' in line and not line.startswith('#'):
                key, _, value = line.partition(':')
                info[key.strip()] = value.strip()
        return info

    def _redis(self, service: ServiceDescriptor, *args, cancellation=None) -> str:
        result = self._redis_result(service, *args, cancellation=cancellation)
        if not result.ok:
            raise DumpFailed(service.name, result.error_text())
        return result.stdout.strip()

    def _redis_result(self, service: ServiceDescriptor, *args, cancellation=None) -> CommandResult:
        return self.runner.exec(
            service.name,
            ['redis-cli', *args],
            env=credential_env('REDISCLI_AUTH', service.password),
            cancellation=cancellation,
            timeout=self.settings.command_timeout
        )

    @staticmethod
    def _is_error(reply: str) -> bool:
        return reply.startswith('ERR') or reply.startswith('(error)')
