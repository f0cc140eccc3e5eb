"""
Bloqueo a nivel de ejecución sobre el directorio de backups
"""
import os
import time
from pathlib import Path
from typing import Optional

from .exceptions import FatalSetupError, RunLockedError
from .logger import LoggerService


class RunLock:
    """
    Archivo de bloqueo que impide dos ejecuciones simultáneas

    El archivo se crea de forma exclusiva y contiene el PID del dueño. Un
    bloqueo cuyo PID ya no existe se considera abandonado y se reemplaza.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.acquired = False
        self.logger = LoggerService.get_logger("RunLock")

    def acquire(self):
        """
        Raises:
            RunLockedError: Si otra ejecución mantiene el bloqueo
            FatalSetupError: Si no se pudo crear el archivo de bloqueo
        """
        for _ in range(2):
            try:
                fd = os.open(str(self.path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                owner = self._read_owner()
                if owner is None and self._recently_created():
                    raise RunLockedError(f"Otra ejecución está creando el bloqueo {self.path}")
                if owner is not None and self._pid_alive(owner):
                    raise RunLockedError(
                        f"Otra ejecución (PID {owner}) mantiene el bloqueo {self.path}"
                    )
                self.logger.warning(f"Eliminando bloqueo abandonado: {self.path} (PID {owner})")
                try:
                    self.path.unlink()
                except FileNotFoundError:
                    pass
                continue
            except OSError as e:
                raise FatalSetupError(f"No se pudo crear el bloqueo {self.path}: {e}")

            with os.fdopen(fd, 'w') as f:
                f.write(str(os.getpid()))
            self.acquired = True
            return

        raise RunLockedError(f"No se pudo adquirir el bloqueo {self.path}")

    def release(self):
        if not self.acquired:
            return
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"No se pudo liberar el bloqueo {self.path}: {e}")
        self.acquired = False

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    def _read_owner(self) -> Optional[int]:
        try:
            return int(self.path.read_text().strip())
        except (OSError, ValueError):
            return None

    def _recently_created(self, seconds: float = 5.0) -> bool:
        try:
            return time.time() - self.path.stat().st_mtime < seconds
        except OSError:
            return False

    @staticmethod
    def _pid_alive(pid: int) -> bool:
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            return True
        return True
