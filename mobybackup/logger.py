"""
Servicio de logging siguiendo principio Single Responsibility

Todos los componentes escriben en hijos del logger "mobybackup"; los
handlers (consola y archivo diario) viven solo en ese logger raíz, de modo
que se pueden reconfigurar sin recrear los loggers ya entregados.
"""
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional
from .config import Config


class LoggerService:
    """Servicio centralizado de logging"""

    ROOT_NAME = "mobybackup"

    _loggers = {}
    _configured = False

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Obtiene o crea un logger con el nombre especificado

        Args:
            name: Nombre del componente (BackupService, CleanupService, ...)

        Returns:
            Logger hijo de "mobybackup"
        """
        if not cls._configured:
            cls.configure()

        if name not in cls._loggers:
            cls._loggers[name] = logging.getLogger(f"{cls.ROOT_NAME}.{name}")
        return cls._loggers[name]

    @classmethod
    def configure(cls) -> logging.Logger:
        """
        Instala los handlers del logger raíz con los valores actuales de Config

        Se vuelve a llamar después de Config.reload() para aplicar un LOG_DIR
        o LOG_LEVEL distinto; los handlers anteriores se cierran.

        Returns:
            Logger raíz del paquete
        """
        root = logging.getLogger(cls.ROOT_NAME)
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

        root.setLevel(Config.LOG_LEVEL)
        root.propagate = False
        formatter = logging.Formatter(Config.LOG_FORMAT)

        file_handler = cls._file_handler()
        if file_handler is not None:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

        cls._configured = True
        return root

    @classmethod
    def log_file(cls) -> Path:
        """Archivo de log del día"""
        return Config.LOG_DIR / f"{cls.ROOT_NAME}_{datetime.now().strftime('%Y%m%d')}.log"

    @classmethod
    def _file_handler(cls) -> Optional[logging.FileHandler]:
        # Sin directorio de logs utilizable se registra solo en consola
        if not Config.ensure_log_directory():
            return None
        try:
            return logging.FileHandler(cls.log_file(), encoding='utf-8')
        except OSError:
            return None
