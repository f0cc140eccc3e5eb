"""
Configuración centralizada del sistema de backup
"""
import logging
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv, find_dotenv


def _log_dir(base_dir: Path) -> Path:
    # Relativo al directorio del .env, igual que BACKUP_DIR
    log_dir = Path(os.getenv("LOG_DIR") or "logs")
    return log_dir if log_dir.is_absolute() else base_dir / log_dir


def _log_level() -> int:
    return getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)


class Config:
    """Configuración centralizada del sistema"""

    ENV_FILE = find_dotenv(usecwd=True)

    # Cargar variables de entorno desde el .env del proyecto
    load_dotenv(ENV_FILE)

    # BASE_DIR es la raíz donde vive el .env (o el directorio actual)
    BASE_DIR = Path(ENV_FILE).parent if ENV_FILE else Path.cwd()

    LOG_DIR = _log_dir(BASE_DIR)
    CONFIG_FILE = BASE_DIR / "config.json"

    LOCK_FILE_NAME = ".mobybackup.lock"
    TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

    LOG_LEVEL = _log_level()
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    # Valores por defecto de un entorno local de desarrollo (no aptos para producción)
    ENV_DEFAULTS = {
        "BACKUP_DIR": "./backups",
        "RETENTION_DAYS": "7",
        "BACKUP_COMPRESS": "true",
        "REDIS_SAVE_TIMEOUT": "5",
        "REDIS_POLL_INTERVAL": "0.5",
        "COMMAND_TIMEOUT": "3600",
        "RUN_TIMEOUT": "",
        "BACKUP_SCHEDULE": "02:00",
        "COMPOSE_COMMAND": "docker-compose",
        "COMPOSE_FILE": "",
        "COMPOSE_PROJECT_DIR": "",
        "REDIS_DUMP_PATH": "/data/dump.rdb",
        "CONTAINER_TMP_DIR": "/tmp",
        "MARIADB_SERVICE": "mariadb",
        "MARIADB_ROOT_PASSWORD": "password",
        "POSTGRES_SERVICE": "postgres",
        "POSTGRES_USER": "dev",
        "POSTGRES_PASSWORD": "",
        "POSTGRES_DB": "app_db",
        "MONGO_SERVICE": "mongo",
        "MONGO_INITDB_ROOT_USERNAME": "root",
        "MONGO_INITDB_ROOT_PASSWORD": "password",
        "REDIS_SERVICE": "redis",
        "REDIS_PASSWORD": "",
    }

    # Servicios del stack de desarrollo, en el orden fijo de ejecución
    DEFAULT_SERVICES = [
        {
            "name": "${MARIADB_SERVICE}",
            "engine": "mariadb",
            "user": "root",
            "password": "${MARIADB_ROOT_PASSWORD}",
            "enabled": True
        },
        {
            "name": "${POSTGRES_SERVICE}",
            "engine": "postgres",
            "user": "${POSTGRES_USER}",
            "password": "${POSTGRES_PASSWORD}",
            "database": "${POSTGRES_DB}",
            "enabled": True
        },
        {
            "name": "${MONGO_SERVICE}",
            "engine": "mongodb",
            "user": "${MONGO_INITDB_ROOT_USERNAME}",
            "password": "${MONGO_INITDB_ROOT_PASSWORD}",
            "enabled": True
        },
        {
            "name": "${REDIS_SERVICE}",
            "engine": "redis",
            "password": "${REDIS_PASSWORD}",
            "enabled": True
        }
    ]

    @classmethod
    def ensure_log_directory(cls) -> bool:
        """Crea el directorio de logs si no existe"""
        try:
            cls.LOG_DIR.mkdir(parents=True, exist_ok=True)
            return True
        except OSError:
            return False

    @classmethod
    def reload(cls, env_file: Optional[Path] = None):
        """
        Carga un .env alternativo y recalcula los valores derivados del entorno

        Args:
            env_file: Archivo .env; sus variables tienen prioridad sobre las ya cargadas
        """
        if env_file is not None:
            env_file = Path(env_file).resolve()
            load_dotenv(env_file, override=True)
            cls.ENV_FILE = str(env_file)
            cls.BASE_DIR = env_file.parent
            cls.CONFIG_FILE = cls.BASE_DIR / "config.json"
        cls.LOG_DIR = _log_dir(cls.BASE_DIR)
        cls.LOG_LEVEL = _log_level()
