"""
Repositorio para manejar configuración (Dependency Inversion)
"""
import json
import os
import shlex
from pathlib import Path
from typing import Dict, List, Mapping, Optional
from ..config import Config
from ..exceptions import FatalSetupError
from ..logger import LoggerService
from ..models import BackupSettings, EngineKind, ServiceDescriptor


class ConfigRepository:
    """
    Repositorio para manejar configuración

    Precedencia: variables de entorno, después la sección backup_settings
    del archivo JSON y por último Config.ENV_DEFAULTS.
    """

    # Campo de BackupSettings -> variable de entorno
    SETTINGS_KEYS = {
        'backup_dir': 'BACKUP_DIR',
        'retention_days': 'RETENTION_DAYS',
        'compress': 'BACKUP_COMPRESS',
        'redis_save_timeout': 'REDIS_SAVE_TIMEOUT',
        'redis_poll_interval': 'REDIS_POLL_INTERVAL',
        'command_timeout': 'COMMAND_TIMEOUT',
        'run_timeout': 'RUN_TIMEOUT',
        'schedule': 'BACKUP_SCHEDULE',
        'compose_command': 'COMPOSE_COMMAND',
        'compose_file': 'COMPOSE_FILE',
        'project_dir': 'COMPOSE_PROJECT_DIR',
        'redis_dump_path': 'REDIS_DUMP_PATH',
        'container_tmp_dir': 'CONTAINER_TMP_DIR',
    }

    def __init__(self, config_file: Optional[Path] = None, env: Optional[Mapping[str, str]] = None,
                 base_dir: Optional[Path] = None):
        """
        Inicializa el repositorio de configuración

        Args:
            config_file: Ruta al archivo de configuración JSON (opcional)
            env: Variables de entorno (por defecto, os.environ)
            base_dir: Directorio base para rutas relativas
        """
        self.env = env if env is not None else os.environ
        self.base_dir = Path(base_dir) if base_dir else Config.BASE_DIR
        if config_file is None and self.env.get('BACKUP_CONFIG_FILE'):
            config_file = Path(self.env['BACKUP_CONFIG_FILE'])
        self.config_file = Path(config_file) if config_file else Config.CONFIG_FILE
        self.logger = LoggerService.get_logger("ConfigRepository")
        self._raw_config = None

    def load(self) -> Dict:
        """
        Carga configuración desde archivo JSON

        Returns:
            Diccionario con la configuración (vacío si no hay archivo)

        Raises:
            FatalSetupError: Si el archivo existe pero no se puede leer o interpretar
        """
        if not self.config_file.exists():
            self.logger.debug(f"Sin archivo de configuración, usando valores por defecto: {self.config_file}")
            self._raw_config = {}
            return self._raw_config

        try:
            with open(self.config_file, "r", encoding='utf-8') as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise FatalSetupError(f"Error al parsear JSON {self.config_file}: {e}")
        except OSError as e:
            raise FatalSetupError(f"No se pudo leer {self.config_file}: {e}")

        if not isinstance(raw, dict):
            raise FatalSetupError(f"La configuración debe ser un objeto JSON: {self.config_file}")

        self._raw_config = raw
        self.logger.info(f"Configuración cargada exitosamente: {self.config_file}")
        return self._raw_config

    def save(self, config: Dict) -> bool:
        """
        Guarda configuración en archivo JSON

        Args:
            config: Diccionario con la configuración

        Returns:
            True si se guardó exitosamente
        """
        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w", encoding='utf-8') as f:
                json.dump(config, f, indent=4, ensure_ascii=False)
            self.logger.info(f"Configuración guardada exitosamente: {self.config_file}")
            return True
        except OSError as e:
            self.logger.error(f"Error al guardar la configuración: {str(e)}")
            return False

    def get(self, key: str) -> str:
        """Valor de una variable de entorno o su valor por defecto"""
        value = self.env.get(key)
        if value is not None and value != "":
            return value
        return Config.ENV_DEFAULTS.get(key, "")

    def get_services(self) -> List[ServiceDescriptor]:
        """
        Obtiene la lista de servicios configurados

        Returns:
            Lista de ServiceDescriptor

        Raises:
            FatalSetupError: Si algún servicio es inválido o está repetido
        """
        raw = self._raw()
        # Una lista vacía explícita significa "ningún servicio", no los valores por defecto
        entries = raw['services'] if 'services' in raw else Config.DEFAULT_SERVICES
        if not isinstance(entries, list):
            raise FatalSetupError("'services' debe ser una lista")
        if not entries:
            self.logger.warning("La configuración no declara ningún servicio")

        services = []
        for entry in entries:
            try:
                service = ServiceDescriptor(
                    name=self._resolve_credential(str(entry.get('name', ''))),
                    engine=EngineKind.from_string(entry.get('engine', '')),
                    user=self._resolve_credential(str(entry.get('user', ''))),
                    password=self._resolve_credential(str(entry.get('password', ''))),
                    database=self._resolve_credential(str(entry['database'])) if entry.get('database') else None,
                    enabled=self._to_bool(entry.get('enabled', True))
                )
            except (ValueError, AttributeError) as e:
                raise FatalSetupError(f"Servicio inválido en configuración: {e}")
            services.append(service)

        self._validate_unique(services)
        return services

    def get_backup_settings(self) -> BackupSettings:
        """
        Obtiene configuración de backups

        Returns:
            Objeto BackupSettings

        Raises:
            FatalSetupError: Si algún valor es inválido
        """
        try:
            run_timeout = self._setting('run_timeout')
            compose_file = self._setting('compose_file')
            project_dir = self._setting('project_dir')
            return BackupSettings(
                backup_dir=self._resolve_path(self._setting('backup_dir')),
                retention_days=self._to_int(self._setting('retention_days')),
                compress=self._to_bool(self._setting('compress')),
                redis_save_timeout=float(self._setting('redis_save_timeout')),
                redis_poll_interval=float(self._setting('redis_poll_interval')),
                command_timeout=float(self._setting('command_timeout')),
                run_timeout=float(run_timeout) if run_timeout not in (None, "") else None,
                schedule=self._to_list(self._setting('schedule')),
                compose_command=self._to_command(self._setting('compose_command')),
                compose_file=str(compose_file) if compose_file else None,
                project_dir=self._resolve_path(project_dir) if project_dir else None,
                redis_dump_path=str(self._setting('redis_dump_path')),
                container_tmp_dir=str(self._setting('container_tmp_dir'))
            )
        except (TypeError, ValueError) as e:
            raise FatalSetupError(f"Configuración de backups inválida: {e}")

    def create_example_config(self) -> bool:
        """
        Crea un archivo de configuración de ejemplo

        Returns:
            True si se creó exitosamente
        """
        example = {
            "services": Config.DEFAULT_SERVICES,
            "backup_settings": {
                "retention_days": int(Config.ENV_DEFAULTS['RETENTION_DAYS']),
                "compress": True,
                "schedule": [Config.ENV_DEFAULTS['BACKUP_SCHEDULE']],
                "redis_save_timeout": float(Config.ENV_DEFAULTS['REDIS_SAVE_TIMEOUT'])
            }
        }
        return self.save(example)

    def _raw(self) -> Dict:
        if self._raw_config is None:
            self.load()
        return self._raw_config

    def _setting(self, field_name: str):
        env_key = self.SETTINGS_KEYS[field_name]
        value = self.env.get(env_key)
        if value is not None and value != "":
            return value
        file_settings = self._raw().get('backup_settings') or {}
        if field_name in file_settings and file_settings[field_name] is not None:
            return file_settings[field_name]
        return Config.ENV_DEFAULTS[env_key]

    def _resolve_credential(self, value: str) -> str:
        """
        Resuelve credencial desde variable de entorno si es necesario

        Args:
            value: Valor que puede contener referencia a variable de entorno

        Returns:
            Valor resuelto
        """
        if value.startswith("${") and value.endswith("}"):
            env_var = value[2:-1]
            resolved = self.get(env_var)
            if not resolved and env_var not in Config.ENV_DEFAULTS:
                self.logger.warning(f"Variable de entorno no encontrada: {env_var}")
            return resolved
        return value

    def _resolve_path(self, value) -> Path:
        path = Path(str(value)).expanduser()
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    @staticmethod
    def _validate_unique(services: List[ServiceDescriptor]):
        names = set()
        engines = set()
        for service in services:
            if service.name in names:
                raise FatalSetupError(f"Servicio repetido en configuración: {service.name}")
            if service.engine in engines:
                raise FatalSetupError(
                    f"Solo se admite un servicio por motor: {service.engine.value} está repetido"
                )
            names.add(service.name)
            engines.add(service.engine)

    @staticmethod
    def _to_int(value) -> int:
        if isinstance(value, bool):
            raise ValueError(f"Se esperaba un entero: {value}")
        return int(str(value).strip())

    @staticmethod
    def _to_bool(value) -> bool:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in ('1', 'true', 'yes', 'on', 'si', 'sí'):
            return True
        if text in ('0', 'false', 'no', 'off'):
            return False
        raise ValueError(f"Valor booleano inválido: {value}")

    @staticmethod
    def _to_list(value) -> List[str]:
        if isinstance(value, (list, tuple)):
            return [str(item).strip() for item in value if str(item).strip()]
        return [item.strip() for item in str(value).split(',') if item.strip()]

    @staticmethod
    def _to_command(value) -> List[str]:
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value]
        return shlex.split(str(value))
