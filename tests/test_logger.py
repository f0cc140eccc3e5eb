"""
Tests para LoggerService
"""
import logging
import unittest
from pathlib import Path
import tempfile
import shutil
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from mobybackup.config import Config
from mobybackup.logger import LoggerService


class TestLoggerService(unittest.TestCase):
    """Tests para LoggerService"""

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.saved = {'LOG_DIR': Config.LOG_DIR, 'LOG_LEVEL': Config.LOG_LEVEL}
        Config.LOG_DIR = self.test_dir / "logs"
        Config.LOG_LEVEL = logging.INFO
        LoggerService.configure()

    def tearDown(self):
        for name, value in self.saved.items():
            setattr(Config, name, value)
        LoggerService.configure()
        shutil.rmtree(self.test_dir)

    def _flush(self):
        for handler in logging.getLogger(LoggerService.ROOT_NAME).handlers:
            handler.flush()

    def test_components_share_daily_file(self):
        """Test todos los componentes escriben en el mismo archivo del día"""
        LoggerService.get_logger("BackupService").info("backup iniciado")
        LoggerService.get_logger("CleanupService").info("limpieza iniciada")
        self._flush()

        self.assertEqual(LoggerService.log_file().parent, self.test_dir / "logs")
        self.assertTrue(LoggerService.log_file().name.startswith("mobybackup_"))
        content = LoggerService.log_file().read_text(encoding='utf-8')
        self.assertIn("mobybackup.BackupService - INFO - backup iniciado", content)
        self.assertIn("mobybackup.CleanupService - INFO - limpieza iniciada", content)
        self.assertEqual([p.name for p in (self.test_dir / "logs").iterdir()],
                         [LoggerService.log_file().name])

    def test_reconfigure_moves_existing_loggers(self):
        """Test un logger ya entregado sigue al nuevo LOG_DIR tras reconfigurar"""
        logger = LoggerService.get_logger("Main")
        first_file = LoggerService.log_file()

        Config.LOG_DIR = self.test_dir / "otros"
        LoggerService.configure()
        logger.info("después de reconfigurar")
        self._flush()

        self.assertIn("después de reconfigurar", LoggerService.log_file().read_text(encoding='utf-8'))
        self.assertNotIn("después de reconfigurar", first_file.read_text(encoding='utf-8'))
        self.assertEqual(len(logging.getLogger(LoggerService.ROOT_NAME).handlers), 2)

    def test_level_from_config(self):
        Config.LOG_LEVEL = logging.WARNING
        LoggerService.configure()
        logger = LoggerService.get_logger("Scheduler")
        logger.info("no debe aparecer")
        logger.warning("sí debe aparecer")
        self._flush()

        content = LoggerService.log_file().read_text(encoding='utf-8')
        self.assertNotIn("no debe aparecer", content)
        self.assertIn("sí debe aparecer", content)

    def test_unusable_log_dir_falls_back_to_console(self):
        blocker = self.test_dir / "archivo"
        blocker.write_text("x")
        Config.LOG_DIR = blocker / "logs"
        root = LoggerService.configure()
        self.assertEqual([type(h) for h in root.handlers], [logging.StreamHandler])


if __name__ == '__main__':
    unittest.main()
