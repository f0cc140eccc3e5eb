"""
Tests unitarios para el bloqueo de ejecución
"""
import os
import unittest
from pathlib import Path
import tempfile
import shutil
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from mobybackup.exceptions import RunLockedError
from mobybackup.lock import RunLock


class TestRunLock(unittest.TestCase):
    """Tests para RunLock"""

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.lock_file = self.test_dir / ".mobybackup.lock"

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_acquire_and_release(self):
        with RunLock(self.lock_file) as lock:
            self.assertTrue(lock.acquired)
            self.assertEqual(self.lock_file.read_text(), str(os.getpid()))
        self.assertFalse(self.lock_file.exists())

    def test_second_run_is_rejected(self):
        """Test dos ejecuciones simultáneas sobre el mismo directorio"""
        with RunLock(self.lock_file):
            with self.assertRaises(RunLockedError):
                RunLock(self.lock_file).acquire()
        self.assertFalse(self.lock_file.exists())

    def test_stale_lock_is_replaced(self):
        """Test un bloqueo cuyo proceso ya no existe se reemplaza"""
        self.lock_file.write_text("999999999")
        os.utime(self.lock_file, (0, 0))
        with RunLock(self.lock_file) as lock:
            self.assertTrue(lock.acquired)
            self.assertEqual(self.lock_file.read_text(), str(os.getpid()))

    def test_release_is_idempotent(self):
        lock = RunLock(self.lock_file)
        lock.acquire()
        lock.release()
        lock.release()
        self.assertFalse(self.lock_file.exists())


if __name__ == '__main__':
    unittest.main()
