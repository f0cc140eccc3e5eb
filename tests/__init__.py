"""
Tests del sistema de backup
"""
import os
import tempfile

# Los logs de los tests no deben escribirse en el directorio del proyecto
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="mobybackup_test_logs_"))
