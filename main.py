#!/usr/bin/env python3
"""
Backup de las bases de datos del entorno de desarrollo MobyDock
Punto de entrada principal

Uso:
    python main.py                      # Ejecutar backup una vez
    python main.py scheduler            # Modo scheduler (automático)
    python main.py --service mariadb    # Backup de un servicio específico
    python main.py --help               # Ayuda
"""
import sys
from pathlib import Path

# Agregar la raíz del proyecto al path
sys.path.insert(0, str(Path(__file__).parent))

from mobybackup.cli import main


if __name__ == "__main__":
    sys.exit(main())
