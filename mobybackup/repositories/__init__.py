"""
Repositorios de configuración
"""
