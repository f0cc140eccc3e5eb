"""
Factories de la aplicación
"""
