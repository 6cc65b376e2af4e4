"""
Servicios del módulo de Reportes
"""

from .ganancias import ReporteService

__all__ = ["ReporteService"]
