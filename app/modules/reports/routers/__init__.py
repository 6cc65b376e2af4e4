"""
Routers del módulo de Reportes
"""

from .ganancias import router as ganancias_router

__all__ = ["ganancias_router"]
