"""
Utilidades del módulo de Reportes

Preparación de filas para la exportación CSV de reportes.
"""

from datetime import date
from typing import Any, Dict, List

from app.common.csv_export import format_csv_value
from ..schemas import ReporteGanancias


CSV_HEADERS = {
    "ganancias_diarias": {
        "fecha": "Fecha",
        "total_transacciones": "Transacciones",
        "monto_operado": "Monto Operado",
        "ganancia": "Ganancia",
    },
    "ganancias_ventanillas": {
        "ventanilla_nombre": "Ventanilla",
        "total_transacciones": "Transacciones",
        "monto_operado": "Monto Operado",
        "ganancia": "Ganancia",
    },
}


def prepare_ganancias_csv(reporte: ReporteGanancias) -> List[Dict[str, Any]]:
    """Una fila por día del reporte, montos con 2 decimales."""
    return [
        {
            "fecha": dia.fecha,
            "total_transacciones": dia.total_transacciones,
            "monto_operado": format_csv_value(dia.monto_operado, 2),
            "ganancia": format_csv_value(dia.ganancia, 2),
        }
        for dia in reporte.transacciones_por_dia
    ]


def prepare_ventanillas_csv(reporte: ReporteGanancias) -> List[Dict[str, Any]]:
    return [
        {
            "ventanilla_nombre": v.ventanilla_nombre,
            "total_transacciones": v.total_transacciones,
            "monto_operado": format_csv_value(v.monto_operado, 2),
            "ganancia": format_csv_value(v.ganancia, 2),
        }
        for v in reporte.ventanillas
    ]


def nombre_archivo_reporte(prefijo: str, fecha_inicio: date, fecha_fin: date) -> str:
    return f"{prefijo}_{fecha_inicio.isoformat()}_{fecha_fin.isoformat()}.csv"
