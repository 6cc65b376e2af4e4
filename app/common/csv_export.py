"""
Exportación CSV compartida por historial y reportes
"""

import csv
import io
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import Response


def build_csv(data: List[Dict[str, Any]], headers: Dict[str, str]) -> str:
    """
    Arma el CSV: una fila de encabezados seguida de una fila por registro.

    Args:
        data: registros a exportar
        headers: mapeo campo -> nombre de columna (define el orden)
    """
    output = io.StringIO()
    fieldnames = list(headers.keys())
    writer = csv.DictWriter(output, fieldnames=fieldnames, extrasaction="ignore", lineterminator="\n")
    writer.writerow(headers)
    for row in data:
        writer.writerow({key: format_csv_value(row.get(key)) for key in fieldnames})
    content = output.getvalue()
    output.close()
    return content


def create_csv_response(
    data: List[Dict[str, Any]],
    filename: str,
    headers: Dict[str, str]
) -> Response:
    """Respuesta de descarga con el CSV generado."""
    return Response(
        content=build_csv(data, headers),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
            "Content-Type": "text/csv; charset=utf-8"
        }
    )


def format_csv_value(value: Any, decimals: Optional[int] = None) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Sí" if value else "No"
    if isinstance(value, Decimal):
        if decimals is not None:
            return f"{value:.{decimals}f}"
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)
