"""
Tests para el módulo de Reportes

Los endpoints /reportes de la API remota responden sin el sobre
``{success, data}``; se verifica la lectura directa y la exportación CSV.
"""

import pytest
from datetime import date

from app.modules.reports.schemas import ReporteFiltros, ReporteGanancias, TipoReporte
from app.modules.reports.services import ReporteService
from app.modules.reports.utils import nombre_archivo_reporte, prepare_ganancias_csv


REPORTE = {
    "tipo": "DIARIO",
    "fecha_inicio": "2024-01-01",
    "fecha_fin": "2024-01-02",
    "ganancia_total": 12.5,
    "total_transacciones": 3,
    "monto_total_operado": 1500,
    "ventanillas": [
        {"ventanilla_id": 1, "ventanilla_nombre": "Ventanilla 1", "ganancia": 12.5,
         "total_transacciones": 3, "monto_operado": 1500},
    ],
    "transacciones_por_dia": [
        {"fecha": "2024-01-01", "ganancia": 5, "total_transacciones": 1, "monto_operado": 375},
        {"fecha": "2024-01-02", "ganancia": 7.5, "total_transacciones": 2, "monto_operado": 1125.5},
    ],
}


class TestReporteFiltros:

    def test_route_by_type(self):
        assert TipoReporte.MENSUAL.ruta == "mensual"

    def test_end_before_start(self):
        with pytest.raises(ValueError):
            ReporteFiltros(casa_de_cambio_id=1, fecha_inicio=date(2024, 2, 1), fecha_fin=date(2024, 1, 1))


class TestReporteService:

    @pytest.mark.anyio
    async def test_reads_report_without_envelope(self, remote_api, api_client):
        remote_api.add("GET", "/reportes/ganancias/semanal", REPORTE)
        filtros = ReporteFiltros(
            tipo=TipoReporte.SEMANAL, casa_de_cambio_id=1,
            fecha_inicio=date(2024, 1, 1), fecha_fin=date(2024, 1, 2),
        )

        reporte = await ReporteService(api_client).get_ganancias(filtros)

        assert reporte.total_transacciones == 3
        request = remote_api.requests_to("GET", "/reportes/ganancias/semanal")[0]
        assert request.url.params["fecha_inicio"] == "2024-01-01"
        assert request.url.params["casa_de_cambio_id"] == "1"

    def test_csv_rows_have_two_decimals(self):
        filas = prepare_ganancias_csv(ReporteGanancias.model_validate(REPORTE))
        assert filas[1]["monto_operado"] == "1125.50"
        assert filas[0]["ganancia"] == "5.00"

    def test_filename(self):
        assert nombre_archivo_reporte("ganancias", date(2024, 1, 1), date(2024, 1, 31)) == \
            "ganancias_2024-01-01_2024-01-31.csv"


class TestReporteEndpoints:

    PARAMS = {"fecha_inicio": "2024-01-01", "fecha_fin": "2024-01-02"}

    def test_report_json(self, client, remote_api):
        remote_api.add("GET", "/reportes/ganancias/diario", REPORTE)
        response = client.get("/reportes/ganancias", params=self.PARAMS)
        assert response.status_code == 200
        assert response.json()["ganancia_total"] == 12.5

    def test_report_csv(self, client, remote_api):
        remote_api.add("GET", "/reportes/ganancias/diario", REPORTE)
        response = client.get("/reportes/ganancias", params={**self.PARAMS, "export": "csv"})
        assert response.status_code == 200
        assert "ganancias_2024-01-01_2024-01-02.csv" in response.headers["content-disposition"]
        assert response.text.splitlines() == [
            "Fecha,Transacciones,Monto Operado,Ganancia",
            "2024-01-01,1,375.00,5.00",
            "2024-01-02,2,1125.50,7.50",
        ]

    def test_window_csv(self, client, remote_api):
        remote_api.add("GET", "/reportes/ganancias/diario", REPORTE)
        response = client.get("/reportes/ganancias", params={**self.PARAMS, "export": "csv_ventanillas"})
        assert response.text.splitlines()[1] == "Ventanilla 1,3,1500.00,12.50"

    def test_invalid_range(self, client, remote_api):
        response = client.get("/reportes/ganancias", params={"fecha_inicio": "2024-02-01", "fecha_fin": "2024-01-01"})
        assert response.status_code == 422
        assert remote_api.calls == []

    def test_backend_error_without_envelope(self, client, remote_api):
        remote_api.add("GET", "/reportes/ganancias/diario", None, status_code=500)
        response = client.get("/reportes/ganancias", params=self.PARAMS)
        assert response.status_code == 502
        assert response.json()["error"] == "HTTP error! status: 500"
