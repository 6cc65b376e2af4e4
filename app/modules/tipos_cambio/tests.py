"""
Tests para el módulo de Tipos de Cambio

Cubren:
- Validación de tasas (venta > compra, spread máximo)
- Par activo duplicado, en cualquier sentido
- Confirmación en dos fases ante cambios drásticos
- Historial: filtros, orden, estadísticas y exportación CSV
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from app.core.exceptions import ConfirmacionRequeridaError, ParDuplicadoError, TipoCambioInvalidoError
from app.modules.tipos_cambio.guard import TipoCambioGuard, calcular_cambio, validar_tasas
from app.modules.tipos_cambio.history import (
    calcular_estadisticas, filtrar_historial, nombre_archivo_historial, prepare_historial_csv
)
from app.modules.tipos_cambio.schemas import HistorialFiltros, TipoCambioCreate, TipoCambioOut, TipoCambioUpdate
from app.modules.tipos_cambio.service import TipoCambioService


# ===== FIXTURES =====

USD = {"codigo": "USD", "nombre": "Dólar"}
PEN = {"codigo": "PEN", "nombre": "Sol"}
EUR = {"codigo": "EUR", "nombre": "Euro"}


def tipo_data(id, compra, venta, origen=2, destino=1, activo=True, fecha="2024-01-10T09:00:00",
              mantener=False):
    monedas = {1: PEN, 2: USD, 3: EUR}
    return {
        "id": id, "tipo_compra": compra, "tipo_venta": venta, "activo": activo,
        "fecha_vigencia": fecha, "mantener_cambio_diario": mantener, "casa_de_cambio_id": 1,
        "moneda_origen_id": origen, "moneda_destino_id": destino,
        "moneda_origen": monedas[origen], "moneda_destino": monedas[destino],
    }


USD_PEN_ACTIVO = tipo_data(5, 3.75, 3.80)
EUR_PEN_INACTIVO = tipo_data(6, 4.00, 4.20, origen=3, activo=False, fecha="2024-01-05T09:00:00", mantener=True)
USD_PEN_ANTERIOR = tipo_data(4, 3.70, 3.76, activo=False, fecha="2024-01-01T09:00:00")

ACTIVO_RESUMEN = {
    "id": 5, "par_monedas": "USD/PEN", "tipo_compra": 3.75, "tipo_venta": 3.80,
    "moneda_origen_id": 2, "moneda_destino_id": 1,
}


@pytest.fixture
def tipo_guard(api_client, guard):
    return TipoCambioGuard(TipoCambioService(api_client), guard)


@pytest.fixture
def historial():
    return [TipoCambioOut.model_validate(t) for t in (USD_PEN_ANTERIOR, USD_PEN_ACTIVO, EUR_PEN_INACTIVO)]


def nuevo(compra, venta, origen=2, destino=1):
    return TipoCambioCreate(
        tipo_compra=compra, tipo_venta=venta, casa_de_cambio_id=1,
        moneda_origen_id=origen, moneda_destino_id=destino,
    )


# ===== TASAS =====

class TestValidarTasas:

    def test_valid_rates(self):
        validar_tasas("3.75", "3.80")

    @pytest.mark.parametrize("compra,venta", [("3.80", "3.80"), ("3.80", "3.75")])
    def test_sell_must_exceed_buy(self, compra, venta):
        with pytest.raises(TipoCambioInvalidoError, match="venta debe ser mayor"):
            validar_tasas(compra, venta)

    def test_spread_limit(self):
        with pytest.raises(TipoCambioInvalidoError, match="no puede exceder"):
            validar_tasas("1.00", "1.60")

    def test_zero_rate(self):
        with pytest.raises(TipoCambioInvalidoError):
            validar_tasas("0", "3.80")

    def test_same_currency_rejected_by_schema(self):
        with pytest.raises(ValueError):
            nuevo("3.75", "3.80", origen=1, destino=1)


class TestCambioDrastico:

    def test_no_previous_rate(self):
        assert calcular_cambio(None, "3.75", "3.80").es_drastico is False

    def test_small_change(self):
        anterior = TipoCambioOut.model_validate(USD_PEN_ACTIVO)
        cambio = calcular_cambio(anterior, "3.76", "3.82")
        assert cambio.es_drastico is False
        assert cambio.tipo_anterior_id == 5

    def test_change_over_threshold(self):
        anterior = TipoCambioOut.model_validate(USD_PEN_ACTIVO)
        cambio = calcular_cambio(anterior, "3.75", "4.10")
        assert cambio.es_drastico is True
        assert cambio.cambio_compra == Decimal("0.00")
        assert cambio.cambio_venta == Decimal("7.89")


# ===== GUARDIA =====

class TestTipoCambioGuard:

    @pytest.mark.anyio
    async def test_invalid_rates_never_reach_network(self, remote_api, tipo_guard):
        with pytest.raises(TipoCambioInvalidoError):
            await tipo_guard.crear(nuevo("3.80", "3.75"))
        assert remote_api.calls == []

    @pytest.mark.anyio
    @pytest.mark.parametrize("origen,destino", [(2, 1), (1, 2)])
    async def test_duplicate_pair_in_either_direction(self, remote_api, tipo_guard, origen, destino):
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [ACTIVO_RESUMEN])

        assert await tipo_guard.existe_par_activo(1, origen, destino)
        with pytest.raises(ParDuplicadoError):
            await tipo_guard.crear(nuevo("3.70", "3.78", origen, destino))
        assert remote_api.requests_to("POST", "/tipos-cambio") == []

    @pytest.mark.anyio
    async def test_verificar_reports_duplicate(self, remote_api, tipo_guard):
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [ACTIVO_RESUMEN])
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1/completo", [USD_PEN_ACTIVO])

        verificacion = await tipo_guard.verificar(1, 1, 2, "3.70", "3.78")

        assert verificacion.existe_par_activo is True
        assert verificacion.puede_guardar is False

    @pytest.mark.anyio
    async def test_create_compares_against_latest_rate(self, remote_api, tipo_guard):
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [])
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1/completo", [USD_PEN_ANTERIOR, USD_PEN_ACTIVO])
        remote_api.ok("POST", "/tipos-cambio", tipo_data(7, 3.76, 3.81))

        creado = await tipo_guard.crear(nuevo("3.76", "3.81"))

        assert creado.id == 7
        assert remote_api.body(remote_api.requests_to("POST", "/tipos-cambio")[0]) == {
            "tipo_compra": 3.76, "tipo_venta": 3.81, "casa_de_cambio_id": 1,
            "moneda_origen_id": 2, "moneda_destino_id": 1,
        }

    @pytest.mark.anyio
    async def test_drastic_edit_requires_confirmation(self, remote_api, tipo_guard):
        remote_api.ok("GET", "/tipos-cambio/5", USD_PEN_ACTIVO)
        remote_api.ok("PUT", "/tipos-cambio/5", tipo_data(5, 3.75, 4.10))
        cambio = TipoCambioUpdate(tipo_venta="4.10")

        with pytest.raises(ConfirmacionRequeridaError) as exc_info:
            await tipo_guard.actualizar(5, cambio)
        assert exc_info.value.cambio_venta == Decimal("7.89")
        assert remote_api.requests_to("PUT", "/tipos-cambio/5") == []

        actualizado = await tipo_guard.actualizar(5, cambio, confirmar=True)
        assert actualizado.tipo_venta == Decimal("4.1")
        assert remote_api.body(remote_api.requests_to("PUT", "/tipos-cambio/5")[0]) == {"tipo_venta": 4.1}

    @pytest.mark.anyio
    async def test_reactivation_cannot_duplicate_pair(self, remote_api, tipo_guard):
        remote_api.ok("GET", "/tipos-cambio/4", {**USD_PEN_ANTERIOR})
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [ACTIVO_RESUMEN])

        with pytest.raises(ParDuplicadoError):
            await tipo_guard.actualizar(4, TipoCambioUpdate(activo=True))
        assert remote_api.requests_to("PUT", "/tipos-cambio/4") == []

    @pytest.mark.anyio
    async def test_activar_cannot_duplicate_pair(self, remote_api, tipo_guard):
        remote_api.ok("GET", "/tipos-cambio/4", USD_PEN_ANTERIOR)
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [ACTIVO_RESUMEN])

        with pytest.raises(ParDuplicadoError):
            await tipo_guard.activar(4)
        assert remote_api.requests_to("PATCH", "/tipos-cambio/4/activar") == []

    @pytest.mark.anyio
    async def test_activar_free_pair(self, remote_api, tipo_guard):
        remote_api.ok("GET", "/tipos-cambio/4", USD_PEN_ANTERIOR)
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [])
        remote_api.ok("PATCH", "/tipos-cambio/4/activar", {**USD_PEN_ANTERIOR, "activo": True})

        activado = await tipo_guard.activar(4)

        assert activado.activo is True
        assert len(remote_api.requests_to("PATCH", "/tipos-cambio/4/activar")) == 1

    @pytest.mark.anyio
    async def test_activar_already_active_is_noop(self, remote_api, tipo_guard):
        remote_api.ok("GET", "/tipos-cambio/5", USD_PEN_ACTIVO)

        assert (await tipo_guard.activar(5)).id == 5
        assert remote_api.requests_to("PATCH", "/tipos-cambio/5/activar") == []


# ===== HISTORIAL =====

class TestHistorial:

    def test_default_order_is_newest_first(self, historial):
        assert [t.id for t in filtrar_historial(historial, HistorialFiltros())] == [5, 6, 4]

    def test_search_by_currency_name(self, historial):
        filtrados = filtrar_historial(historial, HistorialFiltros(busqueda=" euro "))
        assert [t.id for t in filtrados] == [6]

    def test_state_and_range_filters(self, historial):
        filtros = HistorialFiltros(estado="inactivo", compra_minima=Decimal("3.9"))
        assert [t.id for t in filtrar_historial(historial, filtros)] == [6]
        assert filtros.activos() == 2

    def test_date_filter(self, historial):
        filtros = HistorialFiltros(fecha_desde=date(2024, 1, 5), fecha_hasta=date(2024, 1, 9))
        assert [t.id for t in filtrar_historial(historial, filtros)] == [6]

    def test_sort_by_spread(self, historial):
        filtrados = filtrar_historial(historial, HistorialFiltros(ordenar_por="spread_asc"))
        assert [t.id for t in filtrados] == [5, 4, 6]

    def test_statistics(self, historial):
        estadisticas = calcular_estadisticas(historial)
        assert estadisticas.total == 3
        assert estadisticas.activos == 1
        assert estadisticas.inactivos == 2
        assert estadisticas.con_mantener_diario == 1
        assert estadisticas.spread_maximo == Decimal("5.00")
        assert estadisticas.spread_minimo == Decimal("1.33")

    def test_empty_statistics(self):
        assert calcular_estadisticas([]).total == 0

    def test_csv_rows(self, historial):
        filas = prepare_historial_csv(historial[1:2])
        assert filas == [{
            "fecha": "2024-01-10", "par_monedas": "USD/PEN", "tipo_compra": "3.7500",
            "tipo_venta": "3.8000", "estado": "Activo", "usuario": "Sistema",
        }]

    def test_csv_filename(self):
        assert nombre_archivo_historial(date(2024, 3, 1)) == "historial-tipos-cambio-2024-03-01.csv"


# ===== ENDPOINTS =====

class TestTipoCambioEndpoints:

    def test_create_invalid_rates(self, client, remote_api):
        response = client.post("/tipos-cambio/", json={
            "tipo_compra": 3.80, "tipo_venta": 3.75, "casa_de_cambio_id": 1,
            "moneda_origen_id": 2, "moneda_destino_id": 1,
        })
        assert response.status_code == 422
        assert remote_api.calls == []

    def test_create_duplicate_pair(self, client, remote_api):
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [ACTIVO_RESUMEN])
        response = client.post("/tipos-cambio/", json={
            "tipo_compra": 3.70, "tipo_venta": 3.78, "casa_de_cambio_id": 1,
            "moneda_origen_id": 1, "moneda_destino_id": 2,
        })
        assert response.status_code == 422
        assert response.json()["error"] == "Ya existe un tipo de cambio activo para este par de monedas"

    def test_drastic_edit_two_phases(self, client, remote_api):
        remote_api.ok("GET", "/tipos-cambio/5", USD_PEN_ACTIVO)
        remote_api.ok("PUT", "/tipos-cambio/5", tipo_data(5, 3.75, 4.10))

        response = client.put("/tipos-cambio/5", json={"tipo_venta": 4.10})
        assert response.status_code == 409
        body = response.json()
        assert body["requiere_confirmacion"] is True
        assert body["cambio_venta"] == 7.89

        response = client.put("/tipos-cambio/5", json={"tipo_venta": 4.10, "confirmar": True})
        assert response.status_code == 200
        assert response.json()["tipo_venta"] == 4.1
        assert len(remote_api.requests_to("PUT", "/tipos-cambio/5")) == 1

    def test_verificar(self, client, remote_api):
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [])
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1/completo", [USD_PEN_ACTIVO])
        response = client.get("/tipos-cambio/verificar", params={
            "moneda_origen_id": 2, "moneda_destino_id": 1, "tipo_compra": "3.75", "tipo_venta": "4.10",
        })
        assert response.status_code == 200
        data = response.json()
        assert data["puede_guardar"] is True
        assert data["cambio"]["es_drastico"] is True

    def test_historial_filters(self, client, remote_api):
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1/completo",
                      [USD_PEN_ANTERIOR, USD_PEN_ACTIVO, EUR_PEN_INACTIVO])
        response = client.get("/tipos-cambio/historial", params={"estado": "activo"})
        assert response.status_code == 200
        data = response.json()
        assert data["total_registros"] == 3
        assert data["registros_filtrados"] == 1
        assert data["filtros_activos"] == 1

    def test_historial_export(self, client, remote_api):
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1/completo", [USD_PEN_ACTIVO, EUR_PEN_INACTIVO])
        response = client.get("/tipos-cambio/historial/export")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "historial-tipos-cambio-" in response.headers["content-disposition"]
        lines = response.text.splitlines()
        assert lines[0] == "Fecha,Par Monedas,Tipo Compra,Tipo Venta,Estado,Usuario"
        assert lines[1] == "2024-01-10,USD/PEN,3.7500,3.8000,Activo,Sistema"
        assert lines[2] == "2024-01-05,EUR/PEN,4.0000,4.2000,Inactivo,Sistema"

    def test_activar_duplicate_pair_is_rejected(self, client, remote_api):
        remote_api.ok("GET", "/tipos-cambio/4", USD_PEN_ANTERIOR)
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [ACTIVO_RESUMEN])
        response = client.patch("/tipos-cambio/4/activar")
        assert response.status_code == 422
        assert response.json()["error"] == "Ya existe un tipo de cambio activo para este par de monedas"

    def test_desactivar(self, client, remote_api):
        remote_api.ok("PATCH", "/tipos-cambio/5/desactivar", {**USD_PEN_ACTIVO, "activo": False})
        response = client.patch("/tipos-cambio/5/desactivar")
        assert response.status_code == 200
        assert response.json()["activo"] is False

    def test_vigente(self, client, remote_api):
        remote_api.ok("POST", "/tipos-cambio/vigente", USD_PEN_ACTIVO)
        response = client.get("/tipos-cambio/vigente", params={"moneda_origen_id": 2, "moneda_destino_id": 1})
        assert response.status_code == 200
        assert response.json()["id"] == 5
        body = remote_api.body(remote_api.requests_to("POST", "/tipos-cambio/vigente")[0])
        assert body == {"moneda_origen_id": 2, "moneda_destino_id": 1, "casa_de_cambio_id": 1}

    def test_historial_por_par(self, client, remote_api):
        remote_api.ok("GET", "/tipos-cambio/historial/2/1/1", [USD_PEN_ACTIVO, USD_PEN_ANTERIOR])
        response = client.get("/tipos-cambio/historial/2/1", params={"limit": 10})
        assert response.status_code == 200
        assert [t["id"] for t in response.json()] == [5, 4]
        request = remote_api.requests_to("GET", "/tipos-cambio/historial/2/1/1")[0]
        assert str(request.url.query, "ascii") == "limit=10"
