"""
Tests para el módulo de Transacciones

Cubren:
- Aritmética de compra/venta y su inversa
- Formulario: filtro de 2 decimales, cálculo inverso, tasa preferencial, comprobante
- Registro: reinicio tras éxito, formulario intacto tras rechazo
- Endpoints /transacciones/calcular y /transacciones/registrar
"""

import pytest
from decimal import Decimal

from app.common.validators import round_money
from app.core.exceptions import (
    ApiError, MontoInvalidoError, SolicitudEnCursoError, TipoCambioInvalidoError, ValidacionError
)
from app.modules.clientes.schemas import ClienteTemporal
from app.modules.tipos_cambio.schemas import TipoCambioActivo
from app.modules.tipos_cambio.service import TipoCambioService
from app.modules.transacciones import calculator
from app.modules.transacciones.schemas import OpcionComprobante, TipoOperacion
from app.modules.transacciones.service import TransaccionService
from app.modules.transacciones.workflow import TransaccionForm, TransaccionWorkflow


# ===== FIXTURES =====

USD_PEN = {
    "id": 5, "par_monedas": "USD/PEN", "tipo_compra": "3.75", "tipo_venta": "3.80",
    "moneda_origen_id": 2, "moneda_destino_id": 1,
}

TRANSACCION = {
    "id": 100, "numero_transaccion": "TX-0001", "monto_origen": 100, "monto_destino": 375,
    "tipo_cambio_aplicado": 3.75, "ganancia": 5, "estado": "COMPLETADA", "tipo_operacion": "COMPRA",
    "ventanilla_id": 1, "moneda_origen_id": 2, "moneda_destino_id": 1, "tipo_cambio_id": 5,
}


@pytest.fixture
def tipo_cambio():
    return TipoCambioActivo.model_validate(USD_PEN)


@pytest.fixture
def form(tipo_cambio):
    form = TransaccionForm()
    form.seleccionar_tipo_cambio(tipo_cambio, TipoOperacion.COMPRA)
    return form


@pytest.fixture
def workflow(api_client, guard):
    return TransaccionWorkflow(TransaccionService(api_client), TipoCambioService(api_client), guard)


# ===== CÁLCULO =====

class TestCalculator:
    """Fórmulas de compra y venta"""

    def test_buy_multiplies(self):
        assert calculator.monto_destino(Decimal("100"), Decimal("3.75"), TipoOperacion.COMPRA) == Decimal("375.00")

    def test_sell_divides(self):
        destino = calculator.monto_destino(Decimal("380"), Decimal("3.80"), TipoOperacion.VENTA)
        assert round_money(destino) == Decimal("100.00")

    @pytest.mark.parametrize("operacion", [TipoOperacion.COMPRA, TipoOperacion.VENTA])
    @pytest.mark.parametrize("origen,tasa", [
        ("100", "3.75"), ("0.01", "3.8123"), ("12345.67", "0.2713"), ("999.99", "1000"),
    ])
    def test_inverse_reproduces_origin(self, operacion, origen, tasa):
        origen_d, tasa_d = Decimal(origen), Decimal(tasa)
        destino = calculator.monto_destino(origen_d, tasa_d, operacion)
        assert round_money(calculator.monto_origen(destino, tasa_d, operacion)) == round_money(origen_d)

    def test_profit_on_buy_uses_sell_rate(self):
        ganancia = calculator.ganancia(
            Decimal("100"), Decimal("3.75"), TipoOperacion.COMPRA, Decimal("3.75"), Decimal("3.80")
        )
        assert ganancia == Decimal("5.00")

    def test_profit_on_sell_uses_buy_rate(self):
        ganancia = calculator.ganancia(
            Decimal("380"), Decimal("3.80"), TipoOperacion.VENTA, Decimal("3.75"), Decimal("3.80")
        )
        assert round_money(ganancia) == Decimal("5.00")


# ===== FORMULARIO =====

class TestTransaccionForm:
    """Estado del formulario de cambio"""

    def test_origin_drives_destination(self, form):
        assert form.set_monto_origen("100")
        assert form.monto_destino == "375.00"
        assert form.modo_calculo_inverso is False

    def test_destination_drives_origin(self, form):
        assert form.set_monto_destino("375")
        assert form.modo_calculo_inverso is True
        assert form.monto_origen == "100.00"

        calculo = form.calcular()
        assert calculo.es_valido
        assert calculo.monto_origen == Decimal("100.00")
        assert calculo.modo_calculo_inverso is True

    def test_editing_origin_clears_inverse_mode(self, form):
        form.set_monto_destino("375")
        form.set_monto_origen("10")
        assert form.modo_calculo_inverso is False
        assert form.monto_destino == "37.50"

    @pytest.mark.parametrize("texto", ["12.345", "abc", "1,5", "-3", "1.2.3", "5\n", "12.34\n"])
    def test_keystroke_filter_rejects(self, form, texto):
        form.set_monto_origen("12.3")
        assert form.set_monto_origen(texto) is False
        assert form.monto_origen == "12.3"

    @pytest.mark.parametrize("texto", ["", "12.", ".5", "0.01", "1000"])
    def test_keystroke_filter_accepts_partial_input(self, form, texto):
        assert form.set_monto_origen(texto) is True

    def test_sell_uses_sell_rate(self, tipo_cambio):
        form = TransaccionForm()
        form.seleccionar_tipo_cambio(tipo_cambio, TipoOperacion.VENTA)
        form.set_monto_origen("380")
        assert form.tasa_aplicada == Decimal("3.80")
        assert form.monto_destino == "100.00"

    def test_preferential_rate_overrides_official(self, form):
        form.set_monto_origen("100")
        form.aplicar_preferencial("3.78")
        assert form.tasa_aplicada == Decimal("3.78")
        assert form.monto_destino == "378.00"
        assert form.calcular().es_preferencial is True

        form.quitar_preferencial()
        assert form.monto_destino == "375.00"

    @pytest.mark.parametrize("tasa", ["0", "-1", None])
    def test_invalid_preferential_rate(self, form, tasa):
        with pytest.raises(TipoCambioInvalidoError, match="Tipo de cambio personalizado inválido"):
            form.aplicar_preferencial(tasa)

    @pytest.mark.parametrize("campo", ["tipo_compra", "tipo_venta"])
    def test_rate_without_price_cannot_be_selected(self, campo):
        tipo_cambio = TipoCambioActivo.model_validate({**USD_PEN, campo: "0"})
        form = TransaccionForm()
        with pytest.raises(TipoCambioInvalidoError):
            form.seleccionar_tipo_cambio(tipo_cambio, TipoOperacion.VENTA)
        assert form.tipo_cambio is None

    def test_selecting_rate_clears_preferential(self, form, tipo_cambio):
        form.aplicar_preferencial("3.70")
        form.seleccionar_tipo_cambio(tipo_cambio, TipoOperacion.VENTA)
        assert form.tipo_cambio_preferencial is None

    def test_empty_amount_is_incomplete(self, form):
        calculo = form.calcular()
        assert calculo.es_valido is False
        assert calculo.mensaje_error == "Datos incompletos para el cálculo"

    def test_requires_rate(self):
        with pytest.raises(ValidacionError):
            TransaccionForm().validar()

    def test_requires_positive_amount(self, form):
        form.set_monto_origen("0")
        with pytest.raises(MontoInvalidoError):
            form.build_request(1)

    def test_requires_open_window(self, form):
        form.set_monto_origen("100")
        with pytest.raises(ValidacionError, match="No hay ventanilla activa"):
            form.build_request(None)

    def test_request_keeps_rate_pair_for_sell(self, tipo_cambio):
        form = TransaccionForm()
        form.seleccionar_tipo_cambio(tipo_cambio, TipoOperacion.VENTA)
        form.set_monto_origen("380")
        payload = form.build_request(1).to_payload()
        assert payload["monedaOrigenId"] == 2
        assert payload["monedaDestinoId"] == 1
        assert payload["tipoOperacion"] == "VENTA"

    def test_request_payload_is_camel_case(self, form):
        form.set_monto_origen("100")
        form.aplicar_preferencial("3.78")
        payload = form.build_request(
            1, OpcionComprobante.CLIENTE_TEMPORAL,
            cliente_temp=ClienteTemporal(nombres="Ana", apellidos="Ríos", numero_documento="12345678", tipo_documento="DNI")
        ).to_payload()
        assert payload == {
            "clienteTemp": {"nombres": "Ana", "apellidos": "Ríos", "numero_documento": "12345678", "tipo_documento": "DNI"},
            "ventanillaId": 1,
            "monedaOrigenId": 2,
            "monedaDestinoId": 1,
            "montoOrigen": 100.0,
            "tipoOperacion": "COMPRA",
            "observaciones": "Tipo de cambio preferencial: 3.78",
        }

    def test_existing_client_requires_id(self, form):
        form.set_monto_origen("100")
        with pytest.raises(ValidacionError):
            form.build_request(1, OpcionComprobante.CLIENTE_EXISTENTE)

    def test_reset_keeps_selected_rate(self, form, tipo_cambio):
        form.set_monto_origen("100")
        form.aplicar_preferencial("3.70")
        form.reset()
        assert form.monto_origen == ""
        assert form.monto_destino == ""
        assert form.tipo_cambio_preferencial is None
        assert form.tipo_cambio == tipo_cambio


# ===== REGISTRO =====

class TestTransaccionWorkflow:

    @pytest.mark.anyio
    async def test_success_resets_form(self, remote_api, workflow, form):
        remote_api.ok("POST", "/transacciones/procesar-cambio", TRANSACCION)
        form.set_monto_origen("100")

        transaccion = await workflow.procesar(form, 1, OpcionComprobante.CLIENTE_EXISTENTE, cliente_id=9)

        assert transaccion.numero_transaccion == "TX-0001"
        assert form.monto_origen == ""
        body = remote_api.body(remote_api.requests_to("POST", "/transacciones/procesar-cambio")[0])
        assert body["clienteId"] == 9
        assert "clienteTemp" not in body

    @pytest.mark.anyio
    async def test_rejection_keeps_form(self, remote_api, workflow, form):
        remote_api.fail("POST", "/transacciones/procesar-cambio", "Fondos insuficientes en ventanilla")
        form.set_monto_origen("100")
        form.aplicar_preferencial("3.78")

        with pytest.raises(ApiError, match="Fondos insuficientes"):
            await workflow.procesar(form, 1)

        assert form.monto_origen == "100"
        assert form.tipo_cambio_preferencial == Decimal("3.78")

    @pytest.mark.anyio
    async def test_duplicate_submission_rejected(self, remote_api, workflow, form, guard):
        form.set_monto_origen("100")
        async with guard.hold(("transaccion", 1)):
            with pytest.raises(SolicitudEnCursoError):
                await workflow.procesar(form, 1)
        assert remote_api.calls == []


# ===== ENDPOINTS =====

class TestTransaccionEndpoints:

    def test_calcular_inverse(self, client, remote_api):
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [USD_PEN])
        response = client.post("/transacciones/calcular", json={
            "tipo_cambio_id": 5, "tipo_operacion": "COMPRA",
            "monto_destino": "375", "modo_calculo_inverso": True,
        })
        assert response.status_code == 200
        data = response.json()
        assert data["monto_origen"] == 100.0
        assert data["ganancia"] == 5.0

    def test_calcular_rejects_three_decimals(self, client, remote_api):
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [USD_PEN])
        response = client.post("/transacciones/calcular", json={
            "tipo_cambio_id": 5, "tipo_operacion": "COMPRA", "monto_origen": "1.234",
        })
        assert response.status_code == 422
        assert response.json()["success"] is False

    def test_inactive_rate_rejected(self, client, remote_api):
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [])
        response = client.post("/transacciones/calcular", json={
            "tipo_cambio_id": 5, "tipo_operacion": "COMPRA", "monto_origen": "100",
        })
        assert response.status_code == 422

    def test_zero_rate_from_backend_is_rejected(self, client, remote_api):
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [{**USD_PEN, "tipo_venta": 0}])
        response = client.post("/transacciones/calcular", json={
            "tipo_cambio_id": 5, "tipo_operacion": "VENTA",
            "monto_destino": "100", "modo_calculo_inverso": True,
        })
        assert response.status_code == 422
        assert response.json()["error"] == "El tipo de cambio seleccionado tiene tasas inválidas"

    def test_registrar_without_window(self, client, remote_api):
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [USD_PEN])
        response = client.post("/transacciones/registrar", json={
            "tipo_cambio_id": 5, "tipo_operacion": "COMPRA", "monto_origen": "100",
        })
        assert response.status_code == 422
        assert "No hay ventanilla activa" in response.json()["error"]
        assert remote_api.requests_to("POST", "/transacciones/procesar-cambio") == []

    def test_registrar_temporal_client_requires_data(self, client):
        response = client.post("/transacciones/registrar", json={
            "tipo_cambio_id": 5, "tipo_operacion": "COMPRA", "monto_origen": "100",
            "ventanilla_id": 1, "comprobante": "CLIENTE_TEMPORAL",
        })
        assert response.status_code == 422

    def test_backend_rejection_is_forwarded(self, client, remote_api):
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [USD_PEN])
        remote_api.fail("POST", "/transacciones/procesar-cambio", "Ventanilla no está abierta", 400)
        response = client.post("/transacciones/registrar", json={
            "tipo_cambio_id": 5, "tipo_operacion": "COMPRA", "monto_origen": "100", "ventanilla_id": 1,
        })
        assert response.status_code == 400
        assert response.json()["error"] == "Ventanilla no está abierta"

    def test_by_window(self, client, remote_api):
        remote_api.ok("GET", "/transacciones/ventanilla/1", [TRANSACCION])
        response = client.get("/transacciones/ventanilla/1")
        assert response.status_code == 200
        assert [t["numero_transaccion"] for t in response.json()] == ["TX-0001"]

    def test_by_number(self, client, remote_api):
        remote_api.ok("GET", "/transacciones/numero/TX-0001", TRANSACCION)
        response = client.get("/transacciones/numero/TX-0001")
        assert response.status_code == 200
        assert response.json()["id"] == 100

    def test_report_params(self, client, remote_api):
        remote_api.ok("GET", "/transacciones/reporte", {"total": 3})
        response = client.get("/transacciones/reporte", params={
            "fecha_inicio": "2024-01-01", "fecha_fin": "2024-01-31", "ventanilla_id": 1,
        })
        assert response.status_code == 200
        assert response.json() == {"total": 3}
        params = remote_api.requests_to("GET", "/transacciones/reporte")[0].url.params
        assert params["fechaInicio"] == "2024-01-01"
        assert params["fechaFin"] == "2024-01-31"
        assert params["ventanillaId"] == "1"
        assert "casaDeCambioId" not in params

    def test_report_invalid_range(self, client, remote_api):
        response = client.get("/transacciones/reporte", params={
            "fecha_inicio": "2024-02-01", "fecha_fin": "2024-01-01",
        })
        assert response.status_code == 422
        assert remote_api.calls == []
