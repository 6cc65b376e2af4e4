"""
Tests para el módulo de Ventanillas

Cubren:
- Máquina de estados (transiciones permitidas y rechazadas)
- Arqueo de cierre: confirmación, desfase y observaciones
- Flujos de apertura, pausa, cierre y administración contra la API simulada
- Endpoints HTTP, incluido el recorrido apertura -> transacción -> cierre
"""

import httpx
import pytest
from decimal import Decimal

from app.core.exceptions import (
    ApiError, CierreNoConfirmadoError, DesfaseSinObservacionError, MontoInvalidoError,
    SolicitudEnCursoError, TransicionInvalidaError, ValidacionError
)
from app.modules.monedas.schemas import MonedaResumen
from app.modules.monedas.service import MonedaService
from app.modules.ventanillas.models import AccionVentanilla, EstadoVentanilla, VentanillaStateMachine
from app.modules.ventanillas.schemas import MontoApertura, MontoEsperado, ResumenCierre, VentanillaUpdate
from app.modules.ventanillas.service import VentanillaService
from app.modules.ventanillas.workflows import (
    AdministracionWorkflow, AperturaWorkflow, CierreReconciliacion, CierreWorkflow, PausaWorkflow
)


# ===== FIXTURES =====

def ventanilla_data(estado="CERRADA", activa=True):
    return {
        "id": 1,
        "identificador": "V-01",
        "nombre": "Ventanilla Principal",
        "estado": estado,
        "activa": activa,
        "casa_de_cambio_id": 1,
    }


MONEDAS = [
    {"id": 1, "codigo": "PEN", "nombre": "Sol", "simbolo": "S/"},
    {"id": 2, "codigo": "USD", "nombre": "Dólar", "simbolo": "$"},
]


def resumen_data(pen="1375.00", usd="100.00"):
    return {
        "apertura_ventanilla_id": 10,
        "montos_esperados": [
            {"moneda_id": 1, "monto_esperado": pen, "moneda": {"codigo": "PEN"}},
            {"moneda_id": 2, "monto_esperado": usd, "moneda": {"codigo": "USD"}},
        ],
        "total_transacciones": 3,
        "ganancia_total_calculada": "12.50",
    }


@pytest.fixture
def resumen():
    return ResumenCierre.model_validate(resumen_data())


@pytest.fixture
def reconciliacion(resumen):
    return CierreReconciliacion(1, resumen)


def confirmar_todo(reconciliacion):
    for fila in reconciliacion.filas:
        reconciliacion.confirmar(fila.moneda_id)


# ===== MÁQUINA DE ESTADOS =====

class TestVentanillaStateMachine:
    """Tabla de transiciones de la ventanilla"""

    def test_allowed_actions_by_state(self):
        assert VentanillaStateMachine(EstadoVentanilla.CERRADA).allowed_actions() == [AccionVentanilla.APERTURAR]
        assert VentanillaStateMachine(EstadoVentanilla.ABIERTA).allowed_actions() == [
            AccionVentanilla.PAUSAR, AccionVentanilla.CERRAR
        ]
        assert VentanillaStateMachine(EstadoVentanilla.PAUSA).allowed_actions() == [
            AccionVentanilla.REANUDAR, AccionVentanilla.CERRAR
        ]

    def test_inactive_window_cannot_open(self):
        maquina = VentanillaStateMachine(EstadoVentanilla.CERRADA, activa=False)
        assert maquina.allowed_actions() == []
        with pytest.raises(TransicionInvalidaError):
            maquina.check(AccionVentanilla.APERTURAR)

    def test_invalid_transition_raises(self):
        maquina = VentanillaStateMachine(EstadoVentanilla.CERRADA)
        with pytest.raises(TransicionInvalidaError) as exc:
            maquina.check(AccionVentanilla.PAUSAR)
        assert exc.value.estado == "CERRADA"
        assert exc.value.accion == "pausar"

    def test_full_cycle(self):
        maquina = VentanillaStateMachine()
        assert maquina.apply(AccionVentanilla.APERTURAR) == EstadoVentanilla.ABIERTA
        assert maquina.apply(AccionVentanilla.PAUSAR) == EstadoVentanilla.PAUSA
        assert maquina.apply(AccionVentanilla.REANUDAR) == EstadoVentanilla.ABIERTA
        assert maquina.apply(AccionVentanilla.PAUSAR) == EstadoVentanilla.PAUSA
        assert maquina.apply(AccionVentanilla.CERRAR) == EstadoVentanilla.CERRADA


# ===== ARQUEO DE CIERRE =====

class TestCierreReconciliacion:
    """Reglas del arqueo físico previo al cierre"""

    def test_rows_start_at_expected_and_unconfirmed(self, reconciliacion):
        for fila in reconciliacion.filas:
            assert fila.monto_fisico_real == fila.monto_esperado
            assert fila.confirmado_fisicamente is False
            assert fila.desfase == 0
        assert reconciliacion.puede_cerrar is False

    @pytest.mark.parametrize("monto", ["1375.00", "1375.01", "0", "2000"])
    def test_editing_amount_resets_confirmation(self, reconciliacion, monto):
        reconciliacion.confirmar(1)
        assert reconciliacion.fila(1).confirmado_fisicamente is True

        reconciliacion.set_monto_fisico(1, monto)
        assert reconciliacion.fila(1).confirmado_fisicamente is False

    def test_unconfirmed_row_blocks_close(self, reconciliacion):
        reconciliacion.confirmar(1)
        with pytest.raises(CierreNoConfirmadoError) as exc:
            reconciliacion.validar()
        assert any("USD" in e for e in exc.value.errores)

    def test_confirm_no_keeps_row_blocking(self, reconciliacion):
        confirmar_todo(reconciliacion)
        reconciliacion.confirmar(2, False)
        with pytest.raises(CierreNoConfirmadoError):
            reconciliacion.validar()

    def test_variance_requires_observation(self, reconciliacion):
        reconciliacion.set_monto_fisico(1, "1370.00")
        confirmar_todo(reconciliacion)
        with pytest.raises(DesfaseSinObservacionError):
            reconciliacion.validar()

        reconciliacion.set_observaciones_desfase(1, "Billete falso retirado")
        reconciliacion.validar()
        assert reconciliacion.puede_cerrar is True

    def test_blank_observation_does_not_count(self, reconciliacion):
        reconciliacion.set_monto_fisico(1, "1370.00")
        confirmar_todo(reconciliacion)
        reconciliacion.set_observaciones_desfase(1, "   ")
        assert reconciliacion.fila(1).observaciones_desfase is None
        assert reconciliacion.puede_cerrar is False

    def test_rounding_difference_needs_no_observation(self, reconciliacion):
        reconciliacion.set_monto_fisico(1, "1375.01")
        confirmar_todo(reconciliacion)
        reconciliacion.validar()

    def test_variance_percentage_and_color(self, reconciliacion):
        fila = reconciliacion.set_monto_fisico(2, "100")
        assert fila.nivel_desfase(Decimal("5")) == "verde"

        fila = reconciliacion.set_monto_fisico(2, "97")
        assert fila.desfase == Decimal("-3.00")
        assert fila.desfase_porcentaje == Decimal("3")
        assert fila.nivel_desfase(Decimal("5")) == "ambar"

        fila = reconciliacion.set_monto_fisico(2, "90")
        assert fila.nivel_desfase(Decimal("5")) == "rojo"

    def test_zero_expected_amount_has_zero_percentage(self):
        resumen = ResumenCierre.model_validate(resumen_data(pen="0"))
        fila = CierreReconciliacion(1, resumen).set_monto_fisico(1, "20")
        assert fila.desfase_porcentaje == 0
        assert fila.nivel_desfase(Decimal("5")) == "verde"

    def test_negative_amount_rejected(self, reconciliacion):
        with pytest.raises(MontoInvalidoError):
            reconciliacion.set_monto_fisico(1, "-1")

    def test_unknown_currency_rejected(self, reconciliacion):
        with pytest.raises(ValidacionError):
            reconciliacion.confirmar(99)

    def test_to_request(self, reconciliacion):
        reconciliacion.set_monto_fisico(1, "1370")
        reconciliacion.set_observaciones_desfase(1, "Faltante")
        confirmar_todo(reconciliacion)
        reconciliacion.observaciones_cierre = "Cierre del turno tarde"

        request = reconciliacion.to_request()
        assert request.apertura_ventanilla_id == 10
        assert request.observaciones_cierre == "Cierre del turno tarde"
        assert [m.moneda_id for m in request.montos_cierre] == [1, 2]
        assert all(m.confirmado_fisicamente for m in request.montos_cierre)
        assert request.montos_cierre[0].observaciones_desfase == "Faltante"

    def test_to_out_reports_errors(self, reconciliacion):
        out = reconciliacion.to_out()
        assert out.puede_cerrar is False
        assert len(out.errores) == 2
        assert out.filas[0].nivel_desfase == "verde"


# ===== FLUJOS =====

@pytest.fixture
def ventanilla_service(api_client):
    return VentanillaService(api_client)


class TestAperturaWorkflow:
    """Apertura con montos iniciales"""

    @pytest.mark.anyio
    async def test_only_positive_amounts_are_sent(self, remote_api, api_client, ventanilla_service, guard):
        estado = {"estado": "CERRADA"}
        remote_api.add("GET", "/ventanillas/1", handler=lambda r: httpx.Response(
            200, json={"success": True, "data": ventanilla_data(estado["estado"])}
        ))

        def aperturar(request):
            estado["estado"] = "ABIERTA"
            return httpx.Response(200, json={"success": True, "data": {"id": 10}})

        remote_api.add("POST", "/ventanillas/1/aperturar", handler=aperturar)
        workflow = AperturaWorkflow(ventanilla_service, guard, MonedaService(api_client))

        ventanilla = await workflow.aperturar(1, 7, [
            MontoApertura(moneda_id=1, monto=Decimal("1000")),
            MontoApertura(moneda_id=2, monto=Decimal("0")),
        ])

        assert ventanilla.estado == EstadoVentanilla.ABIERTA
        body = remote_api.body(remote_api.requests_to("POST", "/ventanillas/1/aperturar")[0])
        assert body == {"usuario_id": 7, "montos_apertura": [{"moneda_id": 1, "monto": 1000.0}]}

    @pytest.mark.anyio
    async def test_requires_a_positive_amount(self, remote_api, api_client, ventanilla_service, guard):
        workflow = AperturaWorkflow(ventanilla_service, guard, MonedaService(api_client))
        with pytest.raises(MontoInvalidoError):
            await workflow.aperturar(1, 7, [MontoApertura(moneda_id=1, monto=Decimal("0"))])
        assert remote_api.calls == []

    @pytest.mark.anyio
    async def test_requires_user(self, remote_api, api_client, ventanilla_service, guard):
        workflow = AperturaWorkflow(ventanilla_service, guard, MonedaService(api_client))
        with pytest.raises(ValidacionError, match="ID de usuario inválido"):
            await workflow.aperturar(1, None, [MontoApertura(moneda_id=1, monto=Decimal("10"))])

    @pytest.mark.anyio
    async def test_open_window_cannot_reopen(self, remote_api, api_client, ventanilla_service, guard):
        remote_api.ok("GET", "/ventanillas/1", ventanilla_data("ABIERTA"))
        workflow = AperturaWorkflow(ventanilla_service, guard, MonedaService(api_client))
        with pytest.raises(TransicionInvalidaError):
            await workflow.aperturar(1, 7, [MontoApertura(moneda_id=1, monto=Decimal("10"))])
        assert remote_api.requests_to("POST", "/ventanillas/1/aperturar") == []

    @pytest.mark.anyio
    async def test_plan_has_one_row_per_active_currency(self, remote_api, api_client, ventanilla_service, guard):
        remote_api.ok("GET", "/monedas/active", MONEDAS)
        workflow = AperturaWorkflow(ventanilla_service, guard, MonedaService(api_client))
        plan = await workflow.plan_apertura(1)
        assert [f.moneda_id for f in plan.filas] == [1, 2]
        assert all(f.monto == 0 for f in plan.filas)


class TestPausaWorkflow:

    @pytest.mark.anyio
    async def test_pause_open_window(self, remote_api, ventanilla_service, guard):
        remote_api.ok("GET", "/ventanillas/1", ventanilla_data("ABIERTA"))
        remote_api.ok("PATCH", "/ventanillas/1/pausar")
        await PausaWorkflow(ventanilla_service, guard).pausar(1)
        assert len(remote_api.requests_to("PATCH", "/ventanillas/1/pausar")) == 1

    @pytest.mark.anyio
    async def test_resume_requires_pause(self, remote_api, ventanilla_service, guard):
        remote_api.ok("GET", "/ventanillas/1", ventanilla_data("ABIERTA"))
        with pytest.raises(TransicionInvalidaError):
            await PausaWorkflow(ventanilla_service, guard).reanudar(1)

    @pytest.mark.anyio
    async def test_duplicate_submission_rejected(self, remote_api, ventanilla_service, guard):
        remote_api.ok("GET", "/ventanillas/1", ventanilla_data("ABIERTA"))
        async with guard.hold(("ventanilla", 1)):
            with pytest.raises(SolicitudEnCursoError):
                await PausaWorkflow(ventanilla_service, guard).pausar(1)
        assert remote_api.calls == []

    @pytest.mark.anyio
    async def test_backend_rejection_keeps_message(self, remote_api, ventanilla_service, guard):
        remote_api.ok("GET", "/ventanillas/1", ventanilla_data("ABIERTA"))
        remote_api.fail("PATCH", "/ventanillas/1/pausar", "Sin permisos para operar la ventanilla", 403)
        with pytest.raises(ApiError) as exc:
            await PausaWorkflow(ventanilla_service, guard).pausar(1)
        assert exc.value.message == "Sin permisos para operar la ventanilla"
        assert not guard.is_running(("ventanilla", 1))


class TestAdministracionWorkflow:

    @pytest.mark.anyio
    async def test_delete_while_window_is_busy(self, remote_api, ventanilla_service, guard):
        async with guard.hold(("ventanilla", 1)):
            with pytest.raises(SolicitudEnCursoError):
                await AdministracionWorkflow(ventanilla_service, guard).eliminar(1)
        assert remote_api.calls == []

    @pytest.mark.anyio
    async def test_update_sends_only_changed_fields(self, remote_api, ventanilla_service, guard):
        remote_api.ok("PUT", "/ventanillas/1", {**ventanilla_data(), "nombre": "Caja Norte"})

        ventanilla = await AdministracionWorkflow(ventanilla_service, guard).actualizar(
            1, VentanillaUpdate(nombre="Caja Norte")
        )

        assert ventanilla.nombre == "Caja Norte"
        assert remote_api.body(remote_api.requests_to("PUT", "/ventanillas/1")[0]) == {"nombre": "Caja Norte"}
        assert not guard.is_running(("ventanilla", 1))


class TestCierreWorkflow:

    @pytest.mark.anyio
    async def test_unconfirmed_close_never_reaches_backend(self, remote_api, ventanilla_service, guard):
        remote_api.ok("GET", "/ventanillas/1", ventanilla_data("ABIERTA"))
        remote_api.ok("GET", "/ventanillas/1/resumen-cierre", resumen_data())
        remote_api.ok("POST", "/ventanillas/1/procesar-cierre")
        workflow = CierreWorkflow(ventanilla_service, guard)

        reconciliacion = await workflow.iniciar_cierre(1)
        reconciliacion.confirmar(1)
        with pytest.raises(CierreNoConfirmadoError):
            await workflow.procesar_cierre(reconciliacion)
        assert remote_api.requests_to("POST", "/ventanillas/1/procesar-cierre") == []

    @pytest.mark.anyio
    async def test_confirmed_close_from_pause(self, remote_api, ventanilla_service, guard):
        estado = {"estado": "PAUSA"}
        remote_api.add("GET", "/ventanillas/1", handler=lambda r: httpx.Response(
            200, json={"success": True, "data": ventanilla_data(estado["estado"])}
        ))
        remote_api.ok("GET", "/ventanillas/1/resumen-cierre", resumen_data())

        def cerrar(request):
            estado["estado"] = "CERRADA"
            return httpx.Response(200, json={"success": True})

        remote_api.add("POST", "/ventanillas/1/procesar-cierre", handler=cerrar)
        workflow = CierreWorkflow(ventanilla_service, guard)

        reconciliacion = await workflow.iniciar_cierre(1)
        confirmar_todo(reconciliacion)
        ventanilla = await workflow.procesar_cierre(reconciliacion)
        assert ventanilla.estado == EstadoVentanilla.CERRADA

    @pytest.mark.anyio
    async def test_closed_window_cannot_start_close(self, remote_api, ventanilla_service, guard):
        remote_api.ok("GET", "/ventanillas/1", ventanilla_data("CERRADA"))
        with pytest.raises(TransicionInvalidaError):
            await CierreWorkflow(ventanilla_service, guard).iniciar_cierre(1)


# ===== ENDPOINTS =====

class TestVentanillaEndpoints:

    def test_get_ventanilla_with_allowed_actions(self, client, remote_api):
        remote_api.ok("GET", "/ventanillas/1", ventanilla_data("ABIERTA"))
        response = client.get("/ventanillas/1")
        assert response.status_code == 200
        assert response.json()["acciones_permitidas"] == ["pausar", "cerrar"]

    def test_invalid_transition_is_conflict(self, client, remote_api):
        remote_api.ok("GET", "/ventanillas/1", ventanilla_data("CERRADA"))
        response = client.patch("/ventanillas/1/pausar")
        assert response.status_code == 409
        assert response.json()["success"] is False

    def test_resumen_cierre_rows(self, client, remote_api):
        remote_api.ok("GET", "/ventanillas/1", ventanilla_data("ABIERTA"))
        remote_api.ok("GET", "/ventanillas/1/resumen-cierre", resumen_data())
        data = client.get("/ventanillas/1/resumen-cierre").json()
        assert data["puede_cerrar"] is False
        assert [f["monto_fisico_real"] for f in data["filas"]] == [1375.0, 100.0]
        assert all(f["confirmado_fisicamente"] is False for f in data["filas"])

    def test_close_with_unexplained_variance_is_rejected(self, client, remote_api):
        remote_api.ok("GET", "/ventanillas/1", ventanilla_data("ABIERTA"))
        remote_api.ok("GET", "/ventanillas/1/resumen-cierre", resumen_data())
        response = client.post("/ventanillas/1/procesar-cierre", json={"montos_cierre": [
            {"moneda_id": 1, "monto_fisico_real": 1300, "confirmado_fisicamente": True},
            {"moneda_id": 2, "monto_fisico_real": 100, "confirmado_fisicamente": True},
        ]})
        assert response.status_code == 422
        assert remote_api.requests_to("POST", "/ventanillas/1/procesar-cierre") == []

    def test_open_transact_close(self, client, remote_api):
        """Apertura con PEN 1000, compra de 100 USD a 3.75 y cierre sin desfase"""
        estado = {"estado": "CERRADA"}
        remote_api.add("GET", "/ventanillas/1", handler=lambda r: httpx.Response(
            200, json={"success": True, "data": ventanilla_data(estado["estado"])}
        ))

        def aperturar(request):
            estado["estado"] = "ABIERTA"
            return httpx.Response(200, json={"success": True, "data": {"id": 10}})

        def cerrar(request):
            estado["estado"] = "CERRADA"
            return httpx.Response(200, json={"success": True})

        remote_api.add("POST", "/ventanillas/1/aperturar", handler=aperturar)
        remote_api.add("POST", "/ventanillas/1/procesar-cierre", handler=cerrar)
        remote_api.ok("GET", "/tipos-cambio/casa-de-cambio/1", [{
            "id": 5, "par_monedas": "USD/PEN", "tipo_compra": 3.75, "tipo_venta": 3.80,
            "moneda_origen_id": 2, "moneda_destino_id": 1,
        }])
        remote_api.ok("POST", "/transacciones/procesar-cambio", {
            "id": 100, "numero_transaccion": "TX-0001", "monto_origen": 100, "monto_destino": 375,
            "tipo_cambio_aplicado": 3.75, "ganancia": 5, "estado": "COMPLETADA", "tipo_operacion": "COMPRA",
            "ventanilla_id": 1, "moneda_origen_id": 2, "moneda_destino_id": 1, "tipo_cambio_id": 5,
        })
        remote_api.ok("GET", "/ventanillas/1/resumen-cierre", resumen_data(pen="625.00", usd="100.00"))

        # Apertura
        response = client.post("/ventanillas/1/aperturar", json={
            "usuario_id": 7,
            "montos_apertura": [{"moneda_id": 1, "monto": 1000}],
        })
        assert response.status_code == 200
        assert response.json()["estado"] == "ABIERTA"

        # Transacción
        calculo = client.post("/transacciones/calcular", json={
            "tipo_cambio_id": 5, "tipo_operacion": "COMPRA", "monto_origen": "100"
        }).json()
        assert calculo["monto_destino"] == 375.0

        response = client.post("/transacciones/registrar", json={
            "tipo_cambio_id": 5, "tipo_operacion": "COMPRA", "monto_origen": "100", "ventanilla_id": 1
        })
        assert response.status_code == 201

        # Cierre
        resumen = client.get("/ventanillas/1/resumen-cierre").json()
        montos_cierre = [
            {"moneda_id": f["moneda_id"], "monto_fisico_real": f["monto_esperado"], "confirmado_fisicamente": True}
            for f in resumen["filas"]
        ]
        response = client.post("/ventanillas/1/procesar-cierre", json={"montos_cierre": montos_cierre})
        assert response.status_code == 200
        assert response.json()["estado"] == "CERRADA"

        cierres = remote_api.requests_to("POST", "/ventanillas/1/procesar-cierre")
        assert len(cierres) == 1
        body = remote_api.body(cierres[0])
        assert body["apertura_ventanilla_id"] == 10
        assert all(m["confirmado_fisicamente"] for m in body["montos_cierre"])

    def test_create(self, client, remote_api):
        remote_api.ok("POST", "/ventanillas", ventanilla_data())
        response = client.post("/ventanillas/", json={
            "identificador": " V-01 ", "nombre": "Ventanilla Principal", "casa_de_cambio_id": 1,
        })
        assert response.status_code == 201
        assert response.json()["acciones_permitidas"] == ["aperturar"]
        body = remote_api.body(remote_api.requests_to("POST", "/ventanillas")[0])
        assert body == {"identificador": "V-01", "nombre": "Ventanilla Principal", "casa_de_cambio_id": 1, "activa": True}

    def test_create_blank_name(self, client, remote_api):
        response = client.post("/ventanillas/", json={
            "identificador": "V-02", "nombre": "   ", "casa_de_cambio_id": 1,
        })
        assert response.status_code == 422
        assert remote_api.calls == []

    def test_update(self, client, remote_api):
        remote_api.ok("PUT", "/ventanillas/1", {**ventanilla_data(), "nombre": "Caja Norte"})
        response = client.put("/ventanillas/1", json={"nombre": "Caja Norte"})
        assert response.status_code == 200
        assert response.json()["nombre"] == "Caja Norte"

    def test_toggle_active(self, client, remote_api):
        remote_api.ok("PATCH", "/ventanillas/1/toggle-active", ventanilla_data(activa=False))
        response = client.patch("/ventanillas/1/toggle-active")
        assert response.status_code == 200
        assert response.json()["activa"] is False
        assert response.json()["acciones_permitidas"] == []

    def test_delete(self, client, remote_api):
        remote_api.ok("DELETE", "/ventanillas/1")
        response = client.delete("/ventanillas/1")
        assert response.status_code == 204
        assert len(remote_api.requests_to("DELETE", "/ventanillas/1")) == 1

    def test_historial(self, client, remote_api):
        historial = [
            {"id": 10, "tipo": "APERTURA", "fecha": "2024-01-10", "hora": "09:00"},
            {"id": 10, "tipo": "CIERRE", "fecha": "2024-01-10", "hora": "18:00", "ganancia_total": 12.5},
        ]
        remote_api.ok("GET", "/ventanillas/1/historial", historial)
        response = client.get("/ventanillas/1/historial")
        assert response.status_code == 200
        assert [h["tipo"] for h in response.json()] == ["APERTURA", "CIERRE"]

    def test_closed_window_has_no_active_opening(self, client, remote_api):
        remote_api.ok("GET", "/ventanillas/1/apertura-activa", None)
        response = client.get("/ventanillas/1/apertura-activa")
        assert response.status_code == 200
        assert response.json() is None

    def test_operation_checks(self, client, remote_api):
        remote_api.ok("GET", "/ventanillas/1/verificar-tipos-cambio", {"tiene_tipos_cambio": True})
        remote_api.ok("GET", "/ventanillas/1/verificar-permisos", {"puede_operar": False})
        assert client.get("/ventanillas/1/verificar-tipos-cambio").json() == {"tiene_tipos_cambio": True}
        assert client.get("/ventanillas/1/verificar-permisos").json() == {"puede_operar": False}
