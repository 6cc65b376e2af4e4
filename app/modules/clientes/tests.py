"""
Tests para el módulo de Clientes

Cubren:
- Validaciones locales por variante (registrado / empresarial)
- Unión etiquetada por ``tipo`` en lectura y creación
- Endpoints de búsqueda y creación
"""

import pytest

from app.core.exceptions import ValidacionError
from app.modules.clientes.schemas import (
    BuscarClienteRequest, ClienteEmpresarial, ClienteEmpresarialCreate, ClienteOcasional,
    ClienteRegistrado, ClienteRegistradoCreate, PersonaData, cliente_adapter, cliente_list_adapter
)
from app.modules.clientes.service import ClienteService, validar_cliente_empresarial, validar_cliente_registrado


# ===== FIXTURES =====

PERSONA = {
    "nombres": "Ana", "apellido_paterno": "Ríos", "apellido_materno": "Paz",
    "tipo_documento": "DNI", "numero_documento": "12345678",
}

REGISTRADO = {"id": 1, "tipo": "REGISTRADO", "persona": PERSONA, "profesion": "Contadora"}
EMPRESARIAL = {
    "id": 2, "tipo": "EMPRESARIAL", "ruc": "20123456789", "razon_social": "Importadora Sur SAC",
    "direccion_fiscal": "Av. Grau 123", "persona": PERSONA,
}
OCASIONAL = {"id": 3, "tipo": "OCASIONAL", "descripcion": "Turista"}


@pytest.fixture
def service(api_client):
    return ClienteService(api_client)


# ===== VALIDACIONES =====

class TestValidaciones:

    def test_valid_registered_client(self):
        data = ClienteRegistradoCreate(persona=PersonaData(**PERSONA))
        assert validar_cliente_registrado(data) == []

    def test_registered_client_missing_fields(self):
        data = ClienteRegistradoCreate(persona=PersonaData(nombres="  "), ruc="123")
        assert validar_cliente_registrado(data) == [
            "Nombres son obligatorios",
            "Apellido paterno es obligatorio",
            "Número de documento es obligatorio",
            "Tipo de documento es obligatorio",
            "RUC debe tener 11 dígitos",
        ]

    def test_business_client_requires_ruc_and_representative(self):
        data = ClienteEmpresarialCreate(representante_legal=PersonaData())
        errores = validar_cliente_empresarial(data)
        assert "RUC es obligatorio" in errores
        assert "Razón social es obligatoria" in errores
        assert "Nombres del representante legal son obligatorios" in errores
        assert "RUC debe tener 11 dígitos" not in errores

    @pytest.mark.parametrize("ruc", ["2012345678", "201234567890", "20A23456789"])
    def test_business_ruc_must_have_11_digits(self, ruc):
        data = ClienteEmpresarialCreate(
            ruc=ruc, razon_social="Importadora Sur SAC", direccion_fiscal="Av. Grau 123",
            representante_legal=PersonaData(**PERSONA),
        )
        assert validar_cliente_empresarial(data) == ["RUC debe tener 11 dígitos"]


# ===== UNIÓN ETIQUETADA =====

class TestClienteUnion:

    def test_each_variant_is_parsed_by_tag(self):
        clientes = cliente_list_adapter.validate_python([REGISTRADO, EMPRESARIAL, OCASIONAL])
        assert isinstance(clientes[0], ClienteRegistrado)
        assert isinstance(clientes[1], ClienteEmpresarial)
        assert isinstance(clientes[2], ClienteOcasional)
        assert clientes[0].persona.nombre_completo == "Ana Ríos Paz"

    def test_unknown_tag_rejected(self):
        with pytest.raises(ValueError):
            cliente_adapter.validate_python({"id": 9, "tipo": "VIP"})

    def test_occasional_client_has_no_identity(self):
        cliente = cliente_adapter.validate_python(OCASIONAL)
        assert not hasattr(cliente, "persona")
        assert not hasattr(cliente, "ruc")

    def test_search_params_use_api_names(self):
        params = BuscarClienteRequest(apellido_paterno="Ríos", es_activo=False, nombres="").to_params()
        assert params["apellidoPaterno"] == "Ríos"
        assert params["esActivo"] == "false"
        assert params["nombres"] is None


# ===== SERVICIO =====

class TestClienteService:

    @pytest.mark.anyio
    async def test_invalid_client_never_reaches_network(self, remote_api, service):
        with pytest.raises(ValidacionError) as exc_info:
            await service.create(ClienteEmpresarialCreate(representante_legal=PersonaData()))
        assert len(exc_info.value.errores) > 1
        assert remote_api.calls == []

    @pytest.mark.anyio
    async def test_create_dispatches_by_variant(self, remote_api, service):
        remote_api.ok("POST", "/clientes/registrado", REGISTRADO)

        cliente = await service.create(ClienteRegistradoCreate(persona=PersonaData(**PERSONA)))

        assert isinstance(cliente, ClienteRegistrado)
        body = remote_api.body(remote_api.requests_to("POST", "/clientes/registrado")[0])
        assert "tipo" not in body
        assert body["persona"]["numero_documento"] == "12345678"

    @pytest.mark.anyio
    async def test_existe_ruc(self, remote_api, service):
        remote_api.ok("GET", "/clientes/ruc/20123456789/existe", {"existe": True})

        assert await service.existe_ruc("20123456789", exclude_id=2)
        request = remote_api.requests_to("GET", "/clientes/ruc/20123456789/existe")[0]
        assert request.url.params["excludeId"] == "2"


# ===== ENDPOINTS =====

class TestClienteEndpoints:

    def test_list_without_filters(self, client, remote_api):
        remote_api.ok("GET", "/clientes", [REGISTRADO, OCASIONAL])
        response = client.get("/clientes/")
        assert response.status_code == 200
        assert [c["tipo"] for c in response.json()] == ["REGISTRADO", "OCASIONAL"]

    def test_search_with_filters(self, client, remote_api):
        remote_api.ok("GET", "/clientes/search", [EMPRESARIAL])
        response = client.get("/clientes/", params={"ruc": "20123456789", "tipo_cliente": "EMPRESARIAL"})
        assert response.status_code == 200
        request = remote_api.requests_to("GET", "/clientes/search")[0]
        assert request.url.params["tipo"] == "EMPRESARIAL"
        assert response.json()[0]["razon_social"] == "Importadora Sur SAC"

    def test_create_business_client(self, client, remote_api):
        remote_api.ok("POST", "/clientes/empresarial", EMPRESARIAL)
        response = client.post("/clientes/", json={
            "tipo": "EMPRESARIAL", "ruc": "20123456789", "razon_social": "Importadora Sur SAC",
            "direccion_fiscal": "Av. Grau 123", "representante_legal": PERSONA,
        })
        assert response.status_code == 201
        assert response.json()["tipo"] == "EMPRESARIAL"

    def test_create_invalid_client(self, client, remote_api):
        response = client.post("/clientes/", json={
            "tipo": "REGISTRADO", "persona": {"nombres": "Ana"}, "ruc": "123",
        })
        assert response.status_code == 422
        assert "RUC debe tener 11 dígitos" in response.json()["errores"]
        assert remote_api.calls == []

    def test_create_unknown_variant(self, client):
        response = client.post("/clientes/", json={"tipo": "VIP"})
        assert response.status_code == 422

    def test_backend_not_found(self, client, remote_api):
        remote_api.fail("GET", "/clientes/99", "Cliente no encontrado", 404)
        response = client.get("/clientes/99")
        assert response.status_code == 404
        assert response.json()["error"] == "Cliente no encontrado"
