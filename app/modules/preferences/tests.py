"""
Tests para el módulo de Preferencias

Cubren:
- Almacenamiento en memoria y en SQLite
- Token de sesión y presets de filtros del historial
- Endpoints /preferencias/filtros
"""

import pytest
from decimal import Decimal
from sqlalchemy.orm import sessionmaker

from app.core.exceptions import ValidacionError
from app.database.database import build_engine, init_db
from app.modules.preferences.service import FILTROS_KEY, PreferencesService
from app.modules.preferences.storage import InMemoryStorage, SqlPreferenceStorage, build_storage
from app.modules.tipos_cambio.schemas import HistorialFiltros


# ===== FIXTURES =====

@pytest.fixture
def sql_storage():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield SqlPreferenceStorage(sessionmaker(bind=engine, autoflush=False))
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def storage(request, sql_storage):
    if request.param == "memory":
        return InMemoryStorage()
    return sql_storage


@pytest.fixture
def preferences(storage):
    return PreferencesService(storage)


# ===== ALMACENAMIENTO =====

class TestStorage:

    def test_get_missing_key(self, storage):
        assert storage.get("nada") is None

    def test_set_overwrite_delete(self, storage):
        storage.set("k", {"a": [1, 2]})
        storage.set("k", {"a": [3]})
        assert storage.get("k") == {"a": [3]}

        storage.delete("k")
        storage.delete("k")
        assert storage.get("k") is None

    def test_memory_storage_returns_copies(self):
        storage = InMemoryStorage()
        valor = {"lista": [1]}
        storage.set("k", valor)
        valor["lista"].append(2)
        assert storage.get("k") == {"lista": [1]}

    def test_build_storage(self):
        assert isinstance(build_storage("memory"), InMemoryStorage)
        assert isinstance(build_storage("sql"), SqlPreferenceStorage)


# ===== SERVICIO =====

class TestPreferencesService:

    def test_token_round_trip(self, preferences):
        preferences.set_token("abc", {"username": "caja1"})
        assert preferences.get_token() == "abc"
        assert preferences.get_usuario() == {"username": "caja1"}

        preferences.set_token(None)
        assert preferences.get_token() is None
        assert preferences.get_usuario() is None

    def test_scopes_are_isolated(self, storage):
        PreferencesService(storage, scope="caja1").set_token("uno")
        assert PreferencesService(storage, scope="caja2").get_token() is None

    def test_filters_are_appended(self, preferences):
        preferences.save_filtro("Activos", HistorialFiltros(estado="activo"))
        filtros = preferences.save_filtro("Caros", HistorialFiltros(compra_minima=Decimal("4")))

        assert [f.name for f in filtros] == ["Activos", "Caros"]
        assert preferences.list_filtros()[1].filtros.compra_minima == Decimal("4")

    def test_delete_by_index(self, preferences):
        preferences.save_filtro("A", HistorialFiltros())
        preferences.save_filtro("B", HistorialFiltros())

        restantes = preferences.delete_filtro(0)

        assert [f.name for f in restantes] == ["B"]
        assert [f.name for f in preferences.list_filtros()] == ["B"]

    def test_delete_out_of_range(self, preferences):
        with pytest.raises(ValidacionError):
            preferences.delete_filtro(0)

    def test_corrupt_preset_is_skipped(self, storage):
        storage.set(f"default:{FILTROS_KEY}", [{"name": ""}, {"name": "Ok", "filtros": {}}])
        filtros = PreferencesService(storage).list_filtros()
        assert [f.name for f in filtros] == ["Ok"]


# ===== ENDPOINTS =====

class TestPreferencesEndpoints:

    def test_save_list_delete(self, client):
        assert client.get("/preferencias/filtros").json() == {"filtros": []}

        response = client.post("/preferencias/filtros", json={
            "name": "  Solo activos ", "filtros": {"estado": "activo", "ordenar_por": "venta_desc"},
        })
        assert response.status_code == 200
        guardado = response.json()["filtros"][0]
        assert guardado["name"] == "Solo activos"
        assert guardado["filtros"]["ordenar_por"] == "venta_desc"

        response = client.delete("/preferencias/filtros/0")
        assert response.json() == {"filtros": []}

    def test_invalid_preset(self, client):
        response = client.post("/preferencias/filtros", json={"name": "x", "filtros": {"estado": "otro"}})
        assert response.status_code == 422

    def test_delete_missing_preset(self, client):
        response = client.delete("/preferencias/filtros/3")
        assert response.status_code == 422
        assert response.json()["success"] is False
