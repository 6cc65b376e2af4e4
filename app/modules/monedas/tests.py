"""
Tests para el módulo de Monedas
"""

PEN = {"id": 1, "codigo": "PEN", "nombre": "Sol", "simbolo": "S/"}
JPY = {"id": 3, "codigo": "JPY", "nombre": "Yen", "simbolo": "¥", "decimales": 0, "activa": False}


class TestMonedaEndpoints:

    def test_list_only_active_by_default(self, client, remote_api):
        remote_api.ok("GET", "/monedas", [PEN])
        response = client.get("/monedas/")
        assert response.status_code == 200
        assert [m["codigo"] for m in response.json()] == ["PEN"]
        assert "includeInactive" not in remote_api.requests_to("GET", "/monedas")[0].url.params

    def test_list_with_inactive(self, client, remote_api):
        remote_api.ok("GET", "/monedas", [PEN, JPY])
        response = client.get("/monedas/", params={"include_inactive": True})
        assert [m["activa"] for m in response.json()] == [True, False]
        assert remote_api.requests_to("GET", "/monedas")[0].url.params["includeInactive"] == "true"

    def test_activas(self, client, remote_api):
        remote_api.ok("GET", "/monedas/active", [PEN])
        response = client.get("/monedas/activas")
        assert response.status_code == 200
        assert response.json()[0]["simbolo"] == "S/"

    def test_get_by_id(self, client, remote_api):
        remote_api.ok("GET", "/monedas/3", JPY)
        response = client.get("/monedas/3")
        assert response.status_code == 200
        assert response.json()["decimales"] == 0

    def test_unknown_currency(self, client, remote_api):
        remote_api.fail("GET", "/monedas/99", "Moneda no encontrada", 404)
        response = client.get("/monedas/99")
        assert response.status_code == 404
        assert response.json()["error"] == "Moneda no encontrada"
