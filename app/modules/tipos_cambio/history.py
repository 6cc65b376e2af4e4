"""
Historial de tipos de cambio: filtros avanzados, orden, estadísticas y CSV
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from app.common.validators import round_money
from app.modules.tipos_cambio.schemas import TipoCambioOut, HistorialFiltros, EstadisticasHistorial

HISTORIAL_CSV_HEADERS: Dict[str, str] = {
    "fecha": "Fecha",
    "par_monedas": "Par Monedas",
    "tipo_compra": "Tipo Compra",
    "tipo_venta": "Tipo Venta",
    "estado": "Estado",
    "usuario": "Usuario",
}

# El backend aún no informa quién registró cada tasa
USUARIO_POR_DEFECTO = "Sistema"


def _fecha(tipo: TipoCambioOut) -> Optional[datetime]:
    return tipo.fecha_vigencia or tipo.created_at


def _fecha_orden(tipo: TipoCambioOut) -> float:
    fecha = _fecha(tipo)
    return fecha.timestamp() if fecha else float("-inf")


def _texto(tipo: TipoCambioOut) -> str:
    partes = [tipo.par_monedas]
    for moneda in (tipo.moneda_origen, tipo.moneda_destino):
        if moneda:
            partes.extend(filter(None, [moneda.codigo, moneda.nombre]))
    return " ".join(partes).lower()


def _en_rango(valor: Decimal, minimo: Optional[Decimal], maximo: Optional[Decimal]) -> bool:
    if minimo is not None and valor < minimo:
        return False
    if maximo is not None and valor > maximo:
        return False
    return True


def cumple_filtros(tipo: TipoCambioOut, filtros: HistorialFiltros) -> bool:
    if filtros.busqueda and filtros.busqueda.lower() not in _texto(tipo):
        return False
    if filtros.estado == "activo" and not tipo.activo:
        return False
    if filtros.estado == "inactivo" and tipo.activo:
        return False
    if filtros.moneda_origen_id and tipo.moneda_origen_id != filtros.moneda_origen_id:
        return False
    if filtros.moneda_destino_id and tipo.moneda_destino_id != filtros.moneda_destino_id:
        return False
    if not _en_rango(tipo.tipo_compra, filtros.compra_minima, filtros.compra_maxima):
        return False
    if not _en_rango(tipo.tipo_venta, filtros.venta_minima, filtros.venta_maxima):
        return False
    if not _en_rango(tipo.spread, filtros.spread_minimo, filtros.spread_maximo):
        return False
    if filtros.solo_mantener_diario and not tipo.mantener_cambio_diario:
        return False

    if filtros.fecha_desde or filtros.fecha_hasta:
        fecha = _fecha(tipo)
        if fecha is None:
            return False
        dia = fecha.date()
        if filtros.fecha_desde and dia < filtros.fecha_desde:
            return False
        if filtros.fecha_hasta and dia > filtros.fecha_hasta:
            return False
    return True


ORDENES = {
    "fecha": _fecha_orden,
    "compra": lambda t: t.tipo_compra,
    "venta": lambda t: t.tipo_venta,
    "spread": lambda t: t.spread,
}


def ordenar(tipos: List[TipoCambioOut], orden: str = "fecha_desc") -> List[TipoCambioOut]:
    campo, _, sentido = orden.rpartition("_")
    return sorted(tipos, key=ORDENES[campo], reverse=(sentido == "desc"))


def filtrar_historial(tipos: List[TipoCambioOut], filtros: HistorialFiltros) -> List[TipoCambioOut]:
    return ordenar([t for t in tipos if cumple_filtros(t, filtros)], filtros.ordenar_por)


def calcular_estadisticas(tipos: List[TipoCambioOut]) -> EstadisticasHistorial:
    if not tipos:
        return EstadisticasHistorial()
    spreads = [t.spread for t in tipos]
    return EstadisticasHistorial(
        total=len(tipos),
        activos=sum(1 for t in tipos if t.activo),
        inactivos=sum(1 for t in tipos if not t.activo),
        con_mantener_diario=sum(1 for t in tipos if t.mantener_cambio_diario),
        spread_promedio=round_money(sum(spreads) / len(spreads)),
        spread_maximo=round_money(max(spreads)),
        spread_minimo=round_money(min(spreads)),
    )


def prepare_historial_csv(tipos: List[TipoCambioOut]) -> List[Dict[str, str]]:
    """Filas del CSV de historial, tasas con 4 decimales."""
    filas = []
    for tipo in tipos:
        fecha = _fecha(tipo)
        filas.append({
            "fecha": fecha.date().isoformat() if fecha else "",
            "par_monedas": tipo.par_monedas,
            "tipo_compra": f"{tipo.tipo_compra:.4f}",
            "tipo_venta": f"{tipo.tipo_venta:.4f}",
            "estado": "Activo" if tipo.activo else "Inactivo",
            "usuario": USUARIO_POR_DEFECTO,
        })
    return filas


def nombre_archivo_historial(hoy: Optional[date] = None) -> str:
    return f"historial-tipos-cambio-{(hoy or date.today()).isoformat()}.csv"
