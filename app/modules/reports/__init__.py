"""
Módulo de Reportes

Reportes de ganancias de la casa de cambio. No guarda nada: consulta los
endpoints /reportes de la API remota, que responden el DTO sin el sobre
``{success, data}``.

- routers/ -> endpoints FastAPI con validación de rango de fechas
- services/ -> consultas a la API remota
- schemas/ -> modelos Pydantic de los reportes
- utils/ -> preparación de filas para CSV
"""
