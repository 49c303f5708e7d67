"""Monitor de recursos del campus: electricidad, agua y residuos de comida.

Estructura:
- sources/        → Store de lecturas (memoria, SQL) y simulador
- aggregation/    → Buckets, deltas, snapshots y métrica del campus
- classification/ → Umbrales, estrategias de clasificación y mensajes
- alerts/         → Emisión deduplicada y ciclo de vida de alertas
- evaluation/     → Orquestación de ciclos por categoría
- endpoints/      → API HTTP
- transports/     → WebSocket hacia el dashboard
"""
