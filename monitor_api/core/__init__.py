"""Core module - Piezas compartidas por el motor de alertas.

Estructura:
- domain/    → Lecturas, snapshots, alertas y categorías
- numeric.py → Coerción y redondeo canónico
"""
