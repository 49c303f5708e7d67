"""Transports - Canales de salida en tiempo real."""
