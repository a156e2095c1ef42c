"""
record_sync: motor de transferencia/sincronizacion de registros entre
tablas de un flujo de trabajo (forecast -> upcoming -> inventory -> framing).
"""

__version__ = "1.0.0"
