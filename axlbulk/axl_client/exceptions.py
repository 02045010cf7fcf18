"""
Excepciones del cliente AXL

Jerarquía:
- AxlError: base de todos los errores del pipeline
- ConfigurationError: falta versión de schema, host o credenciales (antes de cualquier I/O)
- MalformedXMLError: el fragmento XML no se puede tokenizar
- StreamWriteError: falla al escribir en el destino de salida
- ColumnIndexError: el template referencia una columna CSV inexistente
- TemplateError: error de sintaxis o de ejecución del template
- RecordStateError: render() fuera de un registro válido
- TransportError: conexión/TLS/timeout o respuesta de error no XML
- AxlFault: SOAP fault estructurado devuelto por CUCM
"""
from typing import Optional


class AxlError(Exception):
    """Excepción base para errores del cliente AXL"""
    pass


class ConfigurationError(AxlError):
    """Configuración incompleta (schema, host, credenciales)"""
    pass


class MalformedXMLError(AxlError):
    """El fragmento XML no es válido"""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.line = line
        self.column = column


class StreamWriteError(AxlError):
    """Error al escribir XML canonicalizado en el destino"""
    pass


class ColumnIndexError(AxlError, IndexError):
    """Índice de columna CSV fuera de rango para el registro actual"""

    def __init__(self, message: str, index: int, bulk_mode: bool):
        super().__init__(message)
        self.index = index
        self.bulk_mode = bulk_mode


class TemplateError(AxlError):
    """Error de sintaxis o ejecución del template XML"""
    pass


class RecordStateError(AxlError):
    """render() llamado sin registro actual (antes de advance() o después de agotar registros)"""
    pass


class TransportError(AxlError):
    """
    Falla de transporte: DNS/conexión/timeout o respuesta HTTP de error
    sin cuerpo XML. No se intenta decodificar nada estructurado.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class AxlFault(AxlError):
    """
    SOAP fault devuelto por CUCM (rechazo esperado a nivel de aplicación).

    Ejemplo de cuerpo:
        <soapenv:Fault>
          <faultcode>soapenv:Client</faultcode>
          <faultstring>Could not insert new row - duplicate value ...</faultstring>
          <detail><axlError>
            <axlcode>-239</axlcode>
            <axlmessage>Could not insert new row - duplicate value ...</axlmessage>
            <request>addRoutePartition</request>
          </axlError></detail>
        </soapenv:Fault>
    """

    def __init__(
        self,
        faultcode: str = "",
        faultstring: str = "",
        axl_code: int = 0,
        axl_message: str = "",
        axl_request: str = "",
        status_code: Optional[int] = None,
    ):
        self.faultcode = faultcode
        self.faultstring = faultstring
        self.axl_code = axl_code
        self.axl_message = axl_message
        self.axl_request = axl_request
        self.status_code = status_code
        super().__init__(f"AXL msg: {axl_message!r}, error code: {axl_code}")

    def result_text(self) -> str:
        """Texto para la línea de resultado por registro: 'mensaje (código)'"""
        return f"{self.axl_message} ({self.axl_code})"
