"""
Ejecución de requests AXL por registro CSV

Cada registro se procesa completo antes del siguiente:
template (generador Jinja2) -> encoder (expat, chunk a chunk) -> envelope -> POST.
El render y la canonicalización se encadenan como generadores, sin materializar
el XML intermedio; no hay concurrencia entre registros.

Política de errores:
- AxlFault: rechazo esperado de CUCM; se reporta y se sigue con el próximo registro.
- Errores de template/XML/transporte: se reportan; si stop_on_error=True se corta.
"""
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

from axlbulk.axl_client.envelope import Envelope
from axlbulk.axl_client.exceptions import (
    AxlError,
    AxlFault,
    ColumnIndexError,
    MalformedXMLError,
    StreamWriteError,
    TemplateError,
    TransportError,
)
from axlbulk.axl_client.soap_client import AxlClient, AxlResponse

from .csv_handler import CsvHandler
from .pipeline_logger import PipelineLogger

logger = logging.getLogger(__name__)

RESULT_SUCCESS = "success"

# Errores que abortan solo el registro actual
RECORD_ERRORS = (
    MalformedXMLError,
    ColumnIndexError,
    TemplateError,
    StreamWriteError,
    TransportError,
)


@dataclass
class RecordResult:
    """Resultado de un registro"""

    line: int
    descriptor: str
    ok: bool
    message: str
    response: Optional[AxlResponse] = None
    error: Optional[Exception] = None

    @property
    def is_fault(self) -> bool:
        return isinstance(self.error, AxlFault)

    @property
    def fatal(self) -> bool:
        """True si el error no es un rechazo de aplicación."""
        return not self.ok and not self.is_fault

    def result_line(self) -> str:
        if self.descriptor:
            return f"{self.descriptor} Result: {self.message}"
        return f"Result: {self.message}"


class BulkRunner:
    """Recorre los registros de un CsvHandler y envía un request AXL por registro."""

    def __init__(
        self,
        handler: CsvHandler,
        client: AxlClient,
        pipeline_logger: Optional[PipelineLogger] = None,
        stop_on_error: bool = True,
    ):
        self.handler = handler
        self.client = client
        self.pipeline_logger = pipeline_logger
        self.stop_on_error = stop_on_error

    def _descriptor(self) -> str:
        try:
            return self.handler.log_prefix()
        except AxlError:
            # la pasada en seco falló; el error ya está en el resultado
            return f"Line: {self.handler.line_number}" if self.handler.bulk_mode else ""

    def process_current(self) -> RecordResult:
        """Renderiza, canonicaliza y envía el registro actual."""
        line = self.handler.line_number
        try:
            envelope = Envelope.from_source(
                self.client.config.schema_version, self.handler.stream()
            )
            response = self.client.send_envelope(envelope)
        except AxlFault as fault:
            return RecordResult(line, self._descriptor(), False, fault.result_text(), error=fault)
        except RECORD_ERRORS as e:
            logger.debug(f"Registro {line} abortado: {e}")
            return RecordResult(line, self._descriptor(), False, str(e), error=e)

        return RecordResult(line, self._descriptor(), True, RESULT_SUCCESS, response=response)

    def run(self) -> Iterator[RecordResult]:
        """
        Procesa registro por registro.

        Yields:
            RecordResult por cada registro procesado
        """
        while self.handler.advance():
            result = self.process_current()
            if self.pipeline_logger is not None:
                if result.fatal:
                    self.pipeline_logger.error(result.result_line())
                else:
                    self.pipeline_logger.log_result(result.descriptor, result.message)
            yield result

            if result.fatal and self.stop_on_error:
                logger.debug(f"Ejecución detenida en registro {result.line}")
                break

    def run_all(self) -> List[RecordResult]:
        return list(self.run())
