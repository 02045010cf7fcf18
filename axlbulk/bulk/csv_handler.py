"""
Motor de templates XML alimentado por CSV (modo bulk)

El archivo XML del request es un template Jinja2 con dos funciones:
- {{ var(i) }}     inserta la columna i del registro actual (escapada para XML)
- {{ varlog(i) }}  igual que var(i) y además marca la columna i para el log

Antes del primer render real se ejecuta una pasada en seco (salida descartada)
sobre el primer registro para descubrir qué columnas usa varlog. Si no hay
ninguna, se loguea la columna 0. Las columnas de log quedan fijas a partir del
primer registro aunque registros posteriores usen otras de forma condicional.

Uso:
    handler = CsvHandler(xml_template)
    handler.set_records(read_csv("phones.csv"))   # opcional (modo bulk)
    while handler.advance():
        body, method = canonicalize(handler.stream())
        ...
        logger.info(f"{handler.log_prefix()} Result: success")
"""
import csv
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Union
from xml.sax.saxutils import escape

from jinja2 import Environment, StrictUndefined, TemplateSyntaxError
from jinja2 import TemplateError as JinjaTemplateError

from axlbulk.axl_client.exceptions import (
    ColumnIndexError,
    RecordStateError,
    StreamWriteError,
    TemplateError,
)

logger = logging.getLogger(__name__)

# Descriptor de registro cuando no hay CSV (modo single-shot)
STATIC_DESCRIPTOR = "<static>"

# Comillas y saltos de línea también escapados: el valor puede ir dentro de un atributo
_XML_ENTITIES = {
    '"': "&quot;",
    "'": "&apos;",
    "\n": "&#10;",
    "\r": "&#13;",
    "\t": "&#9;",
}

_env = Environment(
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)


def xml_escape(value: str) -> str:
    """Escapa un valor CSV para insertarlo en XML."""
    return escape(value, _XML_ENTITIES)


def column_value(record: Sequence[str], index: Any, bulk_mode: bool) -> str:
    """
    Devuelve la columna `index` del registro, escapada para XML.

    Raises:
        ColumnIndexError: Si la columna no existe. El mensaje distingue entre
            modo bulk (índice mal declarado) y ausencia de CSV.
        TemplateError: Si index no es un entero
    """
    try:
        i = int(index)
    except (TypeError, ValueError) as e:
        raise TemplateError(f"índice de columna inválido en template: {index!r}") from e

    if i < 0 or i >= len(record):
        if bulk_mode:
            raise ColumnIndexError(
                f"índice de var fuera de rango ({i}) "
                f"(ayuda: la primera columna CSV tiene índice 0)",
                index=i,
                bulk_mode=True,
            )
        raise ColumnIndexError(
            "la función var en el template XML no está permitida sin archivo CSV",
            index=i,
            bulk_mode=False,
        )
    return xml_escape(record[i])


class _RenderContext:
    """
    Contexto de una pasada de render: un registro y el modo de recolección.

    Solo la pasada en seco se crea con collect_log_columns=True; los renders
    normales no modifican ningún estado.
    """

    def __init__(self, record: Sequence[str], bulk_mode: bool, collect_log_columns: bool = False):
        self.record = record
        self.bulk_mode = bulk_mode
        self.collect_log_columns = collect_log_columns
        self.log_columns: List[int] = []

    def var(self, index: Any) -> str:
        return column_value(self.record, index, self.bulk_mode)

    def varlog(self, index: Any) -> str:
        value = column_value(self.record, index, self.bulk_mode)
        i = int(index)
        if self.collect_log_columns and i not in self.log_columns:
            self.log_columns.append(i)
        return value


class CsvHandler:
    """Guarda los registros CSV y ejecuta el template para cada registro."""

    def __init__(self, template_text: str):
        """
        Args:
            template_text: Contenido del archivo XML (template Jinja2)

        Raises:
            TemplateError: Si el template tiene errores de sintaxis
        """
        try:
            self._template = _env.from_string(template_text)
        except TemplateSyntaxError as e:
            raise TemplateError(f"error al parsear template XML: {e}") from e

        self.records: List[List[str]] = [[]]  # un registro vacío (single-shot)
        self.index = -1
        self.bulk_mode = False
        self._log_columns: Optional[List[int]] = None

    def set_records(self, records: Iterable[Sequence[str]]) -> None:
        """Guarda los registros CSV, activa el modo bulk y reinicia la iteración."""
        self.records = [list(r) for r in records]
        self.bulk_mode = True
        self.index = -1
        self._log_columns = None

    # ------------------------------------------------------------------
    # Iteración
    # ------------------------------------------------------------------
    def advance(self) -> bool:
        """
        Pasa al siguiente registro. Debe llamarse antes de cada render().

        Returns:
            True si hay registro disponible; False (para siempre) al agotarse
        """
        if self.index < len(self.records):
            self.index += 1
        return self.index < len(self.records)

    @property
    def line_number(self) -> int:
        """Número de línea (1-based) del registro actual."""
        return self.index + 1

    @property
    def current_record(self) -> List[str]:
        if self.index < 0:
            raise RecordStateError("render() llamado antes de advance()")
        if self.index >= len(self.records):
            raise RecordStateError("no hay más registros CSV (advance() devolvió False)")
        return self.records[self.index]

    # ------------------------------------------------------------------
    # Columnas de log
    # ------------------------------------------------------------------
    @property
    def log_columns(self) -> List[int]:
        """Columnas marcadas con varlog (default [0]); se descubren una sola vez."""
        if self._log_columns is None:
            self._log_columns = self._discover_log_columns()
        return list(self._log_columns)

    def _discover_log_columns(self) -> List[int]:
        first = self.records[0] if self.records else []
        ctx = _RenderContext(first, self.bulk_mode, collect_log_columns=True)
        for _ in self._generate(ctx):
            pass  # solo interesan las llamadas a varlog
        columns = ctx.log_columns or [0]
        logger.debug(f"Columnas CSV para log: {columns}")
        return columns

    # ------------------------------------------------------------------
    # Render
    # ------------------------------------------------------------------
    def _generate(self, ctx: _RenderContext) -> Iterator[str]:
        try:
            yield from self._template.generate(var=ctx.var, varlog=ctx.varlog)
        except JinjaTemplateError as e:
            raise TemplateError(f"error al ejecutar template XML: {e}") from e

    def stream(self) -> Iterator[str]:
        """
        Ejecuta el template con el registro actual de forma incremental.

        Returns:
            Iterador de chunks de texto (se consume a medida que se parsea)

        Raises:
            RecordStateError: Si no hay registro actual
        """
        record = self.current_record
        _ = self.log_columns  # pasada en seco antes del primer render real
        return self._generate(_RenderContext(record, self.bulk_mode))

    def render(self, sink: Any) -> None:
        """Ejecuta el template con el registro actual escribiendo en sink."""
        for chunk in self.stream():
            try:
                sink.write(chunk)
            except (OSError, ValueError) as e:
                raise StreamWriteError(f"error al escribir template renderizado: {e}") from e

    def render_to_string(self) -> str:
        return "".join(self.stream())

    # ------------------------------------------------------------------
    # Log
    # ------------------------------------------------------------------
    def describe_current_record(self) -> str:
        """Valores de las columnas de log del registro actual, separados por coma."""
        if not self.bulk_mode:
            return STATIC_DESCRIPTOR
        record = self.current_record
        return ",".join(record[i] if i < len(record) else "" for i in self.log_columns)

    def log_prefix(self) -> str:
        """Prefijo para la línea de resultado: 'Line: 2, Item: "D"' (vacío sin CSV)."""
        if not self.bulk_mode:
            return ""
        item = json.dumps(self.describe_current_record(), ensure_ascii=False)
        return f"Line: {self.line_number}, Item: {item}"


def parse_records(lines: Iterable[str]) -> List[List[str]]:
    """
    Parsea líneas CSV. Las líneas que empiezan con '#' son comentarios y las
    filas vacías se ignoran. La fila 0 NO se trata como header.
    """
    data_lines = (line for line in lines if not line.startswith("#"))
    return [row for row in csv.reader(data_lines) if row]


def read_csv(filename: Union[str, Path], encoding: str = "utf-8") -> List[List[str]]:
    """Lee un archivo CSV de registros para modo bulk."""
    with open(filename, newline="", encoding=encoding) as f:
        records = parse_records(f)
    logger.debug(f"{len(records)} registros leídos de {filename}")
    return records
