"""
Canonicalización streaming de fragmentos XML AXL

Convierte un fragmento XML escrito a mano (con indentación, comentarios y
opcionalmente un prefijo de namespace en el elemento raíz) en el cuerpo
canónico que va dentro de <s:Body>:

- Se elimina el whitespace insignificante entre elementos.
- Se preserva exactamente el texto de las hojas (salvo si es solo whitespace).
- Se eliminan los comentarios.
- El elemento raíz recibe siempre el prefijo "n:" (reemplaza, no combina).
- El nombre local del elemento raíz es el método AXL (ej: addRoutePartition).

Notas importantes:
- Se usa expat SIN procesamiento de namespaces: los nombres calificados pasan
  tal cual y un prefijo no declarado en la raíz (típico de fragmentos copiados
  de SoapUI, ej: <ns:getPhone>) no es un error. lxml rechaza esos prefijos.
- Nunca se emiten tags auto-cerrados: <empty/> -> <empty></empty>.
"""
import io
import logging
from typing import Any, Iterator, List, Tuple, Union
from xml.parsers import expat
from xml.sax.saxutils import escape

from .exceptions import MalformedXMLError, StreamWriteError

logger = logging.getLogger(__name__)

# Prefijo fijo del elemento raíz; el envelope declara xmlns:n
CANONICAL_PREFIX = "n"

# Tamaño de lectura para fuentes file-like
CHUNK_SIZE = 64 * 1024

# Whitespace XML (no usar str.strip() sin argumentos: incluye NBSP)
XML_WHITESPACE = " \t\r\n"

_TEXT_ENTITIES = {"\r": "&#13;"}
_ATTR_ENTITIES = {'"': "&quot;", "\t": "&#9;", "\n": "&#10;", "\r": "&#13;"}

Source = Union[str, bytes, bytearray, Any]


def normalize_prefix(name: str) -> Tuple[str, str]:
    """
    Reemplaza el prefijo de namespace de un nombre calificado por "n:".

    Args:
        name: Nombre tal como aparece en el XML (ej: "ns:addLine" o "addLine")

    Returns:
        Tupla (nombre_con_prefijo_canonico, nombre_local)
    """
    local = name.split(":", 1)[-1]
    return f"{CANONICAL_PREFIX}:{local}", local


def _escape_text(text: str) -> str:
    return escape(text, _TEXT_ENTITIES)


def _quote_attr(value: str) -> str:
    return '"' + escape(value, _ATTR_ENTITIES) + '"'


class CanonicalEncoder:
    """
    Encoder streaming: recibe chunks de XML con feed() y escribe la forma
    canónica en sink (cualquier objeto con .write(str)).

    Estado:
        level: profundidad de anidamiento (1 = elemento raíz)
        operation: nombre local del elemento raíz (método AXL)
    """

    def __init__(self, sink: Any):
        self._sink = sink
        self.level = 0
        self.operation = ""
        self._start_last_seen = False
        self._char_data: List[str] = []

        parser = expat.ParserCreate()
        parser.ordered_attributes = True
        parser.buffer_text = True
        parser.StartElementHandler = self._start_element
        parser.EndElementHandler = self._end_element
        parser.CharacterDataHandler = self._char_data_handler
        parser.CommentHandler = self._comment
        parser.ProcessingInstructionHandler = self._proc_inst
        self._parser = parser

    # ------------------------------------------------------------------
    # API
    # ------------------------------------------------------------------
    def feed(self, chunk: Union[str, bytes]) -> None:
        """Procesa un chunk de XML (str o bytes)."""
        self._parse(chunk, False)

    def close(self) -> str:
        """
        Finaliza el parseo.

        Returns:
            Nombre del método AXL (nombre local del elemento raíz)

        Raises:
            MalformedXMLError: Si el documento está incompleto o no tiene raíz
        """
        self._parse(b"", True)
        if not self.operation:
            raise MalformedXMLError("el elemento raíz no tiene nombre local (método AXL vacío)")
        return self.operation

    # ------------------------------------------------------------------
    # Handlers expat
    # ------------------------------------------------------------------
    def _parse(self, data: Union[str, bytes], final: bool) -> None:
        try:
            self._parser.Parse(data, final)
        except expat.ExpatError as e:
            raise MalformedXMLError(
                f"error al decodificar token XML: {expat.ErrorString(e.code)} "
                f"(línea {e.lineno}, columna {e.offset})",
                line=e.lineno,
                column=e.offset,
            ) from e

    def _write(self, s: str) -> None:
        try:
            self._sink.write(s)
        except (OSError, ValueError) as e:
            raise StreamWriteError(f"error al escribir token XML: {e}") from e

    def _start_element(self, name: str, attrs: List[str]) -> None:
        self._start_last_seen = True
        self._char_data = []
        self.level += 1
        if self.level == 1:
            name, self.operation = normalize_prefix(name)
            logger.debug(f"Método AXL detectado: {self.operation}")

        parts = ["<", name]
        # ordered_attributes: [nombre1, valor1, nombre2, valor2, ...]
        for i in range(0, len(attrs), 2):
            parts.append(f" {attrs[i]}={_quote_attr(attrs[i + 1])}")
        parts.append(">")
        self._write("".join(parts))

    def _end_element(self, name: str) -> None:
        # Solo el texto de una hoja (start seguido directamente de end) es significativo
        if self._start_last_seen:
            text = "".join(self._char_data)
            if text.strip(XML_WHITESPACE):
                self._write(_escape_text(text))
        self._start_last_seen = False
        self._char_data = []

        if self.level == 1:
            name, _ = normalize_prefix(name)
        self.level -= 1
        self._write(f"</{name}>")

    def _char_data_handler(self, data: str) -> None:
        self._char_data.append(data)

    def _comment(self, data: str) -> None:
        pass  # comentarios XML: se descartan

    def _proc_inst(self, target: str, data: str) -> None:
        self._write(f"<?{target} {data}?>" if data else f"<?{target}?>")


def iter_chunks(source: Source, chunk_size: int = CHUNK_SIZE) -> Iterator[Union[str, bytes]]:
    """
    Normaliza la fuente a un iterador de chunks.

    Acepta str/bytes, objetos file-like (con .read) o cualquier iterable de
    chunks (ej: el generador de un template Jinja2).
    """
    if isinstance(source, (str, bytes, bytearray)):
        yield bytes(source) if isinstance(source, bytearray) else source
        return

    read = getattr(source, "read", None)
    if read is not None:
        while True:
            chunk = read(chunk_size)
            if not chunk:
                break
            yield chunk
        return

    yield from source


def encode(source: Source, sink: Any) -> str:
    """
    Canonicaliza source escribiendo en sink a medida que se parsea.

    Returns:
        Nombre del método AXL
    """
    encoder = CanonicalEncoder(sink)
    for chunk in iter_chunks(source):
        encoder.feed(chunk)
    return encoder.close()


def canonicalize(source: Source) -> Tuple[str, str]:
    """
    Canonicaliza un fragmento XML AXL.

    Args:
        source: XML como str/bytes, file-like o iterable de chunks

    Returns:
        Tupla (cuerpo_canonico, metodo_axl)

    Raises:
        MalformedXMLError: Si el XML no se puede tokenizar
    """
    buf = io.StringIO()
    operation = encode(source, buf)
    return buf.getvalue(), operation
