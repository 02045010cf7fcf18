"""
Cliente SOAP 1.1 para AXL (Cisco Unified CM)

Requisitos:
- POST https://<cucm>/axl/ con Content-Type: text/xml
- SOAPAction: "CUCM:DB ver=<schema> <método>"
- Basic Auth hasta obtener la cookie JSESSIONIDSSO; después solo la cookie
- Un request = un round trip (sin reintentos)

Clasificación de la respuesta:
1. HTTP 200 -> AxlResponse (payload = primer hijo de <Body>)
2. HTTP != 200 con Content-Type XML -> AxlFault (axlcode, axlmessage, request)
3. Cualquier otro caso (HTML, DNS, timeout, TLS) -> TransportError

Notas importantes:
- NO usar elem1 or elem2 con lxml Elements (pueden ser "falsy" si no tienen hijos).
- El jar de cookies de requests está bloqueado: la única cookie que se envía es
  la de sesión, gestionada explícitamente por el cliente.
"""
import logging
import socket
from dataclasses import dataclass
from http.cookiejar import DefaultCookiePolicy
from typing import Dict, Any, List, Optional, Tuple

import requests
import urllib3
from lxml import etree
from requests import Session
from requests.adapters import HTTPAdapter
from requests.auth import HTTPBasicAuth
from urllib3.connection import HTTPConnection

from .config import AxlConfig
from .encoder import Source
from .envelope import Envelope, soap_action
from .evidence import format_exchange, write_exchange_dump
from .exceptions import AxlFault, MalformedXMLError, TransportError

logger = logging.getLogger(__name__)

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"

# Cookie de afinidad de sesión devuelta por CUCM
SESSION_COOKIE = "JSESSIONIDSSO"

# Intervalo entre probes TCP keep-alive (segundos)
KEEPALIVE_INTERVAL = 15

_PARSER = etree.XMLParser(resolve_entities=False, huge_tree=True, remove_blank_text=False)


def keepalive_socket_options(interval: int = KEEPALIVE_INTERVAL) -> List[Tuple[int, int, int]]:
    """Opciones de socket para urllib3: TCP_NODELAY + keep-alive cada `interval` segundos."""
    options = list(HTTPConnection.default_socket_options)
    options.append((socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1))
    # TCP_KEEPIDLE / TCP_KEEPINTVL no existen en todas las plataformas
    if hasattr(socket, "TCP_KEEPIDLE"):
        options.append((socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, interval))
    if hasattr(socket, "TCP_KEEPINTVL"):
        options.append((socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, interval))
    return options


class KeepAliveAdapter(HTTPAdapter):
    """HTTPAdapter con keep-alive TCP en los sockets del pool."""

    def __init__(self, keepalive_interval: int = KEEPALIVE_INTERVAL, **kwargs):
        # init_poolmanager se llama desde HTTPAdapter.__init__
        self.socket_options = keepalive_socket_options(keepalive_interval)
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        kwargs["socket_options"] = self.socket_options
        super().init_poolmanager(*args, **kwargs)


@dataclass
class AxlResponse:
    """Respuesta exitosa (HTTP 200) de AXL"""

    status_code: int
    raw_body: bytes
    payload: str


def is_xml(content_type: Optional[str]) -> bool:
    # puede ser application/xml, text/xml o application/soap+xml
    ct = (content_type or "").lower()
    return "/xml" in ct or "+xml" in ct


def _find_text(xml_root: Any, local_name: str) -> Optional[str]:
    # Busca por local-name para tolerar prefijos
    nodes = xml_root.xpath(f'//*[local-name()="{local_name}"]')
    if not nodes:
        return None
    val = nodes[0].text
    return val.strip() if val else ""


def _parse_xml(content: bytes, what: str, status_code: int) -> Any:
    try:
        return etree.fromstring(content, parser=_PARSER)
    except etree.XMLSyntaxError as e:
        raise TransportError(
            f"Error al decodificar {what} AXL: {e}", status_code=status_code
        ) from e


def extract_payload(content: bytes, status_code: int = 200) -> str:
    """
    Extrae el payload de un envelope SOAP de respuesta.

    Returns:
        Primer elemento hijo de <Body> serializado (ej: <ns:addRoutePartitionResponse>...)

    Raises:
        TransportError: Si el cuerpo no es XML o no tiene <Body>
    """
    root = _parse_xml(content, "respuesta", status_code)
    bodies = root.xpath('//*[local-name()="Body"]')
    if not bodies:
        raise TransportError("Respuesta AXL sin <Body> SOAP", status_code=status_code)

    body = bodies[0]
    children = [child for child in body if isinstance(child.tag, str)]
    if not children:
        return ""
    return etree.tostring(children[0], encoding="unicode")


def parse_fault(content: bytes, status_code: Optional[int] = None) -> AxlFault:
    """
    Decodifica un SOAP fault AXL.

    Returns:
        AxlFault (no la lanza; el llamador decide)

    Raises:
        TransportError: Si el cuerpo no es XML o axlcode no es entero
    """
    root = _parse_xml(content, "respuesta de error", status_code)

    raw_code = _find_text(root, "axlcode")
    try:
        axl_code = int(raw_code) if raw_code else 0
    except ValueError as e:
        raise TransportError(
            f"Error al decodificar respuesta de error AXL: axlcode inválido {raw_code!r}",
            status_code=status_code,
        ) from e

    return AxlFault(
        faultcode=_find_text(root, "faultcode") or "",
        faultstring=_find_text(root, "faultstring") or "",
        axl_code=axl_code,
        axl_message=_find_text(root, "axlmessage") or "",
        axl_request=_find_text(root, "request") or "",
        status_code=status_code,
    )


class AxlClient:
    """Cliente AXL: un Session HTTP por cliente, cookie de sesión reutilizada."""

    def __init__(self, config: AxlConfig):
        config.validate()
        self.config = config
        self.session_cookie: Optional[str] = None
        self.session = self._create_session()

    # ---------------------------------------------------------------------
    # Transport
    # ---------------------------------------------------------------------
    def _create_session(self) -> Session:
        session = Session()

        # La cookie de sesión se gestiona a mano (ver _request_headers)
        session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))

        session.verify = not self.config.insecure
        if self.config.insecure:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
            logger.warning(
                f"Validación de certificado TLS deshabilitada para {self.config.host}"
            )

        session.mount("https://", KeepAliveAdapter())
        return session

    def _request_headers(self, action: str) -> Dict[str, str]:
        headers = {
            "Content-Type": "text/xml",
            "SOAPAction": action,
        }
        if self.session_cookie is not None:
            headers["Cookie"] = f"{SESSION_COOKIE}={self.session_cookie}"
        return headers

    def _auth(self) -> Optional[HTTPBasicAuth]:
        # Cookie tiene prioridad sobre credenciales una vez obtenida
        if self.session_cookie is not None:
            return None
        return HTTPBasicAuth(self.config.username, self.config.password)

    def _capture_session_cookie(self, resp: requests.Response) -> None:
        cookies = getattr(resp, "cookies", None)
        value = cookies.get(SESSION_COOKIE) if cookies is not None else None
        if value and value != self.session_cookie:
            logger.debug(f"Cookie {SESSION_COOKIE} recibida; se usará en lugar de Basic Auth")
            self.session_cookie = value

    def _dump(
        self,
        operation: str,
        action: str,
        headers: Dict[str, str],
        envelope: bytes,
        basic_auth: bool,
        resp: Optional[requests.Response] = None,
    ) -> None:
        if not self.config.dump:
            return

        status_code = resp.status_code if resp is not None else None
        reason = resp.reason if resp is not None else None
        response_headers = dict(resp.headers) if resp is not None else None
        response_body = resp.content if resp is not None else None

        dump_headers = dict(headers)
        if basic_auth:
            dump_headers["Authorization"] = "Basic"

        logger.info(
            "AXL dump:\n"
            + format_exchange(
                "POST",
                self.config.endpoint_url,
                dump_headers,
                envelope,
                status_code=status_code,
                reason=reason,
                response_headers=response_headers,
                response_body=response_body,
            )
        )

        if self.config.dump_dir:
            write_exchange_dump(
                self.config.dump_dir,
                operation,
                request_body=envelope,
                response_body=response_body,
                meta_dict={
                    "status_code": status_code,
                    "reason": reason,
                    "soap_action": action,
                    "endpoint": self.config.endpoint_url,
                    "content_type": (response_headers or {}).get("Content-Type"),
                },
            )

    def _post(self, envelope: bytes, operation: str, action: str) -> AxlResponse:
        if not operation:
            raise MalformedXMLError("método AXL vacío: no se puede construir SOAPAction")

        url = self.config.endpoint_url
        headers = self._request_headers(action)
        auth = self._auth()
        logger.debug(f"POST {url} SOAPAction={action} auth={'basic' if auth else 'cookie'}")

        try:
            resp = self.session.post(
                url,
                data=envelope,
                headers=headers,
                auth=auth,
                timeout=(self.config.connect_timeout, self.config.read_timeout),
            )
        except requests.exceptions.RequestException as e:
            self._dump(operation, action, headers, envelope, auth is not None)
            raise TransportError(f"request AXL falló: {e}") from e

        self._capture_session_cookie(resp)
        self._dump(operation, action, headers, envelope, auth is not None, resp)
        return self._handle_result(resp)

    def _handle_result(self, resp: requests.Response) -> AxlResponse:
        # se invierte la lógica del "happy path": primero éxito, después los errores
        if resp.status_code == 200:
            payload = extract_payload(resp.content, resp.status_code)
            return AxlResponse(
                status_code=resp.status_code,
                raw_body=resp.content,
                payload=payload,
            )

        if is_xml(resp.headers.get("Content-Type")):
            fault = parse_fault(resp.content, resp.status_code)
            logger.debug(f"AXL fault: {fault.axl_message} ({fault.axl_code})")
            raise fault

        raise TransportError(
            f"request AXL falló con status {resp.status_code}, mensaje {resp.reason!r}",
            status_code=resp.status_code,
            reason=resp.reason,
        )

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def send(self, envelope: bytes, operation: str) -> AxlResponse:
        """
        Envía un envelope ya compuesto.

        Args:
            envelope: Bytes del envelope SOAP (ver envelope.compose)
            operation: Método AXL detectado por el encoder

        Returns:
            AxlResponse

        Raises:
            AxlFault: SOAP fault de CUCM (HTTP != 200, cuerpo XML)
            TransportError: Error de red, TLS, timeout o respuesta no XML
        """
        action = soap_action(self.config.schema_version, operation)
        return self._post(envelope, operation, action)

    def send_envelope(self, envelope: Envelope) -> AxlResponse:
        """Envía un Envelope; SOAPAction y namespace salen de la misma versión."""
        return self._post(envelope.to_bytes(), envelope.operation, envelope.soap_action)

    def axl_request(self, source: Source) -> AxlResponse:
        """
        Lee XML de source y lo envía como request AXL.

        El XML no debe incluir headers SOAP. Se elimina el whitespace
        insignificante y el método AXL se infiere del elemento raíz.
        """
        envelope = Envelope.from_source(self.config.schema_version, source)
        return self.send_envelope(envelope)

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
