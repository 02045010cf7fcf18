"""
Envelope SOAP 1.1 para AXL

El cuerpo canónico (salida de encoder.canonicalize) se inserta tal cual dentro
de <s:Body>; no se escapa nada porque ya viene bien formado del encoder.
La versión de schema aparece dos veces: en el namespace xmlns:n del envelope
y en el header HTTP SOAPAction. Ambas se generan desde el mismo Envelope.
"""
from dataclasses import dataclass

from jinja2 import Environment, StrictUndefined

from .encoder import canonicalize
from .exceptions import ConfigurationError

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"

SOAP_ENVELOPE = (
    '<s:Envelope xmlns:s="' + SOAP_ENV_NS + '" '
    'xmlns:n="http://www.cisco.com/AXL/API/{{ version }}">'
    "<s:Header/><s:Body>{{ body }}</s:Body></s:Envelope>"
)

# Sin autoescape: el body ya es XML canónico
_env = Environment(autoescape=False, undefined=StrictUndefined, keep_trailing_newline=False)
_envelope_template = _env.from_string(SOAP_ENVELOPE)


def _check_schema_version(schema_version: str) -> str:
    if not schema_version or not str(schema_version).strip():
        raise ConfigurationError("Versión de schema AXL no especificada")
    return str(schema_version).strip()


def compose(schema_version: str, canonical_body: str) -> bytes:
    """
    Construye el envelope SOAP con el cuerpo canónico.

    Args:
        schema_version: Versión de schema AXL (ej: "12.5")
        canonical_body: XML canónico del request

    Returns:
        Bytes UTF-8 del envelope completo

    Raises:
        ConfigurationError: Si schema_version está vacío
    """
    version = _check_schema_version(schema_version)
    return _envelope_template.render(version=version, body=canonical_body).encode("utf-8")


def soap_action(schema_version: str, operation: str) -> str:
    """Valor del header SOAPAction, con comillas: "CUCM:DB ver=12.5 addLine" """
    version = _check_schema_version(schema_version)
    return f'"CUCM:DB ver={version} {operation}"'


@dataclass
class Envelope:
    """Request AXL listo para enviar (vive solo durante un intercambio)."""

    schema_version: str
    body: str
    operation: str

    @classmethod
    def from_source(cls, schema_version: str, source) -> "Envelope":
        """
        Canonicaliza source y arma el envelope.

        La versión se valida antes de leer source.
        """
        _check_schema_version(schema_version)
        body, operation = canonicalize(source)
        return cls(schema_version=schema_version, body=body, operation=operation)

    @property
    def soap_action(self) -> str:
        return soap_action(self.schema_version, self.operation)

    def to_bytes(self) -> bytes:
        return compose(self.schema_version, self.body)
