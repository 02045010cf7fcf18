"""
Configuración para cliente AXL

Los valores se resuelven en este orden:
1. Argumentos explícitos (flags de CLI)
2. Variables de entorno (o .env vía python-dotenv)
3. Defaults
"""
import os
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv

from .exceptions import ConfigurationError

load_dotenv()

DEFAULT_SCHEMA_VERSION = "12.5"
DEFAULT_CONNECT_TIMEOUT = 15
DEFAULT_READ_TIMEOUT = 15

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} debe ser un entero, se recibió: {value!r}") from e


class AxlConfig:
    """Configuración del cliente AXL (CUCM Publisher / primer nodo)"""

    AXL_PATH = "/axl/"

    def __init__(
        self,
        host: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        schema_version: Optional[str] = None,
        insecure: Optional[bool] = None,
        dump: Optional[bool] = None,
        dump_dir: Optional[str] = None,
        connect_timeout: Optional[int] = None,
        read_timeout: Optional[int] = None,
    ):
        """
        Inicializa la configuración AXL

        Args:
            host: FQDN o IP del CUCM Publisher (AXL_HOST)
            username: Usuario AXL (AXL_USER)
            password: Password AXL (AXL_PASSWORD)
            schema_version: Versión del schema AXL, ej: "12.5" (AXL_SCHEMA_VERSION)
            insecure: Si True, no valida el certificado del servidor (AXL_INSECURE)
            dump: Si True, vuelca request/response de cada intercambio (AXL_DUMP)
            dump_dir: Directorio para guardar los volcados (AXL_DUMP_DIR)
            connect_timeout: Timeout de conexión TCP en segundos (AXL_TIMEOUT_CONNECT)
            read_timeout: Timeout de lectura en segundos (AXL_TIMEOUT_READ)
        """
        self.host = host if host is not None else os.getenv("AXL_HOST", "")
        self.username = username if username is not None else os.getenv("AXL_USER", "")
        self.password = password if password is not None else os.getenv("AXL_PASSWORD", "")
        self.schema_version = (
            schema_version
            if schema_version is not None
            else os.getenv("AXL_SCHEMA_VERSION", DEFAULT_SCHEMA_VERSION)
        )

        # TLS sin verificación solo si el usuario lo pide explícitamente (-k)
        self.insecure = insecure if insecure is not None else _env_flag("AXL_INSECURE")
        self.dump = dump if dump is not None else _env_flag("AXL_DUMP")

        dump_dir = dump_dir if dump_dir is not None else os.getenv("AXL_DUMP_DIR")
        self.dump_dir = Path(dump_dir) if dump_dir else None

        # Timeouts
        self.connect_timeout = (
            connect_timeout
            if connect_timeout is not None
            else _env_int("AXL_TIMEOUT_CONNECT", DEFAULT_CONNECT_TIMEOUT)
        )
        self.read_timeout = (
            read_timeout
            if read_timeout is not None
            else _env_int("AXL_TIMEOUT_READ", DEFAULT_READ_TIMEOUT)
        )

    @property
    def endpoint_url(self) -> str:
        """URL del servicio AXL: https://<host>/axl/"""
        return f"https://{self.host}{self.AXL_PATH}"

    def validate(self) -> None:
        """
        Valida que la configuración permita enviar requests.

        Raises:
            ConfigurationError: Si falta host, credenciales o versión de schema
        """
        missing = []
        if not (self.host or "").strip():
            missing.append("host (--cucm o AXL_HOST)")
        if not (self.username or "").strip():
            missing.append("usuario (-u o AXL_USER)")
        if not self.password:
            missing.append("password (-p o AXL_PASSWORD)")
        if not (self.schema_version or "").strip():
            missing.append("versión de schema (-s o AXL_SCHEMA_VERSION)")

        if missing:
            raise ConfigurationError(
                "Configuración AXL incompleta. Falta: " + ", ".join(missing)
            )

    def __repr__(self) -> str:
        # Nunca incluir el password
        return (
            f"AxlConfig(host={self.host!r}, username={self.username!r}, "
            f"schema_version={self.schema_version!r}, insecure={self.insecure}, "
            f"dump={self.dump})"
        )


def get_axl_config(**overrides) -> AxlConfig:
    """
    Factory para obtener configuración AXL.

    Args:
        **overrides: Valores explícitos (ver AxlConfig); los None se ignoran

    Returns:
        AxlConfig instance
    """
    return AxlConfig(**{k: v for k, v in overrides.items() if v is not None})
