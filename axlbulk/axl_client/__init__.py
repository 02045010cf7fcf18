"""
Módulo cliente para la API AXL de Cisco Unified Communications Manager
"""
from .config import AxlConfig, get_axl_config
from .encoder import canonicalize
from .envelope import Envelope, compose, soap_action
from .exceptions import (
    AxlError,
    AxlFault,
    ColumnIndexError,
    ConfigurationError,
    MalformedXMLError,
    RecordStateError,
    StreamWriteError,
    TemplateError,
    TransportError,
)
from .soap_client import AxlClient, AxlResponse

__all__ = [
    'AxlConfig', 'get_axl_config', 'canonicalize', 'Envelope', 'compose', 'soap_action',
    'AxlClient', 'AxlResponse', 'AxlError', 'AxlFault', 'ColumnIndexError',
    'ConfigurationError', 'MalformedXMLError', 'RecordStateError', 'StreamWriteError',
    'TemplateError', 'TransportError',
]
