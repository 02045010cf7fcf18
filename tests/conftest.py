"""
Pytest configuration y helpers para tests AXL
"""
from typing import Any, Dict, Iterable, Optional
from unittest.mock import Mock

import pytest

from axlbulk.axl_client.config import AxlConfig


AXL_ENV_VARS = (
    "AXL_HOST",
    "AXL_USER",
    "AXL_PASSWORD",
    "AXL_SCHEMA_VERSION",
    "AXL_INSECURE",
    "AXL_DUMP",
    "AXL_DUMP_DIR",
    "AXL_TIMEOUT_CONNECT",
    "AXL_TIMEOUT_READ",
    "AXL_LOG_DIR",
)

FAULT_BODY = (
    b"<?xml version='1.0' encoding='UTF-8'?>"
    b'<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/">'
    b"<soapenv:Body><soapenv:Fault><faultcode>soapenv:Client</faultcode>"
    b"<faultstring>Could not insert new row - duplicate value in a UNIQUE INDEX column (Unique Index:).</faultstring>"
    b"<detail><axlError><axlcode>-239</axlcode>"
    b"<axlmessage>Could not insert new row - duplicate value in a UNIQUE INDEX column (Unique Index:).</axlmessage>"
    b"<request>addRoutePartition</request></axlError></detail>"
    b"</soapenv:Fault></soapenv:Body></soapenv:Envelope>"
)

SUCCESS_BODY = (
    b"<?xml version='1.0' encoding='UTF-8'?>"
    b'<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/">'
    b'<soapenv:Body><ns:addRoutePartitionResponse xmlns:ns="http://www.cisco.com/AXL/API/12.5">'
    b"<return>{6F5B3B7A-0000-0000-0000-000000000001}</return>"
    b"</ns:addRoutePartitionResponse></soapenv:Body></soapenv:Envelope>"
)

SQL_BODY = (
    b'<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/">'
    b'<soapenv:Body><ns:executeSQLQueryResponse xmlns:ns="http://www.cisco.com/AXL/API/12.5">'
    b"<return><row><pkid>1</pkid><name>PT_A</name></row>"
    b"<row><pkid>2</pkid><name/></row></return>"
    b"</ns:executeSQLQueryResponse></soapenv:Body></soapenv:Envelope>"
)


@pytest.fixture(autouse=True)
def clean_axl_env(monkeypatch):
    """Evita que variables AXL_* del entorno (o de un .env) afecten los tests"""
    for name in AXL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def axl_config():
    """Configuración completa sin tocar el entorno"""
    return AxlConfig(
        host="cucm.example.com",
        username="admin",
        password="secret",
        schema_version="12.5",
        insecure=False,
        dump=False,
    )


def make_response(
    status_code: int = 200,
    content: bytes = SUCCESS_BODY,
    content_type: str = "text/xml; charset=utf-8",
    reason: str = "OK",
    cookies: Optional[Dict[str, str]] = None,
) -> Mock:
    """Respuesta HTTP falsa con la forma de requests.Response"""
    resp = Mock()
    resp.status_code = status_code
    resp.content = content
    resp.reason = reason
    resp.headers = {"Content-Type": content_type} if content_type else {}
    resp.cookies = cookies or {}
    return resp


@pytest.fixture
def response_factory():
    return make_response


class FakeClient:
    """Cliente AXL falso: devuelve (o lanza) los resultados en orden"""

    def __init__(self, outcomes: Iterable[Any], schema_version: str = "12.5"):
        self.config = AxlConfig(
            host="cucm.example.com",
            username="admin",
            password="secret",
            schema_version=schema_version,
            insecure=False,
            dump=False,
        )
        self.outcomes = list(outcomes)
        self.sent = []

    def send_envelope(self, envelope):
        self.sent.append(envelope)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


@pytest.fixture
def fake_client_factory():
    return FakeClient


@pytest.fixture
def fault_body():
    return FAULT_BODY


@pytest.fixture
def success_body():
    return SUCCESS_BODY


@pytest.fixture
def sql_body():
    return SQL_BODY
