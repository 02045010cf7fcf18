"""
Salida de respuestas AXL: pretty print y export de executeSQLQuery a CSV
"""
import csv
import logging
from pathlib import Path
from typing import List, Union

from lxml import etree

from axlbulk.axl_client.exceptions import TransportError

logger = logging.getLogger(__name__)

_PARSER = etree.XMLParser(resolve_entities=False, huge_tree=True, remove_blank_text=True)


def _parse(xml_bytes: Union[str, bytes]):
    if isinstance(xml_bytes, str):
        xml_bytes = xml_bytes.encode("utf-8")
    try:
        return etree.fromstring(xml_bytes, parser=_PARSER)
    except etree.XMLSyntaxError as e:
        raise TransportError(f"Error al decodificar respuesta XML: {e}") from e


def pretty_print(xml_bytes: Union[str, bytes]) -> str:
    """XML indentado con dos espacios."""
    root = _parse(xml_bytes)
    return etree.tostring(root, pretty_print=True, encoding="unicode").rstrip("\n")


def sql_rows(xml_bytes: Union[str, bytes]) -> List[List[str]]:
    """
    Convierte una executeSQLQueryResponse en filas CSV.

    La primera fila es el header (nombres de columna del primer <row>) con el
    primer campo comentado ('#pkid'), para que el CSV se pueda reutilizar
    directamente como entrada de modo bulk.
    """
    root = _parse(xml_bytes)
    rows = root.xpath('//*[local-name()="return"]/*[local-name()="row"]')

    records: List[List[str]] = []
    for row in rows:
        columns = [c for c in row if isinstance(c.tag, str)]
        if not records:
            records.append([etree.QName(c).localname for c in columns])
        records.append([c.text or "" for c in columns])

    # Comentar línea de header
    if records and records[0] and records[0][0]:
        records[0][0] = "#" + records[0][0]
    return records


def save_sql_response(filename: Union[str, Path], xml_bytes: Union[str, bytes]) -> int:
    """
    Guarda el resultado de executeSQLQuery como CSV.

    Returns:
        Cantidad de filas de datos escritas (sin header)
    """
    records = sql_rows(xml_bytes)
    with open(filename, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerows(records)
    data_rows = max(len(records) - 1, 0)
    logger.debug(f"{data_rows} filas SQL guardadas en {filename}")
    return data_rows
