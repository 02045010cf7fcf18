"""
Tests para pretty print y export de executeSQLQuery a CSV
"""
import pytest

from axlbulk.axl_client.exceptions import TransportError
from axlbulk.bulk.csv_handler import read_csv
from axlbulk.bulk.output import pretty_print, save_sql_response, sql_rows


def test_sql_rows(sql_body):
    """Header comentado seguido de una fila por row"""
    assert sql_rows(sql_body) == [["#pkid", "name"], ["1", "PT_A"], ["2", ""]]


def test_sql_rows_without_rows(success_body):
    """Una respuesta sin filas no genera CSV"""
    assert sql_rows(success_body) == []


def test_save_sql_response_is_reusable_as_bulk_input(tmp_path, sql_body):
    """El CSV guardado se puede usar como entrada bulk"""
    path = tmp_path / "result.csv"

    assert save_sql_response(path, sql_body) == 2
    # el header queda comentado
    assert read_csv(path) == [["1", "PT_A"], ["2", ""]]


def test_pretty_print():
    """Indentación con dos espacios"""
    assert pretty_print("<a><b>1</b></a>") == "<a>\n  <b>1</b>\n</a>"


def test_pretty_print_reindents():
    """El whitespace original se reemplaza"""
    assert pretty_print(b"<a>\n      <b>1</b>\n</a>\n") == "<a>\n  <b>1</b>\n</a>"


def test_invalid_xml():
    """Una respuesta no XML es TransportError"""
    with pytest.raises(TransportError):
        pretty_print(b"<html>")
