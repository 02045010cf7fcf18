"""
Tests para CsvHandler (templates XML con var/varlog)
"""
import io

import pytest

from axlbulk.axl_client.encoder import canonicalize
from axlbulk.axl_client.exceptions import (
    ColumnIndexError,
    RecordStateError,
    StreamWriteError,
    TemplateError,
)
from axlbulk.bulk.csv_handler import (
    STATIC_DESCRIPTOR,
    CsvHandler,
    parse_records,
    read_csv,
    xml_escape,
)

TEMPLATE = "<addRoutePartition><name>{{ var(0) }}</name><description>{{ varlog(1) }}</description></addRoutePartition>"


def _all_rendered(handler):
    rendered = []
    while handler.advance():
        rendered.append((handler.render_to_string(), handler.describe_current_record()))
    return rendered


def test_bulk_render_and_log_columns():
    """varlog(1) define la columna de log de cada registro"""
    handler = CsvHandler(TEMPLATE)
    handler.set_records([["A", "B"], ["C", "D"]])

    rendered = _all_rendered(handler)

    assert handler.log_columns == [1]
    assert rendered == [
        ("<addRoutePartition><name>A</name><description>B</description></addRoutePartition>", "B"),
        ("<addRoutePartition><name>C</name><description>D</description></addRoutePartition>", "D"),
    ]


def test_advance_count_and_exhaustion():
    """advance() devuelve True una vez por registro y después False siempre"""
    handler = CsvHandler("<a>{{ var(0) }}</a>")
    handler.set_records([["1"], ["2"], ["3"]])

    count = 0
    while handler.advance():
        count += 1
    assert count == 3

    # agotado: sigue devolviendo False
    assert handler.advance() is False
    assert handler.advance() is False
    with pytest.raises(RecordStateError):
        handler.render_to_string()


def test_render_before_advance():
    """Render sin advance() previo es un error de estado"""
    handler = CsvHandler("<a/>")
    with pytest.raises(RecordStateError):
        handler.render_to_string()


def test_static_mode_single_record():
    """Sin CSV hay un único registro vacío"""
    handler = CsvHandler("<getOSVersion/>")

    assert handler.advance() is True
    assert handler.render_to_string() == "<getOSVersion/>"
    assert handler.describe_current_record() == STATIC_DESCRIPTOR
    assert handler.log_prefix() == ""
    assert handler.advance() is False


def test_var_without_csv():
    """var() sin CSV falla con mensaje propio del modo single-shot"""
    handler = CsvHandler("<a>{{ var(0) }}</a>")
    handler.advance()

    with pytest.raises(ColumnIndexError) as exc_info:
        handler.render_to_string()

    assert exc_info.value.bulk_mode is False
    assert "sin archivo CSV" in str(exc_info.value)


def test_var_out_of_range_in_bulk_mode():
    """var() fuera de rango en modo bulk indica que las columnas empiezan en 0"""
    handler = CsvHandler("<a>{{ var(0) }}{{ var(2) }}</a>")
    handler.set_records([["x", "y"]])
    handler.advance()

    with pytest.raises(ColumnIndexError) as exc_info:
        handler.render_to_string()

    assert exc_info.value.index == 2
    assert exc_info.value.bulk_mode is True
    assert "índice 0" in str(exc_info.value)
    assert isinstance(exc_info.value, IndexError)


def test_short_record_fails_only_that_record():
    """Un registro corto falla sin afectar a los demás"""
    handler = CsvHandler("<a>{{ var(1) }}</a>")
    handler.set_records([["a", "b"], ["c"], ["d", "e"]])

    results = []
    while handler.advance():
        try:
            results.append(handler.render_to_string())
        except ColumnIndexError:
            results.append(None)

    assert results == ["<a>b</a>", None, "<a>e</a>"]


def test_values_are_xml_escaped():
    """Los valores CSV se escapan para texto y atributos"""
    handler = CsvHandler('<a x="{{ var(1) }}">{{ var(0) }}</a>')
    handler.set_records([["Tom & <Jerry>", 'say "hi"']])
    handler.advance()

    assert handler.render_to_string() == '<a x="say &quot;hi&quot;">Tom &amp; &lt;Jerry&gt;</a>'


def test_default_log_column_is_zero():
    """Sin varlog se loguea la columna 0"""
    handler = CsvHandler("<a>{{ var(1) }}</a>")
    handler.set_records([["first", "second"]])
    handler.advance()

    assert handler.log_columns == [0]
    assert handler.log_prefix() == 'Line: 1, Item: "first"'


def test_varlog_order_of_first_use():
    """Las columnas de log siguen el orden de primer uso"""
    handler = CsvHandler("<a>{{ varlog(2) }}{{ var(1) }}{{ varlog(0) }}{{ varlog(2) }}</a>")
    handler.set_records([["a", "b", "c"], ["d", "e", "f"]])
    handler.advance()
    handler.advance()

    assert handler.log_columns == [2, 0]
    assert handler.describe_current_record() == "f,d"
    assert handler.log_prefix() == 'Line: 2, Item: "f,d"'


def test_log_columns_fixed_by_first_record():
    """Las columnas de log se fijan con el primer registro"""
    template = "<a>{% if var(0) == 'x' %}{{ varlog(1) }}{% else %}{{ varlog(0) }}{% endif %}</a>"
    handler = CsvHandler(template)
    handler.set_records([["x", "one"], ["y", "two"]])

    handler.advance()
    handler.render_to_string()
    handler.advance()
    handler.render_to_string()

    assert handler.log_columns == [1]
    assert handler.describe_current_record() == "two"


def test_render_writes_to_sink():
    """render() escribe lo mismo que render_to_string()"""
    handler = CsvHandler(TEMPLATE)
    handler.set_records([["A", "B"]])
    handler.advance()

    sink = io.StringIO()
    handler.render(sink)
    assert sink.getvalue() == handler.render_to_string()


def test_render_sink_error():
    """Un sink que falla se reporta como StreamWriteError"""
    class ClosedSink:
        def write(self, s):
            raise ValueError("I/O operation on closed file")

    handler = CsvHandler("<a/>")
    handler.advance()
    with pytest.raises(StreamWriteError):
        handler.render(ClosedSink())


def test_template_syntax_error():
    """Un template con sintaxis inválida falla al construir el handler"""
    with pytest.raises(TemplateError):
        CsvHandler("<a>{{ var(0) </a>")


def test_undefined_name_in_template():
    """Un nombre no definido en el template es TemplateError"""
    handler = CsvHandler("<a>{{ other(0) }}</a>")
    handler.advance()
    with pytest.raises(TemplateError):
        handler.render_to_string()


def test_non_integer_index():
    """Un índice no entero es TemplateError"""
    handler = CsvHandler("<a>{{ var('x') }}</a>")
    handler.set_records([["1"]])
    handler.advance()
    with pytest.raises(TemplateError):
        handler.render_to_string()


def test_set_records_resets_iteration():
    """set_records() reinicia la iteración"""
    handler = CsvHandler("<a>{{ varlog(0) }}</a>")
    handler.set_records([["1"]])
    while handler.advance():
        pass

    handler.set_records([["2"], ["3"]])
    assert handler.advance() is True
    assert handler.line_number == 1
    assert handler.render_to_string() == "<a>2</a>"


def test_xml_escape():
    """xml_escape también escapa comillas simples y dobles"""
    assert xml_escape("a'b\"c&d") == "a&apos;b&quot;c&amp;d"


def test_parse_records_skips_comments_and_blank_lines():
    """Las líneas con # y las filas vacías se ignoran"""
    lines = [
        "#pkid,name\n",
        "1,PT_A\n",
        "\n",
        '2,"PT, B"\n',
        "# comentario\n",
    ]
    assert parse_records(lines) == [["1", "PT_A"], ["2", "PT, B"]]


def test_read_csv(tmp_path):
    """read_csv lee registros UTF-8 sin tratar la primera fila como header"""
    path = tmp_path / "partitions.csv"
    path.write_text("#name,description\nPT_A,Partición A\nPT_B,\n", encoding="utf-8")

    assert read_csv(path) == [["PT_A", "Partición A"], ["PT_B", ""]]


def test_multiline_value_survives_attribute_and_canonicalize():
    """Saltos de línea y tabs de una columna CSV no se normalizan al parsear el XML"""
    handler = CsvHandler('<a><b d="{{ var(0) }}">{{ var(0) }}</b></a>')
    handler.set_records([["line1\nline2\r\tend"]])
    handler.advance()

    assert handler.render_to_string() == (
        '<a><b d="line1&#10;line2&#13;&#9;end">line1&#10;line2&#13;&#9;end</b></a>'
    )

    body, _ = canonicalize(handler.stream())
    assert body == '<n:a><b d="line1&#10;line2&#13;&#9;end">line1\nline2&#13;\tend</b></n:a>'
