#!/usr/bin/env python3
"""
CLI para enviar requests AXL a CUCM desde un archivo XML (y opcionalmente un CSV).

Uso:
    python -m tools.axl_request --cucm cucm.example.com -u admin -p secret --xml addRoutePartition.xml
    python -m tools.axl_request --cucm 10.0.0.1 -k --xml addPhone.xml --csv phones.csv
    python -m tools.axl_request --cucm cucm.example.com --xml sql.xml --savesql result.csv --pp

Template XML (modo bulk):
    <addRoutePartition>
      <routePartition>
        <name>{{ varlog(0) }}</name>
        <description>{{ var(1) }}</description>
      </routePartition>
    </addRoutePartition>

Salida:
    - Una línea por registro: 'Line: 1, Item: "PT_A" Result: success'
    - Con --pp: cuerpo de la respuesta indentado en stdout
    - Con --savesql: filas de executeSQLQueryResponse como CSV

Usuario y password también se pueden definir en .env (AXL_USER / AXL_PASSWORD).
"""
import argparse
import csv
import logging
import sys
from pathlib import Path
from typing import List, Optional

from axlbulk import __version__
from axlbulk.axl_client.config import get_axl_config
from axlbulk.axl_client.exceptions import AxlError, ConfigurationError
from axlbulk.axl_client.soap_client import AxlClient
from axlbulk.bulk.csv_handler import CsvHandler, read_csv
from axlbulk.bulk.output import pretty_print, save_sql_response
from axlbulk.bulk.pipeline import BulkRunner
from axlbulk.bulk.pipeline_logger import get_logger

logger = logging.getLogger("tools.axl_request")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="axl-request",
        description="Envía requests AXL a CUCM desde un template XML (y CSV opcional)",
    )
    parser.add_argument("--cucm", help="FQDN o IP del CUCM Publisher / primer nodo (requerido)")
    parser.add_argument("-u", dest="user", help="usuario AXL (requerido, o AXL_USER)")
    parser.add_argument("-p", dest="password", help="password AXL (requerido, o AXL_PASSWORD)")
    parser.add_argument("-k", dest="insecure", action="store_true", help="no validar certificado TLS")
    parser.add_argument("-s", dest="schema", help="versión de schema AXL (default 12.5)")
    parser.add_argument("--xml", dest="xmlfile", help="archivo XML del request (requerido)")
    parser.add_argument("--csv", dest="csvfile", help="archivo CSV para requests bulk")
    parser.add_argument("--dump", action="store_true", help="volcar headers y body de request/response")
    parser.add_argument("--dump-dir", help="directorio donde guardar los volcados (con --dump)")
    parser.add_argument("-v", dest="version", action="store_true", help="mostrar versión y salir")
    parser.add_argument("--pp", action="store_true", help="pretty print de la respuesta XML exitosa")
    parser.add_argument("--savesql", dest="sqlfile", help="guardar executeSQLQueryResponse como CSV")
    parser.add_argument(
        "--keep-going",
        action="store_true",
        help="seguir con el próximo registro ante errores de template/XML/transporte",
    )
    parser.add_argument("--log-dir", help="directorio para archivo de log (o AXL_LOG_DIR)")
    parser.add_argument("--debug", action="store_true", help="logging DEBUG")
    return parser


def _configure_logging(debug: bool, dump: bool) -> None:
    level = logging.DEBUG if debug else (logging.INFO if dump else logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"AXL version: {__version__}")
        return 0

    if not args.xmlfile:
        parser.print_usage(sys.stderr)
        print("error: --xml es requerido", file=sys.stderr)
        return 1

    _configure_logging(args.debug, args.dump)

    config = get_axl_config(
        host=args.cucm,
        username=args.user,
        password=args.password,
        schema_version=args.schema,
        insecure=True if args.insecure else None,
        dump=True if args.dump else None,
        dump_dir=args.dump_dir,
    )
    try:
        config.validate()
    except ConfigurationError as e:
        parser.print_usage(sys.stderr)
        print(f"error: {e}", file=sys.stderr)
        return 1

    try:
        template_text = Path(args.xmlfile).read_text(encoding="utf-8")
    except OSError as e:
        print(f"error al leer archivo XML: {e}", file=sys.stderr)
        return 1

    try:
        handler = CsvHandler(template_text)
    except AxlError as e:
        print(f"error al inicializar CSV handler: {e}", file=sys.stderr)
        return 1

    if args.csvfile:
        try:
            handler.set_records(read_csv(args.csvfile))
        except (OSError, csv.Error) as e:
            print(f"error al leer archivo CSV: {e}", file=sys.stderr)
            return 1

    log_dir = Path(args.log_dir) if args.log_dir else None
    pipeline_logger = get_logger("axl_request", log_dir=log_dir)

    exit_code = 0
    try:
        with AxlClient(config) as client:
            runner = BulkRunner(
                handler,
                client,
                pipeline_logger=pipeline_logger,
                stop_on_error=not args.keep_going,
            )
            for result in runner.run():
                if result.fatal:
                    exit_code = 1
                if result.response is None:
                    continue
                if args.sqlfile:
                    save_sql_response(args.sqlfile, result.response.raw_body)
                if args.pp:
                    print(pretty_print(result.response.raw_body))
    except (AxlError, OSError) as e:
        logger.error(f"error en request AXL: {e}")
        exit_code = 1
    finally:
        pipeline_logger.close()

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
