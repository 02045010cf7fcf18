"""
Volcado de intercambios AXL (--dump) sin secretos

Guarda request/response y metadata para debugging, sin incluir:
- Passwords / header Authorization
- Valor de la cookie de sesión
"""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Mapping, Optional

logger = logging.getLogger(__name__)

REDACTED = "<redacted>"
SECRET_HEADERS = ("authorization", "cookie", "set-cookie")


def redact_headers(headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Copia de headers con credenciales y cookies ocultas."""
    if not headers:
        return {}
    return {
        k: (REDACTED if k.lower() in SECRET_HEADERS else v)
        for k, v in headers.items()
    }


def format_exchange(
    method: str,
    url: str,
    request_headers: Optional[Mapping[str, str]],
    request_body: Optional[bytes],
    status_code: Optional[int] = None,
    reason: Optional[str] = None,
    response_headers: Optional[Mapping[str, str]] = None,
    response_body: Optional[bytes] = None,
) -> str:
    """Texto legible del intercambio HTTP (headers + body)."""
    lines = [f"{method} {url}"]
    for k, v in redact_headers(request_headers).items():
        lines.append(f"{k}: {v}")
    lines.append("")
    if request_body:
        lines.append(request_body.decode("utf-8", errors="replace"))
    lines.append("")

    if status_code is not None:
        lines.append(f"HTTP {status_code} {reason or ''}".rstrip())
        for k, v in redact_headers(response_headers).items():
            lines.append(f"{k}: {v}")
        lines.append("")
        if response_body:
            lines.append(response_body.decode("utf-8", errors="replace"))

    return "\n".join(lines)


def write_exchange_dump(
    dump_dir: Path,
    operation: str,
    request_body: Optional[bytes] = None,
    response_body: Optional[bytes] = None,
    meta_dict: Optional[Dict[str, Any]] = None,
) -> Dict[str, str]:
    """
    Guarda un intercambio AXL en disco.

    Args:
        dump_dir: Directorio base (se crea dump_dir/YYYY-MM-DD/)
        operation: Método AXL (ej: 'addRoutePartition')
        request_body: Envelope enviado
        response_body: Respuesta recibida
        meta_dict: Metadata (status_code, soap_action, endpoint, ...)

    Returns:
        Dict con paths de archivos guardados (request_path, response_path, meta_path).
        Vacío si falló la escritura: el volcado nunca interrumpe el intercambio.
    """
    try:
        today = datetime.now().strftime("%Y-%m-%d")
        out_dir = Path(dump_dir) / today
        out_dir.mkdir(parents=True, exist_ok=True)

        # Timestamp para nombres únicos (milisegundos)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")[:-3]
        saved_paths = {}

        if request_body:
            request_path = out_dir / f"request_{operation}_{timestamp}.xml"
            request_path.write_bytes(request_body)
            saved_paths["request_path"] = str(request_path)

        if response_body:
            response_path = out_dir / f"response_{operation}_{timestamp}.xml"
            response_path.write_bytes(response_body)
            saved_paths["response_path"] = str(response_path)

        # Copiar solo campos seguros
        safe_fields = ["status_code", "reason", "soap_action", "endpoint", "operation", "content_type"]
        meta_clean = {f: meta_dict[f] for f in safe_fields if meta_dict and f in meta_dict}
        meta_clean.setdefault("operation", operation)
        meta_clean["timestamp"] = datetime.now().isoformat()

        meta_path = out_dir / f"meta_{operation}_{timestamp}.json"
        with open(meta_path, "w", encoding="utf-8") as f:
            json.dump(meta_clean, f, indent=2, ensure_ascii=False)
        saved_paths["meta_path"] = str(meta_path)

        logger.debug(f"Volcado AXL guardado en: {out_dir}")
        return saved_paths
    except OSError as e:
        logger.warning(f"No se pudo guardar volcado AXL (ignorado): {e}")
        return {}
