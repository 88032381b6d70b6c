"""
I/O helpers for schemas and result serialisation.

PURPOSE: Central place for JSON schema validation of pipeline requests/results and for turning
         result dictionaries into plain JSON-ready values.
CONTEXT: Schemas ship inside the package (wealthpulse/schemas/), so validation works the same
         from a checkout, an installed wheel or a Lambda bundle.
"""

from __future__ import annotations

import json
import pathlib
from datetime import date, datetime
from functools import lru_cache
from typing import Any, Dict

from jsonschema import Draft7Validator, ValidationError
from pydantic import ValidationError as RecordValidationError

SCHEMA_DIR = pathlib.Path(__file__).resolve().parent / "schemas"


# -------------------- Schema loading utilities -------------------- #

@lru_cache(maxsize=64)
def _load_schema_cached(abs_path: str) -> Dict[str, Any]:
    """
    Read and parse a JSON schema file, caching it to avoid repeated disk I/O.
    """
    return json.loads(pathlib.Path(abs_path).read_text(encoding="utf-8"))


def load_schema(name: str) -> Dict[str, Any]:
    """
    Load a JSON schema by file name from the packaged schema directory, or by path.

    parameters:
    - name: str – e.g. 'analysis_request.schema.json', or a relative/absolute path.

    returns:
    - dict – schema as a Python dictionary.

    raises:
    - FileNotFoundError – if the file cannot be located.
    - json.JSONDecodeError – if the file is not valid JSON.
    """
    p = SCHEMA_DIR / name
    if not p.exists():
        p = pathlib.Path(name)
        if not p.exists():
            raise FileNotFoundError(f"Schema not found at: {name}")
    return _load_schema_cached(str(p.resolve()))


# -------------------- Validation helpers -------------------- #

def validate_with_schema(instance: Any, schema: Dict[str, Any]) -> None:
    """
    Validate an instance against a schema (Draft 7).

    raises:
    - ValidationError – if instance fails to meet schema requirements.
    """
    Draft7Validator(schema).validate(instance)


def validate_analysis_request(payload: Dict[str, Any]) -> None:
    validate_with_schema(payload, load_schema("analysis_request.schema.json"))


def validate_analysis_result(result: Dict[str, Any]) -> None:
    """Check a pipeline result (already passed through to_jsonable) against its schema."""
    validate_with_schema(result, load_schema("analysis_result.schema.json"))


# -------------------- Serialisation -------------------- #

def _default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_jsonable(obj: Any) -> Any:
    """Deep copy of `obj` with datetimes as ISO strings, tuples as lists."""
    return json.loads(json.dumps(obj, default=_default))


def error_to_string(err: Exception) -> str:
    """
    Convert exceptions into readable strings for error responses.

    notes:
    - jsonschema errors carry a pointer path ($.transactions[0].amount).
    - pydantic errors report the first failing field the same way.
    """
    if isinstance(err, ValidationError):
        path = "$" + "".join(f"[{repr(p)}]" if isinstance(p, int) else f".{p}" for p in err.path)
        return f"{err.message} at {path}"
    if isinstance(err, RecordValidationError):
        first = err.errors()[0]
        path = "$" + "".join(f"[{p}]" if isinstance(p, int) else f".{p}" for p in first["loc"])
        return f"{first['msg']} at {path}"
    return f"{type(err).__name__}: {err}"


__all__ = [
    "load_schema",
    "validate_with_schema",
    "validate_analysis_request",
    "validate_analysis_result",
    "to_jsonable",
    "error_to_string",
]
