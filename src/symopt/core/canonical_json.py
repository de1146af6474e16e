"""
Canonical JSON Serialization

Provides deterministic JSON serialization with sorted keys and
SHA-256 hashing for receipts and saved results.

Symbolic values (SymPy expressions, matrices, tuples of expressions)
are serialized through their printed form so that identical expressions
produce identical strings.
"""

import json
import hashlib
from typing import Any

import sympy as sp


def to_jsonable(obj: Any) -> Any:
    """
    Convert an object containing SymPy values into plain JSON data.

    Expressions become strings, matrices become nested lists,
    tuples become lists and dict keys become strings.
    """
    if isinstance(obj, sp.MatrixBase):
        return [[to_jsonable(v) for v in row] for row in obj.tolist()]
    if isinstance(obj, sp.Basic):
        return sp.sstr(obj)
    if isinstance(obj, dict):
        return {str(to_jsonable(k)): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    return obj


def canonical_dumps(obj: Any, indent: int = None) -> str:
    """
    Canonical JSON serialization with sorted keys.

    Args:
        obj: Object to serialize (may contain SymPy values)
        indent: Indentation level (None for compact)

    Returns:
        Canonical JSON string
    """
    return json.dumps(
        to_jsonable(obj),
        sort_keys=True,
        separators=(',', ':') if indent is None else None,
        indent=indent,
        default=str
    )


def canonical_hash(obj: Any) -> str:
    """Compute SHA-256 hash of canonical JSON."""
    return hashlib.sha256(canonical_dumps(obj).encode()).hexdigest()
