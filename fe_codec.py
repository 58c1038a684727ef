"""
JSON serialization for functional encryption values.

Large integers are written as decimal strings; sequences are JSON arrays, so
every document carries its own lengths. Each document is tagged with the
type it holds.
"""

import json
from typing import Any, Dict, Union

from ddh_fe import Ciphertext, MasterPublicKey, MasterSecretKey
from ddh_multi import MultiFunctionKey, MultiMasterPublicKey, MultiMasterSecretKey
from fe_errors import CodecError
from group_params import GroupParams

Encodable = Union[GroupParams, MasterSecretKey, MasterPublicKey, Ciphertext,
                  MultiMasterSecretKey, MultiMasterPublicKey, MultiFunctionKey, int]


def _int_to_str(value: int) -> str:
    return str(int(value))


def _str_to_int(value: Any, field: str) -> int:
    if not isinstance(value, str) or not (value.isascii() and value.isdigit()):
        raise CodecError(f"Field {field!r} must be a non-negative decimal string")
    return int(value, 10)


def _ints(values: Any, field: str):
    if not isinstance(values, list):
        raise CodecError(f"Field {field!r} must be a list")
    return tuple(_str_to_int(v, field) for v in values)


def _field(doc: Dict[str, Any], name: str) -> Any:
    if name not in doc:
        raise CodecError(f"Missing field {name!r}")
    return doc[name]


def to_dict(value: Encodable) -> Dict[str, Any]:
    """Convert a scheme value to a JSON-compatible dictionary."""
    if isinstance(value, GroupParams):
        return {
            'type': 'group_params',
            'p': _int_to_str(value.p),
            'q': _int_to_str(value.q),
            'g': _int_to_str(value.g),
            'vec_len': value.vec_len,
            'bound': _int_to_str(value.bound),
        }
    if isinstance(value, MasterSecretKey):
        return {'type': 'master_secret_key', 'values': [_int_to_str(v) for v in value.values]}
    if isinstance(value, MasterPublicKey):
        return {'type': 'master_public_key', 'values': [_int_to_str(v) for v in value.values]}
    if isinstance(value, Ciphertext):
        return {
            'type': 'ciphertext',
            'c0': _int_to_str(value.c0),
            'cs': [_int_to_str(c) for c in value.cs],
        }
    if isinstance(value, MultiMasterSecretKey):
        return {
            'type': 'multi_master_secret_key',
            'msks': [[_int_to_str(v) for v in msk.values] for msk in value.msks],
            'otp': [[_int_to_str(v) for v in pad] for pad in value.otp],
        }
    if isinstance(value, MultiMasterPublicKey):
        return {
            'type': 'multi_master_public_key',
            'mpks': [[_int_to_str(v) for v in mpk.values] for mpk in value.mpks],
        }
    if isinstance(value, MultiFunctionKey):
        return {
            'type': 'multi_function_key',
            'keys': [_int_to_str(k) for k in value.keys],
            'otp_key': _int_to_str(value.otp_key),
        }
    if isinstance(value, int) and not isinstance(value, bool):
        return {'type': 'function_key', 'value': _int_to_str(value)}
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def from_dict(doc: Dict[str, Any]) -> Encodable:
    """
    Rebuild a scheme value from a dictionary produced by to_dict.

    Raises:
        CodecError: if the document is malformed
        ParameterError: if decoded group parameters are invalid
    """
    if not isinstance(doc, dict):
        raise CodecError("Document must be a JSON object")
    kind = _field(doc, 'type')

    if kind == 'group_params':
        vec_len = _field(doc, 'vec_len')
        if not isinstance(vec_len, int) or isinstance(vec_len, bool):
            raise CodecError("Field 'vec_len' must be an integer")
        params = GroupParams(
            p=_str_to_int(_field(doc, 'p'), 'p'),
            q=_str_to_int(_field(doc, 'q'), 'q'),
            g=_str_to_int(_field(doc, 'g'), 'g'),
            vec_len=vec_len,
            bound=_str_to_int(_field(doc, 'bound'), 'bound'),
        )
        params.validate()
        return params
    if kind == 'master_secret_key':
        return MasterSecretKey(_ints(_field(doc, 'values'), 'values'))
    if kind == 'master_public_key':
        return MasterPublicKey(_ints(_field(doc, 'values'), 'values'))
    if kind == 'ciphertext':
        return Ciphertext(
            c0=_str_to_int(_field(doc, 'c0'), 'c0'),
            cs=_ints(_field(doc, 'cs'), 'cs'),
        )
    if kind == 'multi_master_secret_key':
        msks = _field(doc, 'msks')
        otp = _field(doc, 'otp')
        if not isinstance(msks, list) or not isinstance(otp, list) or len(msks) != len(otp):
            raise CodecError("Fields 'msks' and 'otp' must be lists of equal length")
        return MultiMasterSecretKey(
            msks=tuple(MasterSecretKey(_ints(row, 'msks')) for row in msks),
            otp=tuple(_ints(row, 'otp') for row in otp),
        )
    if kind == 'multi_master_public_key':
        mpks = _field(doc, 'mpks')
        if not isinstance(mpks, list):
            raise CodecError("Field 'mpks' must be a list")
        return MultiMasterPublicKey(tuple(MasterPublicKey(_ints(row, 'mpks')) for row in mpks))
    if kind == 'multi_function_key':
        return MultiFunctionKey(
            keys=_ints(_field(doc, 'keys'), 'keys'),
            otp_key=_str_to_int(_field(doc, 'otp_key'), 'otp_key'),
        )
    if kind == 'function_key':
        return _str_to_int(_field(doc, 'value'), 'value')
    raise CodecError(f"Unknown document type {kind!r}")


def dumps(value: Encodable) -> str:
    return json.dumps(to_dict(value), sort_keys=True)


def loads(text: str) -> Encodable:
    """
    Parse a JSON document written by dumps.

    Raises:
        CodecError: if the text is not valid JSON or not a known document
    """
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as e:
        raise CodecError(f"Invalid JSON: {e}") from e
    return from_dict(doc)
