"""
ucs.abi — 32-byte word ABI: types, selectors, calldata encode/decode.

Public surface:
    - types:     parse_type, to_word, from_word, encode_key, coerce_address, ...
    - signature: canonical_signature, derive_selector, bind_selector, Signature
    - encoding:  encode_call, encode_words, encode_returns
    - decoding:  Decoder, decode_args, decode_returns
"""

from __future__ import annotations

from .decoding import Decoder, decode_args, decode_returns
from .encoding import (encode_call, encode_dynamic_array, encode_returns,
                       encode_word, encode_words)
from .signature import (SELECTOR_BYTES, Signature, bind_selector,
                        canonical_signature, coerce_selector, derive_selector,
                        event_topic, parse_signature, selector_hex)
from .types import (ADDRESS_MAX, U256_MAX, WORD_BYTES, ABITypeError, AbiType,
                    ValidationError, coerce_address, encode_key, from_word,
                    parse_type, to_address_hex, to_word)

__all__ = [
    "ABITypeError",
    "ValidationError",
    "AbiType",
    "WORD_BYTES",
    "U256_MAX",
    "ADDRESS_MAX",
    "parse_type",
    "coerce_address",
    "to_address_hex",
    "to_word",
    "from_word",
    "encode_key",
    "SELECTOR_BYTES",
    "Signature",
    "canonical_signature",
    "derive_selector",
    "selector_hex",
    "coerce_selector",
    "parse_signature",
    "bind_selector",
    "event_topic",
    "encode_word",
    "encode_words",
    "encode_call",
    "encode_dynamic_array",
    "encode_returns",
    "Decoder",
    "decode_args",
    "decode_returns",
]
