# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.


"""
Utility package for the Cassandra storage layer.

This package includes:
- Key normalization for the session table
- Encoding/decoding of session values and JSON metadata columns
- Configuration loading from the environment, JSON and YAML files
"""

from .keys import normalize_key, MAX_KEY_LENGTH
from .encoding import (
    encode_value, decode_value, decode_value_strict,
    encode_json_column, decode_json_column, to_epoch
)
from .config import (
    get_config_value, get_list_config, cast_config_value,
    flatten_config, load_config_file
)

__all__ = [
    # Keys
    'normalize_key', 'MAX_KEY_LENGTH',

    # Encoding utilities
    'encode_value', 'decode_value', 'decode_value_strict',
    'encode_json_column', 'decode_json_column', 'to_epoch',

    # Configuration utilities
    'get_config_value', 'get_list_config', 'cast_config_value',
    'flatten_config', 'load_config_file'
]
