from __future__ import annotations

import copy
from typing import Any, Dict, List, Mapping, Optional, Union

from .config import SigningConfig, resolve_config
from .errors import TypedDataError
from .schema import StructDef, TypeDefs, check_type

DOMAIN_TYPE_NAME = "StarknetDomain"
TYPED_DATA_REVISION = "1"

DOMAIN_TYPE: List[Dict[str, str]] = [
    {"name": "name", "type": "shortstring"},
    {"name": "version", "type": "shortstring"},
    {"name": "chainId", "type": "shortstring"},
    {"name": "revision", "type": "shortstring"},
]

ConfigOverride = Union[SigningConfig, Mapping[str, Any]]


def build_domain(config: SigningConfig) -> Dict[str, str]:
    return {
        "name": config.domain_name,
        "chainId": config.chain_id,
        "version": config.domain_version or "1",
        "revision": TYPED_DATA_REVISION,
    }


class SignatureTemplate:
    """Binds a primary type and its schema to payload generation and validation.

    Create once at startup and reuse for every request::

        LoginTemplate = create_template("Login", {
            "Login": [
                {"name": "username", "type": "string"},
                {"name": "timestamp", "type": "felt"},
            ],
        })
        request = LoginTemplate.generate({"username": "alice", "timestamp": 1234567890})
        LoginTemplate.validate_structure(request)
    """

    def __init__(self, primary_type: str, types: TypeDefs, config: Optional[ConfigOverride] = None):
        if not isinstance(primary_type, str) or not primary_type:
            raise ValueError("primary_type is required")
        if primary_type not in types:
            raise ValueError(f"primary type {primary_type} is not declared in types")
        if primary_type == DOMAIN_TYPE_NAME:
            raise ValueError(f"{DOMAIN_TYPE_NAME} is reserved for the domain descriptor")
        self._primary_type = primary_type
        self._types: Dict[str, List[Dict[str, str]]] = {name: [dict(node) for node in struct] for name, struct in types.items()}
        self._config = resolve_config(config)

    @property
    def id(self) -> str:
        return self._primary_type

    @property
    def primary_type(self) -> str:
        return self._primary_type

    @property
    def types(self) -> Dict[str, List[Dict[str, str]]]:
        return copy.deepcopy(self._types)

    @property
    def config(self) -> SigningConfig:
        return self._config

    def generate(self, data: Mapping[str, Any], config: Optional[ConfigOverride] = None) -> Dict[str, Any]:
        effective = self._config.merged(config)
        types = self.types
        types[DOMAIN_TYPE_NAME] = copy.deepcopy(DOMAIN_TYPE)
        return {
            "domain": build_domain(effective),
            "message": copy.deepcopy(dict(data)),
            "primaryType": self._primary_type,
            "types": types,
        }

    def validate_structure(self, typed_data: Mapping[str, Any]) -> None:
        if not isinstance(typed_data, Mapping):
            raise TypedDataError("Not an object")
        primary_type = typed_data.get("primaryType", self._primary_type)
        if not isinstance(primary_type, str):
            raise TypedDataError("Invalid primaryType")
        types = typed_data.get("types") or {}
        if not isinstance(types, Mapping):
            raise TypedDataError("Invalid types definition")
        struct: Optional[StructDef] = types.get(primary_type)
        if struct is None:
            raise TypedDataError(f"Type {primary_type} not found in defined types", [primary_type])
        error = check_type(types, struct, typed_data.get("message"))
        if error is not None:
            raise error.with_field(primary_type)

    def get_request(self, data: Mapping[str, Any], config: Optional[ConfigOverride] = None) -> Dict[str, Any]:
        return self.generate(data, config)

    def validate(self, typed_data: Mapping[str, Any]) -> None:
        self.validate_structure(typed_data)

    def __repr__(self) -> str:
        return f"SignatureTemplate({self._primary_type!r})"


def create_template(primary_type: str, types: TypeDefs, config: Optional[ConfigOverride] = None) -> SignatureTemplate:
    return SignatureTemplate(primary_type, types, config)
