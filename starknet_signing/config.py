from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional, Union

DEFAULT_CARTRIDGE_VALIDATOR_URL = "https://cartridge-validate.runelabs.workers.dev/"

ENV_PREFIX = "STARKNET_SIGNING_"


@dataclass(frozen=True)
class SigningConfig:
    chain_id: str = "SN_MAIN"
    domain_name: str = "starknet-signing"
    domain_version: str = "1"
    cartridge_validator_url: str = DEFAULT_CARTRIDGE_VALIDATOR_URL

    def merged(self, overrides: Optional[Union["SigningConfig", Mapping[str, Any]]] = None) -> "SigningConfig":
        if overrides is None:
            return self
        if isinstance(overrides, SigningConfig):
            return overrides
        known = {f.name for f in fields(self)}
        unknown = set(overrides.keys()) - known
        if unknown:
            raise ValueError(f"unknown config keys: {sorted(unknown)}")
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SigningConfig":
        env = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw:
                values[f.name] = raw
        return cls(**values)


def resolve_config(config: Optional[Union[SigningConfig, Mapping[str, Any]]] = None) -> SigningConfig:
    return SigningConfig().merged(config)
