from __future__ import annotations

import asyncio
import json
import os
import sys
import time
from pathlib import Path

from starknet_signing import MemoryNonceAdapter, SignatureMethod, SigningConfig, VerifyWithNonceOptions, create_template, verify_with_nonce

LoginTemplate = create_template(
    "Login",
    {
        "Login": [
            {"name": "username", "type": "string"},
            {"name": "nonce", "type": "felt"},
            {"name": "timestamp", "type": "felt"},
        ]
    },
    SigningConfig.from_env(),
)


async def main() -> None:
    if len(sys.argv) < 2:
        request = LoginTemplate.generate({"username": os.getenv("LOGIN_USERNAME", "alice"), "nonce": 1, "timestamp": int(time.time())})
        print(json.dumps(request, indent=2, sort_keys=True))
        return

    signed = json.loads(Path(sys.argv[1]).read_text())
    nonces = MemoryNonceAdapter({signed["address"]: int(os.getenv("CURRENT_NONCE", "0"))})
    result = await verify_with_nonce(
        os.getenv("STARKNET_RPC_URL", "http://localhost:5050/rpc"),
        signed["typed_data"],
        signed["signature"],
        signed["address"],
        nonces,
        VerifyWithNonceOptions(max_age=300, template=LoginTemplate, method=signed.get("method", SignatureMethod.STARKNET)),
    )
    print(json.dumps({"is_valid": result.is_valid, "error": result.error}, indent=2))


if __name__ == "__main__":
    asyncio.run(main())
