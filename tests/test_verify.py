import asyncio
from typing import Any, List, Optional

import pytest

from starknet_signing import (
    AccountNotDeployedError,
    SignatureMethod,
    ValidationResult,
    VerifyError,
    VerifyOptions,
    check_timestamp,
    create_template,
    is_account_deployed,
    verify,
    verify_signature,
)
from starknet_signing import verification as verify_module
from starknet_signing.verification import verify as verify_bool

ADDRESS = "0x123"
NOW = 1_700_000_000

LOGIN = create_template(
    "Login",
    {"Login": [{"name": "username", "type": "string"}, {"name": "timestamp", "type": "felt"}]},
)


class StubChain:
    def __init__(self, valid: bool = True, deployed: bool = True, verify_exc: Optional[Exception] = None, deployed_exc: Optional[Exception] = None):
        self.valid = valid
        self.deployed = deployed
        self.verify_exc = verify_exc
        self.deployed_exc = deployed_exc
        self.calls: List[Any] = []

    async def verify_message(self, message_hash, signature, address):
        self.calls.append(("verify_message", message_hash, list(signature), address))
        if self.verify_exc is not None:
            raise self.verify_exc
        return self.valid

    async def is_deployed(self, address):
        self.calls.append(("is_deployed", address))
        if self.deployed_exc is not None:
            raise self.deployed_exc
        return self.deployed


class RecordingHasher:
    def __init__(self, result: str = "0xabc", exc: Optional[Exception] = None):
        self.result = result
        self.exc = exc
        self.calls: List[Any] = []

    async def __call__(self, typed_data, address, method):
        self.calls.append((address, method))
        if self.exc is not None:
            raise self.exc
        return self.result


def _run(coro):
    return asyncio.run(coro)


def _payload(**message):
    return LOGIN.generate({"username": "alice", "timestamp": NOW, **message})


@pytest.fixture
def frozen_clock(monkeypatch):
    monkeypatch.setattr(verify_module.time, "time", lambda: float(NOW))


def test_check_timestamp_boundary():
    assert check_timestamp(_payload(timestamp=NOW - 300), 300, now=NOW).is_valid
    res = check_timestamp(_payload(timestamp=NOW - 301), 300, now=NOW)
    assert res == ValidationResult.invalid("Signature has expired")


def test_check_timestamp_milliseconds():
    assert check_timestamp(_payload(timestamp=(NOW - 10) * 1000), 300, now=NOW).is_valid
    assert not check_timestamp(_payload(timestamp=(NOW - 400) * 1000), 300, now=NOW).is_valid


def test_check_timestamp_string_and_missing():
    assert check_timestamp(_payload(timestamp=str(NOW)), 300, now=NOW).is_valid
    assert check_timestamp({"message": {"username": "a"}}, 300, now=NOW).is_valid
    res = check_timestamp(_payload(timestamp="yesterday"), 300, now=NOW)
    assert res.error == "Invalid timestamp format"


def test_valid_signature(frozen_clock):
    chain = StubChain(valid=True)
    hasher = RecordingHasher("0xfeed")
    res = _run(verify_signature(chain, _payload(), [1, 2], ADDRESS, VerifyOptions(max_age=300, template=LOGIN), hasher=hasher))
    assert res == ValidationResult.valid()
    assert chain.calls == [("verify_message", "0xfeed", [1, 2], ADDRESS)]
    assert hasher.calls == [(ADDRESS, SignatureMethod.STARKNET)]


def test_method_is_forwarded_to_hasher():
    hasher = RecordingHasher()
    _run(verify_signature(StubChain(), _payload(), [1, 2], ADDRESS, VerifyOptions(method=SignatureMethod.CONTROLLER), hasher=hasher))
    assert hasher.calls == [(ADDRESS, SignatureMethod.CONTROLLER)]


def test_structural_failure_short_circuits():
    chain = StubChain()
    payload = _payload()
    del payload["message"]["timestamp"]
    res = _run(verify_signature(chain, payload, [1, 2], ADDRESS, VerifyOptions(template=LOGIN), hasher=RecordingHasher()))
    assert res.is_valid is False
    assert res.error == "Invalid typed data: Login->timestamp: missing field"
    assert chain.calls == []


def test_type_node_without_type_is_invalid_typed_data():
    chain = StubChain()
    payload = {"primaryType": "Login", "types": {"Login": [{"name": "username"}]}, "message": {"username": "a"}}
    res = _run(verify_signature(chain, payload, [1, 2], ADDRESS, VerifyOptions(template=LOGIN), hasher=RecordingHasher()))
    assert res == ValidationResult.invalid("Invalid typed data: Login->username: Invalid type node")
    assert chain.calls == []


@pytest.mark.parametrize(
    "payload, error",
    [
        ({"primaryType": "Login", "types": ["x"], "message": {}}, "Invalid types definition"),
        ({"primaryType": ["Login"], "types": {}, "message": {}}, "Invalid primaryType"),
        ({"primaryType": "Login", "types": {"Login": "felt"}, "message": {}}, "Login: Invalid struct definition"),
        ({"primaryType": "Login", "types": LOGIN.types, "message": ["alice"]}, "Login: Not an object"),
        (["not", "a", "payload"], "Not an object"),
    ],
)
def test_malformed_payloads_return_a_result(payload, error):
    chain = StubChain()
    res = _run(verify_signature(chain, payload, [1, 2], ADDRESS, VerifyOptions(template=LOGIN, max_age=300), hasher=RecordingHasher()))
    assert res == ValidationResult.invalid(f"Invalid typed data: {error}")
    assert chain.calls == []


def test_expired_short_circuits(frozen_clock):
    chain = StubChain()
    res = _run(verify_signature(chain, _payload(timestamp=NOW - 301), [1, 2], ADDRESS, VerifyOptions(max_age=300), hasher=RecordingHasher()))
    assert res.error == VerifyError.EXPIRED
    assert chain.calls == []


def test_expiry_boundary_through_pipeline(frozen_clock):
    res = _run(verify_signature(StubChain(), _payload(timestamp=NOW - 300), [1, 2], ADDRESS, VerifyOptions(max_age=300), hasher=RecordingHasher()))
    assert res.is_valid


def test_invalid_timestamp_format(frozen_clock):
    res = _run(verify_signature(StubChain(), {"message": {"timestamp": "soon"}}, [1], ADDRESS, VerifyOptions(max_age=60), hasher=RecordingHasher()))
    assert res.error == VerifyError.INVALID_TIMESTAMP


def test_no_max_age_skips_timestamp():
    res = _run(verify_signature(StubChain(), _payload(timestamp=1), [1, 2], ADDRESS, hasher=RecordingHasher()))
    assert res.is_valid


def test_invalid_signature_on_deployed_account():
    chain = StubChain(valid=False, deployed=True)
    res = _run(verify_signature(chain, _payload(), [1, 2], ADDRESS, hasher=RecordingHasher()))
    assert res == ValidationResult.invalid("Invalid signature")
    assert chain.calls[-1] == ("is_deployed", ADDRESS)


def test_verification_error_on_undeployed_account():
    chain = StubChain(verify_exc=RuntimeError("Contract not found"), deployed=False)
    res = _run(verify_signature(chain, _payload(), [1, 2], ADDRESS, hasher=RecordingHasher()))
    assert res.error == "Account not deployed"


def test_deployment_query_failure_counts_as_not_deployed():
    chain = StubChain(valid=False, deployed_exc=RuntimeError("node down"))
    res = _run(verify_signature(chain, _payload(), [1, 2], ADDRESS, hasher=RecordingHasher()))
    assert res.error == VerifyError.ACCOUNT_NOT_DEPLOYED


def test_hash_failure_goes_to_disambiguation():
    chain = StubChain(deployed=True)
    res = _run(verify_signature(chain, _payload(), [1, 2], ADDRESS, hasher=RecordingHasher(exc=RuntimeError("validator down"))))
    assert res.error == VerifyError.INVALID_SIGNATURE
    assert chain.calls == [("is_deployed", ADDRESS)]


def test_deployment_not_checked_on_success():
    chain = StubChain(valid=True, deployed=False)
    _run(verify_signature(chain, _payload(), [1, 2], ADDRESS, hasher=RecordingHasher()))
    assert [c[0] for c in chain.calls] == ["verify_message"]


def test_boolean_verify():
    assert _run(verify(StubChain(valid=True), _payload(), [1, 2], ADDRESS, hasher=RecordingHasher())) is True
    assert _run(verify_bool(StubChain(valid=False, deployed=True), _payload(), [1, 2], ADDRESS, hasher=RecordingHasher())) is False


def test_boolean_verify_raises_for_undeployed():
    with pytest.raises(AccountNotDeployedError) as exc_info:
        _run(verify(StubChain(valid=False, deployed=False), _payload(), [1, 2], ADDRESS, hasher=RecordingHasher()))
    assert str(exc_info.value) == "Account not deployed"
    assert exc_info.value.address == ADDRESS


def test_is_account_deployed():
    assert _run(is_account_deployed(StubChain(deployed=True), ADDRESS)) is True
    assert _run(is_account_deployed(StubChain(deployed=False), ADDRESS)) is False
    assert _run(is_account_deployed(StubChain(deployed_exc=RuntimeError("x")), ADDRESS)) is False
