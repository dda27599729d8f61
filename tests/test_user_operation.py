import pytest

from userop_builder.exceptions import EncodingError
from userop_builder.user_operation.user_operation import \
    FIELD_TO_JSON_KEY, UserOperation, get_user_operation_hash

from conftest import \
    CHAIN_ID, ENTRY_POINT_ADDRESS, WALLET_ADDRESS, complete_user_operation


def test_new_user_operation_has_every_field_missing():
    user_operation = UserOperation()
    assert user_operation.missing_fields() == list(FIELD_TO_JSON_KEY)


def test_fields_are_normalized_on_assignment():
    user_operation = UserOperation()
    user_operation.sender_address = WALLET_ADDRESS.lower()
    user_operation.nonce = "0x10"
    user_operation.call_data = "0xabcd"
    user_operation.signature = bytearray(b"\x01")

    assert user_operation.sender_address == WALLET_ADDRESS
    assert user_operation.nonce == 16
    assert user_operation.call_data == b"\xab\xcd"
    assert user_operation.signature == b"\x01"


@pytest.mark.parametrize(
    "field_name, value",
    [
        ("nonce", -1),
        ("nonce", 2**256),
        ("nonce", True),
        ("call_gas_limit", "100"),
        ("call_data", "abcd"),
        ("call_data", "0xzz"),
        ("sender_address", "0x1234"),
        ("signature", 12),
    ],
)
def test_invalid_field_values_are_rejected(field_name, value):
    user_operation = UserOperation()
    with pytest.raises(EncodingError):
        setattr(user_operation, field_name, value)


def test_with_defaults_keeps_set_fields():
    user_operation = UserOperation(call_gas_limit=50_000)
    merged = user_operation.with_defaults(
        {"callGasLimit": 10, "verification_gas_limit": 20})

    assert merged.call_gas_limit == 50_000
    assert merged.verification_gas_limit == 20
    assert user_operation.verification_gas_limit is None


def test_with_defaults_rejects_unknown_field():
    with pytest.raises(EncodingError):
        UserOperation().with_defaults({"gasLimit": 1})


def test_user_operation_json():
    user_operation = complete_user_operation(nonce=1)
    user_operation_json = user_operation.get_user_operation_json()

    assert list(user_operation_json) == list(FIELD_TO_JSON_KEY.values())
    assert user_operation_json["sender"] == WALLET_ADDRESS
    assert user_operation_json["nonce"] == "0x1"
    assert user_operation_json["initCode"] == "0x"
    assert user_operation_json["callData"] == "0x0102"
    assert user_operation_json["callGasLimit"] == hex(35_000)
    assert UserOperation.from_json(user_operation_json) == user_operation


def test_incomplete_user_operation_json():
    user_operation = UserOperation(call_data=b"\x01")
    with pytest.raises(EncodingError):
        user_operation.get_user_operation_json()

    user_operation_json = user_operation.get_user_operation_json(
        allow_missing=True)
    assert user_operation_json["sender"] == "0x" + "00" * 20
    assert user_operation_json["nonce"] == "0x0"
    assert user_operation_json["callData"] == "0x01"
    assert user_operation_json["signature"] == "0x"


def test_to_list_requires_complete_user_operation():
    with pytest.raises(EncodingError):
        UserOperation(nonce=1).to_list()


def test_user_operation_hash_excludes_signature():
    user_operation = complete_user_operation()
    signed_user_operation = complete_user_operation(signature=b"\x01" * 65)

    user_operation_hash = get_user_operation_hash(
        user_operation.to_list(), ENTRY_POINT_ADDRESS, CHAIN_ID)

    assert len(user_operation_hash) == 66
    assert user_operation_hash == get_user_operation_hash(
        signed_user_operation.to_list(), ENTRY_POINT_ADDRESS, CHAIN_ID)


def test_user_operation_hash_is_bound_to_chain_and_content():
    user_operation = complete_user_operation()
    user_operation_hash = get_user_operation_hash(
        user_operation.to_list(), ENTRY_POINT_ADDRESS, CHAIN_ID)

    assert user_operation_hash != get_user_operation_hash(
        user_operation.to_list(), ENTRY_POINT_ADDRESS, CHAIN_ID + 1)
    assert user_operation_hash != get_user_operation_hash(
        complete_user_operation(nonce=1).to_list(),
        ENTRY_POINT_ADDRESS,
        CHAIN_ID,
    )
