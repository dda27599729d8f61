import dataclasses
import re
from dataclasses import dataclass
from typing import Any, Mapping

from eth_abi import encode
from eth_utils import keccak, to_checksum_address

from userop_builder.exceptions import EncodingError
from userop_builder.typing import Address, UserOperationHash

FIELD_TO_JSON_KEY = {
    "sender_address": "sender",
    "nonce": "nonce",
    "init_code": "initCode",
    "call_data": "callData",
    "call_gas_limit": "callGasLimit",
    "verification_gas_limit": "verificationGasLimit",
    "pre_verification_gas": "preVerificationGas",
    "max_fee_per_gas": "maxFeePerGas",
    "max_priority_fee_per_gas": "maxPriorityFeePerGas",
    "paymaster_and_data": "paymasterAndData",
    "signature": "signature",
}
JSON_KEY_TO_FIELD = {v: k for k, v in FIELD_TO_JSON_KEY.items()}

UINT_FIELDS = (
    "nonce",
    "call_gas_limit",
    "verification_gas_limit",
    "pre_verification_gas",
    "max_fee_per_gas",
    "max_priority_fee_per_gas",
)
GAS_LIMIT_FIELDS = (
    "call_gas_limit",
    "verification_gas_limit",
    "pre_verification_gas",
)


@dataclass
class UserOperation:
    """
    EntryPoint v0.6 UserOperation. Every field stays None until a caller or
    a middleware stage fills it.
    """
    sender_address: Address | None = None
    nonce: int | None = None
    init_code: bytes | None = None
    call_data: bytes | None = None
    call_gas_limit: int | None = None
    verification_gas_limit: int | None = None
    pre_verification_gas: int | None = None
    max_fee_per_gas: int | None = None
    max_priority_fee_per_gas: int | None = None
    paymaster_and_data: bytes | None = None
    signature: bytes | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        if value is not None and name in FIELD_TO_JSON_KEY:
            value = normalize_field(name, value)
        super().__setattr__(name, value)

    def copy(self) -> "UserOperation":
        return dataclasses.replace(self)

    def with_defaults(
        self, defaults: "Mapping[str, Any] | UserOperation"
    ) -> "UserOperation":
        """Copy with unset fields taken from defaults; set fields win."""
        if isinstance(defaults, UserOperation):
            defaults = defaults.to_dict(skip_none=True)
        merged = self.copy()
        for key, value in defaults.items():
            field_name = to_field_name(key)
            if getattr(merged, field_name) is None:
                setattr(merged, field_name, value)
        return merged

    def missing_fields(self) -> list[str]:
        return [
            field_name
            for field_name in FIELD_TO_JSON_KEY
            if getattr(self, field_name) is None
        ]

    def to_dict(self, skip_none: bool = False) -> dict[str, Any]:
        return {
            field_name: getattr(self, field_name)
            for field_name in FIELD_TO_JSON_KEY
            if not (skip_none and getattr(self, field_name) is None)
        }

    def get_user_operation_json(
        self, allow_missing: bool = False
    ) -> dict[str, Address | str]:
        missing_fields = self.missing_fields()
        if len(missing_fields) > 0 and not allow_missing:
            raise EncodingError(
                f"UserOperation missing fields: {', '.join(missing_fields)}"
            )
        user_operation_json: dict[str, Address | str] = {}
        for field_name, json_key in FIELD_TO_JSON_KEY.items():
            value = getattr(self, field_name)
            if field_name == "sender_address":
                user_operation_json[json_key] = (
                    value if value is not None else Address("0x" + "00" * 20)
                )
            elif field_name in UINT_FIELDS:
                user_operation_json[json_key] = hex(value or 0)
            else:
                user_operation_json[json_key] = "0x" + (value or b"").hex()
        return user_operation_json

    def to_list(self) -> list[Address | int | bytes]:
        missing_fields = self.missing_fields()
        if len(missing_fields) > 0:
            raise EncodingError(
                f"UserOperation missing fields: {', '.join(missing_fields)}"
            )
        return [getattr(self, field_name) for field_name in FIELD_TO_JSON_KEY]

    @classmethod
    def from_json(cls, json_dict: Mapping[str, Any]) -> "UserOperation":
        user_operation = cls()
        for json_key, value in json_dict.items():
            if json_key not in JSON_KEY_TO_FIELD:
                raise EncodingError(f"Unknown UserOperation field {json_key}")
            field_name = JSON_KEY_TO_FIELD[json_key]
            if value is None:
                continue
            if field_name == "sender_address":
                value = verify_and_get_address(json_key, value)
            elif field_name in UINT_FIELDS:
                value = verify_and_get_uint(json_key, value)
            else:
                value = verify_and_get_bytes(json_key, value)
            setattr(user_operation, field_name, value)
        return user_operation


def to_field_name(key: str) -> str:
    if key in FIELD_TO_JSON_KEY:
        return key
    if key in JSON_KEY_TO_FIELD:
        return JSON_KEY_TO_FIELD[key]
    raise EncodingError(f"Unknown UserOperation field {key}")


def normalize_field(field_name: str, value: Any) -> Any:
    if field_name == "sender_address":
        return Address(
            to_checksum_address(verify_and_get_address(field_name, value)))
    if field_name in UINT_FIELDS:
        if isinstance(value, str):
            return verify_and_get_uint(field_name, value)
        if isinstance(value, bool) or not isinstance(value, int):
            raise EncodingError(
                f"Invalid uint value : {value} in field {field_name}")
        if not 0 <= value < 2**256:
            raise EncodingError(
                f"Out of range uint value : {value} in field {field_name}")
        return value
    if isinstance(value, str):
        return verify_and_get_bytes(field_name, value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise EncodingError(f"Invalid bytes value : {value} in field {field_name}")


def verify_and_get_address(field_name: str, value: Address | None) -> Address:
    address_pattern = "^0x[0-9a-fA-F]{40}$"
    if isinstance(value, str) and re.match(address_pattern, value) is not None:
        return value
    else:
        raise EncodingError(
            f"Invalid address value : {value} in field {field_name}",
        )


def verify_and_get_uint(field_name: str, value: str | None) -> int:
    if value is None:
        raise EncodingError(
            f"Invalid uint hex value in field {field_name}",
        )

    if value == "0x":
        return 0
    elif isinstance(value, str) and value[:2] == "0x":
        try:
            return int(value, 16)
        except ValueError:
            raise EncodingError(
                f"Invalid uint hex value : {value} in field {field_name}",
            )
    else:
        raise EncodingError(
            f"Invalid uint hex value : {value} in field {field_name}",
        )


def verify_and_get_bytes(field_name: str, value: str | None) -> bytes:
    if value is None:
        raise EncodingError(
            f"Invalid bytes hex value in field {field_name}",
        )

    if isinstance(value, str) and value[:2] == "0x":
        try:
            return bytes.fromhex(value[2:])
        except ValueError:
            raise EncodingError(
                f"Invalid bytes hex value : {value} in field {field_name}",
            )
    else:
        raise EncodingError(
            f"Invalid bytes hex value : {value} in field {field_name}",
        )


def get_user_operation_hash(
    user_operation_list: list, entrypoint_addr: str, chain_id: int
) -> UserOperationHash:
    packed_user_operation = keccak(
        pack_user_operation(user_operation_list)
    )

    encoded_user_operation_hash = encode(
        ["(bytes32,address,uint256)"],
        [[packed_user_operation, entrypoint_addr, chain_id]],
    )
    user_operation_hash = "0x" + keccak(encoded_user_operation_hash).hex()
    return UserOperationHash(user_operation_hash)


def pack_user_operation(user_operation_list: list) -> bytes:
    """abi encoded operation with the dynamic fields hashed, signature excluded"""
    user_operation_list = list(user_operation_list)
    user_operation_list[2] = keccak(user_operation_list[2])
    user_operation_list[3] = keccak(user_operation_list[3])
    user_operation_list[9] = keccak(user_operation_list[9])
    user_operation_list_without_signature = user_operation_list[:-1]

    packed_user_operation = encode(
        [
            "address",
            "uint256",
            "bytes32",
            "bytes32",
            "uint256",
            "uint256",
            "uint256",
            "uint256",
            "uint256",
            "bytes32",
        ],
        user_operation_list_without_signature,
    )
    return packed_user_operation
