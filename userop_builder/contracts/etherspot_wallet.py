from typing import Any, Mapping

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from userop_builder.exceptions import EncodingError
from userop_builder.typing import Address
from userop_builder.user_operation.models import Call
from userop_builder.user_operation.user_operation import \
    verify_and_get_address, verify_and_get_bytes

EXECUTE_SELECTOR = function_signature_to_4byte_selector(
    "execute(address,uint256,bytes)")
EXECUTE_BATCH_SELECTOR = function_signature_to_4byte_selector(
    "executeBatch(address[],uint256[],bytes[])")


def encode_execute(call: Call | Mapping[str, Any]) -> bytes:
    to, value, data = verify_and_get_call(call)
    params = encode(["address", "uint256", "bytes"], [to, value, data])
    return EXECUTE_SELECTOR + params


def encode_execute_batch(calls: list[Call | Mapping[str, Any]]) -> bytes:
    if not isinstance(calls, (list, tuple)):
        raise EncodingError(f"Invalid batch : {calls}")
    verified_calls = [verify_and_get_call(call) for call in calls]
    return encode_execute_batch_arrays(
        [to for to, _, _ in verified_calls],
        [value for _, value, _ in verified_calls],
        [data for _, _, data in verified_calls],
    )


def encode_execute_batch_arrays(
    tos: list[Address], values: list[int], datas: list[bytes]
) -> bytes:
    if not len(tos) == len(values) == len(datas):
        raise EncodingError(
            "Batch arrays length mismatch : " +
            f"{len(tos)} targets, {len(values)} values, {len(datas)} datas"
        )
    if len(tos) == 0:
        raise EncodingError("Empty batch")
    params = encode(
        ["address[]", "uint256[]", "bytes[]"],
        [list(tos), list(values), list(datas)],
    )
    return EXECUTE_BATCH_SELECTOR + params


def verify_and_get_call(
    call: Call | Mapping[str, Any]
) -> tuple[Address, int, bytes]:
    if isinstance(call, Call):
        to, value, data = call.to, call.value, call.data
    elif isinstance(call, Mapping) and "to" in call:
        to, value, data = call["to"], call.get("value", 0), call.get("data", b"")
    else:
        raise EncodingError(f"Invalid call : {call}")

    to = Address(to_checksum_address(verify_and_get_address("to", to)))

    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(f"Invalid call value : {value}")
    if not 0 <= value < 2**256:
        raise EncodingError(f"Out of range call value : {value}")

    if isinstance(data, str):
        data = verify_and_get_bytes("data", data)
    elif isinstance(data, (bytes, bytearray)):
        data = bytes(data)
    else:
        raise EncodingError(f"Invalid call data : {data}")

    return to, value, data
