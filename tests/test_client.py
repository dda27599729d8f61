import pytest

from userop_builder.client import Client
from userop_builder.rpc.jsonrpc import RPCFault
from userop_builder.user_operation.models import Call

from conftest import \
    ENTRY_POINT_ADDRESS, RECIPIENT_ADDRESS, rpc_error, rpc_result

USER_OPERATION_HASH = "0x" + "42" * 32
TRANSACTION_HASH = "0x" + "17" * 32


def receipt_response(sender: str) -> dict:
    return rpc_result({
        "userOpHash": USER_OPERATION_HASH,
        "sender": sender,
        "nonce": "0x0",
        "success": True,
        "actualGasCost": hex(21_000 * 10**9),
        "actualGasUsed": hex(21_000),
        "receipt": {"transactionHash": TRANSACTION_HASH},
    })


@pytest.mark.asyncio
async def test_send_user_operation(wallet, provider, node):
    node.overrides["eth_sendUserOperation"] = rpc_result(USER_OPERATION_HASH)
    client = Client(provider, ENTRY_POINT_ADDRESS)

    user_operation_hash = await client.send_user_operation(
        wallet, wallet.execute(Call(to=RECIPIENT_ADDRESS)))

    assert user_operation_hash == USER_OPERATION_HASH
    method, params, _ = node.calls[-1]
    assert method == "eth_sendUserOperation"
    assert params[0]["sender"] == wallet.get_sender()
    assert params[1] == ENTRY_POINT_ADDRESS


@pytest.mark.asyncio
async def test_rejected_user_operation(wallet, provider, node):
    node.overrides["eth_sendUserOperation"] = rpc_error(
        -32500, "AA21 didn't pay prefund")
    client = Client(provider, ENTRY_POINT_ADDRESS)

    with pytest.raises(RPCFault) as excinfo:
        await client.send_user_operation(
            wallet, wallet.execute(Call(to=RECIPIENT_ADDRESS)))
    assert excinfo.value.error_code == -32500


@pytest.mark.asyncio
async def test_wait_polls_until_receipt(provider, node):
    responses = [rpc_result(None), rpc_result(None), receipt_response(
        RECIPIENT_ADDRESS)]
    node.overrides["eth_getUserOperationReceipt"] = \
        lambda params: responses.pop(0)
    client = Client(provider, ENTRY_POINT_ADDRESS)

    receipt = await client.wait(USER_OPERATION_HASH, timeout=5, interval=0)

    assert receipt is not None
    assert receipt.success
    assert receipt.actualGasUsed == 21_000
    assert receipt.transactionHash == TRANSACTION_HASH
    assert node.methods().count("eth_getUserOperationReceipt") == 3


@pytest.mark.asyncio
async def test_wait_times_out(provider, node):
    node.overrides["eth_getUserOperationReceipt"] = rpc_result(None)
    client = Client(provider, ENTRY_POINT_ADDRESS)

    assert await client.wait(
        USER_OPERATION_HASH, timeout=0, interval=0.01) is None


@pytest.mark.asyncio
async def test_client_init_checks_supported_entry_points(monkeypatch):
    requests = []

    async def _fake_rpc(url, method, params=None, **kwargs):
        requests.append((url, method))
        return rpc_result([ENTRY_POINT_ADDRESS.lower()])

    monkeypatch.setattr(
        "userop_builder.rpc.provider.send_rpc_request_to_eth_client",
        _fake_rpc,
    )
    client = await Client.init(
        "http://node.test", ENTRY_POINT_ADDRESS, "http://bundler.test")

    assert client.entry_point_address == ENTRY_POINT_ADDRESS
    assert requests == [("http://bundler.test", "eth_supportedEntryPoints")]
