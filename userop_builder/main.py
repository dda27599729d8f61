import json
import logging
import sys

import uvloop

from userop_builder.client import Client
from userop_builder.middleware.paymaster import verifying_paymaster
from userop_builder.presets.etherspot_wallet import \
    EtherspotWallet, GasLimitOptions, PresetBuilderOptions
from userop_builder.user_operation.models import Call

from .cli_manager import parse_args


async def main(cmd_args=sys.argv[1:]) -> None:
    init_data = parse_args(cmd_args)

    paymaster_middleware = None
    if init_data.paymaster_url is not None:
        paymaster_middleware = verifying_paymaster(init_data.paymaster_url)

    wallet = await EtherspotWallet.init(
        init_data.owner,
        init_data.rpc_url,
        PresetBuilderOptions(
            entry_point_address=init_data.entrypoint,
            factory_address=init_data.factory,
            override_bundler_rpc=init_data.bundler_rpc_url,
            nonce_key=init_data.nonce_key,
            salt=init_data.salt,
            gas_limit_options=GasLimitOptions(
                call_gas_limit=init_data.call_gas_limit,
                verification_gas_limit=init_data.verification_gas_limit,
                pre_verification_gas=init_data.pre_verification_gas,
            ),
            paymaster_middleware=paymaster_middleware,
        ),
    )
    print(f"wallet address : {wallet.get_sender()}")

    if init_data.to is None:
        return

    user_operation = wallet.execute(
        Call(to=init_data.to, value=init_data.value, data=init_data.data))

    if not init_data.send:
        built_user_operation = await wallet.build(user_operation)
        print(json.dumps(built_user_operation.get_user_operation_json(), indent=2))
        return

    client = Client(wallet.provider, wallet.entry_point.address)
    user_operation_hash = await client.send_user_operation(
        wallet, user_operation)
    print(f"userOpHash : {user_operation_hash}")
    receipt = await client.wait(user_operation_hash)
    if receipt is None:
        logging.warning(f"UserOperation {user_operation_hash} not mined yet")
    else:
        print(f"transaction hash : {receipt.transactionHash}")


def run() -> None:
    uvloop.run(main())
