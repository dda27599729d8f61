import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address

from userop_builder.account.account_state import resolve_account
from userop_builder.account.address_resolver import resolve_sender_address
from userop_builder.builder.user_operation_builder import UserOperationBuilder
from userop_builder.contracts.entrypoint import EntryPoint
from userop_builder.contracts.etherspot_wallet import \
    encode_execute, encode_execute_batch
from userop_builder.contracts.etherspot_wallet_factory import \
    EtherspotWalletFactory
from userop_builder.exceptions import EncodingError
from userop_builder.middleware.gas_limit import estimate_user_operation_gas
from userop_builder.middleware.gas_price import get_gas_price
from userop_builder.middleware.pipeline import Middleware
from userop_builder.middleware.signature import \
    get_placeholder_signature, sign_user_op_hash
from userop_builder.rpc.provider import BundlerJsonRpcProvider
from userop_builder.typing import Address
from userop_builder.user_operation.models import AccountDescriptor, Call
from userop_builder.user_operation.user_operation import \
    UserOperation, verify_and_get_address


@dataclass
class GasLimitOptions:
    call_gas_limit: int | None = None
    verification_gas_limit: int | None = None
    pre_verification_gas: int | None = None


@dataclass
class PresetBuilderOptions:
    entry_point_address: Address
    factory_address: Address
    override_bundler_rpc: str | None = None
    nonce_key: int = 0
    salt: int = 0
    gas_limit_options: GasLimitOptions = field(default_factory=GasLimitOptions)
    # replaces bundler gas estimation when set
    paymaster_middleware: Middleware | None = None


class EtherspotWallet(UserOperationBuilder):
    credentials: LocalAccount
    provider: BundlerJsonRpcProvider
    entry_point: EntryPoint
    factory: EtherspotWalletFactory
    descriptor: AccountDescriptor

    def __init__(
        self,
        credentials: LocalAccount,
        provider: BundlerJsonRpcProvider,
        entry_point: EntryPoint,
        factory: EtherspotWalletFactory,
    ):
        super().__init__()
        self.credentials = credentials
        self.provider = provider
        self.entry_point = entry_point
        self.factory = factory

    @classmethod
    async def init(
        cls,
        credentials: LocalAccount,
        rpc_url: str,
        opts: PresetBuilderOptions,
        provider: BundlerJsonRpcProvider | None = None,
    ) -> "EtherspotWallet":
        """
        Resolve the counterfactual wallet address of the owner and register
        the defaults, resolve_account, gas_price, estimate_gas (or paymaster)
        and signature stages.
        """
        verify_options(opts)
        if provider is None:
            provider = BundlerJsonRpcProvider(rpc_url)
        if opts.override_bundler_rpc is not None:
            provider.set_bundler_rpc(opts.override_bundler_rpc)

        entry_point = EntryPoint(
            Address(to_checksum_address(opts.entry_point_address)), provider)
        factory = EtherspotWalletFactory(
            Address(to_checksum_address(opts.factory_address)))
        wallet = cls(credentials, provider, entry_point, factory)

        tasks: Any = await asyncio.gather(
            resolve_sender_address(
                entry_point, factory, credentials.address, opts.salt),
            provider.get_chain_id(),
        )
        (sender_address, init_code), chain_id = tasks

        wallet.descriptor = AccountDescriptor(
            address=sender_address,
            entry_point_address=entry_point.address,
            factory_address=factory.address,
            nonce_key=opts.nonce_key,
            owner_address=credentials.address,
            init_code=init_code,
            chain_id=chain_id,
        )

        gas_limit_options = opts.gas_limit_options
        wallet.use_defaults(
            {
                "sender_address": sender_address,
                "signature": get_placeholder_signature(credentials),
                "call_gas_limit": gas_limit_options.call_gas_limit,
                "verification_gas_limit":
                    gas_limit_options.verification_gas_limit,
                "pre_verification_gas": gas_limit_options.pre_verification_gas,
                "paymaster_and_data": b"",
            }
        )
        wallet.use_middleware(
            "resolve_account", resolve_account(entry_point, wallet.descriptor))
        wallet.use_middleware("gas_price", get_gas_price(provider))
        if opts.paymaster_middleware is not None:
            wallet.use_middleware("paymaster", opts.paymaster_middleware)
        else:
            wallet.use_middleware(
                "estimate_gas", estimate_user_operation_gas(provider))
        wallet.use_middleware("signature", sign_user_op_hash(credentials))

        logging.info(
            f"Etherspot wallet {sender_address} on chain {chain_id} " +
            f"for owner {credentials.address}"
        )
        return wallet

    def get_sender(self) -> Address:
        return self.descriptor.address

    def execute(self, call: Call | Mapping[str, Any]) -> UserOperation:
        return self.new_op(call_data=encode_execute(call))

    def execute_batch(
        self, calls: list[Call | Mapping[str, Any]]
    ) -> UserOperation:
        return self.new_op(call_data=encode_execute_batch(calls))

    async def build(self, user_operation: UserOperation) -> UserOperation:
        return await self.build_op(
            user_operation, self.entry_point.address, self.descriptor.chain_id)


def verify_options(opts: PresetBuilderOptions) -> None:
    verify_and_get_address("entry_point_address", opts.entry_point_address)
    verify_and_get_address("factory_address", opts.factory_address)
    if isinstance(opts.nonce_key, bool) or not isinstance(opts.nonce_key, int):
        raise EncodingError(f"Invalid nonce key : {opts.nonce_key}")
    if not 0 <= opts.nonce_key < 2**192:
        raise EncodingError(f"Out of range nonce key : {opts.nonce_key}")
    if isinstance(opts.salt, bool) or not isinstance(opts.salt, int):
        raise EncodingError(f"Invalid salt : {opts.salt}")
    if not 0 <= opts.salt < 2**256:
        raise EncodingError(f"Out of range salt : {opts.salt}")
