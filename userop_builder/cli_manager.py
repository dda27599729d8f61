import logging
import os
import re
from argparse import ArgumentParser, ArgumentTypeError, Namespace
from dataclasses import dataclass
from importlib.metadata import version

from eth_account.signers.local import LocalAccount

from .typing import Address
from .utils.import_key import \
    import_owner_account, owner_account_from_private_key

__version__ = version("userop_builder")


@dataclass()
class InitData:
    rpc_url: str
    bundler_rpc_url: str | None
    owner: LocalAccount
    entrypoint: Address
    factory: Address
    nonce_key: int
    salt: int
    call_gas_limit: int | None
    verification_gas_limit: int | None
    pre_verification_gas: int | None
    paymaster_url: str | None
    to: Address | None
    value: int
    data: str
    send: bool
    client_version: str


def address(ep: str):
    address_pattern = "^0x[0-9a-fA-F]{40}$"
    if not isinstance(ep, str) or re.match(address_pattern, ep) is None:
        raise ArgumentTypeError(f"Wrong address format : {ep}")
    return ep


def unsigned_int(value):
    ivalue = int(value, 0) if isinstance(value, str) else int(value)
    if ivalue < 0:
        raise ArgumentTypeError(
                "%s is an invalid unsigned int value" % value)
    return ivalue


def hex_data(value: str):
    if not isinstance(value, str) or re.match(
            "^0x([0-9a-fA-F]{2})*$", value) is None:
        raise ArgumentTypeError(f"Wrong hex data format : {value}")
    return value


def _get_env_or_default(env_var, default, value_type):
    """
    Helper function to get the value from an environment variable or return
    the default value.
    """
    value = os.getenv(env_var, None)
    if value is not None:
        if value_type == bool:
            return value.lower() in ("1", "true", "yes")
        return value_type(value)
    return default


def initialize_argument_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="userop-builder",
        description="ERC-4337 UserOperation builder for Etherspot wallets",
    )

    group = parser.add_mutually_exclusive_group(required=False)

    group.add_argument(
        "--owner_secret",
        type=str,
        help="Wallet owner private key",
        nargs="?",
        default=_get_env_or_default("USEROP_OWNER_SECRET", None, str),
    )

    group.add_argument(
        "--keystore_file_path",
        type=str,
        help="Wallet owner keystore file path",
        nargs="?",
        default=_get_env_or_default("USEROP_KEYSTORE_FILE_PATH", None, str),
    )

    parser.add_argument(
        "--keystore_file_password",
        type=str,
        help="Wallet owner keystore file password - defaults to no password",
        nargs="?",
        default=_get_env_or_default("USEROP_KEYSTORE_FILE_PASSWORD", "", str),
    )

    parser.add_argument(
        "--rpc_url",
        type=str,
        help="Ethereum node RPC url",
        nargs="?",
        default=_get_env_or_default(
            "USEROP_RPC_URL", "http://0.0.0.0:8545", str),
    )

    parser.add_argument(
        "--bundler_rpc_url",
        type=str,
        help="Bundler RPC url - defaults to the Ethereum node RPC url",
        nargs="?",
        default=_get_env_or_default("USEROP_BUNDLER_RPC_URL", None, str),
    )

    parser.add_argument(
        "--entrypoint",
        type=address,
        help="EntryPoint v0.6 address",
        nargs="?",
        default=_get_env_or_default("USEROP_ENTRYPOINT", None, str),
    )

    parser.add_argument(
        "--factory",
        type=address,
        help="Etherspot wallet factory address",
        nargs="?",
        default=_get_env_or_default("USEROP_FACTORY", None, str),
    )

    parser.add_argument(
        "--nonce_key",
        type=unsigned_int,
        help="EntryPoint nonce key - defaults to 0",
        nargs="?",
        default=_get_env_or_default("USEROP_NONCE_KEY", 0, unsigned_int),
    )

    parser.add_argument(
        "--salt",
        type=unsigned_int,
        help="Wallet factory salt - defaults to 0",
        nargs="?",
        default=_get_env_or_default("USEROP_SALT", 0, unsigned_int),
    )

    parser.add_argument(
        "--call_gas_limit",
        type=unsigned_int,
        help="Call gas limit - defaults to the bundler estimation",
        nargs="?",
        default=_get_env_or_default(
            "USEROP_CALL_GAS_LIMIT", None, unsigned_int),
    )

    parser.add_argument(
        "--verification_gas_limit",
        type=unsigned_int,
        help="Verification gas limit - defaults to the bundler estimation",
        nargs="?",
        default=_get_env_or_default(
            "USEROP_VERIFICATION_GAS_LIMIT", None, unsigned_int),
    )

    parser.add_argument(
        "--pre_verification_gas",
        type=unsigned_int,
        help="Pre verification gas - defaults to the bundler estimation",
        nargs="?",
        default=_get_env_or_default(
            "USEROP_PRE_VERIFICATION_GAS", None, unsigned_int),
    )

    parser.add_argument(
        "--paymaster_url",
        type=str,
        help="Verifying paymaster RPC url - replaces bundler gas estimation",
        nargs="?",
        default=_get_env_or_default("USEROP_PAYMASTER_URL", None, str),
    )

    parser.add_argument(
        "--to",
        type=address,
        help="Call target - without it only the wallet address is printed",
        nargs="?",
        default=_get_env_or_default("USEROP_TO", None, str),
    )

    parser.add_argument(
        "--value",
        type=unsigned_int,
        help="Call value in wei - defaults to 0",
        nargs="?",
        default=_get_env_or_default("USEROP_VALUE", 0, unsigned_int),
    )

    parser.add_argument(
        "--data",
        type=hex_data,
        help="Call data - defaults to 0x",
        nargs="?",
        default=_get_env_or_default("USEROP_DATA", "0x", str),
    )

    parser.add_argument(
        "--send",
        help="Send the built UserOperation to the bundler",
        nargs="?",
        const=True,
        default=_get_env_or_default("USEROP_SEND", False, bool),
    )

    parser.add_argument(
        "--verbose",
        help="show debug log",
        nargs="?",
        const=True,
        default=_get_env_or_default("USEROP_VERBOSE", False, bool),
    )

    return parser


def parse_args(cmd_args: list[str]) -> InitData:
    argument_parser: ArgumentParser = initialize_argument_parser()
    args = argument_parser.parse_args(cmd_args)
    if not args.owner_secret and not args.keystore_file_path:
        argument_parser.error(
            "You must specify either --owner_secret or --keystore_file_path, " +
            "or set USEROP_OWNER_SECRET or USEROP_KEYSTORE_FILE_PATH " +
            "environment variables."
        )
    if args.owner_secret and args.keystore_file_path:
        argument_parser.error(
            "You can only specify either --owner_secret or " +
            "--keystore_file_path but not both at the same time"
        )
    if args.entrypoint is None:
        argument_parser.error(
            "You must specify --entrypoint or set USEROP_ENTRYPOINT")
    if args.factory is None:
        argument_parser.error(
            "You must specify --factory or set USEROP_FACTORY")
    if args.nonce_key >= 2**192:
        argument_parser.error(f"nonce key {args.nonce_key} exceeds uint192")
    if args.send and args.to is None:
        argument_parser.error("--send needs a call target --to")
    return get_init_data(args)


def init_logging(args: Namespace):
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s.%(msecs)03d %(levelname)s %(message)s",
        datefmt="%b %d %H:%M:%S",
    )

    logging.getLogger("userop_builder")


def init_owner_account(args: Namespace) -> LocalAccount:
    if args.keystore_file_path is not None:
        return import_owner_account(
            args.keystore_file_password, args.keystore_file_path
        )
    return owner_account_from_private_key(args.owner_secret)


def get_init_data(args: Namespace) -> InitData:
    init_logging(args)

    owner = init_owner_account(args)

    ret = InitData(
        args.rpc_url,
        args.bundler_rpc_url,
        owner,
        args.entrypoint,
        args.factory,
        args.nonce_key,
        args.salt,
        args.call_gas_limit,
        args.verification_gas_limit,
        args.pre_verification_gas,
        args.paymaster_url,
        args.to,
        args.value,
        args.data,
        bool(args.send),
        __version__,
    )

    if args.verbose:
        print("version : " + __version__)

    logging.info(f"Owner {owner.address}")

    return ret
