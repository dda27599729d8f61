import logging

from eth_utils import to_checksum_address

from userop_builder.contracts.entrypoint import \
    SENDER_ADDRESS_RESULT_SELECTOR, EntryPoint, decode_failure_reason, \
    decode_revert_data
from userop_builder.contracts.etherspot_wallet_factory import \
    EtherspotWalletFactory
from userop_builder.exceptions import \
    AmbiguousResolutionError, MalformedRevertPayload, TransportError
from userop_builder.typing import Address


async def resolve_sender_address(
    entry_point: EntryPoint,
    factory: EtherspotWalletFactory,
    owner: Address,
    salt: int,
) -> tuple[Address, bytes]:
    """
    Counterfactual wallet address for (factory, owner, salt) together with
    the init code that deploys it.

    EntryPoint.getSenderAddress reports the address by reverting with
    SenderAddressResult(address), so a reverted simulation is the success
    path and a successful one is an error.
    """
    init_code = factory.get_init_code(owner, salt)
    simulation = await entry_point.simulate_get_sender_address(init_code)

    if not simulation.reverted:
        logging.critical("getSenderAddress didn't revert!")
        raise AmbiguousResolutionError(
            "getSenderAddress simulation succeeded instead of reverting, " +
            f"sender address for factory {factory.address} can't be trusted"
        )

    if simulation.revert_data is None:
        raise TransportError(
            simulation.error_message or
            "getSenderAddress failed without revert data",
            "eth_call",
        )

    sender_address = extract_address_from_revert_data(simulation.revert_data)
    logging.info(
        f"Resolved sender address {sender_address} for owner {owner} " +
        f"salt {salt}"
    )
    return sender_address, init_code


def extract_address_from_revert_data(revert_data: str) -> Address:
    """
    Address carried by a SenderAddressResult(address) revert. Any other
    revert, or an address word with non zero padding, is malformed.
    """
    revert_bytes = decode_revert_data(revert_data)
    failure_reason = decode_failure_reason(revert_data)
    if failure_reason is not None:
        raise MalformedRevertPayload(
            f"Sender address simulation failed: {failure_reason}",
            revert_data,
        )
    if revert_data[:10].lower() != SENDER_ADDRESS_RESULT_SELECTOR:
        raise MalformedRevertPayload(
            f"Unexpected getSenderAddress revert: {revert_data}",
            revert_data,
        )
    address_word = revert_bytes[4:36]
    if len(address_word) < 32 or any(address_word[:12]):
        raise MalformedRevertPayload(
            f"Invalid SenderAddressResult address word: {revert_data}",
            revert_data,
        )
    return Address(to_checksum_address("0x" + address_word[12:].hex()))
