from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector

from userop_builder.typing import Address

CREATE_ACCOUNT_SELECTOR = function_signature_to_4byte_selector(
    "createAccount(address,uint256)")


class EtherspotWalletFactory:
    address: Address

    def __init__(self, address: Address):
        self.address = address

    def encode_create_account(self, owner: Address, salt: int) -> bytes:
        params = encode(["address", "uint256"], [owner, salt])
        return CREATE_ACCOUNT_SELECTOR + params

    def get_init_code(self, owner: Address, salt: int) -> bytes:
        """factory address followed by the createAccount calldata"""
        return (
            bytes.fromhex(self.address[2:]) +
            self.encode_create_account(owner, salt)
        )
