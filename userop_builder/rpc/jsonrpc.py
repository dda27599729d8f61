# JSON-RPC 2.0 error-codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_METHOD_PARAMS = -32602  # invalid number/type of parameters
INTERNAL_ERROR = -32603
SERVER_ERROR = -32000
EXECUTION_REVERTED = 3

# bundler (eip-4337) validation and execution error range
BUNDLER_ERROR_RANGE = range(-32599, -32499)

# human-readable messages
ERROR_MESSAGE = {
    PARSE_ERROR: "Parse error.",
    INVALID_REQUEST: "Invalid Request.",
    METHOD_NOT_FOUND: "Method not found.",
    INVALID_METHOD_PARAMS: "Invalid parameters.",
    INTERNAL_ERROR: "Internal error.",
}


class RPCFault(Exception):
    def __init__(self, error_code, error_message, error_data=None):
        super().__init__(error_message)
        self.error_code = error_code
        self.error_message = error_message
        self.error_data = error_data

    @classmethod
    def from_response(cls, error: dict | str) -> "RPCFault":
        if not isinstance(error, dict):
            return cls(None, str(error))
        error_code = error.get("code")
        error_message = error.get(
            "message", ERROR_MESSAGE.get(error_code, ""))
        return cls(error_code, error_message, error.get("data"))

    def __str__(self):
        return repr(self)

    def __repr__(self):
        return (
            f"<RPCFault {self.error_code}:{repr(self.error_message)} " +
            f"{repr(self.error_data)}>"
        )


def is_returnable_error_code(error_code: int | None) -> bool:
    """
    Errors the node or bundler answered deliberately (reverts, validation
    failures) are handed back to the caller instead of being retried.
    """
    return (
        error_code is None or
        error_code in (
            EXECUTION_REVERTED,
            SERVER_ERROR,
            INTERNAL_ERROR,
            METHOD_NOT_FOUND,
            INVALID_METHOD_PARAMS,
        ) or
        error_code in BUNDLER_ERROR_RANGE
    )
