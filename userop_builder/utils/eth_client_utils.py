import asyncio
import json
import logging
from typing import Any

from aiohttp import ClientSession

from userop_builder.exceptions import TransportError
from userop_builder.rpc.jsonrpc import is_returnable_error_code


async def send_rpc_request_to_eth_client(
    nodes_urls: list[str] | str,
    method: str,
    params=None,
    number_of_retry_attempts: int = 3,
    retry_delay: float = 1,
) -> Any:
    if isinstance(nodes_urls, str):
        nodes_urls = [nodes_urls]
    json_request = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": method,
        "params": params if params is not None else [],
    }
    headers = {
        "content-type": "application/json",
        "connection": "keep-alive"
    }
    json_result = None
    nodes_len = len(nodes_urls)
    for i in range(number_of_retry_attempts):
        node_index = i % nodes_len
        if nodes_len > 1 and i > 0:
            logging.info(f'retrying with node no: {node_index + 1}.')
        chosen_node_url = nodes_urls[node_index]  # iterate through nodes
        try:
            async with ClientSession() as session:
                async with session.post(
                    chosen_node_url,
                    json=json_request,
                    headers=headers
                ) as response:
                    resp = await response.read()
                    json_result = json.loads(resp)
        except json.decoder.JSONDecodeError:
            logging.error(
                f"Attempt No. {i+1} to call node rpc {method} failed."
                "Invalid json response from eth client."
            )
            await asyncio.sleep(retry_delay)
        except Exception as excp:
            logging.error(
                f"Attempt No. {i+1} to call node rpc {method} failed."
                f"error: {str(excp)}"
            )
            await asyncio.sleep(retry_delay)
        else:
            if not isinstance(json_result, dict):
                logging.error(
                    f"Attempt No. {i+1} to call node rpc {method} failed."
                    f"Unexpected response: {str(json_result)}"
                )
                continue
            if "error" in json_result:
                error = json_result["error"]
                err_code = error.get("code") if isinstance(error, dict) \
                    else None
                if not is_returnable_error_code(err_code):
                    err_message = error.get("message", "") \
                        if isinstance(error, dict) else str(error)
                    logging.error(
                        f"Attempt No. {i+1} to call node rpc failed."
                        f"the request: {str(json_request)}"
                        f" with error code: {err_code}"
                        f" and error message: {err_message}."
                    )
                    continue
            elif "result" not in json_result:
                logging.error(
                    f"Attempt No. {i+1} to call node rpc failed."
                    f"the request: {str(json_request)}"
                    f" as the response has no result: {str(json_result)}"
                )
                continue
            return json_result
    raise TransportError(
        f"Failed rpc request after {number_of_retry_attempts} attempts",
        method,
    )
