"""
Fake bitcoind JSON-RPC server for testing without a node.

    python -m bitcoind_exporter.mock.fake_bitcoind_server
    bitcoind-exporter --rpc-url http://127.0.0.1:18443 --rpc-user user --rpc-password pass

Answers the handful of RPCs the exporter uses with a mainnet-like canned
state. Individual methods can be overridden or made to fail per server.
"""

from __future__ import annotations

import base64
import json
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Any, Dict, Iterable, Optional, Tuple

BEST_BLOCK_HASH = "0000000000000000000320283a032748cef8227873ff4872689bf23f1cda83a5"

# Per-horizon feerates in BTC/kvB
_FEE_RATES = {2: 0.00031, 3: 0.00025, 5: 0.00018, 20: 0.00011}
_HASH_RATES = {120: 6.1e20, 1: 5.4e20}


def _estimatesmartfee(params):
    target = params[0]
    if target in _FEE_RATES:
        return {"feerate": _FEE_RATES[target], "blocks": target}
    return {"errors": ["Insufficient data or no feerate found"], "blocks": 0}


def _getnetworkhashps(params):
    window = params[0] if params else 120
    return _HASH_RATES.get(window, _HASH_RATES[120])


DEFAULT_RESPONSES: Dict[str, Any] = {
    "getnetworkinfo": {
        "version": 270000,
        "subversion": "/Satoshi:27.0.0/",
        "protocolversion": 70016,
        "localservices": "0000000000000c09",
        "localrelay": True,
        "timeoffset": 0,
        "networkactive": True,
        "connections": 10,
        "connections_in": 2,
        "connections_out": 8,
        "relayfee": 0.00001,
        "incrementalfee": 0.00001,
        "warnings": "",
    },
    "getblockchaininfo": {
        "chain": "main",
        "blocks": 840000,
        "headers": 840000,
        "bestblockhash": BEST_BLOCK_HASH,
        "difficulty": 86388558925171.02,
        "time": 1713571767,
        "mediantime": 1713570208,
        "verificationprogress": 0.9999987,
        "initialblockdownload": False,
        "size_on_disk": 620143534839,
        "pruned": False,
        "warnings": "",
    },
    "uptime": 86400,
    "getblockheader": {
        "hash": BEST_BLOCK_HASH,
        "confirmations": 1,
        "height": 840000,
        "version": 710926336,
        "time": 1713571767,
        "nTx": 3050,
    },
    "getblockstats": {
        "height": 840000,
        "blockhash": BEST_BLOCK_HASH,
        "total_size": 2325617,
        "total_weight": 3993281,
        "txs": 3050,
        "ins": 6843,
        "outs": 8576,
        "total_out": 102523178440,
        "totalfee": 3762471556,
        "subsidy": 312500000,
    },
    "estimatesmartfee": _estimatesmartfee,
    "getnetworkhashps": _getnetworkhashps,
    "listbanned": [
        {
            "address": "192.0.2.10/32",
            "ban_created": 1713000000,
            "banned_until": 1713086400,
            "ban_duration": 86400,
            "time_remaining": 3600,
        },
    ],
    "getchaintips": [
        {"height": 840000, "hash": BEST_BLOCK_HASH, "branchlen": 0, "status": "active"},
        {
            "height": 839876,
            "hash": "00000000000000000001a2b3c4d5e6f708192a3b4c5d6e7f8091a2b3c4d5e6f7",
            "branchlen": 1,
            "status": "valid-fork",
        },
    ],
    "getmempoolinfo": {
        "loaded": True,
        "size": 95012,
        "bytes": 48123456,
        "usage": 261234567,
        "total_fee": 2.51234567,
        "maxmempool": 300000000,
        "mempoolminfee": 0.00001,
        "minrelaytxfee": 0.00001,
        "unbroadcastcount": 0,
    },
    "getnettotals": {
        "totalbytesrecv": 9876543210,
        "totalbytessent": 1234567890,
        "timemillis": 1713571800000,
    },
}


def resolve_result(responses: Dict[str, Any], method: str, params: list) -> Any:
    """Look up the canned result for a method. Callables get the params."""
    result = responses[method]
    return result(params) if callable(result) else result


class FakeBitcoindServer(HTTPServer):

    def __init__(
        self,
        address: Tuple[str, int],
        responses: Optional[Dict[str, Any]] = None,
        failing: Iterable[str] = (),
        auth: Optional[Tuple[str, str]] = None,
    ):
        super().__init__(address, _RPCHandler)
        self.responses = dict(DEFAULT_RESPONSES)
        self.responses.update(responses or {})
        self.failing = set(failing)
        self.auth = auth
        self.requests: list = []

    @property
    def url(self) -> str:
        host, port = self.server_address[:2]
        return f"http://{host}:{port}"


class _RPCHandler(BaseHTTPRequestHandler):
    server: FakeBitcoindServer

    def do_POST(self):
        if not self._authorized():
            self.send_response(401)
            self.send_header("WWW-Authenticate", 'Basic realm="jsonrpc"')
            self.send_header("Content-Length", "0")
            self.end_headers()
            return

        length = int(self.headers.get("Content-Length", 0))
        request = json.loads(self.rfile.read(length) or b"{}")
        method = request.get("method", "")
        params = request.get("params", [])
        self.server.requests.append((method, params))

        if method in self.server.failing:
            self._reply(500, None, {"code": -1, "message": f"{method} is unavailable"}, request)
        elif method not in self.server.responses:
            self._reply(404, None, {"code": -32601, "message": "Method not found"}, request)
        else:
            result = resolve_result(self.server.responses, method, params)
            self._reply(200, result, None, request)

    def _authorized(self) -> bool:
        if self.server.auth is None:
            return True
        expected = base64.b64encode(":".join(self.server.auth).encode()).decode()
        return self.headers.get("Authorization") == f"Basic {expected}"

    def _reply(self, status: int, result, error, request: dict):
        body = json.dumps({"result": result, "error": error, "id": request.get("id")}).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass  # Suppress request logging noise


def run_fake_server(host: str = "127.0.0.1", port: int = 18443):
    server = FakeBitcoindServer((host, port), auth=("user", "pass"))
    print(f"Fake bitcoind RPC server running at {server.url}")
    print("Press Ctrl+C to stop.\n")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    server.server_close()
    print("\nServer stopped.")


if __name__ == "__main__":
    run_fake_server()
