"""
Wallet bridge smoke check: python3 scripts/check_bridge.py
Needs the bridge running on GUESS_BRIDGE_URL (default http://127.0.0.1:8787).
Exercises every endpoint the guess client relies on, then completes a
signing request by hand the way the browser page would.
"""
import json
import os
import threading
import time
from urllib import request

from guess_client.wallet_bridge import WalletBridgeClient

BASE = os.environ.get("GUESS_BRIDGE_URL", "http://127.0.0.1:8787").rstrip("/")
PLAYER = "guess-check"
c = WalletBridgeClient(BASE)

print("=== Wallet bridge check ===\n")

h = c.health()
assert h.get("ok"), f"health failed: {h}"
print("✓ /health")

conn = c.connect_player(PLAYER, "GuessCheck", open_browser=False)
assert conn.get("ok") and conn.get("connectUrl"), f"connect failed: {conn}"
print("✓ POST /wallet/connect")

acc = c.get_account_for_player(PLAYER)
assert acc.get("ok"), f"account failed: {acc}"
print(f"✓ GET /wallet/account  connected={acc.get('connected')}")

net = c.get_network(PLAYER)
assert "ok" in net, f"network failed: {net}"
print(f"✓ GET /wallet/network  {net.get('networkPassphrase') or net.get('network')}")

req = c.create_sign_request(
    PLAYER, "register", "AAAAREGISTERXDR",
    "Test SDF Network ; September 2015",
    {"source": "check_bridge"},
    open_browser=False,
)
assert req.get("ok") and req.get("requestId"), f"tx/request failed: {req}"
rid = req["requestId"]
print(f"✓ POST /tx/request  id={rid}")

poll = c.get_sign_request(rid)
assert poll.get("ok") and poll["request"]["status"] == "pending"
print("✓ GET /tx/request/:id  status=pending")


def _complete():
    time.sleep(1.0)
    body = json.dumps({"signedXdr": "AAAA_REGISTER_SIGNED", "walletAddress": "GCHECK"}).encode()
    r = request.Request(
        f"{BASE}/tx/request/{rid}/complete",
        data=body,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    request.urlopen(r, timeout=5)


threading.Thread(target=_complete, daemon=True).start()

result = c.wait_for_signed_request(rid, timeout_seconds=10, poll_seconds=0.5)
assert result.get("ok"), f"wait failed: {result}"
assert result["request"]["status"] == "signed"
assert result["request"]["signedXdr"] == "AAAA_REGISTER_SIGNED"
print("✓ wait_for_signed_request  status=signed")

print("\n=== Bridge ready for the guess client ✓ ===")
