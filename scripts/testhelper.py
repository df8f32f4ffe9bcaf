#!/usr/bin/env python3
"""Testhelper CLI for initflow envelope interoperability testing.

All binary values on stdin and stdout are standard base64.
"""

import asyncio
import json
import os
import sys

from initflow import InitflowClient, generate_keypair, open_envelope, seal
from initflow.crypto import from_base64, to_base64
from initflow.errors import CryptoError


def keypair() -> None:
    """Generate a device key pair and output it as JSON."""
    kp = generate_keypair()
    output = {
        "publicKey": to_base64(kp.public_key),
        "privateKey": to_base64(kp.private_key),
    }
    print(json.dumps(output))


def seal_key() -> None:
    """Seal the plaintext from stdin JSON to a recipient public key."""
    data = json.loads(sys.stdin.read())
    envelope = seal(from_base64(data["plaintext"]), from_base64(data["publicKey"]))
    print(json.dumps({"envelope": to_base64(envelope.to_bytes())}))


def open_key() -> None:
    """Open the envelope from stdin JSON with a private key."""
    data = json.loads(sys.stdin.read())
    try:
        plaintext = open_envelope(from_base64(data["envelope"]), from_base64(data["privateKey"]))
    except CryptoError as e:
        print(json.dumps({"success": False, "error": type(e).__name__}))
        return
    print(json.dumps({"success": True, "plaintext": to_base64(plaintext)}))


async def recover(slug: str) -> None:
    """Fetch and open a workspace key for the device in INITFLOW_STORE_PATH."""
    async with InitflowClient(
        base_url=os.environ["INITFLOW_URL"],
        store_path=os.environ["INITFLOW_STORE_PATH"],
    ) as client:
        key = await client.recover_workspace_key(slug)
    print(json.dumps({"workspaceKey": to_base64(key)}))


def main() -> None:
    """Main entry point."""
    if len(sys.argv) < 2:
        print("usage: testhelper.py <command> [args]", file=sys.stderr)
        sys.exit(1)

    command = sys.argv[1]

    if command == "keypair":
        keypair()
    elif command == "seal":
        seal_key()
    elif command == "open":
        open_key()
    elif command == "recover":
        if len(sys.argv) < 3:
            print("usage: testhelper.py recover <slug>", file=sys.stderr)
            sys.exit(1)
        asyncio.run(recover(sys.argv[2]))
    else:
        print(f"unknown command: {command}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
